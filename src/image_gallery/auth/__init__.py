"""Browser login flow for the image gallery.

This namespace hosts the **HTTP-agnostic** building blocks of the OAuth 2.0
authorization-code + PKCE flow against the Cognito hosted UI.

Sub-modules
-----------
pkce
    Code verifier / challenge and ``state`` generation.
urls
    Authorize, logout and token endpoint URL builders.
id_token
    Decode-only ID token helpers.
store
    Session-scoped key/value storage and the typed token store.
service
    Orchestration of login, code exchange and logout.
callback
    State machine driving one identity-provider redirect.
models
    Immutable dataclasses for requests, tokens and users.
errors
    Exception taxonomy of a failed login attempt.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .pkce import (  # noqa: F401
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
    new_authorization_request,
)
from .urls import build_authorize_url, build_logout_url, token_endpoint  # noqa: F401
from .id_token import decode_id_token  # noqa: F401
from .models import (  # noqa: F401
    AuthenticatedUser,
    AuthorizationRequest,
    ProviderConfig,
    SessionTokens,
)
from .store import (  # noqa: F401
    DiskKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SessionTokenStore,
)
from .service import CognitoAuthService  # noqa: F401
from .callback import CallbackHandler, CallbackOutcome, CallbackState  # noqa: F401
from .errors import (  # noqa: F401
    AuthFlowError,
    MissingParameterError,
    MissingTokenError,
    ProviderConfigError,
    ProviderReportedError,
    SessionStateMissingError,
    SessionStorageError,
    StateMismatchError,
    TokenDecodeError,
    TokenExchangeHttpError,
)
from .log_utils import get_auth_logger  # noqa: F401

__all__ = [
    # pkce
    "generate_code_verifier",
    "generate_code_challenge",
    "generate_state",
    "new_authorization_request",
    # urls
    "build_authorize_url",
    "build_logout_url",
    "token_endpoint",
    # id token
    "decode_id_token",
    # models
    "AuthenticatedUser",
    "AuthorizationRequest",
    "ProviderConfig",
    "SessionTokens",
    # store
    "KeyValueStore",
    "MemoryKeyValueStore",
    "DiskKeyValueStore",
    "SessionTokenStore",
    # service / callback
    "CognitoAuthService",
    "CallbackHandler",
    "CallbackOutcome",
    "CallbackState",
    # errors
    "AuthFlowError",
    "ProviderReportedError",
    "ProviderConfigError",
    "MissingParameterError",
    "SessionStateMissingError",
    "SessionStorageError",
    "StateMismatchError",
    "TokenExchangeHttpError",
    "MissingTokenError",
    "TokenDecodeError",
    # logging helpers
    "get_auth_logger",
]
