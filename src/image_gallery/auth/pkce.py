"""PKCE (Proof Key for Code Exchange) helpers.

RFC 7636 defines PKCE to protect public OAuth clients such as the gallery
front end.  The mechanism relies on a *code verifier* (random high-entropy
string) generated at the beginning of the flow and a *code challenge* derived
from that verifier that is sent to the authorization endpoint.

Only the S256 transformation is implemented; Cognito's hosted UI accepts it
and the plain method offers no protection.

The ``state`` token is generated here as well.  It is drawn independently of
the verifier and must never be used as challenge input.

This module intentionally performs **no logging** of verifiers, challenges or
state values.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

from image_gallery.auth.models import AuthorizationRequest

# 32 bytes encode to a 43 character verifier, the RFC-7636 minimum.
_VERIFIER_BYTES: Final[int] = 32
_STATE_BYTES: Final[int] = 16


def _b64url(data: bytes) -> str:
    """Base64-URL encode *without* padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(num_bytes: int = _VERIFIER_BYTES) -> str:
    """Generate a high-entropy code verifier.

    Parameters
    ----------
    num_bytes:
        Number of random bytes to encode (32-96, default 32).  The encoded
        verifier is therefore 43-128 characters long.

    Returns
    -------
    str
        URL-safe base64 string without padding.
    """
    if not _VERIFIER_BYTES <= num_bytes <= 96:
        raise ValueError("code verifier must be built from 32-96 random bytes")
    return _b64url(secrets.token_bytes(num_bytes))


def generate_code_challenge(verifier: str) -> str:
    """Compute the *S256* PKCE code challenge for a given verifier.

    Parameters
    ----------
    verifier:
        The code verifier string.

    Returns
    -------
    str
        Base64url-encoded SHA-256 hash of the UTF-8 verifier, without padding.
    """
    return _b64url(sha256(verifier.encode("utf-8")).digest())


def generate_state() -> str:
    """Return a random, hex encoded CSRF ``state`` token."""
    return secrets.token_hex(_STATE_BYTES)


def new_authorization_request() -> AuthorizationRequest:
    """Create fresh PKCE material for a single login attempt."""
    verifier = generate_code_verifier()
    return AuthorizationRequest(
        state=generate_state(),
        code_verifier=verifier,
        code_challenge=generate_code_challenge(verifier),
    )
