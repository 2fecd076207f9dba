"""Exception types raised by the login flow.

Only lightweight, **data-carrying** exceptions live here so that the callback
handler and the web layer can transform them into user-visible messages.
Every failure is terminal for the current login attempt; nothing here is
retried.
"""

from __future__ import annotations


class AuthFlowError(RuntimeError):
    """Base class for every failure of a single login attempt."""

    error_code: str = "auth_flow_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.error_code, "message": self.message}


class ProviderReportedError(AuthFlowError):
    """The identity provider redirected back with ``error`` set."""

    error_code = "provider_error"

    def __init__(self, error: str, description: str | None = None) -> None:
        message = f"{error}: {description}" if description else error
        super().__init__(message)
        self.error: str = error
        self.description: str | None = description


class ProviderConfigError(AuthFlowError):
    """Identity-provider coordinates could not be loaded."""

    error_code = "provider_config_unavailable"

    def __init__(self, detail: str) -> None:
        super().__init__(f"Unable to load identity provider configuration: {detail}")


class MissingParameterError(AuthFlowError):
    """The redirect lacked ``code`` or ``state``."""

    error_code = "missing_parameter"

    def __init__(self, message: str = "Missing authorization code or state") -> None:
        super().__init__(message)


class SessionStateMissingError(AuthFlowError):
    """Stored ``state`` or code verifier could not be read at callback time."""

    error_code = "session_state_missing"

    def __init__(
        self,
        message: str = "Unable to read state or code verifier from session storage",
    ) -> None:
        super().__init__(message)


class StateMismatchError(AuthFlowError):
    """Returned ``state`` does not match the stored value."""

    error_code = "state_mismatch"

    def __init__(
        self,
        message: str = "State mismatch between identity provider and session storage",
    ) -> None:
        super().__init__(message)


class TokenExchangeHttpError(AuthFlowError):
    """Token endpoint answered with a non-2xx status or could not be reached."""

    error_code = "token_exchange_failed"

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(f"Token exchange failed: {detail}")
        self.detail: str = detail
        self.status_code: int | None = status_code

    def to_payload(self) -> dict[str, str]:
        payload = super().to_payload()
        if self.status_code is not None:
            payload["status_code"] = str(self.status_code)
        return payload


class MissingTokenError(AuthFlowError):
    """Token response lacked the access token or the ID token."""

    error_code = "missing_token"

    def __init__(self, token_type: str) -> None:
        super().__init__(f"No {token_type} received")
        self.token_type: str = token_type


class TokenDecodeError(AuthFlowError):
    """ID token payload could not be decoded into a user record."""

    error_code = "token_decode_failed"

    def __init__(
        self, message: str = "Failed to decode user information from ID token"
    ) -> None:
        super().__init__(message)


class SessionStorageError(AuthFlowError):
    """The session backend could not be read or written."""

    error_code = "session_storage_failed"

    def __init__(self, action: str) -> None:
        super().__init__(f"Session storage failed while trying to {action}")
        self.action: str = action
