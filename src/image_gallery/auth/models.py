"""Typed, immutable records used by the login flow."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Identity-provider coordinates for the Cognito hosted UI."""

    domain: str
    client_id: str


@dataclass(frozen=True, slots=True)
class AuthorizationRequest:
    """PKCE material created when kicking-off a browser-based login."""

    state: str
    code_verifier: str
    code_challenge: str

    def __repr__(self) -> str:
        # verifier is the PKCE secret and must not leak through reprs/logs
        return f"AuthorizationRequest(state=****, code_challenge={self.code_challenge[:6]}****)"


@dataclass(frozen=True, slots=True)
class SessionTokens:
    """Tokens returned by a successful authorization-code exchange."""

    access_token: str
    id_token: str

    def __repr__(self) -> str:
        return "SessionTokens(access_token=****, id_token=****)"


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """User identity decoded from the (unverified) ID token payload."""

    subject_id: str
    email: str | None = None
    email_verified: bool = False
    groups: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        return {
            "sub": self.subject_id,
            "email": self.email,
            "email_verified": self.email_verified,
            "groups": list(self.groups),
        }
