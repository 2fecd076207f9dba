"""Decode-only helpers for Cognito ID tokens.

The claims are read with :func:`jose.jwt.get_unverified_claims`, i.e.
**without signature verification**.  The resulting
:class:`~image_gallery.auth.models.AuthenticatedUser` is only used to drive
the front end; every protected resource is checked again by the gallery API,
which validates the bearer token itself.  Do not add signature verification
here without revisiting that trust boundary.
"""

from __future__ import annotations

from typing import Any

from jose import jwt
from jose.exceptions import JWTError

from image_gallery.auth.errors import TokenDecodeError
from image_gallery.auth.models import AuthenticatedUser

_GROUPS_CLAIM = "cognito:groups"


def _as_bool(value: Any) -> bool:
    # Cognito emits email_verified as a JSON bool, some pools as "true"/"false"
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _as_groups(value: Any) -> tuple[str, ...]:
    """Groups arrive as a JSON list, or as one comma-separated string."""
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, list):
        return tuple(str(g) for g in value)
    raise TokenDecodeError()


def decode_claims(id_token: str) -> dict[str, Any]:
    """Return the unverified claims of *id_token*.

    Raises
    ------
    TokenDecodeError
        If the token is not a well-formed JWS or its payload is not a JSON
        object.
    """
    try:
        claims = jwt.get_unverified_claims(id_token)
    except JWTError:
        raise TokenDecodeError() from None
    if not isinstance(claims, dict):
        raise TokenDecodeError()
    return claims


def decode_id_token(id_token: str) -> AuthenticatedUser:
    """Decode *id_token* into an :class:`AuthenticatedUser`."""
    claims = decode_claims(id_token)
    sub = claims.get("sub")
    if sub is None or sub == "":
        raise TokenDecodeError()

    email = claims.get("email")
    return AuthenticatedUser(
        subject_id=str(sub),
        email=str(email) if email is not None else None,
        email_verified=_as_bool(claims.get("email_verified", False)),
        groups=_as_groups(claims.get(_GROUPS_CLAIM)),
    )
