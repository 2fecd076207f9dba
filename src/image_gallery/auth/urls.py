"""URL builders for the Cognito hosted UI endpoints.

All functions are pure.  Persisting ``state`` and the code verifier is the
caller's job and must happen *before* the browser is sent to the returned
authorize URL (see :meth:`image_gallery.auth.service.CognitoAuthService.start_login`).
"""

from __future__ import annotations

from typing import Final
from urllib.parse import urlencode

DEFAULT_SCOPE: Final[str] = "openid email"
CALLBACK_PATH: Final[str] = "/callback"


def normalize_domain(domain: str) -> str:
    """Return *domain* with a scheme and without trailing slashes."""
    domain = domain.strip().rstrip("/")
    if not domain:
        raise ValueError("identity provider domain is empty")
    if not domain.startswith(("http://", "https://")):
        domain = f"https://{domain}"
    return domain


def callback_uri(app_origin: str) -> str:
    """Redirect URI registered with the identity provider for *app_origin*."""
    return f"{app_origin.rstrip('/')}{CALLBACK_PATH}"


def build_authorize_url(
    *,
    domain: str,
    client_id: str,
    state: str,
    code_challenge: str,
    redirect_uri: str,
    scope: str = DEFAULT_SCOPE,
) -> str:
    """Return the provider authorize URL carrying ``state`` and the PKCE challenge.

    ``prompt=login`` forces the hosted UI to ask for credentials even when it
    still holds a session cookie for the user.
    """
    query_params: dict[str, str] = {
        "client_id": client_id,
        "response_type": "code",
        "scope": scope,
        "redirect_uri": redirect_uri,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "prompt": "login",
    }
    return f"{normalize_domain(domain)}/oauth2/authorize?{urlencode(query_params)}"


def build_logout_url(*, domain: str, client_id: str, logout_uri: str) -> str:
    """Return the provider logout URL redirecting back to *logout_uri*."""
    query = urlencode({"client_id": client_id, "logout_uri": logout_uri})
    return f"{normalize_domain(domain)}/logout?{query}"


def token_endpoint(domain: str) -> str:
    return f"{normalize_domain(domain)}/oauth2/token"
