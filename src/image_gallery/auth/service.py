"""CognitoAuthService – browser login flow against the Cognito hosted UI.

The service encapsulates the *business logic* of the authorization-code +
PKCE flow.  The web handlers in ``image_gallery.servers.auth`` and the
:class:`~image_gallery.auth.callback.CallbackHandler` call the thin methods
below; the service itself knows nothing about HTTP requests coming *in*.

One service instance works on one :class:`SessionTokenStore`, i.e. on one
browser session.  Provider coordinates are obtained lazily through an
injected ``config_loader`` (normally
:meth:`image_gallery.client.GalleryApiClient.get_config`).

**No secrets are logged**: state values are masked, verifiers, authorization
codes and tokens never appear in log records.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import requests

from image_gallery.auth.errors import (
    MissingTokenError,
    ProviderConfigError,
    SessionStateMissingError,
    SessionStorageError,
    StateMismatchError,
    TokenDecodeError,
    TokenExchangeHttpError,
)
from image_gallery.auth.id_token import decode_id_token
from image_gallery.auth.models import AuthenticatedUser, ProviderConfig, SessionTokens
from image_gallery.auth.pkce import new_authorization_request
from image_gallery.auth.store import SessionTokenStore
from image_gallery.auth.urls import (
    build_authorize_url,
    build_logout_url,
    callback_uri,
    token_endpoint,
)
from image_gallery.utils.logging import mask_sensitive

_LOG = logging.getLogger("image-gallery.auth.service")

DEFAULT_TIMEOUT: tuple[float, float] = (5, 20)


@contextmanager
def _storage(action: str) -> Iterator[None]:
    """Turn backend I/O failures (disk full, lock timeout) into a flow error."""
    try:
        yield
    except OSError as exc:
        _LOG.error("Session storage failed while trying to %s: %s", action, exc)
        raise SessionStorageError(action) from exc


class CognitoAuthService:
    """Application service orchestrating the PKCE login flow for one session."""

    def __init__(
        self,
        store: SessionTokenStore,
        *,
        config_loader: Callable[[], ProviderConfig],
        app_origin: str,
        http: Any = None,
        timeout: tuple[float, float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.store = store
        self._config_loader = config_loader
        self.app_origin = app_origin.rstrip("/")
        # ``requests`` module or a ``requests.Session``; both expose ``post``
        self._http = http if http is not None else requests
        self.timeout = timeout

    @property
    def redirect_uri(self) -> str:
        return callback_uri(self.app_origin)

    def _provider_config(self) -> ProviderConfig:
        try:
            return self._config_loader()
        except (RuntimeError, ValueError, requests.RequestException) as exc:
            _LOG.warning("Identity provider configuration unavailable: %s", exc)
            raise ProviderConfigError(str(exc)) from exc

    # ------------------------------------------------------------------ #
    # Login                                                              #
    # ------------------------------------------------------------------ #
    def start_login(self) -> str:
        """Create and store PKCE material, then return the authorize URL.

        State and verifier are persisted before the URL is handed out so the
        callback can always find them.
        """
        config = self._provider_config()
        auth_request = new_authorization_request()
        with _storage("save the login attempt"):
            self.store.save_authorization_request(auth_request)

        url = build_authorize_url(
            domain=config.domain,
            client_id=config.client_id,
            state=auth_request.state,
            code_challenge=auth_request.code_challenge,
            redirect_uri=self.redirect_uri,
        )
        _LOG.debug("Built authorize URL state=%s", mask_sensitive(auth_request.state, 6))
        return url

    def exchange_code(self, *, code: str, state: str) -> AuthenticatedUser:
        """Validate *state*, exchange *code* for tokens and decode the user.

        Raises
        ------
        SessionStateMissingError
            Stored state or verifier is absent; no request is made.
        StateMismatchError
            *state* differs from the stored value; flow state is cleared.
        TokenExchangeHttpError
            The token endpoint failed or answered with a non-2xx status.
        MissingTokenError
            ``access_token`` or ``id_token`` missing from the response.
        TokenDecodeError
            The ID token payload could not be decoded.
        """
        with _storage("read the login attempt"):
            stored_state, code_verifier = self.store.read_flow_state()
        if not stored_state or not code_verifier:
            raise SessionStateMissingError()

        if state != stored_state:
            with _storage("clear the login attempt"):
                self.store.clear_flow_state()
            _LOG.warning(
                "State mismatch on callback (received=%s)", mask_sensitive(state, 4)
            )
            raise StateMismatchError()

        config = self._provider_config()
        payload: dict[str, str] = {
            "grant_type": "authorization_code",
            "client_id": config.client_id,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        }

        try:
            resp = self._http.post(
                token_endpoint(config.domain),
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TokenExchangeHttpError(str(exc)) from exc
        finally:
            # verifier and state are single-use once a code has been presented
            with _storage("clear the login attempt"):
                self.store.clear_flow_state()

        if not resp.ok:
            _LOG.warning("Token endpoint returned %s", resp.status_code)
            raise TokenExchangeHttpError(resp.text, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            raise TokenExchangeHttpError(
                "token endpoint returned invalid JSON", status_code=resp.status_code
            ) from None
        if not isinstance(data, dict):
            raise TokenExchangeHttpError(
                "token endpoint returned an unexpected body", status_code=resp.status_code
            )

        access_token = data.get("access_token")
        if not access_token:
            raise MissingTokenError("access token")
        id_token = data.get("id_token")
        if not id_token:
            raise MissingTokenError("ID token")

        with _storage("save tokens"):
            self.store.save_tokens(SessionTokens(access_token=access_token, id_token=id_token))

        user = decode_id_token(id_token)
        _LOG.info("Login completed for sub=%s", mask_sensitive(user.subject_id, 4))
        return user

    # ------------------------------------------------------------------ #
    # Session                                                            #
    # ------------------------------------------------------------------ #
    def current_user(self) -> AuthenticatedUser | None:
        """Return the user of the stored ID token, if one is stored and decodable."""
        id_token = self.store.get_id_token()
        if not id_token:
            return None
        try:
            return decode_id_token(id_token)
        except TokenDecodeError:
            _LOG.debug("Stored ID token could not be decoded")
            return None

    def logout(self) -> str:
        """Forget every stored value and return the provider logout URL."""
        with _storage("clear the session"):
            self.store.clear_all()
        config = self._provider_config()
        return build_logout_url(
            domain=config.domain,
            client_id=config.client_id,
            logout_uri=self.app_origin,
        )
