"""Tests for CognitoAuthService login start, code exchange and logout."""

from __future__ import annotations

from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
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
from image_gallery.auth.models import AuthenticatedUser, ProviderConfig
from image_gallery.auth.pkce import generate_code_challenge
from image_gallery.auth.service import CognitoAuthService
from image_gallery.auth.store import MemoryKeyValueStore, SessionTokenStore

DOMAIN = "https://gallery-test.auth.eu-west-2.amazoncognito.com"


def _seed_flow(store: SessionTokenStore, state: str = "S1", verifier: str = "V1") -> None:
    store.set_state(state)
    store.set_code_verifier(verifier)


# --------------------------------------------------------------------------- #
# start_login                                                                 #
# --------------------------------------------------------------------------- #
def test_start_login_stores_state_and_verifier_before_returning(
    service: CognitoAuthService, store: SessionTokenStore
) -> None:
    url = service.start_login()
    query = parse_qs(urlparse(url).query)

    stored_state, stored_verifier = store.read_flow_state()
    assert query["state"] == [stored_state]
    assert query["code_challenge"] == [generate_code_challenge(stored_verifier)]
    assert query["redirect_uri"] == ["http://localhost:5173/callback"]
    assert query["client_id"] == ["client-123"]
    assert url.startswith(f"{DOMAIN}/oauth2/authorize?")
    # the verifier itself never leaves the store
    assert stored_verifier not in url


def test_start_login_replaces_previous_attempt(
    service: CognitoAuthService, store: SessionTokenStore
) -> None:
    service.start_login()
    first = store.read_flow_state()
    service.start_login()
    assert store.read_flow_state() != first


def test_start_login_config_failure(store: SessionTokenStore) -> None:
    def broken_loader() -> ProviderConfig:
        raise RuntimeError("API request failed: 503")

    svc = CognitoAuthService(store, config_loader=broken_loader, app_origin="http://x")
    with pytest.raises(ProviderConfigError):
        svc.start_login()
    assert store.read_flow_state() == (None, None)


# --------------------------------------------------------------------------- #
# exchange_code                                                               #
# --------------------------------------------------------------------------- #
def test_exchange_success_end_to_end(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint, id_token_factory
) -> None:
    _seed_flow(store)

    user = service.exchange_code(code="CODE1", state="S1")

    assert user == AuthenticatedUser(subject_id="42", email="a@b.com")
    assert store.get_access_token() == "AT1"
    assert store.get_id_token() == id_token_factory({"sub": "42", "email": "a@b.com"})
    assert store.read_flow_state() == (None, None)

    assert len(token_endpoint.calls) == 1
    call = token_endpoint.calls[0]
    assert call["url"] == f"{DOMAIN}/oauth2/token"
    assert call["headers"] == {"Content-Type": "application/x-www-form-urlencoded"}
    assert call["data"] == {
        "grant_type": "authorization_code",
        "client_id": "client-123",
        "code": "CODE1",
        "redirect_uri": "http://localhost:5173/callback",
        "code_verifier": "V1",
    }
    assert call["timeout"] == (5, 20)


@pytest.mark.parametrize("seed", [{}, {"state": "S1"}, {"verifier": "V1"}])
def test_exchange_missing_flow_state_makes_no_request(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint, seed
) -> None:
    if "state" in seed:
        store.set_state(seed["state"])
    if "verifier" in seed:
        store.set_code_verifier(seed["verifier"])

    with pytest.raises(SessionStateMissingError):
        service.exchange_code(code="CODE1", state="S1")
    assert token_endpoint.calls == []


def test_exchange_state_mismatch_clears_flow_state(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint
) -> None:
    _seed_flow(store, state="abc")
    with pytest.raises(StateMismatchError):
        service.exchange_code(code="CODE1", state="xyz")
    assert token_endpoint.calls == []
    assert store.read_flow_state() == (None, None)


def test_exchange_http_error_surfaces_body(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint, response_factory
) -> None:
    _seed_flow(store)
    token_endpoint.response = response_factory(400, text='{"error":"invalid_grant"}')

    with pytest.raises(TokenExchangeHttpError) as exc_info:
        service.exchange_code(code="CODE1", state="S1")

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == 'Token exchange failed: {"error":"invalid_grant"}'
    assert store.read_flow_state() == (None, None)
    assert store.tokens() is None


def test_exchange_transport_error(store: SessionTokenStore) -> None:
    class Unreachable:
        def post(self, *args, **kwargs):  # noqa: ANN001, ANN002, ANN003
            raise requests.ConnectionError("connection refused")

    _seed_flow(store)
    svc = CognitoAuthService(
        store,
        config_loader=lambda: ProviderConfig(domain=DOMAIN, client_id="c"),
        app_origin="http://localhost:5173",
        http=Unreachable(),
    )
    with pytest.raises(TokenExchangeHttpError) as exc_info:
        svc.exchange_code(code="CODE1", state="S1")
    assert exc_info.value.status_code is None
    assert store.read_flow_state() == (None, None)


@pytest.mark.parametrize(
    "body, message",
    [
        ({"id_token": "a.b.c"}, "No access token received"),
        ({"access_token": "AT1"}, "No ID token received"),
    ],
)
def test_exchange_missing_tokens(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint, response_factory, body, message
) -> None:
    _seed_flow(store)
    token_endpoint.response = response_factory(200, body)

    with pytest.raises(MissingTokenError) as exc_info:
        service.exchange_code(code="CODE1", state="S1")
    assert exc_info.value.message == message
    assert store.tokens() is None
    assert store.read_flow_state() == (None, None)


def test_exchange_undecodable_id_token(
    service: CognitoAuthService, store: SessionTokenStore, token_endpoint, response_factory
) -> None:
    _seed_flow(store)
    token_endpoint.response = response_factory(
        200, {"access_token": "AT1", "id_token": "not-a-jwt"}
    )
    with pytest.raises(TokenDecodeError):
        service.exchange_code(code="CODE1", state="S1")
    # tokens are stored before decoding, as the exchange itself succeeded
    assert store.get_access_token() == "AT1"


def test_exchange_uses_requests_by_default(
    store: SessionTokenStore, response_factory, id_token_factory
) -> None:
    """Without an injected transport the module-level ``requests.post`` is used."""
    _seed_flow(store)
    svc = CognitoAuthService(
        store,
        config_loader=lambda: ProviderConfig(domain="auth.example.com", client_id="c"),
        app_origin="http://localhost:5173",
        timeout=(1, 2),
    )
    with patch(
        "image_gallery.auth.service.requests.post",
        return_value=response_factory(
            200, {"access_token": "AT", "id_token": id_token_factory({"sub": "s"})}
        ),
    ) as post:
        assert svc.exchange_code(code="CODE1", state="S1").subject_id == "s"

    post.assert_called_once()
    assert post.call_args.args == ("https://auth.example.com/oauth2/token",)
    assert post.call_args.kwargs["timeout"] == (1, 2)


# --------------------------------------------------------------------------- #
# session / logout                                                            #
# --------------------------------------------------------------------------- #
def test_current_user(service: CognitoAuthService, store: SessionTokenStore, id_token_factory) -> None:
    assert service.current_user() is None
    store.set_id_token("garbage")
    assert service.current_user() is None
    store.set_id_token(id_token_factory({"sub": "7", "cognito:groups": ["g"]}))
    assert service.current_user() == AuthenticatedUser(subject_id="7", groups=("g",))


def test_logout_clears_everything_and_builds_url(service: CognitoAuthService) -> None:
    backend = MemoryKeyValueStore()
    store = SessionTokenStore(backend)
    service.store = store
    store.set_state("s")
    store.set_code_verifier("v")
    store.set_access_token("a")
    store.set_id_token("i")

    url = service.logout()

    assert backend.keys() == []
    assert url == (
        f"{DOMAIN}/logout?client_id=client-123&logout_uri=http%3A%2F%2Flocalhost%3A5173"
    )


def test_logout_clears_even_when_config_unavailable(store: SessionTokenStore) -> None:
    def broken_loader() -> ProviderConfig:
        raise ValueError("bad config")

    store.set_access_token("a")
    svc = CognitoAuthService(store, config_loader=broken_loader, app_origin="http://x")
    with pytest.raises(ProviderConfigError):
        svc.logout()
    assert store.get_access_token() is None


class LockedBackend(MemoryKeyValueStore):
    """Every write times out, as a held disk lock would."""

    def set(self, key: str, value: str) -> None:
        raise TimeoutError("Could not acquire lock")

    def delete(self, key: str) -> None:
        raise TimeoutError("Could not acquire lock")


def test_storage_failures_surface_as_flow_errors(token_endpoint) -> None:
    svc = CognitoAuthService(
        SessionTokenStore(LockedBackend()),
        config_loader=lambda: ProviderConfig(domain=DOMAIN, client_id="c"),
        app_origin="http://localhost:5173",
        http=token_endpoint,
    )
    with pytest.raises(SessionStorageError) as exc_info:
        svc.start_login()
    assert exc_info.value.message == "Session storage failed while trying to save the login attempt"

    with pytest.raises(SessionStorageError, match="clear the session"):
        svc.logout()
