"""Shared fixtures: fake identity-provider token endpoint and ID-token builder."""

from __future__ import annotations

import base64
import json
from types import SimpleNamespace
from typing import Any

import pytest

from image_gallery.auth.models import ProviderConfig
from image_gallery.auth.service import CognitoAuthService
from image_gallery.auth.store import MemoryKeyValueStore, SessionTokenStore

DOMAIN = "https://gallery-test.auth.eu-west-2.amazoncognito.com"
CLIENT_ID = "client-123"
APP_ORIGIN = "http://localhost:5173"


def _seg(obj: Any) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()


def make_id_token(claims: dict[str, Any]) -> str:
    """Return an unsigned JWT-shaped token carrying *claims*."""
    return f"{_seg({'alg': 'RS256', 'kid': 'test'})}.{_seg(claims)}.c2lnbmF0dXJl"


def fake_response(status: int = 200, body: Any = None, text: str | None = None) -> SimpleNamespace:
    resp = SimpleNamespace()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.reason = "OK" if resp.ok else "Bad Request"
    resp.text = text if text is not None else json.dumps(body)

    def _json() -> Any:
        if body is None:
            raise ValueError("no JSON body")
        return body

    resp.json = _json
    return resp


class FakeTokenEndpoint:
    """Records POSTs and answers with a canned response."""

    def __init__(self, response: SimpleNamespace | None = None) -> None:
        self.response = response or fake_response(
            200,
            {
                "access_token": "AT1",
                "id_token": make_id_token({"sub": "42", "email": "a@b.com"}),
                "token_type": "Bearer",
            },
        )
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, *, data: dict, headers: dict, timeout: tuple) -> SimpleNamespace:  # noqa: ANN001
        self.calls.append({"url": url, "data": dict(data), "headers": headers, "timeout": timeout})
        return self.response


@pytest.fixture()
def id_token_factory():
    return make_id_token


@pytest.fixture()
def response_factory():
    return fake_response


@pytest.fixture()
def backend() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(backend: MemoryKeyValueStore) -> SessionTokenStore:
    return SessionTokenStore(backend)


@pytest.fixture()
def token_endpoint() -> FakeTokenEndpoint:
    return FakeTokenEndpoint()


@pytest.fixture()
def service(store: SessionTokenStore, token_endpoint: FakeTokenEndpoint) -> CognitoAuthService:
    return CognitoAuthService(
        store,
        config_loader=lambda: ProviderConfig(domain=DOMAIN, client_id=CLIENT_ID),
        app_origin=APP_ORIGIN,
        http=token_endpoint,
    )
