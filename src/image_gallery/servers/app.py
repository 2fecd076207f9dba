"""Starlette application for the gallery front end."""

from __future__ import annotations

import argparse
import logging
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware

from image_gallery.client.api import GalleryApiClient
from image_gallery.servers.auth import auth_routes
from image_gallery.servers.context import AppContext
from image_gallery.servers.correlation import CorrelationIdMiddleware
from image_gallery.servers.gallery import gallery_routes
from image_gallery.servers.sessions import SessionRegistry
from image_gallery.utils.environment import AppSettings
from image_gallery.utils.logging import configure_logging

logger = logging.getLogger("image-gallery.server.app")

SESSION_COOKIE = "gallery_session"


def create_app(
    settings: AppSettings | None = None,
    *,
    api_client: GalleryApiClient | None = None,
    http: Any = None,
) -> Starlette:
    """Build the ASGI app.

    ``api_client`` and ``http`` (the token-endpoint transport) can be injected
    for tests; by default both talk to the network through ``requests``.
    """
    settings = settings or AppSettings.from_env()
    api_client = api_client or GalleryApiClient(
        settings.api_base_url,
        timeout=settings.timeout,
        config_ttl_seconds=settings.config_cache_seconds,
    )
    sessions = SessionRegistry(
        persistent=settings.persistent,
        storage_dir=settings.token_storage_dir if settings.persistent else None,
        idle_seconds=settings.session_idle_seconds,
    )
    ctx = AppContext(settings=settings, api_client=api_client, sessions=sessions, http=http)

    # No max_age in session mode: the cookie dies with the browser session.
    max_age = settings.persistent_session_days * 86400 if settings.persistent else None
    if max_age is not None:
        sessions.purge_expired(max_age)

    middleware = [
        Middleware(CorrelationIdMiddleware),
        Middleware(
            SessionMiddleware,
            secret_key=settings.session_secret,
            session_cookie=SESSION_COOKIE,
            max_age=max_age,
            same_site="lax",
            https_only=settings.https_only,
        ),
    ]

    app = Starlette(routes=[*auth_routes(ctx), *gallery_routes(ctx)], middleware=middleware)
    app.state.context = ctx
    logger.info(
        "Gallery front end configured (origin=%s, token storage=%s)",
        settings.app_origin,
        settings.token_storage,
    )
    return app


def main(argv: list[str] | None = None) -> None:
    """Run the front end with uvicorn."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Image gallery web front end")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5173)
    args = parser.parse_args(argv)

    settings = AppSettings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=args.host, port=args.port)


if __name__ == "__main__":  # pragma: no cover
    main()
