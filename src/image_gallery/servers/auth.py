"""Browser-facing login endpoints.

Handlers are intentionally thin:

1. Resolve the browser session and its token store.
2. Delegate business logic to ``CognitoAuthService`` / ``CallbackHandler``.
3. Return an appropriate Starlette ``Response`` type.

SECURITY NOTE
-------------
• No raw secrets (state, code verifiers, authorization codes, tokens) are
  ever logged.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in INFO logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from heavy business logic.
"""

from __future__ import annotations

import html
import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from image_gallery.auth.callback import CallbackHandler
from image_gallery.auth.errors import AuthFlowError
from image_gallery.auth.log_utils import get_auth_logger
from image_gallery.servers.context import AppContext

_LOG = logging.getLogger("image-gallery.auth.routes")

ERROR_REDIRECT_DELAY_SECONDS = 3
SAFE_START_PATH = "/"
AUTHENTICATED_PATH = "/profile"


def _html_page(
    title: str,
    body: str,
    status: int = 200,
    *,
    refresh_to: str | None = None,
    delay: int = ERROR_REDIRECT_DELAY_SECONDS,
) -> HTMLResponse:
    """Return a tiny status page, optionally redirecting after *delay* seconds."""
    refresh = (
        f"<meta http-equiv='refresh' content='{delay};url={html.escape(refresh_to)}'>"
        if refresh_to
        else ""
    )
    content = (
        "<!doctype html><html lang='en'>"
        f"<head><meta charset='utf-8'>{refresh}<title>"
        f"{html.escape(title)}</title></head><body><h1>{html.escape(title)}</h1>"
        f"<p>{html.escape(body)}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status)


def _error_page(message: str, status: int = 400) -> HTMLResponse:
    return _html_page("Authentication Error", message, status, refresh_to=SAFE_START_PATH)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def auth_routes(ctx: AppContext) -> list[Route]:
    """Return the login, callback and logout routes bound to *ctx*."""

    # ----- GET /login ------------------------------------------------------ #
    async def _login(request: Request) -> Response:  # noqa: D401
        store = ctx.sessions.store_for(request)
        svc = ctx.auth_service(store)
        try:
            authorize_url = await run_in_threadpool(svc.start_login)
        except AuthFlowError as exc:
            _LOG.warning("Login start failed: %s", exc.error_code)
            return _error_page(exc.message, 502)

        _LOG.info("Login started correlation_id=%s", _correlation_id(request))

        # ------------------------------------------------------------------
        # Content negotiation + explicit override for browser vs API clients
        # ------------------------------------------------------------------
        fmt_param = request.query_params.get("format")
        accept_header = (request.headers.get("accept") or "").lower()

        if fmt_param == "json":
            return JSONResponse({"authorize_url": authorize_url})
        if fmt_param == "redirect" or "text/html" in accept_header:
            # Use 303 See Other for GET safety across methods
            return RedirectResponse(authorize_url, status_code=303)
        return JSONResponse({"authorize_url": authorize_url})

    # ----- GET /callback --------------------------------------------------- #
    async def _callback(request: Request) -> Response:  # noqa: D401
        session_id = ctx.sessions.session_id(request)
        log = get_auth_logger(
            base_logger_name="image-gallery.auth.routes",
            session_id=session_id,
            correlation_id=_correlation_id(request),
        )
        query = dict(request.query_params)
        svc = ctx.auth_service(ctx.sessions.store_for(request))

        handler = ctx.sessions.callback_handler(
            session_id, query.get("code"), query.get("state"), lambda: CallbackHandler(svc)
        )
        outcome = await run_in_threadpool(handler.handle, query)
        if outcome is None:
            # repeated delivery: report the first delivery's result if known
            outcome = handler.outcome
        if outcome is None:
            log.info("Callback already in progress")
            return _html_page(
                "Signing you in…",
                "Your sign-in is being completed.",
                202,
                refresh_to=AUTHENTICATED_PATH,
                delay=1,
            )

        if outcome.succeeded:
            log.info("Callback succeeded")
            return RedirectResponse(AUTHENTICATED_PATH, status_code=303)

        log.info("Callback ended in state=%s", outcome.state.value)
        return _error_page(outcome.message or "Failed to complete authentication")

    # ----- GET /logout ----------------------------------------------------- #
    async def _logout(request: Request) -> Response:  # noqa: D401
        session_id = ctx.sessions.session_id(request)
        store = ctx.sessions.store_for(request)
        svc = ctx.auth_service(store)
        try:
            logout_url = await run_in_threadpool(svc.logout)
        except AuthFlowError as exc:
            # local state is already gone; only the provider redirect failed
            _LOG.warning("Logout redirect unavailable: %s", exc.error_code)
            return _html_page(
                "Signed out", exc.message, 502, refresh_to=SAFE_START_PATH
            )
        finally:
            ctx.sessions.discard(session_id)

        _LOG.info("Logout correlation_id=%s", _correlation_id(request))
        return RedirectResponse(logout_url, status_code=303)

    return [
        Route("/login", _login, methods=["GET"]),
        Route("/callback", _callback, methods=["GET"]),
        Route("/logout", _logout, methods=["GET"]),
    ]
