"""Profile, image and upload endpoints.

Requests to the gallery API carry the access token of the caller's browser
session.  API failures are mapped to JSON errors; they never touch the
stored tokens.
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from image_gallery.client.errors import (
    ApiError,
    ApiRequestError,
    UploadValidationError,
)
from image_gallery.servers.context import AppContext

_LOG = logging.getLogger("image-gallery.gallery.routes")


def _api_error_response(exc: ApiError) -> JSONResponse:
    if isinstance(exc, UploadValidationError):
        return JSONResponse({"error": "invalid_request", "message": str(exc)}, status_code=400)
    payload: dict[str, Any] = {"error": "upstream_error", "message": str(exc)}
    if isinstance(exc, ApiRequestError) and exc.status_code is not None:
        payload["upstream_status"] = exc.status_code
    return JSONResponse(payload, status_code=502)


def _unauthenticated() -> JSONResponse:
    return JSONResponse(
        {"error": "not_authenticated", "login_url": "/login"}, status_code=401
    )


def gallery_routes(ctx: AppContext) -> list[Route]:
    """Return the gallery routes bound to *ctx*."""

    async def _home(request: Request) -> Response:
        store = ctx.sessions.store_for(request)
        user = ctx.auth_service(store).current_user()
        return JSONResponse(
            {"authenticated": user is not None, "user": user.to_dict() if user else None}
        )

    async def _health(request: Request) -> Response:
        return JSONResponse({"status": "ok"})

    async def _profile(request: Request) -> Response:
        store = ctx.sessions.store_for(request)
        user = ctx.auth_service(store).current_user()
        if user is None:
            return _unauthenticated()

        api = ctx.api_for(store)
        try:
            profile = await run_in_threadpool(api.get_user, user.subject_id)
        except ApiError as exc:
            # the decoded identity is still useful without the API profile
            _LOG.warning("Profile lookup failed: %s", exc)
            return JSONResponse({"user": user.to_dict(), "profile": None, "error": str(exc)})
        return JSONResponse({"user": user.to_dict(), "profile": profile.to_dict()})

    async def _update_nickname(request: Request) -> Response:
        store = ctx.sessions.store_for(request)
        user = ctx.auth_service(store).current_user()
        if user is None:
            return _unauthenticated()
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                {"error": "invalid_request", "message": "body must be JSON"}, status_code=400
            )
        nickname = body.get("nickname") if isinstance(body, dict) else None

        api = ctx.api_for(store)
        try:
            profile = await run_in_threadpool(api.update_nickname, user.subject_id, nickname)
        except ApiError as exc:
            return _api_error_response(exc)
        return JSONResponse({"profile": profile.to_dict()})

    async def _images(request: Request) -> Response:
        store = ctx.sessions.store_for(request)
        api = ctx.api_for(store)
        try:
            images = await run_in_threadpool(api.get_images, request.query_params.get("search"))
        except ApiError as exc:
            return _api_error_response(exc)
        return JSONResponse({"images": [image.to_dict() for image in images]})

    async def _upload(request: Request) -> Response:
        store = ctx.sessions.store_for(request)
        user = ctx.auth_service(store).current_user()
        if user is None:
            return _unauthenticated()

        data = await request.body()
        content_type = request.headers.get("content-type") or "application/octet-stream"
        api = ctx.api_for(store)
        try:
            upload = await run_in_threadpool(
                api.upload_image,
                request.query_params.get("name", ""),
                request.query_params.get("description"),
                data,
                content_type,
            )
        except ApiError as exc:
            return _api_error_response(exc)
        return JSONResponse(
            {
                "success": True,
                "imageId": upload.image_id,
                "message": upload.message or "Upload successful!",
            },
            status_code=201,
        )

    return [
        Route("/", _home, methods=["GET"]),
        Route("/health", _health, methods=["GET"]),
        Route("/profile", _profile, methods=["GET"]),
        Route("/profile/nickname", _update_nickname, methods=["PUT"]),
        Route("/images", _images, methods=["GET"]),
        Route("/upload", _upload, methods=["POST"]),
    ]
