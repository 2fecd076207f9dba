"""Per-request correlation ids.

Every request gets an id in ``request.state.correlation_id``; the same id is
returned in the ``X-Correlation-ID`` response header.  A caller-supplied id is
reused when it is short and made of safe characters, otherwise a fresh UUID4
hex string is minted.
"""

from __future__ import annotations

import logging
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CORRELATION_HEADER = "X-Correlation-ID"
# inbound ids end up in log lines
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")
_LOG = logging.getLogger("image-gallery.correlation")


def resolve_correlation_id(inbound: str | None) -> str:
    if inbound and _VALID_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation id to the request state and the response."""

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(self.header_name))
        request.state.correlation_id = correlation_id
        _LOG.debug(
            "%s %s", request.method, request.url.path, extra={"correlation_id": correlation_id}
        )
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response
