"""Logger adapter for the login routes.

Only two context fields are ever attached to records:

- ``session_id``     – browser-session id, truncated to its first 6 chars
- ``correlation_id`` – request id assigned by ``CorrelationIdMiddleware``

Anything else handed to :func:`get_auth_logger` is dropped, which keeps state
values, verifiers, codes and tokens out of log output even by accident.

>>> log = get_auth_logger(session_id="0f3a9c1d5e7b", correlation_id="b7c1")
>>> log.info("Callback received")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping

SESSION_ID_CHARS = 6


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted session context into log records."""

    allowed = ("session_id", "correlation_id")

    def __init__(self, logger: logging.Logger, context: Mapping[str, Any] | None = None):
        context = context or {}
        clean = {k: context[k] for k in self.allowed if context.get(k) is not None}
        if "session_id" in clean:
            clean["session_id"] = str(clean["session_id"])[:SESSION_ID_CHARS]
        super().__init__(logger, clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        # call-site extras win over adapter context
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "image-gallery.auth",
    session_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    return _AuthLoggerAdapter(
        logging.getLogger(base_logger_name),
        {"session_id": session_id, "correlation_id": correlation_id},
    )
