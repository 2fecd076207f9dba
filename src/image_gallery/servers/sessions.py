"""Per-browser session storage for the web front end.

The signed session cookie (Starlette ``SessionMiddleware``) carries only a
random session id.  Tokens stay on the server in the backend returned by
:meth:`SessionRegistry.backend_for`:

* session mode (default) – one :class:`MemoryKeyValueStore` per id, evicted
  after ``idle_seconds`` without use.  The cookie is a browser-session cookie,
  so closing the browser forgets the id and with it the tokens.
* persistent mode – one :class:`DiskKeyValueStore` file per id and a cookie
  with a max age.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from pathlib import Path
from typing import Callable

from cachetools import TTLCache
from starlette.requests import Request

from image_gallery.auth.callback import CallbackHandler
from image_gallery.auth.store import (
    DiskKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SessionTokenStore,
)

_LOG = logging.getLogger("image-gallery.servers.sessions")

SESSION_ID_KEY = "sid"


class SessionRegistry:
    """Maps browser-session ids to their key/value backends."""

    def __init__(
        self,
        *,
        persistent: bool = False,
        storage_dir: Path | None = None,
        idle_seconds: int = 8 * 3600,
        max_sessions: int = 10_000,
        callback_ttl_seconds: int = 300,
    ) -> None:
        if persistent and storage_dir is None:
            raise ValueError("persistent sessions need a storage directory")
        self.persistent = persistent
        self.storage_dir = storage_dir
        self._memory: TTLCache = TTLCache(maxsize=max_sessions, ttl=idle_seconds)
        self._callbacks: TTLCache = TTLCache(maxsize=max_sessions, ttl=callback_ttl_seconds)
        self._lock = threading.Lock()
        self._callback_lock = threading.Lock()

    def session_id(self, request: Request) -> str:
        sid = request.session.get(SESSION_ID_KEY)
        if not sid:
            sid = secrets.token_urlsafe(24)
            request.session[SESSION_ID_KEY] = sid
        return sid

    def backend_for(self, session_id: str) -> KeyValueStore:
        if self.persistent:
            return DiskKeyValueStore(self.storage_dir, session_id)  # type: ignore[arg-type]
        with self._lock:
            backend = self._memory.get(session_id)
            if backend is None:
                backend = MemoryKeyValueStore()
            # re-insert to restart the idle timer
            self._memory[session_id] = backend
            return backend

    def store_for(self, request: Request) -> SessionTokenStore:
        return SessionTokenStore(self.backend_for(self.session_id(request)))

    def callback_handler(
        self,
        session_id: str,
        code: str | None,
        state: str | None,
        factory: Callable[[], CallbackHandler],
    ) -> CallbackHandler:
        """Return the handler shared by every delivery of one redirect."""
        if not code or not state:
            return factory()
        key = (session_id, code, state)
        with self._callback_lock:
            handler = self._callbacks.get(key)
            if handler is None:
                handler = factory()
                self._callbacks[key] = handler
            return handler

    def discard(self, session_id: str) -> None:
        """Forget everything held for *session_id*, including its disk file."""
        if self.persistent:
            try:
                DiskKeyValueStore(self.storage_dir, session_id).remove()  # type: ignore[arg-type]
            except OSError as exc:
                # the file is picked up again by purge_expired
                _LOG.warning("Could not remove session file: %s", exc)
            return
        with self._lock:
            self._memory.pop(session_id, None)

    def purge_expired(self, max_age_seconds: float) -> int:
        """Delete session files not written for *max_age_seconds*.

        Called with the persistent cookie lifetime, this drops the tokens of
        abandoned sessions.  Returns the number of files removed.
        """
        if not self.persistent or self.storage_dir is None or not self.storage_dir.is_dir():
            return 0
        cutoff = time.time() - max_age_seconds
        removed = 0
        for path in self.storage_dir.glob("*.json"):
            if path.stat().st_mtime < cutoff:
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            _LOG.info("Purged %d expired session file(s)", removed)
        return removed
