"""Session-scoped storage for the login flow.

The login flow keeps four values between requests: the PKCE code verifier,
the ``state`` token, the access token and the ID token.  They are written
through :class:`SessionTokenStore`, a typed facade over a narrow key/value
backend (:class:`KeyValueStore`).

Backends
--------
MemoryKeyValueStore
    Default.  Lives exactly as long as the browser session that owns it, so
    tokens never outlive the tab/window.
DiskKeyValueStore
    Explicit opt-in persistent variant.  Values survive a browser restart
    until the identity provider's tokens expire.  Writes use
    *temp-file + os.replace* and an advisory lock.

Two tabs of one browser session share a backend.  A race between them while
a code verifier is outstanding is an accepted risk and is not guarded.
"""

from __future__ import annotations

import json
import os
import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from image_gallery.auth.models import AuthorizationRequest, SessionTokens

ACCESS_TOKEN_KEY: Final[str] = "cognito_access_token"
ID_TOKEN_KEY: Final[str] = "cognito_id_token"
CODE_VERIFIER_KEY: Final[str] = "pkce_code_verifier"
STATE_KEY: Final[str] = "oauth_state"

ALL_KEYS: Final[tuple[str, ...]] = (
    ACCESS_TOKEN_KEY,
    ID_TOKEN_KEY,
    CODE_VERIFIER_KEY,
    STATE_KEY,
)

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _slug(text: str, max_len: int = 80) -> str:
    """Filesystem-safe slug."""
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9._-]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len] or "unknown"


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, separators=(",", ":"), sort_keys=True)
    os.replace(tmp, path)  # atomic on POSIX


@contextmanager
def _file_lock(lock_path: Path, retries: int = 25, delay: float = 0.02):  # noqa: D401
    """Advisory file lock using ``os.O_EXCL`` temp-file creation."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    for attempt in range(retries + 1):
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
            os.close(fd)
            break  # acquired!
        except FileExistsError:
            if attempt == retries:
                raise TimeoutError(f"Could not acquire lock {lock_path}") from None
            time.sleep(delay)
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# backends                                                                    #
# --------------------------------------------------------------------------- #


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal persistence contract, modelled on browser ``Storage``."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store scoped to one browser session."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class DiskKeyValueStore:
    """JSON-file store that survives browser restarts (opt-in)."""

    def __init__(self, base_dir: str | os.PathLike, namespace: str) -> None:
        self.base_dir = Path(base_dir).expanduser()
        self.path = self.base_dir / f"{_slug(namespace)}.json"
        self._lock_path = self.path.with_suffix(".lock")

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as fh:
            return json.load(fh)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with _file_lock(self._lock_path):
            data = self._load()
            data[key] = value
            _atomic_write(self.path, data)

    def delete(self, key: str) -> None:
        with _file_lock(self._lock_path):
            data = self._load()
            if data.pop(key, None) is not None:
                _atomic_write(self.path, data)

    def keys(self) -> list[str]:
        return list(self._load())

    def remove(self) -> None:
        """Delete the file backing this namespace."""
        with _file_lock(self._lock_path):
            self.path.unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# typed facade                                                                #
# --------------------------------------------------------------------------- #


class SessionTokenStore:
    """Typed access to the login-flow values held in a :class:`KeyValueStore`."""

    def __init__(self, backend: KeyValueStore | None = None) -> None:
        self.backend: KeyValueStore = backend if backend is not None else MemoryKeyValueStore()

    # ----- tokens ---------------------------------------------------------- #
    def set_access_token(self, token: str) -> None:
        self.backend.set(ACCESS_TOKEN_KEY, token)

    def get_access_token(self) -> str | None:
        return self.backend.get(ACCESS_TOKEN_KEY)

    def clear_access_token(self) -> None:
        self.backend.delete(ACCESS_TOKEN_KEY)

    def set_id_token(self, token: str) -> None:
        self.backend.set(ID_TOKEN_KEY, token)

    def get_id_token(self) -> str | None:
        return self.backend.get(ID_TOKEN_KEY)

    def clear_id_token(self) -> None:
        self.backend.delete(ID_TOKEN_KEY)

    def save_tokens(self, tokens: SessionTokens) -> None:
        self.set_access_token(tokens.access_token)
        self.set_id_token(tokens.id_token)

    def tokens(self) -> SessionTokens | None:
        """Return both tokens, or ``None`` unless both are stored."""
        access_token = self.get_access_token()
        id_token = self.get_id_token()
        if not access_token or not id_token:
            return None
        return SessionTokens(access_token=access_token, id_token=id_token)

    # ----- OAuth flow state ------------------------------------------------ #
    def set_code_verifier(self, verifier: str) -> None:
        self.backend.set(CODE_VERIFIER_KEY, verifier)

    def get_code_verifier(self) -> str | None:
        return self.backend.get(CODE_VERIFIER_KEY)

    def clear_code_verifier(self) -> None:
        self.backend.delete(CODE_VERIFIER_KEY)

    def set_state(self, state: str) -> None:
        self.backend.set(STATE_KEY, state)

    def get_state(self) -> str | None:
        return self.backend.get(STATE_KEY)

    def clear_state(self) -> None:
        self.backend.delete(STATE_KEY)

    def save_authorization_request(self, request: AuthorizationRequest) -> None:
        self.set_code_verifier(request.code_verifier)
        self.set_state(request.state)

    def read_flow_state(self) -> tuple[str | None, str | None]:
        """Return ``(state, code_verifier)`` as stored for the pending login."""
        return self.get_state(), self.get_code_verifier()

    def clear_flow_state(self) -> None:
        self.clear_code_verifier()
        self.clear_state()

    # ----- cleanup --------------------------------------------------------- #
    def clear_all(self) -> None:
        for key in ALL_KEYS:
            self.backend.delete(key)
