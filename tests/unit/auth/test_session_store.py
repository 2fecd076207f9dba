"""
Unit tests for the session token store and its backends.

Coverage:
* Typed facade round trips and clear_all
* Flow state is read as a pair and cleared together
* DiskKeyValueStore atomic write, persistence across instances, lock exclusivity
* DiskKeyValueStore.remove deletes the backing file
"""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from image_gallery.auth.models import AuthorizationRequest, SessionTokens
from image_gallery.auth.store import (
    ALL_KEYS,
    DiskKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SessionTokenStore,
    _file_lock,
)


def test_backends_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(MemoryKeyValueStore(), KeyValueStore)
    assert isinstance(DiskKeyValueStore(tmp_path, "sid"), KeyValueStore)


def test_default_backend_is_memory() -> None:
    assert isinstance(SessionTokenStore().backend, MemoryKeyValueStore)


def test_token_round_trip(store: SessionTokenStore) -> None:
    assert store.tokens() is None
    store.save_tokens(SessionTokens(access_token="at", id_token="it"))
    assert store.get_access_token() == "at"
    assert store.get_id_token() == "it"
    assert store.tokens() == SessionTokens(access_token="at", id_token="it")

    store.clear_id_token()
    assert store.tokens() is None
    store.clear_access_token()
    assert store.get_access_token() is None


def test_flow_state_pair(store: SessionTokenStore) -> None:
    assert store.read_flow_state() == (None, None)
    store.save_authorization_request(
        AuthorizationRequest(state="S1", code_verifier="V1", code_challenge="C1")
    )
    assert store.read_flow_state() == ("S1", "V1")
    store.clear_flow_state()
    assert store.read_flow_state() == (None, None)


def test_clear_all_removes_every_key(
    store: SessionTokenStore, backend: MemoryKeyValueStore
) -> None:
    store.set_state("s")
    store.set_code_verifier("v")
    store.set_access_token("a")
    store.set_id_token("i")
    assert sorted(backend.keys()) == sorted(ALL_KEYS)

    store.clear_all()
    assert backend.keys() == []


# --------------------------------------------------------------------------- #
# DiskKeyValueStore                                                           #
# --------------------------------------------------------------------------- #
def test_disk_store_atomic_write_and_reload(tmp_path: Path) -> None:
    first = DiskKeyValueStore(tmp_path, "Session/ID 1")
    first.set("oauth_state", "S")
    first.set("pkce_code_verifier", "V")

    # slugged, single JSON file and no lingering *.tmp / *.lock
    assert first.path == tmp_path / "session-id-1.json"
    assert json.loads(first.path.read_text()) == {"oauth_state": "S", "pkce_code_verifier": "V"}
    assert not list(tmp_path.glob("*.tmp"))
    assert not list(tmp_path.glob("*.lock"))

    # a new instance (e.g. after restart) sees the same values
    second = DiskKeyValueStore(tmp_path, "Session/ID 1")
    assert second.get("oauth_state") == "S"
    second.delete("oauth_state")
    assert first.get("oauth_state") is None
    assert first.keys() == ["pkce_code_verifier"]


def test_disk_store_missing_file_reads_empty(tmp_path: Path) -> None:
    store = DiskKeyValueStore(tmp_path / "nested", "sid")
    assert store.get("anything") is None
    store.delete("anything")  # no file created for a no-op delete
    assert not store.path.exists()


def test_disk_store_lock_single_holder(tmp_path: Path) -> None:
    store = DiskKeyValueStore(tmp_path, "sid")
    lock_path = store.path.with_suffix(".lock")

    def holder() -> None:
        with _file_lock(lock_path, retries=0, delay=0):
            time.sleep(0.3)

    t = threading.Thread(target=holder)
    t.start()
    time.sleep(0.05)  # ensure thread grabbed lock

    with pytest.raises(TimeoutError):
        with _file_lock(lock_path, retries=2, delay=0.01):
            pass

    t.join()
    store.set("k", "v")
    assert store.get("k") == "v"


def test_session_token_store_over_disk(tmp_path: Path) -> None:
    store = SessionTokenStore(DiskKeyValueStore(tmp_path, "sid"))
    store.save_tokens(SessionTokens(access_token="at", id_token="it"))
    store.set_state("s")
    store.clear_all()
    assert json.loads((tmp_path / "sid.json").read_text()) == {}


def test_disk_store_remove_deletes_file(tmp_path: Path) -> None:
    store = DiskKeyValueStore(tmp_path, "sid")
    store.set("k", "v")
    assert store.path.exists()

    store.remove()
    store.remove()  # already gone

    assert not store.path.exists()
    assert list(tmp_path.iterdir()) == []
    assert DiskKeyValueStore(tmp_path, "sid").get("k") is None
