from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from gymtap.storage import ChromaKeyValueStore, ChromaUnavailableError, FileKeyValueStore, StorageError


def test_file_store_missing_key_returns_none(tmp_path: Path) -> None:
    store = FileKeyValueStore(tmp_path / "local")

    assert store.get("sessions") is None


def test_file_store_set_and_overwrite(tmp_path: Path) -> None:
    store = FileKeyValueStore(tmp_path / "local")

    store.set("sessions", b"[1]")
    store.set("sessions", b"[2]")

    assert store.get("sessions") == b"[2]"
    assert sorted(p.name for p in (tmp_path / "local").iterdir()) == ["sessions.json"]


@pytest.mark.parametrize("key", ["", "../escape", "a/b", ".."])
def test_file_store_rejects_path_like_keys(tmp_path: Path, key: str) -> None:
    store = FileKeyValueStore(tmp_path)

    with pytest.raises(StorageError):
        store.set(key, b"[]")


def test_file_store_wraps_io_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    store = FileKeyValueStore(blocker)

    with pytest.raises(StorageError):
        store.set("sessions", b"[]")


@dataclass
class _Record:
    document: str
    metadata: dict[str, Any]
    id: str


class StubCollection:
    def __init__(self) -> None:
        self.records: dict[str, _Record] = {}
        self.fail = False

    def upsert(self, *, ids, documents, metadatas, embeddings) -> None:  # type: ignore[override]
        if self.fail:
            raise ConnectionError("replica offline")
        for record_id, document, metadata, embedding in zip(ids, documents, metadatas, embeddings):
            assert embedding
            self.records[record_id] = _Record(document=document, metadata=dict(metadata), id=record_id)

    def get(self, *, ids=None, include=None):  # type: ignore[override]
        if self.fail:
            raise ConnectionError("replica offline")
        found = [self.records[record_id] for record_id in ids or [] if record_id in self.records]
        return {
            "ids": [record.id for record in found],
            "documents": [record.document for record in found],
            "metadatas": [record.metadata for record in found],
        }


class StubClient:
    def __init__(self) -> None:
        self.collections = defaultdict(StubCollection)
        self.heartbeats = 0

    def get_or_create_collection(self, name: str) -> StubCollection:
        return self.collections[name]

    def heartbeat(self) -> int:
        self.heartbeats += 1
        return 1


def _chroma(tmp_path: Path, client: StubClient) -> ChromaKeyValueStore:
    return ChromaKeyValueStore(
        tmp_path,
        collection_name="sync",
        client_factory=lambda: client,
        clock=lambda: datetime.fromisoformat("2025-01-01T00:00:00+00:00"),
    )


def test_chroma_store_round_trip(tmp_path: Path) -> None:
    client = StubClient()
    store = _chroma(tmp_path, client)

    assert store.get("sessions") is None
    store.set("sessions", b'[{"note": "a"}]')
    store.set("sessions", b"[]")

    assert store.get("sessions") == b"[]"
    record = client.collections["sync"].records["sessions"]
    assert record.metadata["key"] == "sessions"
    assert record.metadata["updated_at"] == "2025-01-01T00:00:00+00:00"
    assert len(client.collections["sync"].records) == 1


def test_chroma_store_synchronize_heartbeats(tmp_path: Path) -> None:
    client = StubClient()
    store = _chroma(tmp_path, client)

    store.synchronize()

    assert client.heartbeats == 1


def test_chroma_store_wraps_client_failures(tmp_path: Path) -> None:
    client = StubClient()
    store = _chroma(tmp_path, client)
    store.ping()
    client.collections["sync"].fail = True

    with pytest.raises(StorageError):
        store.set("sessions", b"[]")
    with pytest.raises(StorageError):
        store.get("sessions")


def test_chroma_store_factory_failure_is_unavailable(tmp_path: Path) -> None:
    def broken_factory():
        raise ConnectionError("no route to host")

    store = ChromaKeyValueStore(tmp_path, host="sync.example", port=8123, client_factory=broken_factory)

    assert store.location == "http://sync.example:8123"
    with pytest.raises(ChromaUnavailableError):
        store.ping()
