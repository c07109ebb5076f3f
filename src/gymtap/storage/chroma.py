"""Chroma-backed synced key-value slot."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from .kv import StorageError

# Slots are fetched by id only, so a fixed vector stands in for an embedding.
_PLACEHOLDER_EMBEDDING = [1.0]


class ChromaUnavailableError(StorageError):
    """Raised when the Chroma client cannot be constructed."""


class CollectionProtocol(Protocol):
    """Protocol for the minimal Chroma collection API used by GymTap."""

    def upsert(
        self,
        *,
        ids: Iterable[str],
        documents: Iterable[str],
        metadatas: Iterable[dict[str, Any]],
        embeddings: Iterable[list[float]],
    ) -> None:
        ...

    def get(
        self,
        *,
        ids: Iterable[str] | None = None,
        include: list[str] | None = None,
    ) -> dict[str, list[Any]]:
        ...


class ClientProtocol(Protocol):
    """Protocol for the minimal Chroma client API used by GymTap."""

    def get_or_create_collection(self, name: str) -> CollectionProtocol:
        ...

    def heartbeat(self) -> int:
        ...


class ChromaKeyValueStore:
    """Keep session snapshots in a Chroma collection, one record per key.

    With ``host`` set the store talks to a remote Chroma server, which is what
    makes the slot shared across devices; otherwise it persists under ``path``.
    """

    def __init__(
        self,
        path: Path,
        *,
        collection_name: str = "gymtap_sync",
        host: str | None = None,
        port: int = 8000,
        client_factory: Callable[[], ClientProtocol] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._collection_name = collection_name
        self._host = host
        self._port = port
        self._client_factory = client_factory or self._default_client_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._client: ClientProtocol | None = None
        self._collection: CollectionProtocol | None = None

    @property
    def location(self) -> str:
        if self._host:
            return f"http://{self._host}:{self._port}"
        return str(self._path)

    def _default_client_factory(self) -> ClientProtocol:
        try:
            import chromadb
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise ChromaUnavailableError(
                "chromadb package is not installed; install gymtap with sync support"
            ) from exc

        if self._host:
            return chromadb.HttpClient(host=self._host, port=self._port)
        return chromadb.PersistentClient(path=str(self._path))

    def _ensure_client(self) -> ClientProtocol:
        if self._client is None:
            try:
                self._client = self._client_factory()
            except ChromaUnavailableError:
                raise
            except Exception as exc:
                raise ChromaUnavailableError(
                    f"Unable to open Chroma at {self.location}: {exc}"
                ) from exc
        return self._client

    def _ensure_collection(self) -> CollectionProtocol:
        if self._collection is None:
            client = self._ensure_client()
            try:
                self._collection = client.get_or_create_collection(self._collection_name)
            except Exception as exc:
                raise StorageError(
                    f"Unable to open collection {self._collection_name!r}: {exc}"
                ) from exc
        return self._collection

    def ping(self) -> bool:
        """Verify that the underlying collection can be obtained."""

        self._ensure_collection()
        return True

    def get(self, key: str) -> bytes | None:
        collection = self._ensure_collection()
        try:
            result = collection.get(ids=[key], include=["documents"])
        except Exception as exc:
            raise StorageError(f"Failed to read synced slot {key!r}: {exc}") from exc

        documents = result.get("documents") or []
        if not documents or documents[0] is None:
            return None
        return documents[0].encode("utf-8")

    def set(self, key: str, data: bytes) -> None:
        collection = self._ensure_collection()
        try:
            document = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StorageError(f"Synced slot {key!r} only accepts UTF-8 payloads") from exc

        metadata = {"key": key, "updated_at": self._clock().isoformat(), "size": len(data)}
        try:
            collection.upsert(
                ids=[key],
                documents=[document],
                metadatas=[metadata],
                embeddings=[list(_PLACEHOLDER_EMBEDDING)],
            )
        except Exception as exc:
            raise StorageError(f"Failed to write synced slot {key!r}: {exc}") from exc

    def synchronize(self) -> None:
        """Request a round trip to the replica; completion is not awaited beyond that."""

        client = self._ensure_client()
        try:
            client.heartbeat()
        except Exception as exc:
            raise StorageError(f"Synchronization with {self.location} failed: {exc}") from exc


__all__ = ["ChromaKeyValueStore", "ChromaUnavailableError"]
