"""Best-effort persistence of full session snapshots."""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from .kv import KeyValueStore, StorageError, SyncedKeyValueStore
from .models import Session, SlotReport, decode_sessions, encode_sessions

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Write snapshots to the local and synced slots, read the synced one first.

    Failures never reach the caller: the in-memory list stays authoritative for
    the running process, so a lost write only matters across a restart.
    """

    def __init__(
        self,
        local: KeyValueStore,
        synced: SyncedKeyValueStore | None = None,
        *,
        key: str = "sessions",
    ) -> None:
        self._local = local
        self._synced = synced
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    @property
    def sync_enabled(self) -> bool:
        return self._synced is not None

    def save(self, sessions: Iterable[Session]) -> bool:
        """Persist the ordered list; returns False when any step failed."""

        snapshot = list(sessions)
        try:
            payload = encode_sessions(snapshot)
        except PydanticSerializationError as exc:
            logger.warning("Failed to encode sessions", extra={"key": self._key, "error": str(exc)})
            return False

        ok = True
        try:
            self._local.set(self._key, payload)
        except StorageError as exc:
            ok = False
            logger.warning("Local save failed", extra={"key": self._key, "error": str(exc)})

        if self._synced is not None:
            try:
                self._synced.set(self._key, payload)
                self._synced.synchronize()
            except StorageError as exc:
                ok = False
                logger.warning("Synced save failed", extra={"key": self._key, "error": str(exc)})

        logger.debug(
            "Saved sessions",
            extra={"key": self._key, "count": len(snapshot), "bytes": len(payload), "ok": ok},
        )
        return ok

    def load(self) -> list[Session]:
        """Return the newest readable snapshot, or an empty list."""

        for slot, store in self._slots():
            try:
                data = store.get(self._key)
            except StorageError as exc:
                logger.warning("Slot read failed", extra={"slot": slot, "error": str(exc)})
                continue
            if data is None:
                continue
            try:
                sessions = decode_sessions(data)
            except ValidationError as exc:
                logger.warning(
                    "Ignoring undecodable snapshot",
                    extra={"slot": slot, "error": str(exc)},
                )
                continue
            logger.info("Loaded sessions", extra={"slot": slot, "count": len(sessions)})
            return sessions

        logger.info("No stored sessions found", extra={"key": self._key})
        return []

    def inspect(self) -> list[SlotReport]:
        """Describe what each slot currently holds without changing anything."""

        reports: list[SlotReport] = []
        for slot, store in self._slots():
            try:
                data = store.get(self._key)
            except StorageError as exc:
                reports.append(SlotReport(slot, False, 0, False, 0, error=str(exc)))
                continue
            if data is None:
                reports.append(SlotReport(slot, False, 0, False, 0))
                continue
            try:
                count = len(decode_sessions(data))
            except ValidationError as exc:
                reports.append(SlotReport(slot, True, len(data), False, 0, error=str(exc)))
                continue
            reports.append(SlotReport(slot, True, len(data), True, count))
        return reports

    def _slots(self) -> list[tuple[str, KeyValueStore]]:
        slots: list[tuple[str, KeyValueStore]] = []
        if self._synced is not None:
            slots.append(("synced", self._synced))
        slots.append(("local", self._local))
        return slots


__all__ = ["PersistenceGateway"]
