"""Session store: the ordered session list, its mutations and the undo log."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol, Union
from uuid import UUID, uuid4

from .storage.models import Session

logger = logging.getLogger(__name__)


class SnapshotGateway(Protocol):
    """Persistence collaborator; receives and returns whole-list snapshots only."""

    def save(self, sessions: Iterable[Session]) -> bool:
        ...

    def load(self) -> list[Session]:
        ...


@dataclass(frozen=True, slots=True)
class RemovedItem:
    session: Session
    index: int


@dataclass(frozen=True, slots=True)
class Added:
    """Undo removes the session with this id."""

    session: Session


@dataclass(frozen=True, slots=True)
class Deleted:
    """Undo re-inserts each item at its recorded index, clamped to the list length."""

    items: tuple[RemovedItem, ...]


@dataclass(frozen=True, slots=True)
class Edited:
    """Undo restores ``before``, re-inserting it if the session has since been removed."""

    before: Session
    index: int


UndoRecord = Union[Added, Deleted, Edited]


class SessionStore:
    """Own the session list and reverse mutations one at a time.

    Every mutation pushes the record needed to invert it and then hands the
    full list to the gateway. Operations on ids that no longer exist are
    no-ops; ``delete_many`` with an out-of-range index is the only call that
    raises.
    """

    def __init__(
        self,
        gateway: SnapshotGateway,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], UUID] | None = None,
    ) -> None:
        self._gateway = gateway
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or uuid4
        self._sessions: list[Session] = []
        self._undo_log: list[UndoRecord] = []

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._sessions)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_log)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_log)

    def index_of(self, session_id: UUID) -> int | None:
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                return index
        return None

    def get(self, session_id: UUID) -> Session | None:
        index = self.index_of(session_id)
        return None if index is None else self._sessions[index]

    def load(self) -> tuple[Session, ...]:
        """Install the gateway's latest snapshot as the initial list."""

        self._sessions = list(self._gateway.load())
        self._undo_log.clear()
        return self.sessions

    def add(self, note: str) -> Session:
        session = Session(
            id=self._id_factory(),
            start_time=self._clock(),
            note=note.strip(),
        )
        self._sessions.insert(0, session)
        self._undo_log.append(Added(session))
        self._persist()
        logger.info("Session added", extra={"session_id": str(session.id)})
        return session

    def end_session(self, session_id: UUID) -> Session | None:
        index = self.index_of(session_id)
        if index is None:
            logger.debug("end_session ignored unknown id", extra={"session_id": str(session_id)})
            return None

        before = self._sessions[index]
        ended = before.model_copy(update={"end_time": self._clock()})
        self._undo_log.append(Edited(before, index))
        self._sessions[index] = ended
        self._persist()
        logger.info("Session ended", extra={"session_id": str(session_id)})
        return ended

    def edit(self, updated: Session, original_id: UUID) -> Session | None:
        index = self.index_of(original_id)
        if index is None:
            logger.debug("edit ignored unknown id", extra={"session_id": str(original_id)})
            return None

        if updated.id != original_id:
            logger.warning(
                "Edited session carried a different id; keeping the original",
                extra={"session_id": str(original_id), "given_id": str(updated.id)},
            )
            updated = updated.model_copy(update={"id": original_id})

        self._undo_log.append(Edited(self._sessions[index], index))
        self._sessions[index] = updated
        self._persist()
        logger.info("Session edited", extra={"session_id": str(original_id)})
        return updated

    def delete_many(self, indices: Iterable[int]) -> list[Session]:
        """Remove the sessions at ``indices``, all relative to the current list."""

        targets = sorted(set(indices))
        size = len(self._sessions)
        invalid = [index for index in targets if not 0 <= index < size]
        if invalid:
            raise IndexError(f"Session indices out of range for {size} sessions: {invalid}")
        if not targets:
            return []

        items = tuple(RemovedItem(self._sessions[index], index) for index in targets)
        self._undo_log.append(Deleted(items))
        doomed = set(targets)
        self._sessions = [s for i, s in enumerate(self._sessions) if i not in doomed]
        self._persist()
        logger.info("Sessions deleted", extra={"count": len(items)})
        return [item.session for item in items]

    def delete_one(self, session: Session) -> bool:
        index = self.index_of(session.id)
        if index is None:
            logger.debug("delete ignored unknown id", extra={"session_id": str(session.id)})
            return False

        removed = self._sessions.pop(index)
        self._undo_log.append(Deleted((RemovedItem(removed, index),)))
        self._persist()
        logger.info("Session deleted", extra={"session_id": str(session.id)})
        return True

    def reset(self) -> None:
        """Clear every session and the undo log; this cannot be undone."""

        self._sessions.clear()
        self._undo_log.clear()
        self._persist()
        logger.info("Session history reset")

    def undo(self) -> UndoRecord | None:
        if not self._undo_log:
            return None

        record = self._undo_log.pop()
        self._apply_inverse(record)
        self._persist()
        logger.info("Undid last change", extra={"undo_kind": type(record).__name__})
        return record

    def _apply_inverse(self, record: UndoRecord) -> None:
        if isinstance(record, Added):
            self._sessions = [s for s in self._sessions if s.id != record.session.id]
        elif isinstance(record, Deleted):
            for item in sorted(record.items, key=lambda item: item.index):
                self._sessions.insert(min(item.index, len(self._sessions)), item.session)
        elif isinstance(record, Edited):
            index = self.index_of(record.before.id)
            if index is None:
                self._sessions.insert(min(record.index, len(self._sessions)), record.before)
            else:
                self._sessions[index] = record.before
        else:
            raise TypeError(f"Unsupported undo record: {record!r}")

    def _persist(self) -> None:
        self._gateway.save(self._sessions)


__all__ = [
    "Added",
    "Deleted",
    "Edited",
    "RemovedItem",
    "SessionStore",
    "SnapshotGateway",
    "UndoRecord",
]
