"""Session model and the list codec used by both storage slots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

# Numeric timestamps in older blobs count seconds from this instant.
REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)


class Session(BaseModel):
    """One logged activity interval."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4, description="Stable identifier for the session.")
    start_time: datetime = Field(..., alias="date", description="When the session was logged.")
    note: str = Field(default="", description="Free-text note, possibly empty.")
    end_time: datetime | None = Field(
        default=None,
        alias="endDate",
        description="When the session ended; absent while it is still in progress.",
    )

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _coerce_reference_timestamp(cls, value: Any):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return REFERENCE_EPOCH + timedelta(seconds=value)
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def in_progress(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> timedelta | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


_SESSION_LIST = TypeAdapter(list[Session])


def encode_sessions(sessions: Iterable[Session]) -> bytes:
    """Serialize an ordered session list to the persisted JSON layout."""

    return _SESSION_LIST.dump_json(list(sessions), by_alias=True, exclude_none=True)


def decode_sessions(data: bytes | str) -> list[Session]:
    """Parse a persisted blob; raises ``pydantic.ValidationError`` when corrupt."""

    return _SESSION_LIST.validate_json(data)


@dataclass(slots=True)
class SlotReport:
    slot: str
    present: bool
    size: int
    decodable: bool
    session_count: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot": self.slot,
            "present": self.present,
            "size": self.size,
            "decodable": self.decodable,
            "session_count": self.session_count,
            "error": self.error,
        }


__all__ = [
    "REFERENCE_EPOCH",
    "Session",
    "SlotReport",
    "decode_sessions",
    "encode_sessions",
]
