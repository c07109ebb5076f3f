"""Aggregate counts over the session list."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable

from .storage.models import Session


@dataclass(slots=True)
class SessionSummary:
    total: int
    today: int
    week: int
    month: int
    in_progress: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def summarize(sessions: Iterable[Session], now: datetime) -> SessionSummary:
    """Count sessions started in the same day, ISO week and month as ``now``.

    Start times are compared in ``now``'s timezone, so pass a local-time
    ``now`` to get the calendar boundaries a user would expect.
    """

    tz = now.tzinfo
    today = now.date()
    week = today.isocalendar()[:2]

    summary = SessionSummary(total=0, today=0, week=0, month=0, in_progress=0)
    for session in sessions:
        started = session.start_time.astimezone(tz).date() if tz else session.start_time.date()
        summary.total += 1
        if started == today:
            summary.today += 1
        if started.isocalendar()[:2] == week:
            summary.week += 1
        if (started.year, started.month) == (today.year, today.month):
            summary.month += 1
        if session.in_progress:
            summary.in_progress += 1
    return summary


__all__ = ["SessionSummary", "summarize"]
