"""Tool registration for the GymTap MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from fastmcp import Context, FastMCP

from ..store import SessionStore
from ..storage import Session
from ..summary import summarize


@dataclass(slots=True)
class ToolHandles:
    add_session: Any
    end_session: Any
    edit_session: Any
    delete_sessions: Any
    delete_session: Any
    reset_sessions: Any
    undo: Any
    list_sessions: Any
    session_summary: Any


def _session_payload(session: Session, index: int | None = None) -> dict[str, Any]:
    duration = session.duration
    payload: dict[str, Any] = {
        "id": str(session.id),
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat() if session.end_time else None,
        "note": session.note,
        "in_progress": session.in_progress,
        "duration_seconds": duration.total_seconds() if duration is not None else None,
    }
    if index is not None:
        payload["index"] = index
    return payload


def _parse_id(session_id: str) -> UUID | None:
    try:
        return UUID(str(session_id))
    except ValueError:
        return None


def _parse_timestamp(value: str, field: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"{field} must be an ISO-8601 timestamp, got {value!r}") from exc


def register_tools(
    server: FastMCP,
    *,
    store: SessionStore,
    clock: Callable[[], datetime] | None = None,
) -> ToolHandles:
    """Register GymTap's MCP tools on the server."""

    local_now = clock or (lambda: datetime.now().astimezone())

    def _state() -> dict[str, Any]:
        return {"count": len(store.sessions), "can_undo": store.can_undo}

    def _add_session(note: str = "", context: Context | None = None) -> dict[str, Any]:
        """Log a new session starting now."""

        session = store.add(note)
        _emit_log(context, "info", "Logged session", extra={"session_id": str(session.id)})
        return {"session": _session_payload(session, 0), **_state()}

    def _end_session(session_id: str, context: Context | None = None) -> dict[str, Any]:
        """Stamp the end time of an in-progress session."""

        parsed = _parse_id(session_id)
        ended = store.end_session(parsed) if parsed is not None else None
        if ended is None:
            _emit_log(context, "debug", "End requested for unknown session", extra={"session_id": session_id})
            return {"found": False, **_state()}

        _emit_log(context, "info", "Ended session", extra={"session_id": session_id})
        return {"found": True, "session": _session_payload(ended, store.index_of(ended.id)), **_state()}

    def _edit_session(
        session_id: str,
        note: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        clear_end_time: bool = False,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Change the note, start time or end time of a session."""

        parsed = _parse_id(session_id)
        current = store.get(parsed) if parsed is not None else None
        if current is None:
            _emit_log(context, "debug", "Edit requested for unknown session", extra={"session_id": session_id})
            return {"found": False, **_state()}

        changes: dict[str, Any] = {}
        if note is not None:
            changes["note"] = note
        if start_time is not None:
            changes["start_time"] = _parse_timestamp(start_time, "start_time")
        if clear_end_time:
            changes["end_time"] = None
        elif end_time is not None:
            changes["end_time"] = _parse_timestamp(end_time, "end_time")

        updated = Session.model_validate({**current.model_dump(), **changes})
        stored = store.edit(updated, current.id)
        _emit_log(context, "info", "Edited session", extra={"session_id": session_id, "fields": sorted(changes)})
        return {"found": True, "session": _session_payload(stored, store.index_of(current.id)), **_state()}

    def _delete_sessions(indices: list[int], context: Context | None = None) -> dict[str, Any]:
        """Delete sessions by their position in the list (0 is the most recent)."""

        try:
            removed = store.delete_many(indices)
        except IndexError as exc:
            raise ValueError(str(exc)) from exc
        _emit_log(context, "info", "Deleted sessions", extra={"count": len(removed)})
        return {"deleted": [_session_payload(session) for session in removed], **_state()}

    def _delete_session(session_id: str, context: Context | None = None) -> dict[str, Any]:
        """Delete a single session by id."""

        parsed = _parse_id(session_id)
        current = store.get(parsed) if parsed is not None else None
        if current is None or not store.delete_one(current):
            _emit_log(context, "debug", "Delete requested for unknown session", extra={"session_id": session_id})
            return {"found": False, **_state()}

        _emit_log(context, "info", "Deleted session", extra={"session_id": session_id})
        return {"found": True, **_state()}

    def _reset_sessions(confirm: bool = False, context: Context | None = None) -> dict[str, Any]:
        """Permanently delete all logged sessions. Requires confirm=true."""

        if not confirm:
            return {"reset": False, "reason": "Pass confirm=true to delete all sessions", **_state()}

        store.reset()
        _emit_log(context, "warning", "Reset all sessions")
        return {"reset": True, **_state()}

    def _undo(context: Context | None = None) -> dict[str, Any]:
        """Revert the most recent add, edit, end or delete."""

        record = store.undo()
        kind = type(record).__name__.lower() if record is not None else None
        _emit_log(context, "info" if record else "debug", "Undo requested", extra={"undo_kind": kind})
        return {"undone": kind, **_state()}

    def _list_sessions(context: Context | None = None) -> dict[str, Any]:
        """List sessions, most recent first."""

        sessions = [_session_payload(session, index) for index, session in enumerate(store.sessions)]
        _emit_log(context, "debug", "Listing sessions", extra={"count": len(sessions)})
        return {"sessions": sessions, **_state()}

    def _session_summary(context: Context | None = None) -> dict[str, Any]:
        """Count sessions in total, today, this week and this month."""

        return summarize(store.sessions, local_now()).to_dict()

    tool_add = server.tool(
        name="add_session",
        description="Log a new session starting now, with an optional note.",
    )(_add_session)

    tool_end = server.tool(
        name="end_session",
        description="Set the end time of a session to now.",
    )(_end_session)

    tool_edit = server.tool(
        name="edit_session",
        description=(
            "Edit a session's note, start time or end time. Timestamps are ISO-8601; "
            "set clear_end_time to mark the session as in progress again."
        ),
    )(_edit_session)

    tool_delete_many = server.tool(
        name="delete_sessions",
        description="Delete sessions by list position; positions refer to the list before deletion.",
    )(_delete_sessions)

    tool_delete_one = server.tool(
        name="delete_session",
        description="Delete one session by id.",
    )(_delete_session)

    tool_reset = server.tool(
        name="reset_sessions",
        description="Delete all logged sessions. This clears undo history and cannot be undone.",
        annotations={"destructiveHint": True},
    )(_reset_sessions)

    tool_undo = server.tool(
        name="undo",
        description="Undo the most recent change to the session list.",
    )(_undo)

    tool_list = server.tool(
        name="list_sessions",
        description="List logged sessions, most recent first.",
    )(_list_sessions)

    tool_summary = server.tool(
        name="session_summary",
        description="Summarize session counts for today, this week and this month.",
    )(_session_summary)

    return ToolHandles(
        add_session=tool_add,
        end_session=tool_end,
        edit_session=tool_edit,
        delete_sessions=tool_delete_many,
        delete_session=tool_delete_one,
        reset_sessions=tool_reset,
        undo=tool_undo,
        list_sessions=tool_list,
        session_summary=tool_summary,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
