from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from gymtap.storage import Session
from gymtap.store import SessionStore
from gymtap.tools import register_tools


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubServer:
    def __init__(self) -> None:
        self._tools: dict[str, StubTool] = {}

    def tool(self, *args, **kwargs):
        provided_name = None
        if args and isinstance(args[0], str):
            provided_name = args[0]
        provided_name = kwargs.get("name", provided_name)

        def decorator(fn):
            tool_name = provided_name or fn.__name__
            tool = StubTool(fn, tool_name)
            self._tools[tool_name] = tool
            return tool

        return decorator


class RecordingGateway:
    def __init__(self) -> None:
        self.saves: list[list[Session]] = []

    def save(self, sessions) -> bool:
        self.saves.append(list(sessions))
        return True

    def load(self) -> list[Session]:
        return []


def _setup():
    gateway = RecordingGateway()
    store = SessionStore(gateway, clock=lambda: datetime(2025, 6, 2, 6, 30, tzinfo=timezone.utc))
    server = StubServer()
    handles = register_tools(
        server,  # type: ignore[arg-type]
        store=store,
        clock=lambda: datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc),
    )
    return server, handles, store, gateway


def test_registers_all_tools() -> None:
    server, _, _, _ = _setup()

    assert set(server._tools) == {
        "add_session",
        "end_session",
        "edit_session",
        "delete_sessions",
        "delete_session",
        "reset_sessions",
        "undo",
        "list_sessions",
        "session_summary",
    }


def test_add_list_and_undo() -> None:
    _, handles, store, gateway = _setup()

    added = handles.add_session.fn(note=" deadlift ")
    assert added["session"]["note"] == "deadlift"
    assert added["session"]["index"] == 0
    assert added["session"]["in_progress"] is True
    assert added == {**added, "count": 1, "can_undo": True}

    listing = handles.list_sessions.fn()
    assert [row["id"] for row in listing["sessions"]] == [added["session"]["id"]]

    undone = handles.undo.fn()
    assert undone == {"undone": "added", "count": 0, "can_undo": False}
    assert gateway.saves[-1] == []

    assert handles.undo.fn()["undone"] is None


def test_end_session_reports_duration() -> None:
    _, handles, store, _ = _setup()
    session_id = handles.add_session.fn(note="row")["session"]["id"]

    result = handles.end_session.fn(session_id=session_id)

    assert result["found"] is True
    assert result["session"]["end_time"] is not None
    assert result["session"]["duration_seconds"] == 0.0


def test_unknown_ids_are_reported_not_raised() -> None:
    _, handles, _, gateway = _setup()

    assert handles.end_session.fn(session_id=str(uuid4()))["found"] is False
    assert handles.delete_session.fn(session_id="not-a-uuid")["found"] is False
    assert handles.edit_session.fn(session_id=str(uuid4()), note="x")["found"] is False
    assert gateway.saves == []


def test_edit_session_updates_fields() -> None:
    _, handles, store, _ = _setup()
    session_id = handles.add_session.fn(note="old")["session"]["id"]

    result = handles.edit_session.fn(
        session_id=session_id,
        note="new",
        start_time="2025-06-01T18:00:00+00:00",
        end_time="2025-06-01T19:30:00+00:00",
    )

    assert result["found"] is True
    assert result["session"]["note"] == "new"
    assert result["session"]["duration_seconds"] == timedelta(minutes=90).total_seconds()
    assert str(store.sessions[0].id) == session_id

    cleared = handles.edit_session.fn(session_id=session_id, clear_end_time=True)
    assert cleared["session"]["end_time"] is None

    handles.undo.fn()
    handles.undo.fn()
    assert store.sessions[0].note == "old"


def test_edit_session_rejects_bad_timestamp() -> None:
    _, handles, _, _ = _setup()
    session_id = handles.add_session.fn(note="a")["session"]["id"]

    with pytest.raises(ValueError):
        handles.edit_session.fn(session_id=session_id, start_time="yesterday")


def test_delete_sessions_and_invalid_indices() -> None:
    _, handles, store, _ = _setup()
    for note in ("a", "b", "c"):
        handles.add_session.fn(note=note)

    result = handles.delete_sessions.fn(indices=[0, 2])
    assert [row["note"] for row in result["deleted"]] == ["c", "a"]
    assert [s.note for s in store.sessions] == ["b"]

    with pytest.raises(ValueError):
        handles.delete_sessions.fn(indices=[5])

    handles.undo.fn()
    assert [s.note for s in store.sessions] == ["c", "b", "a"]


def test_delete_single_session() -> None:
    _, handles, store, _ = _setup()
    session_id = handles.add_session.fn(note="solo")["session"]["id"]

    assert handles.delete_session.fn(session_id=session_id) == {"found": True, "count": 0, "can_undo": True}
    assert store.sessions == ()


def test_reset_requires_confirmation() -> None:
    _, handles, store, _ = _setup()
    handles.add_session.fn(note="a")

    refused = handles.reset_sessions.fn()
    assert refused["reset"] is False
    assert len(store.sessions) == 1

    done = handles.reset_sessions.fn(confirm=True)
    assert done == {"reset": True, "count": 0, "can_undo": False}


def test_session_summary_uses_clock() -> None:
    _, handles, _, _ = _setup()
    handles.add_session.fn(note="a")
    handles.add_session.fn(note="b")

    summary = handles.session_summary.fn()

    assert summary == {"total": 2, "today": 2, "week": 2, "month": 2, "in_progress": 2}
