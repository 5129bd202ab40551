"""Unit tests for the calendar capability provider over an in-memory store."""

from __future__ import annotations

from datetime import datetime

import pytest

from assistant_toolkit.capabilities.calendar import (
    CalendarEvent,
    CalendarProvider,
    InMemoryCalendarStore,
)
from assistant_toolkit.exceptions import ToolArgumentError, ToolExecutionError
from assistant_toolkit.tools.models import ToolCall, ToolOutput
from assistant_toolkit.tools.router import CapabilityRouter

pytestmark = pytest.mark.asyncio


def _event(title: str, start: datetime, hours: int = 1, notes: str | None = None) -> CalendarEvent:
    return CalendarEvent(
        title=title, start=start, end=start.replace(hour=start.hour + hours), notes=notes
    )


@pytest.fixture
def store() -> InMemoryCalendarStore:
    return InMemoryCalendarStore(
        [
            _event("Team standup", datetime(2026, 2, 1, 10)),
            _event("Dentist", datetime(2026, 2, 3, 14), notes="Bring insurance card"),
            _event("Old review", datetime(2025, 11, 1, 9)),
        ]
    )


@pytest.fixture
def calendar(store: InMemoryCalendarStore, fixed_now: datetime) -> CalendarProvider:
    return CalendarProvider(store, clock=lambda: fixed_now)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


async def test_tool_names(calendar: CalendarProvider) -> None:
    names = [t.name for t in await calendar.list_tools()]
    assert names == [
        "create_event",
        "list_events",
        "update_event",
        "delete_event",
        "search_events",
        "get_today_events",
        "get_upcoming_events",
    ]


async def test_can_handle(calendar: CalendarProvider) -> None:
    assert calendar.can_handle("Schedule a meeting with Ana")
    assert not calendar.can_handle("What's 2+2?")


async def test_unauthorized_calls_fail(store: InMemoryCalendarStore) -> None:
    calendar = CalendarProvider(store, authorized=False)
    assert await calendar.list_tools()
    with pytest.raises(ToolExecutionError, match="permission denied"):
        await calendar.execute("get_today_events", {})


async def test_unknown_tool(calendar: CalendarProvider) -> None:
    with pytest.raises(ToolExecutionError, match="not found in Calendar Server"):
        await calendar.execute("fly", {})


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------


async def test_create_event(calendar: CalendarProvider, store: InMemoryCalendarStore) -> None:
    output = await calendar.execute(
        "create_event",
        {"title": "Lunch", "start_date": "2026-02-02 12:00", "end_date": "2026-02-02T13:00:00"},
    )

    assert isinstance(output, ToolOutput)
    assert output.content == "Calendar event 'Lunch' created successfully for Feb 2, 2026 at 12:00"
    assert output.metadata["action"] == "created"
    assert output.metadata["eventTitle"] == "Lunch"
    assert output.metadata["startTimestamp"] == str(int(datetime(2026, 2, 2, 12).timestamp()))
    assert len(store) == 4


async def test_create_event_bad_date(calendar: CalendarProvider) -> None:
    with pytest.raises(ToolArgumentError, match="Invalid date format for 'start_date'"):
        await calendar.execute(
            "create_event",
            {"title": "Lunch", "start_date": "tomorrow noon", "end_date": "2026-02-02 13:00"},
        )


async def test_create_event_end_before_start(calendar: CalendarProvider) -> None:
    with pytest.raises(ToolExecutionError, match="end date is before start date"):
        await calendar.execute(
            "create_event",
            {"title": "x", "start_date": "2026-02-02 13:00", "end_date": "2026-02-02 12:00"},
        )


async def test_update_event_moves_and_keeps_duration(
    calendar: CalendarProvider, store: InMemoryCalendarStore
) -> None:
    output = await calendar.execute(
        "update_event",
        {"event_title": "dentist", "new_title": "Dentist (moved)", "new_start_date": "2026-02-04 09:00"},
    )

    assert output.content == "Event 'Dentist (moved)' updated successfully"
    assert output.metadata["action"] == "updated"
    moved = [e for e in store.events_between(datetime(2026, 2, 4), datetime(2026, 2, 5))]
    assert moved[0].start == datetime(2026, 2, 4, 9)
    assert moved[0].end == datetime(2026, 2, 4, 10)


async def test_update_event_bad_date_leaves_event_unchanged(
    calendar: CalendarProvider, store: InMemoryCalendarStore
) -> None:
    with pytest.raises(ToolArgumentError, match="new_start_date"):
        await calendar.execute(
            "update_event",
            {"event_title": "Standup", "new_title": "Renamed", "new_start_date": "not a date"},
        )

    stored = store.events_between(datetime(2026, 2, 1), datetime(2026, 2, 2))[0]
    assert stored.title == "Team standup"
    assert stored.start == datetime(2026, 2, 1, 10)


async def test_update_event_end_before_start_leaves_event_unchanged(
    calendar: CalendarProvider, store: InMemoryCalendarStore
) -> None:
    with pytest.raises(ToolExecutionError, match="end date is before start date"):
        await calendar.execute(
            "update_event",
            {"event_title": "Dentist", "new_notes": "x", "new_end_date": "2026-02-03 13:00"},
        )

    stored = store.events_between(datetime(2026, 2, 3), datetime(2026, 2, 4))[0]
    assert stored.notes == "Bring insurance card"
    assert stored.end == datetime(2026, 2, 3, 15)


async def test_update_event_failure_reported_by_router(
    calendar: CalendarProvider, store: InMemoryCalendarStore
) -> None:
    router = CapabilityRouter([calendar])
    result = await router.dispatch(
        ToolCall(
            id="u1",
            name="update_event",
            arguments={"event_title": "Standup", "new_title": "Renamed", "new_start_date": "soon"},
        )
    )

    assert result.is_error
    assert "Invalid date format for 'new_start_date'" in result.content
    assert [e.title for e in store.events_between(datetime(2026, 2, 1), datetime(2026, 2, 2))] == [
        "Team standup"
    ]


async def test_update_event_not_found(calendar: CalendarProvider) -> None:
    with pytest.raises(ToolExecutionError, match="Event 'Gym' not found"):
        await calendar.execute("update_event", {"event_title": "Gym"})


async def test_delete_event(calendar: CalendarProvider, store: InMemoryCalendarStore) -> None:
    result = await calendar.execute("delete_event", {"event_title": "STANDUP"})
    assert result == "Event 'Team standup' deleted successfully"
    assert len(store) == 2


async def test_delete_outside_window_not_found(calendar: CalendarProvider) -> None:
    with pytest.raises(
        ToolExecutionError,
        match="Event 'Old review' not found in the last 30 days or next 30 days",
    ):
        await calendar.execute("delete_event", {"event_title": "Old review"})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def test_list_events_defaults_to_next_week(calendar: CalendarProvider) -> None:
    result = await calendar.execute("list_events", {})
    assert result.startswith("Found 2 events:\n\n")
    assert "• Team standup - Feb 1, 2026 at 10:00 to 11:00" in result
    assert "Old review" not in result


async def test_list_events_empty_range(calendar: CalendarProvider) -> None:
    result = await calendar.execute(
        "list_events", {"start_date": "2026-03-01 00:00", "end_date": "2026-03-02 00:00"}
    )
    assert result == "No events found between Mar 1, 2026 and Mar 2, 2026"


async def test_search_events_matches_notes(calendar: CalendarProvider) -> None:
    result = await calendar.execute("search_events", {"query": "insurance"})
    assert result == (
        "Found 1 events matching 'insurance':\n\n• Dentist - Feb 3, 2026 at 14:00"
    )


async def test_search_events_no_match(calendar: CalendarProvider) -> None:
    result = await calendar.execute("search_events", {"query": "yoga"})
    assert result == "No events found matching 'yoga'"


async def test_today_events(calendar: CalendarProvider) -> None:
    result = await calendar.execute("get_today_events", {})
    assert result == "Today's events (1):\n\n• 10:00 - 11:00: Team standup"


async def test_today_events_empty(fixed_now: datetime) -> None:
    calendar = CalendarProvider(clock=lambda: fixed_now)
    assert await calendar.execute("get_today_events", {}) == "No events scheduled for today"


async def test_upcoming_events_grouped_by_day(calendar: CalendarProvider) -> None:
    result = await calendar.execute("get_upcoming_events", {"days": 3})
    assert result == (
        "Upcoming events in the next 3 days:\n\n"
        "Sunday, February 1, 2026:\n  • 10:00: Team standup\n\n"
        "Tuesday, February 3, 2026:\n  • 14:00: Dentist"
    )


async def test_upcoming_events_rejects_non_positive(calendar: CalendarProvider) -> None:
    with pytest.raises(ToolExecutionError):
        await calendar.execute("get_upcoming_events", {"days": 0})
