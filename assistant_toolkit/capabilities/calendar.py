"""Calendar capability: event CRUD and queries over a pluggable store."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from ..exceptions import ToolExecutionError
from ..tools.models import ArgumentValue, Tool, ToolOutput, ToolParam
from ..tools.provider import CapabilityDomain, CapabilityProvider
from ._dates import (
    format_date,
    format_datetime,
    format_day,
    format_time,
    optional_date,
    require_date,
    start_of_day,
    timestamp,
)

logger = logging.getLogger(__name__)

LOOKUP_WINDOW = timedelta(days=30)
SEARCH_HORIZON = timedelta(days=90)
DEFAULT_LIST_DAYS = 7


@dataclass
class CalendarEvent:
    title: str
    start: datetime
    end: datetime
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class CalendarStore(ABC):
    """Platform calendar the provider reads and writes."""

    @abstractmethod
    def events_between(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Events overlapping ``[start, end)``, ordered by start time."""
        raise NotImplementedError

    @abstractmethod
    def save(self, event: CalendarEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, event: CalendarEvent) -> None:
        raise NotImplementedError


class InMemoryCalendarStore(CalendarStore):
    def __init__(self, events: Optional[List[CalendarEvent]] = None) -> None:
        self._events: Dict[str, CalendarEvent] = {e.id: e for e in events or []}

    def events_between(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        matching = [e for e in self._events.values() if e.start < end and e.end > start]
        return sorted(matching, key=lambda e: e.start)

    def save(self, event: CalendarEvent) -> None:
        self._events[event.id] = event

    def remove(self, event: CalendarEvent) -> None:
        self._events.pop(event.id, None)

    def __len__(self) -> int:
        return len(self._events)


def _string(description: str) -> ToolParam:
    return ToolParam(type="string", description=description)


CALENDAR_TOOLS: List[Tool] = [
    Tool(
        name="create_event",
        description="Create a new calendar event",
        parameters={
            "title": _string("The event title"),
            "start_date": _string("Event start date, e.g. '2026-02-01 10:00'"),
            "end_date": _string("Event end date, e.g. '2026-02-01 11:00'"),
            "notes": _string("Optional event notes"),
        },
        required=["title", "start_date", "end_date"],
    ),
    Tool(
        name="list_events",
        description="List calendar events for a date range (defaults to the next 7 days)",
        parameters={
            "start_date": _string("Start of the range, e.g. '2026-02-01 00:00'"),
            "end_date": _string("End of the range, e.g. '2026-02-08 00:00'"),
        },
    ),
    Tool(
        name="update_event",
        description="Update an existing calendar event found by title",
        parameters={
            "event_title": _string("Title of the event to update"),
            "new_title": _string("New title for the event"),
            "new_notes": _string("New notes for the event"),
            "new_start_date": _string("New start date, e.g. '2026-02-01 10:00'"),
            "new_end_date": _string("New end date, e.g. '2026-02-01 11:00'"),
        },
        required=["event_title"],
    ),
    Tool(
        name="delete_event",
        description="Delete a calendar event found by title",
        parameters={"event_title": _string("Title of the event to delete")},
        required=["event_title"],
    ),
    Tool(
        name="search_events",
        description="Search for events by title or notes",
        parameters={"query": _string("Search query for event titles or notes")},
        required=["query"],
    ),
    Tool(
        name="get_today_events",
        description="Get all events for today",
    ),
    Tool(
        name="get_upcoming_events",
        description="Get upcoming events for the next few days",
        parameters={
            "days": ToolParam(
                type="integer", description="Number of days to look ahead (default: 7)"
            )
        },
    ),
]


class CalendarProvider(CapabilityProvider):
    """Calendar tools backed by a :class:`CalendarStore`.

    ``authorized`` mirrors the platform permission; while it is ``False``
    every tool call fails with a permission error.
    """

    NAME = "Calendar Server"
    DOMAIN = CapabilityDomain.CALENDAR
    KEYWORDS = ("calendar", "event", "meeting", "schedule", "appointment", "agenda")

    def __init__(
        self,
        store: Optional[CalendarStore] = None,
        *,
        authorized: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store if store is not None else InMemoryCalendarStore()
        self.authorized = authorized
        self._clock = clock
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Union[str, ToolOutput]]] = {
            "create_event": self._create_event,
            "list_events": self._list_events,
            "update_event": self._update_event,
            "delete_event": self._delete_event,
            "search_events": self._search_events,
            "get_today_events": self._get_today_events,
            "get_upcoming_events": self._get_upcoming_events,
        }

    async def initialize(self) -> None:
        if not self.authorized:
            logger.warning("Calendar access not granted; calendar tools will fail.")

    async def list_tools(self) -> List[Tool]:
        return list(CALENDAR_TOOLS)

    async def execute(
        self, name: str, arguments: Dict[str, ArgumentValue]
    ) -> Union[str, ToolOutput]:
        if not self.authorized:
            raise ToolExecutionError("permission denied: Calendar access not granted")
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolExecutionError(f"Tool '{name}' not found in {self.NAME}")
        logger.debug("%s executing %s with %s", self.NAME, name, arguments)
        return handler(arguments)

    # ------------------------------------------------------------------
    # Tool implementations
    # ------------------------------------------------------------------

    def _find_by_title(self, title: str) -> CalendarEvent:
        now = self._clock()
        needle = title.casefold()
        for event in self.store.events_between(now - LOOKUP_WINDOW, now + LOOKUP_WINDOW):
            if needle in event.title.casefold():
                return event
        raise ToolExecutionError(
            f"Event '{title}' not found in the last 30 days or next 30 days"
        )

    @staticmethod
    def _event_metadata(event: CalendarEvent, action: str) -> Dict[str, str]:
        return {
            "eventId": event.id,
            "eventTitle": event.title,
            "startTimestamp": timestamp(event.start),
            "action": action,
        }

    def _create_event(self, args: Dict[str, Any]) -> ToolOutput:
        start = require_date(args, "start_date")
        end = require_date(args, "end_date")
        if end < start:
            raise ToolExecutionError("Failed to create event: end date is before start date")
        event = CalendarEvent(title=args["title"], start=start, end=end, notes=args.get("notes"))
        self.store.save(event)
        return ToolOutput(
            content=(
                f"Calendar event '{event.title}' created successfully for "
                f"{format_datetime(start)}"
            ),
            metadata=self._event_metadata(event, "created"),
        )

    def _list_events(self, args: Dict[str, Any]) -> str:
        start = optional_date(args, "start_date")
        end = optional_date(args, "end_date")
        if start is None or end is None:
            start = start_of_day(self._clock())
            end = start + timedelta(days=DEFAULT_LIST_DAYS)

        events = self.store.events_between(start, end)
        if not events:
            return f"No events found between {format_date(start)} and {format_date(end)}"

        lines = "\n".join(
            f"• {e.title} - {format_datetime(e.start)} to {format_time(e.end)}"
            for e in events
        )
        return f"Found {len(events)} events:\n\n{lines}"

    def _update_event(self, args: Dict[str, Any]) -> ToolOutput:
        event = self._find_by_title(args["event_title"])

        # Every new value is checked before the stored event is touched.
        new_start = optional_date(args, "new_start_date")
        new_end = optional_date(args, "new_end_date")
        start = new_start if new_start is not None else event.start
        if new_end is not None:
            end = new_end
        elif new_start is not None:
            end = new_start + (event.end - event.start)
        else:
            end = event.end
        if end < start:
            raise ToolExecutionError("Failed to update event: end date is before start date")

        if args.get("new_title"):
            event.title = args["new_title"]
        if "new_notes" in args:
            event.notes = args["new_notes"]
        event.start, event.end = start, end
        self.store.save(event)
        return ToolOutput(
            content=f"Event '{event.title}' updated successfully",
            metadata=self._event_metadata(event, "updated"),
        )

    def _delete_event(self, args: Dict[str, Any]) -> str:
        event = self._find_by_title(args["event_title"])
        self.store.remove(event)
        return f"Event '{event.title}' deleted successfully"

    def _search_events(self, args: Dict[str, Any]) -> str:
        query = args["query"]
        needle = query.casefold()
        now = self._clock()
        matching = [
            e
            for e in self.store.events_between(now - LOOKUP_WINDOW, now + SEARCH_HORIZON)
            if needle in e.title.casefold() or needle in (e.notes or "").casefold()
        ]
        if not matching:
            return f"No events found matching '{query}'"
        lines = "\n".join(f"• {e.title} - {format_datetime(e.start)}" for e in matching)
        return f"Found {len(matching)} events matching '{query}':\n\n{lines}"

    def _get_today_events(self, args: Dict[str, Any]) -> str:
        start = start_of_day(self._clock())
        events = self.store.events_between(start, start + timedelta(days=1))
        if not events:
            return "No events scheduled for today"
        lines = "\n".join(
            f"• {format_time(e.start)} - {format_time(e.end)}: {e.title}" for e in events
        )
        return f"Today's events ({len(events)}):\n\n{lines}"

    def _get_upcoming_events(self, args: Dict[str, Any]) -> str:
        days = args.get("days", DEFAULT_LIST_DAYS)
        if days <= 0:
            raise ToolExecutionError("'days' must be a positive number")
        start = start_of_day(self._clock())
        events = self.store.events_between(start, start + timedelta(days=days))
        if not events:
            return f"No upcoming events in the next {days} days"

        by_day: Dict[datetime, List[CalendarEvent]] = defaultdict(list)
        for event in events:
            by_day[start_of_day(event.start)].append(event)

        sections = []
        for day in sorted(by_day):
            lines = "\n".join(
                f"  • {format_time(e.start)}: {e.title}"
                for e in sorted(by_day[day], key=lambda e: e.start)
            )
            sections.append(f"{format_day(day)}:\n{lines}")
        return f"Upcoming events in the next {days} days:\n\n" + "\n\n".join(sections)
