"""Reminders capability: to-do items with optional due dates and priorities."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from ..exceptions import ToolArgumentError, ToolExecutionError
from ..tools.models import ArgumentValue, Tool, ToolOutput, ToolParam
from ..tools.provider import CapabilityDomain, CapabilityProvider
from ._dates import format_datetime, optional_date, start_of_day, timestamp

logger = logging.getLogger(__name__)

# 0 = none, 1 = high, 5 = medium, 9 = low
PRIORITY_LABELS: Dict[int, Optional[str]] = {0: None, 1: "High", 5: "Medium", 9: "Low"}


@dataclass
class Reminder:
    title: str
    due: Optional[datetime] = None
    notes: Optional[str] = None
    priority: int = 0
    completed: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def describe(self) -> str:
        line = f"• {self.title}"
        if self.completed:
            line += " [Completed]"
        if self.due is not None:
            line += f" (due: {format_datetime(self.due)})"
        label = PRIORITY_LABELS.get(self.priority)
        if label:
            line += f" [{label} priority]"
        return line


class ReminderStore(ABC):
    """Platform reminders list the provider reads and writes."""

    @abstractmethod
    def all(self) -> List[Reminder]:
        raise NotImplementedError

    @abstractmethod
    def save(self, reminder: Reminder) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, reminder: Reminder) -> None:
        raise NotImplementedError


class InMemoryReminderStore(ReminderStore):
    def __init__(self, reminders: Optional[List[Reminder]] = None) -> None:
        self._reminders: Dict[str, Reminder] = {r.id: r for r in reminders or []}

    def all(self) -> List[Reminder]:
        return list(self._reminders.values())

    def save(self, reminder: Reminder) -> None:
        self._reminders[reminder.id] = reminder

    def remove(self, reminder: Reminder) -> None:
        self._reminders.pop(reminder.id, None)

    def __len__(self) -> int:
        return len(self._reminders)


REMINDER_TOOLS: List[Tool] = [
    Tool(
        name="create_reminder",
        description="Create a new reminder",
        parameters={
            "title": ToolParam(type="string", description="The reminder title"),
            "due_date": ToolParam(
                type="string", description="Due date, e.g. '2026-02-01 10:00' (optional)"
            ),
            "notes": ToolParam(type="string", description="Optional reminder notes"),
            "priority": ToolParam(
                type="integer",
                description="Priority level: 0 (none), 1 (high), 5 (medium), 9 (low)",
            ),
        },
        required=["title"],
    ),
    Tool(
        name="list_reminders",
        description="List all reminders",
        parameters={
            "include_completed": ToolParam(
                type="boolean", description="Include completed reminders (default: false)"
            )
        },
    ),
    Tool(
        name="complete_reminder",
        description="Mark a reminder as completed",
        parameters={
            "title": ToolParam(type="string", description="Title of the reminder to complete")
        },
        required=["title"],
    ),
    Tool(
        name="delete_reminder",
        description="Delete a reminder",
        parameters={
            "title": ToolParam(type="string", description="Title of the reminder to delete")
        },
        required=["title"],
    ),
    Tool(
        name="search_reminders",
        description="Search for reminders by title or content",
        parameters={
            "query": ToolParam(
                type="string", description="Search query for reminder titles or notes"
            )
        },
        required=["query"],
    ),
    Tool(
        name="get_today_reminders",
        description="Get incomplete reminders due today",
    ),
    Tool(
        name="get_overdue_reminders",
        description="Get incomplete reminders whose due date has passed",
    ),
]


class RemindersProvider(CapabilityProvider):
    """Reminder tools backed by a :class:`ReminderStore`."""

    NAME = "Reminders Server"
    DOMAIN = CapabilityDomain.REMINDERS
    KEYWORDS = (
        "reminder",
        "remind",
        "todo",
        "to-do",
        "task",
        "complete",
        "done",
        "finish",
        "check off",
    )

    def __init__(
        self,
        store: Optional[ReminderStore] = None,
        *,
        authorized: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store if store is not None else InMemoryReminderStore()
        self.authorized = authorized
        self._clock = clock
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Union[str, ToolOutput]]] = {
            "create_reminder": self._create_reminder,
            "list_reminders": self._list_reminders,
            "complete_reminder": self._complete_reminder,
            "delete_reminder": self._delete_reminder,
            "search_reminders": self._search_reminders,
            "get_today_reminders": self._get_today_reminders,
            "get_overdue_reminders": self._get_overdue_reminders,
        }

    async def initialize(self) -> None:
        if not self.authorized:
            logger.warning("Reminders access not granted; reminder tools will fail.")

    async def list_tools(self) -> List[Tool]:
        return list(REMINDER_TOOLS)

    async def execute(
        self, name: str, arguments: Dict[str, ArgumentValue]
    ) -> Union[str, ToolOutput]:
        if not self.authorized:
            raise ToolExecutionError("permission denied: Reminders access not granted")
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolExecutionError(f"Tool '{name}' not found in {self.NAME}")
        logger.debug("%s executing %s with %s", self.NAME, name, arguments)
        return handler(arguments)

    def _find(self, title: str, *, include_completed: bool) -> Optional[Reminder]:
        needle = title.casefold()
        for reminder in self.store.all():
            if reminder.completed and not include_completed:
                continue
            if needle in reminder.title.casefold():
                return reminder
        return None

    @staticmethod
    def _sorted(reminders: List[Reminder]) -> List[Reminder]:
        return sorted(reminders, key=lambda r: (r.due is None, r.due or datetime.max))

    def _create_reminder(self, args: Dict[str, Any]) -> ToolOutput:
        priority = args.get("priority", 0)
        if priority not in PRIORITY_LABELS:
            raise ToolArgumentError(
                f"Invalid priority {priority}. Use 0 (none), 1 (high), 5 (medium) or 9 (low)"
            )
        due = optional_date(args, "due_date")
        reminder = Reminder(
            title=args["title"], due=due, notes=args.get("notes"), priority=priority
        )
        self.store.save(reminder)

        message = f"Reminder '{reminder.title}' created successfully"
        if due is not None:
            message += f" (due: {format_datetime(due)})"
        metadata = {
            "reminderId": reminder.id,
            "reminderTitle": reminder.title,
            "action": "created",
        }
        if due is not None:
            metadata["dueTimestamp"] = timestamp(due)
        return ToolOutput(content=message, metadata=metadata)

    def _list_reminders(self, args: Dict[str, Any]) -> str:
        include_completed = args.get("include_completed", False)
        reminders = [
            r for r in self.store.all() if include_completed or not r.completed
        ]
        if not reminders:
            return "No reminders found" if include_completed else "No incomplete reminders found"
        lines = "\n".join(r.describe() for r in self._sorted(reminders))
        return f"Found {len(reminders)} reminders:\n\n{lines}"

    def _complete_reminder(self, args: Dict[str, Any]) -> str:
        title = args["title"]
        reminder = self._find(title, include_completed=False)
        if reminder is None:
            raise ToolExecutionError(f"Reminder '{title}' not found or already completed")
        reminder.completed = True
        self.store.save(reminder)
        return f"Reminder '{reminder.title}' marked as completed"

    def _delete_reminder(self, args: Dict[str, Any]) -> str:
        title = args["title"]
        reminder = self._find(title, include_completed=True)
        if reminder is None:
            raise ToolExecutionError(f"Reminder '{title}' not found")
        self.store.remove(reminder)
        return f"Reminder '{reminder.title}' deleted successfully"

    def _search_reminders(self, args: Dict[str, Any]) -> str:
        query = args["query"]
        needle = query.casefold()
        matching = [
            r
            for r in self.store.all()
            if needle in r.title.casefold() or needle in (r.notes or "").casefold()
        ]
        if not matching:
            return f"No reminders found matching '{query}'"
        lines = "\n".join(r.describe() for r in self._sorted(matching))
        return f"Found {len(matching)} reminders matching '{query}':\n\n{lines}"

    def _get_today_reminders(self, args: Dict[str, Any]) -> str:
        start = start_of_day(self._clock())
        end = start + timedelta(days=1)
        due_today = [
            r
            for r in self.store.all()
            if not r.completed and r.due is not None and start <= r.due < end
        ]
        if not due_today:
            return "No reminders due today"
        lines = "\n".join(r.describe() for r in self._sorted(due_today))
        return f"Reminders due today ({len(due_today)}):\n\n{lines}"

    def _get_overdue_reminders(self, args: Dict[str, Any]) -> str:
        now = self._clock()
        overdue = [
            r
            for r in self.store.all()
            if not r.completed and r.due is not None and r.due < now
        ]
        if not overdue:
            return "No overdue reminders"
        lines = "\n".join(r.describe() for r in self._sorted(overdue))
        return f"Overdue reminders ({len(overdue)}):\n\n{lines}"
