from .calendar import CalendarEvent, CalendarProvider, CalendarStore, InMemoryCalendarStore
from .reminders import InMemoryReminderStore, Reminder, ReminderStore, RemindersProvider

__all__ = [
    "CalendarEvent",
    "CalendarProvider",
    "CalendarStore",
    "InMemoryCalendarStore",
    "InMemoryReminderStore",
    "Reminder",
    "ReminderStore",
    "RemindersProvider",
]
