"""Lenient date parsing and display helpers shared by capability providers."""

from datetime import datetime
from typing import Any, Mapping, Optional

from ..exceptions import ToolArgumentError

# Tried in order before falling back to ISO 8601.
_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M",
    "%d-%m-%Y %H:%M",
)

EXPECTED_FORMATS_HINT = (
    "Expected formats: '2026-02-01T10:00:00Z', '2026-02-01T10:00:00', "
    "or '2026-02-01 10:00'"
)


def parse_flexible_date(value: str) -> Optional[datetime]:
    """Parse *value* into a naive local datetime, or return ``None``.

    Zone-aware inputs (``Z`` or an offset) are converted to local time.
    """
    text = value.strip()
    if not text:
        return None

    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def require_date(arguments: Mapping[str, Any], key: str) -> datetime:
    parsed = parse_flexible_date(str(arguments[key]))
    if parsed is None:
        raise ToolArgumentError(f"Invalid date format for '{key}'. {EXPECTED_FORMATS_HINT}")
    return parsed


def optional_date(arguments: Mapping[str, Any], key: str) -> Optional[datetime]:
    if not arguments.get(key):
        return None
    return require_date(arguments, key)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def format_date(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment:%Y}"


def format_time(moment: datetime) -> str:
    return f"{moment:%H:%M}"


def format_datetime(moment: datetime) -> str:
    return f"{format_date(moment)} at {format_time(moment)}"


def format_day(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}, {moment:%Y}"


def timestamp(moment: datetime) -> str:
    return str(int(moment.timestamp()))
