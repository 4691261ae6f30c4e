from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from ..core.constants import WEEK_ORDER
from ..core.enums import DayOfWeek
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def parse_time_of_day(value, field_name: str) -> time:
    """Accept HH:MM, HH:MM:SS or a full ISO datetime and keep the time of day."""

    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time().replace(tzinfo=None)

    v = (value or "").strip() if isinstance(value, str) else ""
    if not v:
        raise ValidationError(f"{field_name} is required")

    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            pass

    try:
        # fromisoformat() before 3.11 does not understand a trailing "Z".
        parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid time")
    return parsed.time().replace(tzinfo=None)


def format_time(value: Optional[time]) -> str:
    return value.strftime("%H:%M") if value else ""


def resolve_day_of_week(day: date, *, sunday_fallback: Optional[DayOfWeek]) -> Optional[DayOfWeek]:
    """Map a calendar date onto the six-day teaching week.

    Sunday is outside the week and resolves to ``sunday_fallback``
    (``None`` means "no teaching day").
    """

    weekday = day.weekday()
    if weekday == 6:
        return sunday_fallback
    return WEEK_ORDER[weekday]
