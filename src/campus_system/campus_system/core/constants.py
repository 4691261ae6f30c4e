"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import DayOfWeek

# Order used when listing timetables (Mon -> Sat).
WEEK_ORDER = (
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
    DayOfWeek.SATURDAY,
)

DEFAULT_SUNDAY_FALLBACK = DayOfWeek.MONDAY

MYSQL_ERR_DUP_ENTRY = 1062
MYSQL_ERR_NO_REFERENCED_ROW = 1452
