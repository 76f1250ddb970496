"""
Time window evaluation for routing rules.

Windows are compared at minute precision ("HH:MM"). A window whose start is
later than its end spans midnight and passes when now >= start OR now <= end.
"""
import logging
from datetime import datetime, time, timezone as dt_timezone
from enum import IntEnum
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class Weekday(IntEnum):
    """Weekday indexed like datetime.weekday()."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def key(self) -> str:
        return self.name.lower()


TimeLike = Union[str, time, None]


def parse_time(value: TimeLike) -> Optional[time]:
    """
    Parse a time value to minute precision.

    Accepts datetime.time or strings like '09:00' / '09:00:00'.
    Returns None for empty or unparseable values.
    """
    if value is None or value == '':
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        hour, minute = str(value).strip()[:5].split(':')
        return time(int(hour), int(minute))
    except ValueError:
        logger.warning(f"Unparseable time value: {value!r}")
        return None


def is_within_window(current: time, start: TimeLike, end: TimeLike) -> bool:
    """
    Check whether current falls inside [start, end].

    A window with a missing bound is open and always passes.
    """
    start_t = parse_time(start)
    end_t = parse_time(end)
    if start_t is None or end_t is None:
        return True

    current = current.replace(second=0, microsecond=0)
    if start_t <= end_t:
        return start_t <= current <= end_t
    # Overnight window, e.g. 22:00-06:00
    return current >= start_t or current <= end_t


def resolve_zone(tz_name: Optional[str]):
    """Return the ZoneInfo for tz_name, falling back to UTC."""
    if not tz_name:
        return dt_timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tz_name}', falling back to UTC")
        return dt_timezone.utc


def local_day_and_time(now: datetime, tz_name: Optional[str]) -> Tuple[Weekday, time]:
    """Convert an aware datetime into (weekday, HH:MM) in the given timezone."""
    local = now.astimezone(resolve_zone(tz_name))
    return Weekday(local.weekday()), time(local.hour, local.minute)


def is_schedule_open(
    now: datetime,
    tz_name: Optional[str] = None,
    weekly_schedule: Optional[dict] = None,
    start_time: TimeLike = None,
    end_time: TimeLike = None,
) -> bool:
    """
    Decide whether a rule accepts leads at the given instant.

    If a weekly schedule is present it takes precedence: the entry for the
    current local weekday must be active, and its start/end (if both set)
    must contain the current local time. Otherwise the flat start/end window
    is used.
    """
    day, current = local_day_and_time(now, tz_name)

    if weekly_schedule:
        day_schedule = weekly_schedule.get(day.key) or {}
        if not day_schedule.get('is_active'):
            return False
        return is_within_window(
            current,
            day_schedule.get('start_time'),
            day_schedule.get('end_time'),
        )

    return is_within_window(current, start_time, end_time)
