from __future__ import annotations

from datetime import datetime, time

from ..common.datetime_utils import weekday_name
from ..core.exceptions import InvalidScheduleError
from .model import ScheduleEntry


def parse_hhmm(value: str) -> time:
    v = (value or "").strip()
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise InvalidScheduleError(f"Invalid time {value!r}, expected HH:MM")


def is_class_in_session(schedule: ScheduleEntry, now: datetime) -> bool:
    """True iff ``now`` falls on a class day inside [start, end], minute granularity."""

    start = parse_hhmm(schedule.start_time)
    end = parse_hhmm(schedule.end_time)

    if not schedule.meets_on(weekday_name(now)):
        return False

    current = now.time().replace(second=0, microsecond=0)
    return start <= current <= end
