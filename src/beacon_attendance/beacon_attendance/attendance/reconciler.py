"""Merge historical attendance with today's expected schedule.

The result holds exactly one record per (course, day) that was either
scheduled today or attended at some point. History comes first in its own
order, followed by today's scheduled courses in schedule order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List

from ..common.datetime_utils import weekday_name
from ..core.enums import AttendanceStatus
from ..schedules.model import ScheduleEntry
from .model import AttendanceKey, AttendanceRecord


def _merge(slots: Dict[AttendanceKey, AttendanceRecord], record: AttendanceRecord) -> None:
    # Later records win, except that an absence never replaces an attendance.
    current = slots.get(record.key)
    if (
        current is not None
        and current.status == AttendanceStatus.ATTENDED
        and record.status != AttendanceStatus.ATTENDED
    ):
        return
    slots[record.key] = record


def reconcile(
    history: Iterable[AttendanceRecord],
    today_schedule: Iterable[ScheduleEntry],
    now: datetime,
) -> List[AttendanceRecord]:
    today = now.date()
    weekday = weekday_name(now)

    defaults: Dict[AttendanceKey, AttendanceRecord] = {}
    for entry in today_schedule:
        if not entry.meets_on(weekday):
            continue
        key = (entry.course_id, today)
        if key not in defaults:
            defaults[key] = AttendanceRecord(
                course_id=entry.course_id,
                course_name=entry.course_name,
                timestamp=now,
                status=AttendanceStatus.ABSENT,
            )

    past: Dict[AttendanceKey, AttendanceRecord] = {}
    for record in history:
        if record.key in defaults:
            _merge(defaults, record)
        else:
            _merge(past, record)

    return list(past.values()) + list(defaults.values())
