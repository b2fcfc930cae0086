from __future__ import annotations

from datetime import datetime

from src.beacon_attendance.beacon_attendance.attendance.model import AttendanceRecord
from src.beacon_attendance.beacon_attendance.attendance.reconciler import reconcile
from src.beacon_attendance.beacon_attendance.core.enums import AttendanceStatus
from src.beacon_attendance.beacon_attendance.schedules.model import ScheduleEntry

NOW = datetime(2026, 3, 2, 12, 0)  # Monday

NETWORKING = ScheduleEntry("101", "Networking Protocols", frozenset({"Monday"}), "09:00", "10:00")
EMBEDDED = ScheduleEntry("102", "Embedded Systems", frozenset({"Monday", "Thursday"}), "13:00", "14:00")
AI = ScheduleEntry("103", "AI Fundamentals", frozenset({"Friday"}), "09:00", "10:00")


def _attended(course_id: str, name: str, ts: datetime) -> AttendanceRecord:
    return AttendanceRecord(course_id=course_id, course_name=name, timestamp=ts)


def test_today_courses_default_to_absent():
    view = reconcile([], [NETWORKING, EMBEDDED], NOW)

    assert [(r.course_id, r.status) for r in view] == [
        ("101", AttendanceStatus.ABSENT),
        ("102", AttendanceStatus.ABSENT),
    ]
    assert all(r.timestamp == NOW for r in view)


def test_attendance_today_overrides_absent_default():
    checked_in = _attended("101", "Networking Protocols", datetime(2026, 3, 2, 9, 5))

    view = reconcile([checked_in], [NETWORKING, EMBEDDED], NOW)

    by_course = {r.course_id: r for r in view}
    assert by_course["101"] == checked_in
    assert by_course["102"].status == AttendanceStatus.ABSENT
    assert len(view) == 2


def test_history_kept_and_listed_before_today():
    last_week = _attended("103", "AI Fundamentals", datetime(2026, 2, 27, 9, 10))

    view = reconcile([last_week], [NETWORKING], NOW)

    assert view[0] == last_week
    assert view[1].course_id == "101"


def test_courses_not_meeting_today_are_skipped():
    view = reconcile([], [NETWORKING, AI], NOW)
    assert [r.course_id for r in view] == ["101"]


def test_one_record_per_course_and_day():
    first = _attended("101", "Networking Protocols", datetime(2026, 3, 2, 9, 1))
    again = _attended("101", "Networking Protocols", datetime(2026, 3, 2, 9, 20))
    absent = AttendanceRecord("101", "Networking Protocols", datetime(2026, 3, 2, 9, 30), AttendanceStatus.ABSENT)

    view = reconcile([first, again, absent], [NETWORKING, NETWORKING], NOW)

    assert len(view) == 1
    assert view[0] == again
    assert view[0].status == AttendanceStatus.ATTENDED


def test_reconcile_is_idempotent():
    history = [
        _attended("103", "AI Fundamentals", datetime(2026, 2, 27, 9, 10)),
        _attended("102", "Embedded Systems", datetime(2026, 3, 2, 13, 3)),
    ]
    once = reconcile(history, [NETWORKING, EMBEDDED], NOW)
    twice = reconcile(once, [NETWORKING, EMBEDDED], NOW)

    assert twice == once
