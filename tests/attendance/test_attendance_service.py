from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.beacon_attendance.beacon_attendance.attendance.cache import InMemoryCache
from src.beacon_attendance.beacon_attendance.attendance.model import AttendanceRecord
from src.beacon_attendance.beacon_attendance.attendance.service import AttendanceService
from src.beacon_attendance.beacon_attendance.beacon.model import BeaconSession, BeaconTarget
from src.beacon_attendance.beacon_attendance.core.enums import AttendanceStatus, SessionState
from src.beacon_attendance.beacon_attendance.core.exceptions import (
    DiscoveryTimeout,
    NotInSessionError,
    OutOfRange,
    StoreUnavailableError,
    ValidationError,
)
from src.beacon_attendance.beacon_attendance.schedules.model import ScheduleEntry
from src.beacon_attendance.beacon_attendance.session.context import SessionContext
from src.beacon_attendance.beacon_attendance.session.registry import SessionRegistry

USER = "student@uni.edu"
MONDAY_0930 = datetime(2026, 3, 2, 9, 30)

NETWORKING = ScheduleEntry(
    "101", "Networking Protocols", frozenset({"Monday"}), "09:00", "10:00", beacon_address="fe:7d:f4:af:86:d7"
)
EMBEDDED = ScheduleEntry("102", "Embedded Systems", frozenset({"Monday"}), "13:00", "14:00")


class InMemoryRecords:
    def __init__(self):
        self.by_user: dict[str, list[AttendanceRecord]] = {}
        self.down = False
        self.appends = 0

    def query_records(self, user_key):
        self._check()
        return list(self.by_user.get(user_key, []))

    def get_attended_for_day(self, user_key, course_id, day):
        self._check()
        return next(
            (r for r in self.by_user.get(user_key, []) if r.course_id == course_id and r.timestamp.date() == day),
            None,
        )

    def append_record(self, user_key, record):
        self._check()
        self.appends += 1
        items = self.by_user.setdefault(user_key, [])
        if any(r.key == record.key for r in items):
            return False
        items.append(record)
        return True

    def delete_record(self, user_key, course_id, timestamp):
        self._check()
        items = self.by_user.get(user_key, [])
        kept = [r for r in items if not (r.course_id == course_id and r.timestamp == timestamp)]
        self.by_user[user_key] = kept
        return len(kept) < len(items)

    def _check(self):
        if self.down:
            raise StoreUnavailableError("db down")


class InMemorySchedules:
    def __init__(self, entries):
        self.entries = list(entries)

    def query_schedule_for_weekday(self, weekday):
        return [e for e in self.entries if e.meets_on(weekday)]

    def get_schedule(self, course_id):
        return next((e for e in self.entries if e.course_id == course_id), None)

    def list_courses(self):
        return list(self.entries)


def _service(records=None, cache=None, schedules=(NETWORKING, EMBEDDED)):
    ctx = SessionContext(
        user_key=USER,
        records=records or InMemoryRecords(),
        schedules=InMemorySchedules(schedules),
        cache=cache or InMemoryCache(),
    )
    return AttendanceService(ctx)


def _eligible_session(course_id="101", name="Networking Protocols") -> BeaconSession:
    target = BeaconTarget(address="fe:7d:f4:af:86:d7", course_id=course_id, course_name=name)
    return replace(
        BeaconSession.for_target(target),
        state=SessionState.ELIGIBLE,
        connected_since=MONDAY_0930 - timedelta(seconds=25),
        last_rssi=-60,
        last_distance_m=1.12,
    )


def test_confirm_records_attendance_everywhere():
    records, cache = InMemoryRecords(), InMemoryCache()
    svc = _service(records, cache)

    record = svc.confirm(_eligible_session(), MONDAY_0930)

    assert record.status == AttendanceStatus.ATTENDED
    assert record.timestamp == MONDAY_0930
    assert records.by_user[USER] == [record]
    assert cache.load_records(USER) == [record]
    assert svc.records == [record]


def test_confirm_requires_eligible_session():
    svc = _service()
    lost = replace(_eligible_session(), state=SessionState.LOST, connected_since=None)

    with pytest.raises(OutOfRange):
        svc.confirm(lost, MONDAY_0930)


def test_confirm_after_discovery_timeout():
    svc = _service()
    timed_out = replace(_eligible_session(), state=SessionState.TIMED_OUT, connected_since=None)

    with pytest.raises(DiscoveryTimeout):
        svc.confirm(timed_out, MONDAY_0930)


def test_confirm_outside_class_window():
    svc = _service()

    with pytest.raises(NotInSessionError):
        svc.confirm(_eligible_session(), MONDAY_0930.replace(hour=10, minute=30))
    assert svc.records == []


def test_confirm_unknown_course():
    svc = _service()

    with pytest.raises(ValidationError):
        svc.confirm(_eligible_session(course_id="999", name="?"), MONDAY_0930)


def test_second_confirmation_same_day_is_ignored():
    records = InMemoryRecords()
    svc = _service(records)

    first = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)
    second = svc.record_attendance("101", "Networking Protocols", MONDAY_0930 + timedelta(minutes=5))

    assert second == first
    assert records.appends == 1
    assert len(records.by_user[USER]) == 1


def test_store_down_keeps_local_record():
    records, cache = InMemoryRecords(), InMemoryCache()
    records.down = True
    svc = _service(records, cache)

    record = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)

    assert svc.records == [record]
    assert cache.load_records(USER) == [record]
    assert records.by_user == {}


def test_pending_local_record_is_pushed_on_next_load():
    records, cache = InMemoryRecords(), InMemoryCache()
    records.down = True
    svc = _service(records, cache)
    record = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)

    records.down = False
    view = svc.load_combined(MONDAY_0930 + timedelta(hours=3))

    assert records.by_user[USER] == [record]
    by_course = {r.course_id: r for r in view}
    assert by_course["101"] == record
    assert by_course["102"].status == AttendanceStatus.ABSENT


def test_combined_view_falls_back_to_cache_offline():
    records, cache = InMemoryRecords(), InMemoryCache()
    earlier = AttendanceRecord("103", "AI Fundamentals", datetime(2026, 2, 27, 9, 5))
    cache.save_records(USER, [earlier])
    records.down = True

    view = _service(records, cache).load_combined(MONDAY_0930)

    assert view == [earlier]


def test_history_merges_remote_and_refreshes_cache():
    records, cache = InMemoryRecords(), InMemoryCache()
    remote = AttendanceRecord("103", "AI Fundamentals", datetime(2026, 2, 27, 9, 5))
    records.by_user[USER] = [remote]
    svc = _service(records, cache)

    assert svc.load_history() == [remote]
    assert cache.load_records(USER) == [remote]


def test_history_offline_uses_cache():
    records, cache = InMemoryRecords(), InMemoryCache()
    cached = AttendanceRecord("101", "Networking Protocols", MONDAY_0930)
    cache.save_records(USER, [cached])
    records.down = True

    assert _service(records, cache).load_history() == [cached]


def test_today_view_marks_each_course():
    records = InMemoryRecords()
    records.by_user[USER] = [AttendanceRecord("101", "Networking Protocols", MONDAY_0930)]

    view = _service(records).load_today_schedule_with_attendance(MONDAY_0930 + timedelta(hours=4))

    assert [(r.course_id, r.status) for r in view] == [
        ("101", AttendanceStatus.ATTENDED),
        ("102", AttendanceStatus.ABSENT),
    ]


def test_delete_removes_locally_and_remotely():
    records, cache = InMemoryRecords(), InMemoryCache()
    svc = _service(records, cache)
    record = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)

    assert svc.delete_record("101", record.timestamp) is True

    assert svc.records == []
    assert cache.load_records(USER) == []
    assert records.by_user[USER] == []


def test_delete_needs_exact_timestamp():
    svc = _service()
    record = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)

    assert svc.delete_record("101", record.timestamp + timedelta(seconds=1)) is False
    assert svc.records == [record]


def test_delete_while_store_down_still_removes_locally():
    records = InMemoryRecords()
    svc = _service(records)
    record = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)
    records.down = True

    assert svc.delete_record("101", record.timestamp) is True
    assert svc.records == []


def test_attendance_stored_by_another_device_is_not_written_twice():
    records = InMemoryRecords()
    earlier = AttendanceRecord("101", "Networking Protocols", datetime(2026, 3, 2, 9, 10))
    records.by_user[USER] = [earlier]
    registry = SessionRegistry(records, InMemorySchedules([NETWORKING, EMBEDDED]), InMemoryCache())

    result = registry.attendance_for(USER).record_attendance("101", "Networking Protocols", MONDAY_0930)

    assert result == earlier
    assert [r.key for r in records.by_user[USER]] == [earlier.key]
    assert records.appends == 0


def test_local_event_for_a_day_the_store_already_has_is_not_pushed():
    records, cache = InMemoryRecords(), InMemoryCache()
    stored = AttendanceRecord("101", "Networking Protocols", datetime(2026, 3, 2, 9, 10))
    records.by_user[USER] = [stored]
    cache.save_records(USER, [AttendanceRecord("101", "Networking Protocols", MONDAY_0930)])

    history = _service(records, cache).load_history()

    assert history == [stored]
    assert records.appends == 0
    assert len({r.key for r in history}) == len(history)


def test_delete_made_offline_is_replayed_on_reconnect():
    records, cache = InMemoryRecords(), InMemoryCache()
    stored = AttendanceRecord("101", "Networking Protocols", datetime(2026, 3, 1, 9, 10))
    records.by_user[USER] = [stored]
    svc = _service(records, cache)
    assert svc.load_history() == [stored]

    records.down = True
    assert svc.delete_record("101", stored.timestamp) is True

    records.down = False
    assert svc.load_history() == []
    assert records.by_user[USER] == []
    assert cache.load_records(USER) == []


def test_recording_again_after_offline_delete_uses_a_new_record():
    records = InMemoryRecords()
    stored = AttendanceRecord("101", "Networking Protocols", datetime(2026, 3, 2, 9, 10))
    records.by_user[USER] = [stored]
    svc = _service(records)
    svc.load_history()

    records.down = True
    svc.delete_record("101", stored.timestamp)
    records.down = False

    again = svc.record_attendance("101", "Networking Protocols", MONDAY_0930)
    assert again.timestamp == MONDAY_0930

    view = svc.load_combined(MONDAY_0930 + timedelta(hours=3))
    assert records.by_user[USER] == [again]
    assert [r for r in view if r.course_id == "101"] == [again]
