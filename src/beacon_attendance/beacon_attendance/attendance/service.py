from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple

from ..beacon.model import BeaconSession
from ..common.datetime_utils import weekday_name
from ..core.enums import AttendanceStatus, SessionState
from ..core.exceptions import DiscoveryTimeout, NotInSessionError, OutOfRange, StoreUnavailableError, ValidationError
from ..schedules.model import ScheduleEntry
from ..schedules.validator import is_class_in_session
from ..session.context import SessionContext
from .model import AttendanceRecord
from .reconciler import reconcile

logger = logging.getLogger(__name__)


def _same_event(a: AttendanceRecord, b: AttendanceRecord) -> bool:
    return a.course_id == b.course_id and a.timestamp == b.timestamp


class AttendanceService:
    """Attendance for one user: local events, the merged view and durable writes.

    Local state is updated first and stays authoritative while the store is
    unreachable; durable failures are logged, never rolled back. Appends and
    deletes that did not reach the store are replayed on the next successful
    load. Pending deletes live in memory only, so they do not survive a
    restart.
    """

    def __init__(self, context: SessionContext):
        self._ctx = context
        self._events: List[AttendanceRecord] = []
        self._view: List[AttendanceRecord] = []
        self._pending_deletes: Set[Tuple[str, datetime]] = set()
        self._lock = threading.RLock()

    @property
    def user_key(self) -> str:
        return self._ctx.user_key

    @property
    def records(self) -> List[AttendanceRecord]:
        with self._lock:
            return list(self._view)

    def load_cached(self) -> List[AttendanceRecord]:
        events = self._ctx.cache.load_records(self.user_key)
        with self._lock:
            self._events = list(events)
            self._view = list(events)
            return list(self._view)

    def load_history(self) -> List[AttendanceRecord]:
        """Attendance events from the store, falling back to the cache offline."""

        try:
            remote = self._query_remote()
        except StoreUnavailableError as e:
            logger.warning("History for %s unavailable, showing cached records: %s", self.user_key, e)
            return self.load_cached()

        with self._lock:
            self._events = self._merge_pending(remote)
            self._view = list(self._events)
            self._save_cache()
            return list(self._view)

    def load_combined(self, now: datetime) -> List[AttendanceRecord]:
        """History + pending local writes + today's schedule, reconciled."""

        try:
            remote = self._query_remote()
            schedule = list(self._ctx.schedules.query_schedule_for_weekday(weekday_name(now)))
        except StoreUnavailableError as e:
            logger.warning("Store unavailable for %s, reconciling cached records only: %s", self.user_key, e)
            with self._lock:
                self._view = reconcile(self._ctx.cache.load_records(self.user_key), [], now)
                return list(self._view)

        with self._lock:
            self._events = self._merge_pending(remote)
            self._save_cache()
            self._view = reconcile(self._events, schedule, now)
            return list(self._view)

    def load_today_schedule_with_attendance(self, now: datetime) -> List[AttendanceRecord]:
        """Only today's courses, each marked attended or absent."""

        schedule = self._ctx.schedules.query_schedule_for_weekday(weekday_name(now))
        try:
            events: Sequence[AttendanceRecord] = self._query_remote()
        except StoreUnavailableError as e:
            logger.warning("Using local attendance for today's schedule of %s: %s", self.user_key, e)
            with self._lock:
                events = list(self._events)

        attended = {r.key for r in events if r.status == AttendanceStatus.ATTENDED}
        today = now.date()
        view = [
            AttendanceRecord(
                course_id=entry.course_id,
                course_name=entry.course_name,
                timestamp=now,
                status=AttendanceStatus.ATTENDED if (entry.course_id, today) in attended else AttendanceStatus.ABSENT,
            )
            for entry in schedule
        ]
        with self._lock:
            self._view = view
            return list(view)

    def authorize(self, session: BeaconSession, now: datetime) -> ScheduleEntry:
        """Both gates must hold: proximity dwell and the class time window."""

        if session.state == SessionState.TIMED_OUT:
            raise DiscoveryTimeout("Classroom beacon not found, retry the scan")
        if not session.is_eligible():
            raise OutOfRange(
                f"Stay within {session.range_threshold:g} m of the beacon for "
                f"{int(session.dwell_threshold.total_seconds())} seconds before confirming"
            )

        course_id = session.target.course_id
        schedule = self._ctx.schedules.get_schedule(course_id)
        if schedule is None:
            raise ValidationError(f"Unknown course {course_id!r}")
        if not is_class_in_session(schedule, now):
            raise NotInSessionError("Attendance not allowed: class is not in session")
        return schedule

    def confirm(self, session: BeaconSession, now: datetime) -> AttendanceRecord:
        self.authorize(session, now)
        return self.record_attendance(session.target.course_id, session.target.course_name, now)

    def record_attendance(self, course_id: str, course_name: str, now: datetime) -> AttendanceRecord:
        """Record attendance once per course and day; a repeat returns the first record."""

        record = AttendanceRecord(
            course_id=str(course_id),
            course_name=course_name,
            timestamp=now,
            status=AttendanceStatus.ATTENDED,
        )

        with self._lock:
            existing = self._find_attended(record) or self._find_stored(record)
            if existing is not None:
                logger.info("Attendance for %s on %s already recorded", record.course_id, record.timestamp.date())
                if not any(_same_event(existing, r) for r in self._events):
                    self._remember(existing)
                return existing

            self._remember(record)

        try:
            self._ctx.records.append_record(self.user_key, record)
        except StoreUnavailableError as e:
            logger.error(
                "Attendance %s@%s kept locally, durable write failed: %s",
                record.course_id,
                record.timestamp.isoformat(),
                e,
            )
        return record

    def delete_record(self, course_id: str, timestamp: datetime) -> bool:
        """Remove by exact (course_id, timestamp) locally and in the store."""

        target = AttendanceRecord(course_id=str(course_id), course_name="", timestamp=timestamp)
        with self._lock:
            before = len(self._view) + len(self._events)
            self._view = [r for r in self._view if not _same_event(r, target)]
            self._events = [r for r in self._events if not _same_event(r, target)]
            removed = len(self._view) + len(self._events) < before
            self._save_cache()

        try:
            if not self._ctx.records.delete_record(self.user_key, target.course_id, timestamp):
                logger.info("Record %s@%s not in store; treated as deleted", target.course_id, timestamp.isoformat())
        except StoreUnavailableError as e:
            logger.error("Record %s@%s deleted locally, store delete queued: %s", target.course_id, timestamp.isoformat(), e)
            with self._lock:
                self._pending_deletes.add((target.course_id, timestamp))
        return removed

    def clear(self) -> None:
        with self._lock:
            self._events = []
            self._view = []

    def _remember(self, record: AttendanceRecord) -> None:
        self._events.append(record)
        self._view = [r for r in self._view if r.key != record.key] + [record]
        self._save_cache()

    def _find_attended(self, record: AttendanceRecord) -> Optional[AttendanceRecord]:
        for r in self._events:
            if r.key == record.key and r.status == AttendanceStatus.ATTENDED:
                return r
        return None

    def _find_stored(self, record: AttendanceRecord) -> Optional[AttendanceRecord]:
        try:
            stored = self._ctx.records.get_attended_for_day(self.user_key, record.course_id, record.timestamp.date())
        except StoreUnavailableError as e:
            logger.warning("Store unavailable, checking %s against local attendance only: %s", record.course_id, e)
            return None
        if stored is None or (stored.course_id, stored.timestamp) in self._pending_deletes:
            return None
        return stored

    def _query_remote(self) -> List[AttendanceRecord]:
        """Store events, minus those deleted here while the store was down."""

        remote = list(self._ctx.records.query_records(self.user_key))
        with self._lock:
            deleted = set(self._pending_deletes)
        return [r for r in remote if (r.course_id, r.timestamp) not in deleted]

    def _replay_deletes(self) -> None:
        for course_id, timestamp in sorted(self._pending_deletes):
            try:
                self._ctx.records.delete_record(self.user_key, course_id, timestamp)
            except StoreUnavailableError as e:
                logger.warning("Pending delete %s@%s not synced yet: %s", course_id, timestamp.isoformat(), e)
                return
            self._pending_deletes.discard((course_id, timestamp))

    def _merge_pending(self, remote: List[AttendanceRecord]) -> List[AttendanceRecord]:
        """Remote events plus local ones whose (course, day) the store does not have yet."""

        self._replay_deletes()

        seen = {r.key for r in remote}
        pending: List[AttendanceRecord] = []
        for record in self._events or self._ctx.cache.load_records(self.user_key):
            if record.status == AttendanceStatus.ATTENDED and record.key not in seen:
                seen.add(record.key)
                pending.append(record)

        for record in pending:
            try:
                self._ctx.records.append_record(self.user_key, record)
            except StoreUnavailableError as e:
                logger.warning("Pending attendance %s@%s not synced yet: %s", record.course_id, record.timestamp.isoformat(), e)
                break
        return remote + pending

    def _save_cache(self) -> None:
        self._ctx.cache.save_records(self.user_key, self._events)
