from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Durable attendance store. Failures raise StoreUnavailableError."""

    def query_records(self, user_key: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_attended_for_day(self, user_key: str, course_id: str, day: date) -> Optional[AttendanceRecord]:
        """The attended record for (course, day), if one was already stored."""

        raise NotImplementedError

    def append_record(self, user_key: str, record: AttendanceRecord) -> bool:
        """Append-only write, unique per (user, course_id, calendar day).

        Returns False when that day already has a record (a retried write).
        """

        raise NotImplementedError

    def delete_record(self, user_key: str, course_id: str, timestamp: datetime) -> bool:
        """Delete by exact (course_id, timestamp); False when nothing matched."""

        raise NotImplementedError
