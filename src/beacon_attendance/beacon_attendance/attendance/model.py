from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Tuple

from ..core.enums import AttendanceStatus

AttendanceKey = Tuple[str, date]


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance event (or the absent default synthesized for today)."""

    course_id: str
    course_name: str
    timestamp: datetime
    status: AttendanceStatus = AttendanceStatus.ATTENDED

    @property
    def key(self) -> AttendanceKey:
        """Deduplication key: one record per course per calendar day."""
        return (self.course_id, self.timestamp.date())

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "course_name": self.course_name,
            "timestamp": self.timestamp.isoformat(),
            "date": self.timestamp.date().isoformat(),
            "status": self.status.value,
        }
