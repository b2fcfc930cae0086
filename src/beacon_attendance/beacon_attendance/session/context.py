from __future__ import annotations

from dataclasses import dataclass

from ..attendance.cache import LocalCache
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_non_empty
from ..schedules.repository import ScheduleRepository


@dataclass(frozen=True)
class SessionContext:
    """Who is taking attendance, and the collaborators acting for them."""

    user_key: str
    records: AttendanceRepository
    schedules: ScheduleRepository
    cache: LocalCache

    def __post_init__(self):
        object.__setattr__(self, "user_key", require_non_empty(self.user_key, "user_key"))
