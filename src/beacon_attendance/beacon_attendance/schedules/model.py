from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class ScheduleEntry:
    """A recurring class: weekdays plus an "HH:MM" start/end window.

    Times are kept as configured; they are parsed (and rejected when
    malformed) by the session validator.
    """

    course_id: str
    course_name: str
    days: FrozenSet[str] = field(default_factory=frozenset)
    start_time: str = "00:00"
    end_time: str = "00:00"
    beacon_address: Optional[str] = None

    def meets_on(self, weekday: str) -> bool:
        wanted = weekday.strip().lower()
        return any(d.strip().lower() == wanted for d in self.days)
