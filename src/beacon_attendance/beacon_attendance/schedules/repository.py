from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ScheduleEntry


class ScheduleRepository(Protocol):
    def query_schedule_for_weekday(self, weekday: str) -> Sequence[ScheduleEntry]:
        """Courses meeting on ``weekday`` ('Monday' .. 'Sunday')."""

        raise NotImplementedError

    def get_schedule(self, course_id: str) -> Optional[ScheduleEntry]:
        raise NotImplementedError

    def list_courses(self) -> Sequence[ScheduleEntry]:
        raise NotImplementedError
