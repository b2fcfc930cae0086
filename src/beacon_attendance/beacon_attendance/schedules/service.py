from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from ..beacon.model import BeaconTarget
from ..common.validators import require_non_empty
from ..core.exceptions import StoreUnavailableError, ValidationError
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


class CourseCatalog:
    """Resolves which beacon belongs to which course.

    Beacon addresses stored with the course win; the configured
    ``COURSE_BEACONS`` table covers courses without one and keeps the catalog
    usable while the store is unreachable.
    """

    def __init__(self, schedules: ScheduleRepository, configured: Iterable[Mapping[str, str]] = ()):
        self._schedules = schedules
        self._configured = [
            BeaconTarget(address=str(c["mac"]), course_id=str(c["id"]), course_name=str(c["name"])) for c in configured
        ]

    def list_targets(self) -> Sequence[BeaconTarget]:
        targets = {t.course_id: t for t in self._configured}
        try:
            courses = self._schedules.list_courses()
        except StoreUnavailableError as e:
            logger.warning("Course list unavailable, using configured beacons: %s", e)
            courses = []

        for c in courses:
            if c.beacon_address:
                targets[c.course_id] = BeaconTarget(address=c.beacon_address, course_id=c.course_id, course_name=c.course_name)
        return sorted(targets.values(), key=lambda t: t.course_id)

    def target_for(self, course_id: str) -> BeaconTarget:
        course_id = require_non_empty(str(course_id or ""), "course_id")
        for t in self.list_targets():
            if t.course_id == course_id:
                return t
        raise ValidationError(f"Unknown course {course_id!r} or no beacon assigned")
