from __future__ import annotations

import logging
import threading
from typing import Dict

from ..attendance.cache import LocalCache
from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceService
from ..schedules.repository import ScheduleRepository
from .context import SessionContext

logger = logging.getLogger(__name__)


class SessionRegistry:
    """One AttendanceService (and its in-memory view) per signed-in user."""

    def __init__(self, records: AttendanceRepository, schedules: ScheduleRepository, cache: LocalCache):
        self._records = records
        self._schedules = schedules
        self._cache = cache
        self._services: Dict[str, AttendanceService] = {}
        self._lock = threading.Lock()

    def context_for(self, user_key: str) -> SessionContext:
        return SessionContext(user_key=user_key, records=self._records, schedules=self._schedules, cache=self._cache)

    def attendance_for(self, user_key: str) -> AttendanceService:
        context = self.context_for(user_key)
        with self._lock:
            service = self._services.get(context.user_key)
            if service is None:
                service = AttendanceService(context)
                # Offline bootstrap, the same as right after login.
                service.load_cached()
                self._services[context.user_key] = service
                logger.debug("Session opened for %s", context.user_key)
            return service

    def end(self, user_key: str) -> None:
        with self._lock:
            service = self._services.pop(user_key.strip(), None)
        if service is not None:
            service.clear()
