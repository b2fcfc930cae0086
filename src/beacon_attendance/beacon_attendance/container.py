from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .attendance.cache import InMemoryCache, JsonFileCache, LocalCache
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .beacon.ble_thread import BleThread
from .beacon.model import ProximitySettings
from .beacon.radio import Radio
from .beacon.service import BeaconAttemptService
from .database.connection import DBConfig, DatabaseConnection
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.repository import ScheduleRepository
from .schedules.service import CourseCatalog
from .session.registry import SessionRegistry


@dataclass(frozen=True)
class Container:
    records_repo: AttendanceRepository
    schedules_repo: ScheduleRepository
    cache: LocalCache

    ble_thread: BleThread
    proximity: ProximitySettings

    course_catalog: CourseCatalog
    sessions: SessionRegistry
    attempts: BeaconAttemptService

    def close(self) -> None:
        self.attempts.shutdown()
        self.ble_thread.stop()


def assemble(
    *,
    records_repo: AttendanceRepository,
    schedules_repo: ScheduleRepository,
    cache: LocalCache,
    radio_factory: Callable[[], Radio],
    proximity: ProximitySettings,
    course_beacons=(),
    permissions=None,
) -> Container:
    ble_thread = BleThread()
    ble_thread.start()

    return Container(
        records_repo=records_repo,
        schedules_repo=schedules_repo,
        cache=cache,
        ble_thread=ble_thread,
        proximity=proximity,
        course_catalog=CourseCatalog(schedules_repo, course_beacons),
        sessions=SessionRegistry(records_repo, schedules_repo, cache),
        attempts=BeaconAttemptService(ble_thread, radio_factory, settings=proximity, permissions=permissions),
    )


def build_container(*, settings) -> Container:
    """Production wiring: MySQL store, JSON cache, bleak radio."""

    # bleak is imported lazily so tests can assemble a container without a BLE stack.
    from .beacon.bleak_radio import BleakRadio

    conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
    cache_dir = getattr(settings, "CACHE_DIR", "")
    adapter = getattr(settings, "BLE_ADAPTER", None)

    return assemble(
        records_repo=MySQLAttendanceRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        cache=JsonFileCache(cache_dir) if cache_dir else InMemoryCache(),
        radio_factory=lambda: BleakRadio(adapter=adapter),
        proximity=ProximitySettings.from_settings(settings),
        course_beacons=getattr(settings, "COURSE_BEACONS", ()),
    )
