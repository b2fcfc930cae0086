from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ScheduleEntry
from .repository import ScheduleRepository

_COLUMNS = "course_id, course_name, days, start_time, end_time, beacon_address"


def _to_entry(r: dict) -> ScheduleEntry:
    days = [d.strip() for d in str(r.get("days") or "").split(",") if d.strip()]
    return ScheduleEntry(
        course_id=str(r["course_id"]),
        course_name=r.get("course_name") or "Unnamed",
        days=frozenset(days),
        start_time=str(r.get("start_time") or "00:00"),
        end_time=str(r.get("end_time") or "00:00"),
        beacon_address=r.get("beacon_address"),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def query_schedule_for_weekday(self, weekday: str) -> Sequence[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM courses
                WHERE FIND_IN_SET(%s, REPLACE(days, ' ', '')) > 0
                ORDER BY course_id ASC
                """,
                (weekday,),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def get_schedule(self, course_id: str) -> Optional[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM courses WHERE course_id=%s", (str(course_id),))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def list_courses(self) -> Sequence[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM courses ORDER BY course_id ASC")
            return [_to_entry(r) for r in fetchall(cur)]
