from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        course_id=str(r["course_id"]),
        course_name=r["course_name"],
        timestamp=r["recorded_at"],
        status=AttendanceStatus(r.get("status") or AttendanceStatus.ATTENDED.value),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def query_records(self, user_key: str) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT course_id, course_name, recorded_at, status
                FROM attendance_records
                WHERE user_key=%s
                ORDER BY recorded_at ASC, record_id ASC
                """,
                (user_key,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def get_attended_for_day(self, user_key: str, course_id: str, day: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT course_id, course_name, recorded_at, status
                FROM attendance_records
                WHERE user_key=%s AND course_id=%s AND recorded_on=%s AND status=%s
                ORDER BY recorded_at ASC
                LIMIT 1
                """,
                (user_key, str(course_id), day, AttendanceStatus.ATTENDED.value),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def append_record(self, user_key: str, record: AttendanceRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO attendance_records(user_key, course_id, course_name, recorded_at, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (user_key, record.course_id, record.course_name, record.timestamp, record.status.value),
            )
            return cur.rowcount > 0

    def delete_record(self, user_key: str, course_id: str, timestamp: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_records WHERE user_key=%s AND course_id=%s AND recorded_at=%s",
                (user_key, str(course_id), timestamp),
            )
            return cur.rowcount > 0
