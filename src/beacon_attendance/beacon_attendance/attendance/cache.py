"""Offline cache of confirmed attendance events, one entry per user.

Each entry is an ordered JSON list of ``{"courseId", "courseName",
"timestamp"}`` objects. Status is not stored: the cache only ever holds
attendance, so every loaded record is ``attended``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Protocol, Sequence

from ..common.datetime_utils import parse_iso_datetime
from ..core.enums import AttendanceStatus
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


class LocalCache(Protocol):
    def save_records(self, user_key: str, records: Sequence[AttendanceRecord]) -> None:
        raise NotImplementedError

    def load_records(self, user_key: str) -> List[AttendanceRecord]:
        raise NotImplementedError


def records_to_entries(records: Sequence[AttendanceRecord]) -> List[dict]:
    return [
        {
            "courseId": r.course_id,
            "courseName": r.course_name,
            "timestamp": r.timestamp.isoformat(),
        }
        for r in records
        if r.status == AttendanceStatus.ATTENDED
    ]


def entries_to_records(entries: Sequence[dict]) -> List[AttendanceRecord]:
    return [
        AttendanceRecord(
            course_id=str(e["courseId"]),
            course_name=str(e.get("courseName") or ""),
            timestamp=parse_iso_datetime(e["timestamp"]),
            status=AttendanceStatus.ATTENDED,
        )
        for e in entries
    ]


class InMemoryCache(LocalCache):
    """Process-local cache; used when no cache directory is configured."""

    def __init__(self):
        self._entries: Dict[str, List[dict]] = {}

    def save_records(self, user_key: str, records: Sequence[AttendanceRecord]) -> None:
        self._entries[user_key] = records_to_entries(records)

    def load_records(self, user_key: str) -> List[AttendanceRecord]:
        return entries_to_records(self._entries.get(user_key, []))


class JsonFileCache(LocalCache):
    def __init__(self, directory: str | Path):
        self._directory = Path(directory).expanduser()

    def path_for(self, user_key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9@._-]", "_", user_key)
        return self._directory / f"attendance_{safe}.json"

    def save_records(self, user_key: str, records: Sequence[AttendanceRecord]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(user_key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(records_to_entries(records), ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def load_records(self, user_key: str) -> List[AttendanceRecord]:
        path = self.path_for(user_key)
        if not path.exists():
            return []
        try:
            entries = json.loads(path.read_text(encoding="utf-8"))
            return entries_to_records(entries)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable attendance cache %s: %s", path, e)
            return []
