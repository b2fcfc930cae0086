from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of one beacon attendance attempt."""

    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    VERIFYING = "verifying"
    ELIGIBLE = "eligible"
    LOST = "lost"
    TIMED_OUT = "timed_out"


CONNECTED_STATES = frozenset({SessionState.CONNECTED, SessionState.VERIFYING, SessionState.ELIGIBLE})
DISCOVERY_STATES = frozenset({SessionState.SCANNING, SessionState.CONNECTING})
ATTEMPT_ENDED_STATES = frozenset({SessionState.LOST, SessionState.TIMED_OUT})


class AttendanceStatus(str, Enum):
    """Status of an attendance record as shown in the merged view."""

    ATTENDED = "attended"
    ABSENT = "absent"


class ErrorKind(str, Enum):
    """Non-fatal error last seen by a beacon session (surfaced to the UI)."""

    CONNECTION_FAILURE = "connection_failure"
    OUT_OF_RANGE = "out_of_range"
    DISCOVERY_TIMEOUT = "discovery_timeout"
