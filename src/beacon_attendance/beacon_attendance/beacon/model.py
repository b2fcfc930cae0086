from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from ..core.constants import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_DISCOVERY_TIMEOUT_SECONDS,
    DEFAULT_DWELL_SECONDS,
    DEFAULT_RANGE_METERS,
    DEFAULT_TICK_SECONDS,
    UNKNOWN_DISTANCE,
)
from ..core.enums import SessionState, ErrorKind
from .distance import is_within_range


def normalize_address(address: str) -> str:
    return (address or "").strip().lower()


@dataclass(frozen=True)
class BeaconTarget:
    """The classroom beacon an attempt is looking for."""

    address: str
    course_id: str
    course_name: str

    def matches(self, address: str) -> bool:
        return normalize_address(address) == normalize_address(self.address)


@dataclass(frozen=True)
class ScanObservation:
    address: str
    rssi: int
    name: Optional[str] = None


@dataclass(frozen=True)
class TimerTick:
    """Periodic tick driving the dwell countdown and the range re-check."""


@dataclass(frozen=True)
class ConnectResult:
    address: str
    ok: bool
    error: Optional[str] = None


BeaconEvent = Union[ScanObservation, TimerTick, ConnectResult]


@dataclass(frozen=True)
class ProximitySettings:
    dwell_seconds: float = DEFAULT_DWELL_SECONDS
    range_meters: float = DEFAULT_RANGE_METERS
    discovery_timeout_seconds: float = DEFAULT_DISCOVERY_TIMEOUT_SECONDS
    tick_seconds: float = DEFAULT_TICK_SECONDS
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "ProximitySettings":
        """Build from a settings module (config.development, ...)."""

        return cls(
            dwell_seconds=float(getattr(settings, "DWELL_SECONDS", DEFAULT_DWELL_SECONDS)),
            range_meters=float(getattr(settings, "RANGE_METERS", DEFAULT_RANGE_METERS)),
            discovery_timeout_seconds=float(
                getattr(settings, "DISCOVERY_TIMEOUT_SECONDS", DEFAULT_DISCOVERY_TIMEOUT_SECONDS)
            ),
            tick_seconds=float(getattr(settings, "TICK_SECONDS", DEFAULT_TICK_SECONDS)),
            connect_timeout_seconds=float(getattr(settings, "CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS)),
        )


@dataclass(frozen=True)
class BeaconSession:
    """State of one attendance attempt.

    Invariant: ``connected_since`` is set iff the state is Connected,
    Verifying or Eligible.
    """

    target: BeaconTarget
    state: SessionState = SessionState.IDLE
    started_at: Optional[datetime] = None
    connected_since: Optional[datetime] = None
    last_distance_m: float = UNKNOWN_DISTANCE
    last_rssi: int = 0
    detected_address: Optional[str] = None
    last_error: Optional[ErrorKind] = None
    dwell_threshold: timedelta = timedelta(seconds=DEFAULT_DWELL_SECONDS)
    range_threshold: float = DEFAULT_RANGE_METERS
    discovery_timeout: timedelta = timedelta(seconds=DEFAULT_DISCOVERY_TIMEOUT_SECONDS)

    @classmethod
    def for_target(cls, target: BeaconTarget, settings: ProximitySettings | None = None) -> "BeaconSession":
        settings = settings or ProximitySettings()
        return cls(
            target=target,
            dwell_threshold=timedelta(seconds=settings.dwell_seconds),
            range_threshold=float(settings.range_meters),
            discovery_timeout=timedelta(seconds=settings.discovery_timeout_seconds),
        )

    def elapsed_dwell_seconds(self, now: datetime) -> float:
        if self.connected_since is None:
            return 0.0
        elapsed = (now - self.connected_since).total_seconds()
        return min(max(elapsed, 0.0), self.dwell_threshold.total_seconds())

    def seconds_remaining(self, now: datetime) -> int:
        """Dwell countdown for display, whole seconds."""
        remaining = self.dwell_threshold.total_seconds() - self.elapsed_dwell_seconds(now)
        return max(0, int(round(remaining)))

    def dwell_complete(self, now: datetime) -> bool:
        return self.connected_since is not None and (now - self.connected_since) >= self.dwell_threshold

    def in_range(self) -> bool:
        return is_within_range(self.last_distance_m, self.range_threshold)

    def is_eligible(self) -> bool:
        return self.state == SessionState.ELIGIBLE and self.in_range()

    def to_dict(self, now: datetime) -> dict:
        return {
            "course_id": self.target.course_id,
            "course_name": self.target.course_name,
            "beacon_address": self.target.address,
            "state": self.state.value,
            "detected_address": self.detected_address,
            "rssi": self.last_rssi,
            "distance_m": round(self.last_distance_m, 2) if self.last_distance_m > 0 else None,
            "connected_since": self.connected_since.isoformat() if self.connected_since else None,
            "seconds_remaining": self.seconds_remaining(now),
            "eligible": self.is_eligible(),
            "last_error": self.last_error.value if self.last_error else None,
        }
