from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.beacon_attendance.beacon_attendance.beacon import state_machine
from src.beacon_attendance.beacon_attendance.beacon.model import (
    BeaconSession,
    BeaconTarget,
    ConnectResult,
    ProximitySettings,
    ScanObservation,
    TimerTick,
)
from src.beacon_attendance.beacon_attendance.core.enums import ErrorKind, SessionState

BEACON = "FE:7D:F4:AF:86:D7"
T0 = datetime(2026, 3, 2, 9, 0, 0)


def _target() -> BeaconTarget:
    return BeaconTarget(address=BEACON, course_id="101", course_name="Networking Protocols")


def _connected(now: datetime = T0) -> BeaconSession:
    s = state_machine.start_scan(BeaconSession.for_target(_target()), now)
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-60), now)
    return state_machine.reduce(s, ConnectResult(address=BEACON, ok=True), now)


def test_new_session_is_idle_with_defaults():
    s = BeaconSession.for_target(_target())
    assert s.state == SessionState.IDLE
    assert s.last_distance_m == -1.0
    assert s.connected_since is None
    assert s.dwell_threshold == timedelta(seconds=20)
    assert s.range_threshold == 5.0


def test_target_sighting_moves_scanning_to_connecting():
    s = state_machine.start_scan(BeaconSession.for_target(_target()), T0)
    assert s.state == SessionState.SCANNING

    s = state_machine.reduce(s, ScanObservation(address=BEACON.lower(), rssi=-60), T0)
    assert s.state == SessionState.CONNECTING
    assert s.detected_address == BEACON.lower()
    assert s.last_rssi == -60


@pytest.mark.parametrize("state", list(SessionState))
def test_other_devices_are_ignored_in_every_state(state):
    s = replace(_connected(), state=state)

    after = state_machine.reduce(s, ScanObservation(address="AA:BB:CC:DD:EE:FF", rssi=-40), T0 + timedelta(seconds=1))

    assert after == s


def test_connect_failure_returns_to_scanning():
    s = state_machine.start_scan(BeaconSession.for_target(_target()), T0)
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-60), T0)
    s = state_machine.reduce(s, ConnectResult(address=BEACON, ok=False, error="boom"), T0)
    assert s.state == SessionState.SCANNING
    assert s.last_error == ErrorKind.CONNECTION_FAILURE
    assert s.connected_since is None


def test_connected_sets_dwell_start():
    s = _connected()
    assert s.state == SessionState.CONNECTED
    assert s.connected_since == T0
    assert s.seconds_remaining(T0) == 20


def test_dwell_in_range_reaches_eligible():
    s = _connected()
    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=1))
    assert s.state == SessionState.VERIFYING

    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=19))
    assert s.state == SessionState.VERIFYING
    assert s.seconds_remaining(T0 + timedelta(seconds=19)) == 1

    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=20))
    assert s.state == SessionState.ELIGIBLE
    assert s.is_eligible()
    assert s.seconds_remaining(T0 + timedelta(seconds=25)) == 0


def test_single_far_sample_resets_dwell():
    # -60 dBm ~1.1 m, -59 dBm 1 m, -90 dBm ~35 m
    s = _connected()
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-60), T0 + timedelta(seconds=5))
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-59), T0 + timedelta(seconds=10))
    assert s.state == SessionState.VERIFYING

    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-90), T0 + timedelta(seconds=15))
    assert s.state == SessionState.LOST
    assert s.connected_since is None
    assert s.last_error == ErrorKind.OUT_OF_RANGE
    assert s.elapsed_dwell_seconds(T0 + timedelta(seconds=30)) == 0.0

    # Back in range does not resume: the attempt needs a manual restart.
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-60), T0 + timedelta(seconds=16))
    assert s.state == SessionState.LOST


def test_eligible_is_revoked_when_beacon_moves_away():
    s = _connected()
    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=21))
    assert s.state == SessionState.ELIGIBLE

    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-90), T0 + timedelta(seconds=22))
    assert s.state == SessionState.LOST
    assert not s.is_eligible()


def test_discovery_timeout_while_scanning():
    settings = ProximitySettings(discovery_timeout_seconds=40)
    s = state_machine.start_scan(BeaconSession.for_target(_target(), settings), T0)

    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=39))
    assert s.state == SessionState.SCANNING

    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=40))
    assert s.state == SessionState.TIMED_OUT
    assert s.last_error == ErrorKind.DISCOVERY_TIMEOUT


def test_timeout_does_not_apply_once_connected():
    s = _connected()
    s = state_machine.reduce(s, TimerTick(), T0 + timedelta(seconds=60))
    assert s.state == SessionState.ELIGIBLE


def test_restart_resets_everything():
    s = _connected()
    s = state_machine.reduce(s, ScanObservation(address=BEACON, rssi=-90), T0 + timedelta(seconds=2))
    assert s.state == SessionState.LOST

    later = T0 + timedelta(minutes=1)
    s = state_machine.start_scan(s, later)
    assert s.state == SessionState.SCANNING
    assert s.started_at == later
    assert s.last_error is None
    assert s.detected_address is None
    assert s.last_distance_m == -1.0


def test_stop_goes_idle():
    s = state_machine.stop(_connected())
    assert s.state == SessionState.IDLE
    assert s.connected_since is None


def test_connected_since_only_set_in_connected_states():
    s = _connected()
    for now, event in [
        (T0 + timedelta(seconds=1), TimerTick()),
        (T0 + timedelta(seconds=21), TimerTick()),
        (T0 + timedelta(seconds=22), ScanObservation(address=BEACON, rssi=-95)),
    ]:
        s = state_machine.reduce(s, event, now)
        connected = s.state in (SessionState.CONNECTED, SessionState.VERIFYING, SessionState.ELIGIBLE)
        assert (s.connected_since is not None) == connected
