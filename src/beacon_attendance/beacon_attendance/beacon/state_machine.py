"""Pure reducer for the beacon attendance attempt.

``reduce(session, event, now)`` returns the next :class:`BeaconSession`; it
never raises and performs no I/O. The driver in ``driver.py`` owns the radio
subscription and the timer and only feeds events in here.

    Idle --start--> Scanning --target seen--> Connecting --ok--> Connected
    Connecting --failed--> Scanning
    Connected/Verifying --in range--> Verifying --dwell done--> Eligible
    Connected/Verifying/Eligible --out of range--> Lost
    Scanning/Connecting --discovery timeout--> TimedOut
    Lost/TimedOut --start--> Scanning
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ..core.constants import UNKNOWN_DISTANCE
from ..core.enums import CONNECTED_STATES, DISCOVERY_STATES, ErrorKind, SessionState
from .distance import estimate_distance
from .model import BeaconEvent, BeaconSession, ConnectResult, ScanObservation, TimerTick


def start_scan(session: BeaconSession, now: datetime) -> BeaconSession:
    """Reset every attempt field; valid from any state (restart)."""
    return replace(
        session,
        state=SessionState.SCANNING,
        started_at=now,
        connected_since=None,
        last_distance_m=UNKNOWN_DISTANCE,
        last_rssi=0,
        detected_address=None,
        last_error=None,
    )


def stop(session: BeaconSession) -> BeaconSession:
    return replace(session, state=SessionState.IDLE, connected_since=None)


def on_observation(session: BeaconSession, obs: ScanObservation, now: datetime) -> BeaconSession:
    if not session.target.matches(obs.address):
        return session

    distance = estimate_distance(obs.rssi)
    state = session.state

    if state == SessionState.SCANNING:
        return replace(
            session,
            state=SessionState.CONNECTING,
            detected_address=obs.address,
            last_rssi=obs.rssi,
            last_distance_m=distance,
        )

    if state == SessionState.CONNECTING:
        return replace(session, last_rssi=obs.rssi, last_distance_m=distance)

    if state in CONNECTED_STATES:
        return _check_proximity(replace(session, last_rssi=obs.rssi, last_distance_m=distance), now)

    # Idle, Lost and TimedOut wait for a manual start.
    return session


def on_connect_result(session: BeaconSession, result: ConnectResult, now: datetime) -> BeaconSession:
    if session.state != SessionState.CONNECTING or not session.target.matches(result.address):
        return session

    if result.ok:
        return replace(session, state=SessionState.CONNECTED, connected_since=now, last_error=None)

    return replace(session, state=SessionState.SCANNING, connected_since=None, last_error=ErrorKind.CONNECTION_FAILURE)


def on_tick(session: BeaconSession, now: datetime) -> BeaconSession:
    if session.state in DISCOVERY_STATES:
        if session.started_at is not None and now - session.started_at >= session.discovery_timeout:
            return replace(
                session,
                state=SessionState.TIMED_OUT,
                connected_since=None,
                last_error=ErrorKind.DISCOVERY_TIMEOUT,
            )
        return session

    if session.state in CONNECTED_STATES:
        return _check_proximity(session, now)

    return session


def reduce(session: BeaconSession, event: BeaconEvent, now: datetime) -> BeaconSession:
    if isinstance(event, ScanObservation):
        return on_observation(session, event, now)
    if isinstance(event, TimerTick):
        return on_tick(session, now)
    if isinstance(event, ConnectResult):
        return on_connect_result(session, event, now)
    return session


def _check_proximity(session: BeaconSession, now: datetime) -> BeaconSession:
    # No partial credit: any out-of-range sample drops the accumulated dwell.
    if not session.in_range():
        return replace(
            session,
            state=SessionState.LOST,
            connected_since=None,
            last_error=ErrorKind.OUT_OF_RANGE,
        )

    if session.dwell_complete(now):
        if session.state != SessionState.ELIGIBLE:
            return replace(session, state=SessionState.ELIGIBLE)
        return session

    if session.state == SessionState.CONNECTED:
        return replace(session, state=SessionState.VERIFYING)
    return session
