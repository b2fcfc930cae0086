"""Async driver for one beacon attendance attempt.

The driver keeps a single observation subscription per attempt. Observations,
timer ticks and connect results are all funnelled through one queue into the
pure reducer, so there is exactly one writer of the session state.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import ATTEMPT_ENDED_STATES, SessionState
from ..core.exceptions import ConnectionFailure, PermissionDenied
from . import state_machine
from .model import BeaconSession, BeaconTarget, ConnectResult, ProximitySettings, TimerTick
from .radio import GrantedPermissions, PermissionGate, Radio

logger = logging.getLogger(__name__)

_STOP = object()


class BeaconAttempt:
    def __init__(
        self,
        radio: Radio,
        target: BeaconTarget,
        *,
        settings: ProximitySettings | None = None,
        permissions: PermissionGate | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._radio = radio
        self._settings = settings or ProximitySettings()
        self._permissions = permissions or GrantedPermissions()
        self._clock = clock
        self._session = BeaconSession.for_target(target, self._settings)
        self._events: Optional[asyncio.Queue] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._connected_address: Optional[str] = None

    @property
    def session(self) -> BeaconSession:
        return self._session

    @property
    def target(self) -> BeaconTarget:
        return self._session.target

    async def run(self) -> BeaconSession:
        """Run the attempt until it is Lost, TimedOut or stopped.

        Eligible does not end the attempt: the beacon keeps being watched so a
        later out-of-range reading still revokes eligibility. Calling ``run``
        again after it returned is the manual retry.
        """

        if not await self._permissions.request():
            raise PermissionDenied("Bluetooth scan/connect permissions were not granted")

        # Only one observation stream per attempt.
        await self._radio.stop_discovery()

        events: asyncio.Queue = asyncio.Queue()
        self._events = events
        self._apply_start()

        observations = await self._radio.start_discovery(None)
        pump = asyncio.create_task(self._pump(observations, events))
        ticker = asyncio.create_task(self._tick(events))
        try:
            while True:
                event = await events.get()
                if event is _STOP:
                    break
                if isinstance(event, BaseException):
                    raise event

                self._apply(event)
                state = self._session.state
                if state == SessionState.CONNECTING and self._connect_task is None:
                    self._connect_task = asyncio.create_task(self._connect(self._session.detected_address, events))
                if state in ATTEMPT_ENDED_STATES:
                    break
        finally:
            self._events = None
            tasks = [t for t in (pump, ticker, self._connect_task) if t is not None]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._connect_task = None
            await self._radio.stop_discovery()
            if self._connected_address:
                await self._radio.disconnect(self._connected_address)
                self._connected_address = None

        return self._session

    def stop(self) -> None:
        """Ask a running attempt to end; must be called on the attempt's loop."""

        if self._events is not None:
            self._events.put_nowait(_STOP)
        self._session = state_machine.stop(self._session)

    def _apply_start(self) -> None:
        self._session = state_machine.start_scan(self._session, self._clock())
        logger.info("Scanning for beacon %s (course %s)", self.target.address, self.target.course_id)

    def _apply(self, event) -> None:
        before = self._session
        after = state_machine.reduce(before, event, self._clock())
        self._session = after

        if isinstance(event, ConnectResult):
            if event.ok:
                self._connected_address = event.address
            self._connect_task = None

        if after.state != before.state:
            logger.debug("%s: %s -> %s", self.target.address, before.state.value, after.state.value)
            if after.state == SessionState.LOST:
                logger.info("Beacon %s out of range (%.2f m), dwell reset", self.target.address, after.last_distance_m)
            elif after.state == SessionState.TIMED_OUT:
                logger.warning("Beacon %s not found within %ss", self.target.address, after.discovery_timeout.total_seconds())
            elif after.state == SessionState.ELIGIBLE:
                logger.info("Beacon %s dwell complete, attendance allowed", self.target.address)

    async def _pump(self, observations, events: asyncio.Queue) -> None:
        try:
            async for obs in observations:
                events.put_nowait(obs)
        except Exception as exc:
            events.put_nowait(exc)

    async def _tick(self, events: asyncio.Queue) -> None:
        while True:
            await asyncio.sleep(self._settings.tick_seconds)
            events.put_nowait(TimerTick())

    async def _connect(self, address: str, events: asyncio.Queue) -> None:
        try:
            await self._radio.connect(address, timeout=self._settings.connect_timeout_seconds)
        except ConnectionFailure as exc:
            logger.info("Connect to %s failed, scanning again: %s", address, exc)
            events.put_nowait(ConnectResult(address=address, ok=False, error=str(exc)))
            return
        except Exception as exc:
            logger.exception("Unexpected error connecting to %s, scanning again", address)
            events.put_nowait(ConnectResult(address=address, ok=False, error=f"{type(exc).__name__}: {exc}"))
            return
        events.put_nowait(ConnectResult(address=address, ok=True))
