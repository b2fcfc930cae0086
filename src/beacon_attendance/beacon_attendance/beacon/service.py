from __future__ import annotations

import concurrent.futures
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import PermissionDenied, ValidationError
from .ble_thread import BleThread
from .driver import BeaconAttempt
from .model import BeaconSession, BeaconTarget, ProximitySettings
from .radio import PermissionGate, Radio

logger = logging.getLogger(__name__)


@dataclass
class AttemptHandle:
    attempt_id: str
    user_key: str
    attempt: BeaconAttempt
    future: Optional[concurrent.futures.Future] = None
    error: Optional[str] = None

    @property
    def session(self) -> BeaconSession:
        return self.attempt.session

    @property
    def running(self) -> bool:
        return self.future is not None and not self.future.done()


class BeaconAttemptService:
    """Runs attendance attempts on the BLE loop; one live attempt per user."""

    def __init__(
        self,
        ble_thread: BleThread,
        radio_factory: Callable[[], Radio],
        *,
        settings: ProximitySettings | None = None,
        permissions: PermissionGate | None = None,
        clock: Callable[[], datetime] = now_local,
        stop_timeout: float = 5.0,
    ):
        self._ble = ble_thread
        self._radio_factory = radio_factory
        self._settings = settings or ProximitySettings()
        self._permissions = permissions
        self._clock = clock
        self._stop_timeout = stop_timeout
        self._attempts: Dict[str, AttemptHandle] = {}
        self._lock = threading.Lock()

    def start(self, *, user_key: str, target: BeaconTarget) -> AttemptHandle:
        with self._lock:
            previous = [h for h in self._attempts.values() if h.user_key == user_key]
        for h in previous:
            self.cancel(h.attempt_id, user_key=user_key)

        attempt = BeaconAttempt(
            self._radio_factory(),
            target,
            settings=self._settings,
            permissions=self._permissions,
            clock=self._clock,
        )
        handle = AttemptHandle(attempt_id=uuid.uuid4().hex, user_key=user_key, attempt=attempt)
        with self._lock:
            self._attempts[handle.attempt_id] = handle
        self._launch(handle)
        return handle

    def get(self, attempt_id: str, *, user_key: str) -> AttemptHandle:
        with self._lock:
            handle = self._attempts.get(attempt_id)
        if handle is None or handle.user_key != user_key:
            raise ValidationError("Attendance attempt not found")
        return handle

    def retry(self, attempt_id: str, *, user_key: str) -> AttemptHandle:
        """Manual retry: restart discovery from scratch (also while still running)."""

        handle = self.get(attempt_id, user_key=user_key)
        self._halt(handle)
        self._launch(handle)
        return handle

    def cancel(self, attempt_id: str, *, user_key: str) -> None:
        handle = self.get(attempt_id, user_key=user_key)
        self._halt(handle)
        with self._lock:
            self._attempts.pop(attempt_id, None)

    def snapshot(self, handle: AttemptHandle) -> dict:
        data = handle.session.to_dict(self._clock())
        error = handle.error
        if handle.future is not None and handle.future.done() and not handle.future.cancelled():
            exc = handle.future.exception()
            if exc is not None:
                error = str(exc)
        data.update(attempt_id=handle.attempt_id, running=handle.running, error=error)
        return data

    def shutdown(self) -> None:
        with self._lock:
            handles = list(self._attempts.values())
            self._attempts.clear()
        for h in handles:
            self._halt(h)

    def _launch(self, handle: AttemptHandle) -> None:
        handle.error = None
        handle.future = self._ble.submit(self._run(handle))

    async def _run(self, handle: AttemptHandle) -> BeaconSession:
        try:
            return await handle.attempt.run()
        except PermissionDenied as e:
            logger.warning("Attempt %s not started: %s", handle.attempt_id, e)
            handle.error = str(e)
            return handle.attempt.session

    def _halt(self, handle: AttemptHandle) -> None:
        future = handle.future
        if future is None or future.done():
            return
        self._ble.call_soon(handle.attempt.stop)
        try:
            future.result(timeout=self._stop_timeout)
        except concurrent.futures.TimeoutError:
            logger.warning("Attempt %s did not stop in time, cancelling", handle.attempt_id)
            future.cancel()
        except concurrent.futures.CancelledError:
            return
        except Exception as e:
            logger.warning("Attempt %s ended with error: %s", handle.attempt_id, e)
