"""Radio implementation on top of bleak.

Advertisements arrive on bleak's detection callback; they are pushed into an
asyncio queue and handed out as :class:`ScanObservation` through an async
iterator, one scanner at a time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from ..core.exceptions import ConnectionFailure
from .model import ScanObservation, normalize_address

logger = logging.getLogger(__name__)

_END = object()


class BleakRadio:
    def __init__(self, *, adapter: Optional[str] = None):
        self._adapter = adapter
        self._scanner: Optional[BleakScanner] = None
        self._queue: Optional[asyncio.Queue] = None
        self._devices: Dict[str, BLEDevice] = {}
        self._clients: Dict[str, BleakClient] = {}

    async def start_discovery(self, timeout: Optional[float] = None) -> AsyncIterator[ScanObservation]:
        await self.stop_discovery()

        queue: asyncio.Queue = asyncio.Queue()

        def detection_callback(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
            self._devices[normalize_address(device.address)] = device
            queue.put_nowait(
                ScanObservation(
                    address=device.address,
                    rssi=int(advertisement_data.rssi or 0),
                    name=device.name or advertisement_data.local_name,
                )
            )

        kwargs = {"detection_callback": detection_callback}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        scanner = BleakScanner(**kwargs)
        await scanner.start()
        logger.debug("Discovery started (timeout=%s)", timeout)

        self._scanner = scanner
        self._queue = queue
        return self._observations(queue, timeout)

    async def _observations(self, queue: asyncio.Queue, timeout: Optional[float]) -> AsyncIterator[ScanObservation]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        try:
            while True:
                if deadline is None:
                    item = await queue.get()
                else:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        return
                    try:
                        item = await asyncio.wait_for(queue.get(), remaining)
                    except asyncio.TimeoutError:
                        return
                if item is _END:
                    return
                yield item
        finally:
            if timeout is not None and self._queue is queue:
                await self.stop_discovery()

    async def stop_discovery(self) -> None:
        scanner, queue = self._scanner, self._queue
        self._scanner = None
        self._queue = None
        if queue is not None:
            queue.put_nowait(_END)
        if scanner is not None:
            try:
                await scanner.stop()
            except BleakError as exc:
                # BlueZ reports an error when the scan already ended on its own.
                logger.debug("Stopping discovery failed: %s", exc)
            logger.debug("Discovery stopped")

    async def connect(self, address: str, *, timeout: float) -> None:
        key = normalize_address(address)
        client = BleakClient(self._devices.get(key) or address, timeout=timeout)
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as exc:
            raise ConnectionFailure(f"Failed to connect to {address}: {exc}") from exc

        if not client.is_connected:
            raise ConnectionFailure(f"Failed to connect to {address}")
        self._clients[key] = client
        logger.info("Connected to %s", address)

    async def disconnect(self, address: str) -> None:
        client = self._clients.pop(normalize_address(address), None)
        if client is None or not client.is_connected:
            return
        try:
            await client.disconnect()
        except (BleakError, EOFError) as exc:
            # BlueZ/dbus can throw EOFError if the link already dropped.
            logger.debug("Disconnect from %s failed: %s", address, exc)
        logger.info("Disconnected from %s", address)
