from __future__ import annotations

from typing import AsyncIterator, Optional, Protocol

from .model import ScanObservation


class Radio(Protocol):
    """BLE radio collaborator.

    ``start_discovery`` must stop any discovery still running before it starts a
    new one, so an attempt can be restarted without leaking the previous
    observation stream.
    """

    async def start_discovery(self, timeout: Optional[float] = None) -> AsyncIterator[ScanObservation]:
        """Start scanning; the iterator ends after ``timeout`` seconds or on stop.

        ``timeout=None`` scans until :meth:`stop_discovery` is called.
        """

        raise NotImplementedError

    async def stop_discovery(self) -> None:
        raise NotImplementedError

    async def connect(self, address: str, *, timeout: float) -> None:
        """Connect to a beacon; raises ConnectionFailure."""

        raise NotImplementedError

    async def disconnect(self, address: str) -> None:
        raise NotImplementedError


class PermissionGate(Protocol):
    async def request(self) -> bool:
        """Ask for the scan/connect permissions; True when all were granted."""

        raise NotImplementedError


class GrantedPermissions:
    """Desktop hosts (BlueZ, CoreBluetooth via bleak) have no runtime prompt."""

    async def request(self) -> bool:
        return True
