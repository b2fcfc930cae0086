"""One-shot BLE discovery: list nearby devices with their estimated distance.

Handy for calibrating a classroom: stand where students sit and check which
beacon shows up within range.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.beacon_attendance.beacon_attendance.beacon.bleak_radio import BleakRadio
from src.beacon_attendance.beacon_attendance.beacon.distance import estimate_distance, is_within_range
from src.beacon_attendance.beacon_attendance.beacon.model import normalize_address
from src.beacon_attendance.beacon_attendance.common.log import configure_logging


async def scan(timeout: float, adapter: str | None, known: dict[str, str], range_m: float) -> None:
    radio = BleakRadio(adapter=adapter)
    strongest: dict[str, tuple[int, str | None]] = {}

    observations = await radio.start_discovery(timeout)
    async for obs in observations:
        key = normalize_address(obs.address)
        best = strongest.get(key)
        if best is None or obs.rssi > best[0]:
            strongest[key] = (obs.rssi, obs.name)

    for address, (rssi, name) in sorted(strongest.items(), key=lambda kv: kv[1][0], reverse=True):
        distance = estimate_distance(rssi)
        label = known.get(address, name or "-")
        marker = "*" if is_within_range(distance, range_m) else " "
        print(f"{marker} {address}  rssi={rssi:>4}  ~{distance:6.2f} m  {label}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--timeout", type=float, default=10.0, help="scan window in seconds")
    parser.add_argument("--adapter", default=None, help="bluetooth adapter, e.g. hci0")
    args = parser.parse_args()

    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    known = {normalize_address(c["mac"]): f"course {c['id']} {c['name']}" for c in getattr(settings, "COURSE_BEACONS", [])}

    asyncio.run(scan(args.timeout, args.adapter or getattr(settings, "BLE_ADAPTER", None), known, float(settings.RANGE_METERS)))


if __name__ == "__main__":
    main()
