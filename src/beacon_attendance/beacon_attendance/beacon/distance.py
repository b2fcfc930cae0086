from __future__ import annotations

from ..core.constants import PATH_LOSS_EXPONENT, REFERENCE_POWER_DBM, UNKNOWN_DISTANCE


def estimate_distance(
    rssi: int,
    *,
    reference_power: int = REFERENCE_POWER_DBM,
    path_loss_exponent: float = PATH_LOSS_EXPONENT,
) -> float:
    """Log-distance path loss model: RSSI -> meters.

    An RSSI of 0 means "no reading" and yields -1.0.
    """
    if rssi == 0:
        return UNKNOWN_DISTANCE
    return float(10 ** ((reference_power - rssi) / (10 * path_loss_exponent)))


def is_within_range(distance: float, range_meters: float) -> bool:
    return 0 < distance <= range_meters
