"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Calibrated signal strength at 1 meter and the free-space path loss exponent.
REFERENCE_POWER_DBM = -59
PATH_LOSS_EXPONENT = 2

UNKNOWN_DISTANCE = -1.0

DEFAULT_DWELL_SECONDS = 20
DEFAULT_RANGE_METERS = 5.0
DEFAULT_DISCOVERY_TIMEOUT_SECONDS = 40
DEFAULT_TICK_SECONDS = 1.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
