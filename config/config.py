"""Settings shared by every environment; each env module star-imports this."""

import os

SECRET_KEY = os.environ.get("SECRET_KEY", "beacon-attendance-dev-key")

DB_CONFIG = {
    "host": os.environ.get("DB_HOST", "localhost"),
    "port": int(os.environ.get("DB_PORT", "3306")),
    "user": os.environ.get("DB_USER", "root"),
    "password": os.environ.get("DB_PASSWORD", ""),
    "database": os.environ.get("DB_NAME", "beacon_attendance"),
    "connect_timeout": int(os.environ.get("DB_CONNECT_TIMEOUT", "5")),
}

# Local attendance cache (one JSON file per user). Empty = keep in memory.
CACHE_DIR = os.environ.get("CACHE_DIR", os.path.join(os.path.expanduser("~"), ".beacon_attendance"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Proximity gate
DWELL_SECONDS = float(os.environ.get("DWELL_SECONDS", "20"))
RANGE_METERS = float(os.environ.get("RANGE_METERS", "5.0"))
DISCOVERY_TIMEOUT_SECONDS = float(os.environ.get("DISCOVERY_TIMEOUT_SECONDS", "40"))
TICK_SECONDS = float(os.environ.get("TICK_SECONDS", "1.0"))
CONNECT_TIMEOUT_SECONDS = float(os.environ.get("CONNECT_TIMEOUT_SECONDS", "10"))

# Bluetooth adapter for bleak (e.g. "hci0"); None = OS default.
BLE_ADAPTER = os.environ.get("BLE_ADAPTER") or None

# Classroom beacons used when a course has no beacon address in the database.
COURSE_BEACONS = [
    {"id": "101", "name": "Networking Protocols", "mac": "fe:7d:f4:af:86:d7"},
    {"id": "102", "name": "Embedded Systems", "mac": "fa:79:f0:ab:82:d3"},
    {"id": "103", "name": "AI Fundamentals", "mac": "bc:57:29:02:99:87"},
]
