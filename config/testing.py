from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

CACHE_DIR = ""

DWELL_SECONDS = 0.2
DISCOVERY_TIMEOUT_SECONDS = 0.5
TICK_SECONDS = 0.02
CONNECT_TIMEOUT_SECONDS = 0.5

AUTO_INIT_DB = False
AUTO_SEED_DB = False
