"""Runtime settings. Every value can be overridden from an OWGR_* environment variable."""

import os

BASE_DIR = os.path.dirname(__file__)

DB_PATH = os.environ.get("OWGR_DB_PATH", os.path.join(BASE_DIR, "data.db"))
SCHEMA_PATH = os.path.join(BASE_DIR, "schema.sql")
OUTPUT_PATH = os.environ.get("OWGR_OUTPUT_PATH", "OWGR.txt")

BASE_URL = os.environ.get("OWGR_BASE_URL", "http://www.owgr.com")
REQUEST_TIMEOUT = float(os.environ.get("OWGR_REQUEST_TIMEOUT", "10"))

WORKERS = int(os.environ.get("OWGR_WORKERS", "10"))
LOCK_STRIPES = int(os.environ.get("OWGR_LOCK_STRIPES", "64"))

# Only the most recent WINDOW_CAP events of a player count towards the total.
WINDOW_CAP = 52
MIN_DIVISOR = 40
MAX_DIVISOR = 52

LOG_LEVEL = os.environ.get("OWGR_LOG_LEVEL", "INFO")
