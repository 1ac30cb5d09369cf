import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_PORT = 40001
DEFAULT_IDLE_TIMEOUT_MS = 30000
MIN_IDLE_TIMEOUT_MS = 1000


def parse_idle_timeout(raw) -> int:
    # unset, non-numeric and zero all fall back to the default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    return max(MIN_IDLE_TIMEOUT_MS, value or DEFAULT_IDLE_TIMEOUT_MS)


RELAY_HOST = os.getenv("RELAY_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", str(DEFAULT_PORT)))

IDLE_TIMEOUT_MS = parse_idle_timeout(os.getenv("IDLE_TIMEOUT_MS"))
REAP_INTERVAL_SEC = float(os.getenv("REAP_INTERVAL_SEC", "15"))
TRACKING_LOG_INTERVAL_SEC = float(os.getenv("TRACKING_LOG_INTERVAL_SEC", "20"))

HTTP_ENABLED = os.getenv("HTTP_ENABLED", "1") == "1"
HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_PACKET_TIMES = os.getenv("LOG_PACKET_TIMES", "1") == "1"
