"""DashSync Configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_delays(name: str, default: tuple[float, ...]) -> tuple[float, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return tuple(float(token) for token in value.split(",") if token.strip())
    except ValueError:
        return default

# Project root (one level up from dashsync/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Upstream services
API_BASE_URL = os.getenv("DASHSYNC_API_BASE_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT_SECONDS = _env_float("DASHSYNC_REQUEST_TIMEOUT_SECONDS", 10.0)

# Persistent counter store
COUNTER_STORE_PATH = Path(
    os.getenv("DASHSYNC_COUNTER_STORE_PATH", str(PROJECT_ROOT / "data" / "dashboard_store.json"))
)
UPLOAD_COUNT_KEY = "uploadCount"

# Sync tuning
PERIODIC_SYNC_INTERVAL_SECONDS = _env_float("DASHSYNC_PERIODIC_SYNC_INTERVAL_SECONDS", 30.0)
CASCADE_DELAYS_SECONDS = _env_delays("DASHSYNC_CASCADE_DELAYS_SECONDS", (1.0, 3.0, 6.0, 10.0))
RETRY_MAX_ATTEMPTS = _env_int("DASHSYNC_RETRY_MAX_ATTEMPTS", 3)
RETRY_DELAY_SECONDS = _env_float("DASHSYNC_RETRY_DELAY_SECONDS", 1.0)
RECENT_ACTIVITY_LIMIT = 4

# Observability
OTEL_ENABLED = _env_bool("DASHSYNC_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("DASHSYNC_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("DASHSYNC_OTEL_SERVICE_NAME", "dashsync")
PROM_PORT = _env_int("DASHSYNC_PROM_PORT", 9464)

# CORS
FRONTEND_ORIGIN = os.getenv("DASHSYNC_FRONTEND_ORIGIN", "http://localhost:3000")
