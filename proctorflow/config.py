"""Application configuration and constants."""
import json
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _load_credentials() -> list[dict[str, str]]:
    """Load configured API credential sets from the environment or a JSON file."""
    raw = os.environ.get("PROCTORING_CREDENTIALS")
    path = os.environ.get("PROCTORING_CREDENTIALS_FILE")
    if not raw and path and Path(path).exists():
        raw = Path(path).read_text(encoding="utf-8")
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'proctorflow.db'}"
)

# Attempt lifecycle
ABANDONED_AFTER_DAYS = _parse_int_env("ABANDONED_AFTER_DAYS", 30)
REAPER_INTERVAL_SECONDS = _parse_int_env("REAPER_INTERVAL_SECONDS", 24 * 60 * 60)
RESULTS_RETRY_DELAY_SECONDS = _parse_int_env("RESULTS_RETRY_DELAY_SECONDS", 5 * 60)

# Job worker
WORKER_POLL_SECONDS = _parse_int_env("WORKER_POLL_SECONDS", 5)
WORKER_BATCH_SIZE = _parse_int_env("WORKER_BATCH_SIZE", 10)
JOB_LEASE_SECONDS = _parse_int_env("JOB_LEASE_SECONDS", 10 * 60)

# Remote proctoring API
API_TIMEOUT_SECONDS = _parse_int_env("API_TIMEOUT_SECONDS", 30)
API_CREDENTIALS = _load_credentials()

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
