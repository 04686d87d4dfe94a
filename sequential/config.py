"""Sequential backend configuration."""
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

# Project root (one level up from sequential/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("SEQUENTIAL_DATA_DIR", str(PROJECT_ROOT / "data")))

# Database
DB_PATH = Path(os.getenv("SEQUENTIAL_DB_PATH", str(DATA_DIR / "sequential.db")))

# Import preferences (stored defaults for the hidden/subdirectory toggles)
PREFERENCES_PATH = Path(os.getenv("SEQUENTIAL_PREFERENCES_PATH", str(DATA_DIR / "preferences.json")))
IMPORT_HIDDEN = _env_bool("SEQUENTIAL_IMPORT_HIDDEN", False)
IMPORT_SUBDIRECTORIES = _env_bool("SEQUENTIAL_IMPORT_SUBDIRECTORIES", True)

# Access tokens
DEFAULT_TOKEN_SECRET = "sequential-development-secret"
TOKEN_SECRET = os.getenv("SEQUENTIAL_TOKEN_SECRET", DEFAULT_TOKEN_SECRET)
MINT_CONCURRENCY = max(1, _env_int("SEQUENTIAL_MINT_CONCURRENCY", 8))

# Observability
OTEL_ENABLED = _env_bool("SEQUENTIAL_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("SEQUENTIAL_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("SEQUENTIAL_OTEL_SERVICE_NAME", "sequential-backend")
PROM_PORT = _env_int("SEQUENTIAL_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("SEQUENTIAL_HOST", "127.0.0.1")
PORT = int(os.getenv("SEQUENTIAL_PORT", "8000"))

# CORS
FRONTEND_ORIGIN = os.getenv("SEQUENTIAL_FRONTEND_ORIGIN", "http://localhost:3000")
