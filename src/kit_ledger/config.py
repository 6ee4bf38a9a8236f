"""Application configuration: loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file written by the operator tooling
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "kit_ledger.db"))
    )
    BACKUP_PATH: Path = Path(
        os.getenv("DATABASE_BACKUP_PATH", str(_PROJECT_ROOT / "data" / "backups"))
    )

    # Remote record store (settings.json overrides .env)
    STORE_URL: str = _runtime.get(
        "store_url",
        os.getenv("STORE_URL", ""),
    )
    STORE_TIMEOUT: int = int(_runtime.get(
        "store_timeout",
        os.getenv("STORE_TIMEOUT", "30"),
    ))
    STORE_MAX_RETRIES: int = int(_runtime.get(
        "store_max_retries",
        os.getenv("STORE_MAX_RETRIES", "3"),
    ))
    STORE_BACKOFF_SECONDS: float = float(_runtime.get(
        "store_backoff_seconds",
        os.getenv("STORE_BACKOFF_SECONDS", "1.0"),
    ))

    # Sync
    SYNC_ENABLED: bool = _as_bool(_runtime.get(
        "sync_enabled",
        os.getenv("SYNC_ENABLED", "false"),
    ))
    # Pulls never overwrite local state this soon after a local write
    WRITE_LOCK_SECONDS: int = int(_runtime.get(
        "write_lock_seconds",
        os.getenv("WRITE_LOCK_SECONDS", "20"),
    ))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_store_settings(cls, url: str, timeout: int,
                              max_retries: int, backoff_seconds: float):
        """Update remote store settings at runtime and persist to disk."""
        cls.STORE_URL = url
        cls.STORE_TIMEOUT = timeout
        cls.STORE_MAX_RETRIES = max_retries
        cls.STORE_BACKOFF_SECONDS = backoff_seconds

        settings = _load_settings()
        settings["store_url"] = url
        settings["store_timeout"] = timeout
        settings["store_max_retries"] = max_retries
        settings["store_backoff_seconds"] = backoff_seconds
        _save_settings(settings)

    @classmethod
    def update_sync_settings(cls, enabled: bool, write_lock_seconds: int):
        """Enable or disable store sync and persist."""
        cls.SYNC_ENABLED = enabled
        cls.WRITE_LOCK_SECONDS = write_lock_seconds

        settings = _load_settings()
        settings["sync_enabled"] = enabled
        settings["write_lock_seconds"] = write_lock_seconds
        _save_settings(settings)
