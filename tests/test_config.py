"""Tests for Config class: settings persistence and retrieval."""

import json

import pytest

from kit_ledger.config import Config, _as_bool, _load_settings, _save_settings


@pytest.fixture
def settings_file(tmp_path):
    """Temporary settings file for isolation."""
    return tmp_path / "settings.json"


@pytest.fixture(autouse=True)
def isolate_config(settings_file, monkeypatch):
    """Redirect settings I/O to temp file so tests don't touch real config."""
    import kit_ledger.config as config_mod
    monkeypatch.setattr(config_mod, "_SETTINGS_FILE", settings_file)

    saved = {
        attr: getattr(Config, attr) for attr in (
            "STORE_URL", "STORE_TIMEOUT", "STORE_MAX_RETRIES",
            "STORE_BACKOFF_SECONDS", "SYNC_ENABLED", "WRITE_LOCK_SECONDS",
        )
    }
    yield
    for attr, val in saved.items():
        setattr(Config, attr, val)


class TestSettingsFile:
    def test_missing_file_is_empty(self):
        assert _load_settings() == {}

    def test_corrupt_file_is_empty(self, settings_file):
        settings_file.write_text("{not json", encoding="utf-8")
        assert _load_settings() == {}

    def test_save_and_load(self, settings_file):
        _save_settings({"store_url": "https://x"})
        assert json.loads(settings_file.read_text())["store_url"] == "https://x"
        assert _load_settings() == {"store_url": "https://x"}


class TestUpdates:
    def test_update_store_settings(self, settings_file):
        Config.update_store_settings("https://store.test/exec", 10, 5, 0.25)
        assert Config.STORE_URL == "https://store.test/exec"
        assert Config.STORE_MAX_RETRIES == 5
        saved = json.loads(settings_file.read_text())
        assert saved["store_timeout"] == 10
        assert saved["store_backoff_seconds"] == 0.25

    def test_update_sync_keeps_other_keys(self, settings_file):
        Config.update_store_settings("https://a", 30, 3, 1.0)
        Config.update_sync_settings(True, 45)
        saved = json.loads(settings_file.read_text())
        assert saved["sync_enabled"] is True
        assert saved["write_lock_seconds"] == 45
        assert saved["store_url"] == "https://a"
        assert Config.SYNC_ENABLED is True


class TestDefaults:
    def test_bool_parsing(self):
        assert _as_bool("true") is True
        assert _as_bool("ON") is True
        assert _as_bool("0") is False
        assert _as_bool(False) is False
