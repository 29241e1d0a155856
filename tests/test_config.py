"""Tests for environment-driven settings."""

from __future__ import annotations

from openmemory.config import Settings
from openmemory.memory import DEFAULT_MAX_MEMORIES, DEFAULT_STORAGE_KEY


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "OPENMEMORY_DB_PATH",
            "OPENMEMORY_STORAGE_KEY",
            "OPENMEMORY_MAX_MEMORIES",
            "OPENMEMORY_LOCATION",
            "OPENMEMORY_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.db_path.endswith("openmemory")
        assert settings.storage_key == DEFAULT_STORAGE_KEY
        assert settings.max_memories == DEFAULT_MAX_MEMORIES
        assert settings.location == "local://cli"
        assert settings.log_level == "WARNING"

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OPENMEMORY_DB_PATH", str(tmp_path))
        monkeypatch.setenv("OPENMEMORY_STORAGE_KEY", "custom")
        monkeypatch.setenv("OPENMEMORY_MAX_MEMORIES", "25")
        monkeypatch.setenv("OPENMEMORY_LOCATION", "https://claude.ai/chat/1")
        monkeypatch.setenv("OPENMEMORY_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.db_path == str(tmp_path)
        assert settings.storage_key == "custom"
        assert settings.max_memories == 25
        assert settings.location == "https://claude.ai/chat/1"
        assert settings.log_level == "DEBUG"

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv("OPENMEMORY_MAX_MEMORIES", "lots")
        assert Settings.from_env().max_memories == DEFAULT_MAX_MEMORIES
