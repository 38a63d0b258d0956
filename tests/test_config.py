"""
Tests for rbac_admin/config.py
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from rbac_admin.config import RBACSettings, get_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("RBAC_ENVIRONMENT", "RBAC_LOG_LEVEL", "RBAC_DATA_DIR", "RBAC_STATE_FILE",
                     "RBAC_SEED_DEFAULTS", "RBAC_AUTOSAVE", "RBAC_LOG_DENIALS"):
            monkeypatch.delenv(name, raising=False)
        settings = RBACSettings()
        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.seed_defaults is True
        assert settings.autosave is False
        assert settings.log_denials is True
        assert settings.state_path == Path.cwd() / ".rbac_data" / "rbac_state.json"

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RBAC_LOG_LEVEL", "debug")
        monkeypatch.setenv("RBAC_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("RBAC_STATE_FILE", "state.json")
        monkeypatch.setenv("RBAC_STRUCTURED_LOGGING", "true")
        settings = RBACSettings()
        assert settings.log_level == "DEBUG"
        assert settings.structured_logging is True
        assert settings.state_path == tmp_path / "state.json"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            RBACSettings(log_level="LOUD")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            RBACSettings(environment="staging")

    def test_get_settings_cached(self, reset_settings):
        assert get_settings() is get_settings()
