"""
Unit tests for boondsync/common/config.py
"""

import pytest

from boondsync.common.config import Config


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setattr(Config, "MONGODB_URI", "mongodb://localhost/test")
    monkeypatch.setattr(Config, "BOOND_PRODUCTION_USERNAME", "prod@ebmc.eu")
    monkeypatch.setattr(Config, "BOOND_PRODUCTION_PASSWORD", "prod-secret")
    monkeypatch.setattr(Config, "BOOND_SANDBOX_USERNAME", "sandbox@ebmc.eu")
    monkeypatch.setattr(Config, "BOOND_SANDBOX_PASSWORD", "sandbox-secret")


class TestBoondCredentials:
    def test_per_environment(self, credentials):
        assert Config.get_boond_credentials("production") == ("prod@ebmc.eu", "prod-secret")
        assert Config.get_boond_credentials("sandbox") == ("sandbox@ebmc.eu", "sandbox-secret")

    def test_unknown_environment(self, credentials):
        with pytest.raises(ValueError, match="Unknown BoondManager environment"):
            Config.get_boond_credentials("staging")

    def test_missing_password_names_variables(self, credentials, monkeypatch):
        monkeypatch.setattr(Config, "BOOND_SANDBOX_PASSWORD", "")

        with pytest.raises(ValueError) as exc_info:
            Config.get_boond_credentials("sandbox")

        assert "BOOND_SANDBOX_USERNAME" in str(exc_info.value)
        assert "BOOND_SANDBOX_PASSWORD" in str(exc_info.value)


class TestValidate:
    def test_complete_configuration(self, credentials):
        Config.validate()

    def test_lists_every_missing_setting(self, credentials, monkeypatch):
        monkeypatch.setattr(Config, "MONGODB_URI", "")
        monkeypatch.setattr(Config, "BOOND_PRODUCTION_USERNAME", "")

        with pytest.raises(ValueError, match="MONGODB_URI, BOOND_PRODUCTION_USERNAME"):
            Config.validate()

    def test_only_named_settings_checked(self, credentials, monkeypatch):
        monkeypatch.setattr(Config, "BOOND_PRODUCTION_PASSWORD", "")

        Config.validate(["MONGODB_URI"] + Config.boond_settings("sandbox"))
        with pytest.raises(ValueError, match="BOOND_PRODUCTION_PASSWORD"):
            Config.validate(Config.boond_settings("production"))


def test_boond_settings_names():
    assert Config.boond_settings("sandbox") == ["BOOND_SANDBOX_USERNAME", "BOOND_SANDBOX_PASSWORD"]


def test_summary_hides_secrets(credentials):
    summary = Config.summary()

    assert "prod-secret" not in summary
    assert "sandbox-secret" not in summary
    assert "Production credentials: ✓ Configured" in summary
