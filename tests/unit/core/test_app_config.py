"""
Unit Tests for platform configuration
"""

from core.config import AppConfig, LoggingConfig


class TestAppConfig:

    def test_deep_link_without_public_url(self):
        assert AppConfig().deep_link("/track/PFX-1") == "/track/PFX-1"

    def test_deep_link_with_public_url(self):
        config = AppConfig(public_app_url="https://app.perfectexpress.com/")
        assert config.deep_link("/track/PFX-1") == "https://app.perfectexpress.com/track/PFX-1"

    def test_default_service_port(self, monkeypatch):
        monkeypatch.delenv("SHIPMENT_SERVICE_PORT", raising=False)
        assert AppConfig().service_port("shipment_service") == 8230

    def test_service_port_from_env(self, monkeypatch):
        monkeypatch.setenv("SHIPMENT_SERVICE_PORT", "9100")
        assert AppConfig().service_port("shipment_service") == 9100

    def test_ledger_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CONDITIONAL_WRITES", "false")
        monkeypatch.setenv("LEDGER_MAX_RETRIES", "5")
        config = AppConfig.from_env()
        assert config.ledger_conditional_writes is False
        assert config.ledger_max_retries == 5

    def test_conditional_writes_default_on(self, monkeypatch):
        monkeypatch.delenv("LEDGER_CONDITIONAL_WRITES", raising=False)
        assert AppConfig.from_env().ledger_conditional_writes is True


class TestLoggingConfig:

    def test_library_levels_from_env(self, monkeypatch):
        monkeypatch.setenv("LIBRARY_LOG_LEVELS", "httpx:info, asyncpg:DEBUG,broken")
        config = LoggingConfig.from_env()
        assert config.library_levels["httpx"] == "INFO"
        assert config.library_levels["asyncpg"] == "DEBUG"
        assert "broken" not in config.library_levels

    def test_console_toggle(self, monkeypatch):
        monkeypatch.setenv("LOG_CONSOLE", "false")
        assert LoggingConfig.from_env().enable_console is False

    def test_defaults_are_independent(self):
        first = LoggingConfig()
        first.library_levels["httpx"] = "DEBUG"
        assert LoggingConfig().library_levels["httpx"] == "WARNING"
