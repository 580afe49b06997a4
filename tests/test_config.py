"""Tests for settings and logging setup."""

import logging
from decimal import Decimal

import pytest

from hr_payroll.config import Settings
from hr_payroll.logging_config import configure_logging, reset_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "DATABASE_URL",
            "PORT",
            "DEBUG",
            "LOG_LEVEL",
            "IDEMPOTENCY_TTL_HOURS",
            "VARIANCE_THRESHOLD",
            "DEFAULT_CURRENCY",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("hr_payroll.config.load_dotenv", lambda: None)

        settings = Settings.from_env()

        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.port == 8000
        assert settings.debug is False
        assert settings.idempotency_ttl_hours == 24
        assert settings.variance_threshold == Decimal("0.5")
        assert settings.default_currency == "USD"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setattr("hr_payroll.config.load_dotenv", lambda: None)
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("DEBUG", "TRUE")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("VARIANCE_THRESHOLD", "0.25")

        settings = Settings.from_env()

        assert settings.PORT == 9001
        assert settings.DEBUG is True
        assert settings.log_level == "DEBUG"
        assert settings.variance_threshold == Decimal("0.25")


class TestLogging:
    @pytest.fixture(autouse=True)
    def clean_logging(self):
        reset_logging()
        yield
        reset_logging()

    def test_configure_once(self):
        first = logging.StreamHandler()
        second = logging.StreamHandler()

        configure_logging("DEBUG", handler=first)
        configure_logging("INFO", handler=second)

        logger = logging.getLogger("hr_payroll")
        assert logger.handlers == [first]
        assert logger.level == logging.DEBUG
