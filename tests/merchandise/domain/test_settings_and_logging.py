"""Tests for settings loading and logging configuration."""

import logging

import structlog
from merchandise.config import Settings, get_settings
from merchandise.utils.logging import get_log_level, setup_stdlib_logging


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MERCHANDISE_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url == "sqlite:///merchandise.db"
        assert settings.publish_topic == "ops.item_update"
        assert settings.relist_delay_days == 7
        assert settings.duplicate_listing_delay_minutes == 15

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MERCHANDISE_PUBLISH_TOPIC", "ops.item_update.staging")
        monkeypatch.setenv("MERCHANDISE_RELIST_DELAY_DAYS", "3")

        settings = Settings(_env_file=None)
        assert settings.publish_topic == "ops.item_update.staging"
        assert settings.relist_delay_days == 3

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestLogLevel:
    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        assert get_log_level("production") == "INFO"
        assert get_log_level("Staging") == "INFO"
        assert get_log_level("test") == "WARNING"
        assert get_log_level("sandbox") == "INFO"

    def test_explicit_level_wins_over_environment_map(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert get_log_level("production", "ERROR") == "ERROR"

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert get_log_level("production", "ERROR") == "DEBUG"


class TestStdlibLogging:
    def test_rotating_files_are_created(self, tmp_path):
        root = logging.getLogger()
        previous_handlers, previous_level = root.handlers[:], root.level

        try:
            setup_stdlib_logging(level="INFO", log_dir=str(tmp_path), log_file_prefix="merch")

            assert (tmp_path / "merch.log").exists()
            assert (tmp_path / "merch_error.log").exists()
            assert root.level == logging.INFO
            assert len(root.handlers) == 3
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = previous_handlers
            root.setLevel(previous_level)

    def test_sql_echo_raises_statement_logging(self, tmp_path):
        root = logging.getLogger()
        previous_handlers, previous_level = root.handlers[:], root.level
        sql_logger = logging.getLogger("sqlalchemy.engine")
        previous_sql_level = sql_logger.level

        try:
            setup_stdlib_logging(level="INFO", log_dir=str(tmp_path), echo_sql=True)

            assert sql_logger.level == logging.INFO
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = previous_handlers
            root.setLevel(previous_level)
            sql_logger.setLevel(previous_sql_level)


class TestContext:
    def test_bound_context_is_scoped(self):
        with structlog.contextvars.bound_contextvars(item_number="ITEM-001"):
            assert structlog.contextvars.get_contextvars()["item_number"] == "ITEM-001"

        assert "item_number" not in structlog.contextvars.get_contextvars()
