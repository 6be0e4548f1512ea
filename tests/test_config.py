"""Tests for configuration loading."""
import pytest

from print_orders.config import (
    DEFAULT_DATABASE_PATH,
    ConfigurationError,
    load_settings,
)


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings({})
        assert settings.database_path == DEFAULT_DATABASE_PATH
        assert settings.sticky_done is True
        assert settings.log_level == "INFO"

    def test_values_from_environment(self):
        settings = load_settings(
            {
                "PRINT_ORDERS_DATABASE": "/tmp/shop.sqlite3",
                "PRINT_ORDERS_STICKY_DONE": "no",
                "PRINT_ORDERS_LOG_LEVEL": "debug",
            }
        )
        assert settings.database_path == "/tmp/shop.sqlite3"
        assert settings.sticky_done is False
        assert settings.fulfillment_options.sticky_done is False
        assert settings.log_level == "DEBUG"

    def test_bad_boolean(self):
        with pytest.raises(ConfigurationError):
            load_settings({"PRINT_ORDERS_STICKY_DONE": "maybe"})

    def test_bad_log_level(self):
        with pytest.raises(ConfigurationError):
            load_settings({"PRINT_ORDERS_LOG_LEVEL": "LOUD"})

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PRINT_ORDERS_DATABASE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("PRINT_ORDERS_DATABASE=from-dotenv.sqlite3\n")
        settings = load_settings(env_file=env_file)
        assert settings.database_path == "from-dotenv.sqlite3"
