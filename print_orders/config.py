"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_PATH = "print_orders.sqlite3"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""


@dataclass(slots=True)
class FulfillmentOptions:
    """Tuning of the fulfillment state machine."""

    sticky_done: bool = True


@dataclass(slots=True)
class Settings:
    database_path: str = DEFAULT_DATABASE_PATH
    sticky_done: bool = True
    log_level: str = "INFO"

    @property
    def fulfillment_options(self) -> FulfillmentOptions:
        return FulfillmentOptions(sticky_done=self.sticky_done)


def _parse_bool(key: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
) -> Settings:
    """Build :class:`Settings` from environment variables.

    A ``.env`` file is read first when present; variables already set in the
    process environment win.
    """

    if environ is None:
        env_path = env_file or Path(".env")
        if env_path.exists():
            load_dotenv(env_path)
            logger.info("Loaded environment from %s", env_path)
        environ = os.environ

    settings = Settings()
    database_path = environ.get("PRINT_ORDERS_DATABASE", "").strip()
    if database_path:
        settings.database_path = database_path
    sticky_done = environ.get("PRINT_ORDERS_STICKY_DONE")
    if sticky_done is not None and sticky_done.strip():
        settings.sticky_done = _parse_bool("PRINT_ORDERS_STICKY_DONE", sticky_done)
    log_level = environ.get("PRINT_ORDERS_LOG_LEVEL", "").strip().upper()
    if log_level:
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unknown log level {log_level!r}")
        settings.log_level = log_level
    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = [
    "ConfigurationError",
    "FulfillmentOptions",
    "Settings",
    "load_settings",
    "configure_logging",
]
