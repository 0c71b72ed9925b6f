"""
Configuration for the payments engine.
Values come from environment variables, optionally loaded from a .env file.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_log_level(name: str, value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"{name} must be a logging level name, got {value!r}")
    return level


@dataclass
class EngineConfig:
    """Runtime settings for the CLI"""
    log_level: int = logging.WARNING
    num_consumers: int = 0  # 0 = process on the main thread
    freeze_locked_accounts: bool = False
    strict_headers: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "EngineConfig":
        if environ is None:
            if dotenv:
                # .env is looked up from the working directory
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        num_consumers_str = environ.get("PAYMENTS_NUM_CONSUMERS", "0")
        try:
            num_consumers = int(num_consumers_str)
        except ValueError as e:
            raise ValueError(f"PAYMENTS_NUM_CONSUMERS must be an integer, got {num_consumers_str!r}") from e
        if num_consumers < 0:
            raise ValueError(f"PAYMENTS_NUM_CONSUMERS must be >= 0, got {num_consumers}")

        return cls(
            log_level=_parse_log_level("PAYMENTS_LOG_LEVEL", environ.get("PAYMENTS_LOG_LEVEL", "WARNING")),
            num_consumers=num_consumers,
            freeze_locked_accounts=_parse_bool(
                "PAYMENTS_FREEZE_LOCKED_ACCOUNTS", environ.get("PAYMENTS_FREEZE_LOCKED_ACCOUNTS", "false")
            ),
            strict_headers=_parse_bool("PAYMENTS_STRICT_HEADERS", environ.get("PAYMENTS_STRICT_HEADERS", "false")),
        )
