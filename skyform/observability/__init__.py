"""Observability for skyform: logging configuration."""

from .logging import (
    CONSOLE_FORMAT,
    FILE_ENV_VAR,
    FILE_FORMAT,
    LEVEL_ENV_VAR,
    LogConfig,
    LogLevel,
    setup_logging,
    teardown_logging,
)

__all__ = [
    "LogConfig",
    "LogLevel",
    "LEVEL_ENV_VAR",
    "FILE_ENV_VAR",
    "CONSOLE_FORMAT",
    "FILE_FORMAT",
    "setup_logging",
    "teardown_logging",
]
