"""Logging configuration for skyform.

Every module logs through loguru with the operation's identifiers bound as
extra fields (``project_id``, ``region``, ``routing_table_id``...). Logging
is disabled until ``setup_logging`` is called; hosts that follow the usual
``SKYFORM_LOG`` convention can build the config with ``LogConfig.from_env``.

Example:
    from skyform.observability import LogConfig, setup_logging, teardown_logging

    handler_ids = setup_logging(LogConfig.from_env())
    ...
    teardown_logging(handler_ids)
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast, get_args

from loguru import logger

logger.disable("skyform")

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

LEVEL_ENV_VAR = "SKYFORM_LOG"
FILE_ENV_VAR = "SKYFORM_LOG_PATH"

# Rendered in this order; other extra fields stay out of the line.
CONTEXT_FIELDS = (
    "component", "service", "resource", "organization_id", "project_id",
    "region", "network_area_id", "routing_table_id", "route_id",
    "network_id", "token_id", "target", "request_id",
)

# Never written to a sink, whatever a caller binds.
REDACTED_FIELDS = frozenset({"token", "service_account_token", "content", "authorization"})

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> "
    "<cyan>{extra[component]}</cyan>{extra[_ctx]} <level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} {level: <7} {name}:{line} "
    "{extra[component]}{extra[_ctx]} {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where and how much skyform logs.

    Attributes:
        level: Minimum level for the console sink.
        file: Optional log file; always written at DEBUG.
        console: Log to stderr.
        rotation: loguru rotation policy for the file sink.
        retention: Number of rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LogConfig:
        """``SKYFORM_LOG`` picks the level; ``SKYFORM_LOG_PATH`` adds a file sink.

        An unknown level falls back to ``INFO``.
        """
        env = os.environ if environ is None else environ
        level = env.get(LEVEL_ENV_VAR, "INFO").upper()
        if level not in get_args(LogLevel.__value__):
            level = "INFO"
        return cls(level=cast(LogLevel, level), file=env.get(FILE_ENV_VAR) or None)


def _patch_record(record: Any) -> None:
    extra = record["extra"]
    for key in REDACTED_FIELDS & extra.keys():
        extra[key] = "***"
    extra.setdefault("component", "skyform")
    fields = [f"{k}={extra[k]}" for k in CONTEXT_FIELDS[1:] if k in extra]
    extra["_ctx"] = f" [{' '.join(fields)}]" if fields else ""


def setup_logging(config: LogConfig) -> list[int]:
    """Enable skyform logging and return the handler ids for ``teardown_logging``."""
    logger.enable("skyform")
    logger.configure(patcher=_patch_record)
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="skyform",
        ))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            config.file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,
            enqueue=True,
            filter="skyform",
        ))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("skyform")


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
