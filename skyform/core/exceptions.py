"""Custom exception hierarchy for Skyform.

All skyform-specific exceptions inherit from SkyformError, enabling
callers to catch all skyform exceptions with a single except clause.
Resource operations never let these escape to the host; they are turned
into diagnostics at the resource boundary.
"""

from __future__ import annotations

from dataclasses import dataclass


class SkyformError(Exception):
    """Base exception for all Skyform errors."""


class ConfigurationError(SkyformError):
    """Raised for invalid provider configuration or client construction failures."""


class MappingError(SkyformError):
    """Raised when an API response or a model cannot be translated."""


class ImportIdError(SkyformError):
    """Raised when a composite identifier does not match the expected format."""

    def __init__(self, raw: str, expected_format: str) -> None:
        self.raw = raw
        self.expected_format = expected_format
        super().__init__(
            f"Expected import identifier with format: {expected_format}  Got: {raw!r}"
        )


@dataclass(frozen=True, slots=True)
class ApiError(SkyformError):
    """Error returned by a service API, carrying the HTTP status code."""

    status: int
    body: str = ""

    def __str__(self) -> str:
        return f"API error {self.status}: {self.body}"


class WaitError(SkyformError):
    """Base class for wait handler failures."""


class WaitTimeoutError(WaitError):
    """Raised when a wait handler exceeds its deadline."""


class TerminalStateError(WaitError):
    """Raised when a polled resource reaches a terminal failure state."""

    def __init__(self, description: str, state: str) -> None:
        self.description = description
        self.state = state
        super().__init__(f"{description} reached terminal state: {state}")


def is_not_found(err: BaseException) -> bool:
    match err:
        case ApiError(status=404):
            return True
        case _:
            return False


__all__ = [
    "SkyformError",
    "ConfigurationError",
    "MappingError",
    "ImportIdError",
    "ApiError",
    "WaitError",
    "WaitTimeoutError",
    "TerminalStateError",
    "is_not_found",
]
