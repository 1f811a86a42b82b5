"""Operation diagnostics.

Resource operations report failures as diagnostics instead of raising, so
the host can surface them to the user while sibling resources keep going.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from skyform.core.exceptions import ApiError


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    severity: Severity
    summary: str
    detail: str = ""
    attribute: str | None = None

    def __str__(self) -> str:
        where = f" ({self.attribute})" if self.attribute else ""
        return f"{self.severity.value}: {self.summary}{where}: {self.detail}"


@dataclass(slots=True)
class Diagnostics:
    items: list[Diagnostic] = field(default_factory=list)

    def add_error(self, summary: str, detail: str = "", *, attribute: str | None = None) -> None:
        self.items.append(Diagnostic(Severity.ERROR, summary, detail, attribute))

    def add_warning(self, summary: str, detail: str = "", *, attribute: str | None = None) -> None:
        self.items.append(Diagnostic(Severity.WARNING, summary, detail, attribute))

    def extend(self, other: Diagnostics) -> None:
        self.items.extend(other.items)

    def has_error(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.WARNING]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def log_and_add_error(
    diags: Diagnostics, summary: str, detail: str, **fields: Any
) -> None:
    logger.bind(component="diagnostics", **fields).error(
        "{summary} | {detail}", summary=summary, detail=detail
    )
    diags.add_error(summary, detail)


def log_and_add_warning(
    diags: Diagnostics, summary: str, detail: str, **fields: Any
) -> None:
    logger.bind(component="diagnostics", **fields).warning(
        "{summary} | {detail}", summary=summary, detail=detail
    )
    diags.add_warning(summary, detail)


def log_error(
    diags: Diagnostics,
    err: BaseException | None,
    summary: str,
    default_detail: str,
    details_by_status: Mapping[int, str] | None = None,
    **fields: Any,
) -> None:
    """Record an API failure, picking a status-specific description when available."""
    if err is None:
        return
    logger.bind(component="diagnostics", **fields).error(
        "{summary}. Err: {err}", summary=summary, err=err
    )

    match err:
        case ApiError(status=status):
            detail = (details_by_status or {}).get(status) or default_detail
        case _:
            detail = f"Calling API: {err}"
    diags.add_error(summary, detail)


__all__ = [
    "Severity",
    "Diagnostic",
    "Diagnostics",
    "log_and_add_error",
    "log_and_add_warning",
    "log_error",
]
