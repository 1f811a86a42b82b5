"""Composite resource identifiers.

A resource's internal ID is the comma-joined, fixed-order tuple of the keys
needed to address it in the API, e.g. ``project_id,region,network_id``.
The same order is used when parsing an import string, so ``build`` and
``parse`` are exact inverses for well-formed parts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from skyform.core.exceptions import ImportIdError

SEPARATOR = ","


def build_id(*parts: str) -> str:
    return SEPARATOR.join(parts)


def _format(fields: Sequence[str]) -> str:
    return SEPARATOR.join(f"[{f}]" for f in fields)


def parse_id(raw: str, expected_parts: int, *, expected_format: str | None = None) -> tuple[str, ...]:
    """Split a composite identifier into its parts.

    Raises:
        ImportIdError: If the number of parts differs from ``expected_parts``
            or any part is empty.
    """
    parts = raw.split(SEPARATOR)
    if len(parts) != expected_parts or any(p == "" for p in parts):
        fmt = expected_format or _format([f"part{i + 1}" for i in range(expected_parts)])
        raise ImportIdError(raw, fmt)
    return tuple(parts)


@dataclass(frozen=True, slots=True)
class CompositeId:
    """Identifier layout of one resource type.

    Example:
        >>> token_id = CompositeId(("project_id", "token_id"))
        >>> token_id.build("pid", "tid")
        'pid,tid'
        >>> token_id.format
        '[project_id],[token_id]'
    """

    fields: tuple[str, ...]

    @property
    def format(self) -> str:
        return _format(self.fields)

    def build(self, *parts: str) -> str:
        if len(parts) != len(self.fields):
            raise ValueError(f"expected {len(self.fields)} id parts ({self.format}), got {len(parts)}")
        return build_id(*parts)

    def parse(self, raw: str) -> tuple[str, ...]:
        return parse_id(raw, len(self.fields), expected_format=self.format)

    def parse_dict(self, raw: str) -> dict[str, str]:
        return dict(zip(self.fields, self.parse(raw), strict=True))


__all__ = ["SEPARATOR", "build_id", "parse_id", "CompositeId"]
