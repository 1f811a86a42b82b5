"""Small translation helpers shared by the field mappers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from skyform.core.exceptions import MappingError
from skyform.core.values import ListValue, StringValue, is_undefined


def to_string_list(values: ListValue) -> list[str]:
    if is_undefined(values):
        return []
    result: list[str] = []
    for element in values.elements():
        if not isinstance(element, str):
            raise MappingError(f"expected list of str, got element {element!r}")
        result.append(element)
    return result


def string_list_value(values: Iterable[str] | None) -> ListValue:
    """API list -> model list; a missing list stays null, an empty one is known."""
    if values is None:
        return ListValue.null()
    return ListValue.of(values)


def reconcile_string_lists(ordered: Sequence[str], source: Sequence[str]) -> list[str]:
    """Keep the order of ``ordered`` and the content of ``source``.

    Elements of ``ordered`` missing from ``source`` are dropped and elements
    only in ``source`` are appended, so an API that returns a list in a
    different order than configured does not produce a diff.
    """
    wanted = set(source)
    result = [e for e in ordered if e in wanted]
    present = set(result)
    result.extend(e for e in source if e not in present)
    return result


def timestamp_value(raw: str | datetime | None) -> StringValue:
    """RFC 3339 rendering of an API timestamp."""
    match raw:
        case None:
            return StringValue.null()
        case datetime():
            ts = raw if raw.tzinfo else raw.replace(tzinfo=UTC)
        case str():
            try:
                ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError as e:
                raise MappingError(f"invalid timestamp {raw!r}") from e
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=UTC)
        case _:
            raise MappingError(f"invalid timestamp {raw!r}")
    return StringValue.of(ts.isoformat(timespec="seconds").replace("+00:00", "Z"))


def format_possible_values(*values: str) -> str:
    """Format values as a comma-separated list for schema descriptions."""
    formatted = ", ".join(f"`{v}`" for v in values)
    return f"Possible values are: {formatted}."


__all__ = [
    "to_string_list",
    "string_list_value",
    "reconcile_string_lists",
    "timestamp_value",
    "format_possible_values",
]
