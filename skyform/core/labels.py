"""Label maps: reading them from API responses and diffing them for updates.

Labels are replaced wholesale on create and updated by diff: only keys
whose value changed or that were added are sent, and removed keys are sent
with ``None`` so the API deletes them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from skyform.core.exceptions import MappingError
from skyform.core.values import MapValue, is_undefined

type LabelPatch = dict[str, str | None]


def to_string_map(labels: MapValue) -> dict[str, str]:
    """Known map -> plain dict; null and unknown maps become an empty dict."""
    if is_undefined(labels):
        return {}
    return labels.elements()


def diff_labels(desired: MapValue, current: MapValue) -> LabelPatch:
    """Compute the partial update payload that turns ``current`` into ``desired``.

    Unchanged keys are omitted. An empty string is a real value, not a deletion.

    Example:
        >>> diff_labels(
        ...     MapValue.of({"foo1": "bar1", "foo2": "bar2"}),
        ...     MapValue.of({"foo1": "foobar", "foo3": "bar3"}),
        ... )
        {'foo1': 'bar1', 'foo2': 'bar2', 'foo3': None}
    """
    want = to_string_map(desired)
    have = to_string_map(current)

    patch: LabelPatch = {}
    for key, value in want.items():
        if key not in have or have[key] != value:
            patch[key] = value
    for key in have:
        if key not in want:
            patch[key] = None
    return patch


def map_labels(response_labels: Mapping[str, Any] | None, current: MapValue) -> MapValue:
    """Translate response labels into the model's label map.

    When the API omits labels, a model that had none stays null while a model
    that had labels gets an empty map, so a removed label set does not show
    up as a perpetual diff.
    """
    if response_labels is None:
        if current.is_null():
            return MapValue.null()
        return MapValue.of({})

    labels: dict[str, str] = {}
    for key, value in response_labels.items():
        if not isinstance(value, str):
            raise MappingError(f"label {key!r} has non-string value {value!r}")
        labels[key] = value
    return MapValue.of(labels)


__all__ = ["LabelPatch", "to_string_map", "diff_labels", "map_labels"]
