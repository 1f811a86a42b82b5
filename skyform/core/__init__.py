"""Provider core: values, identity codec, mappers and diagnostics."""

from .diagnostics import Diagnostic, Diagnostics, Severity
from .exceptions import (
    ApiError,
    ConfigurationError,
    ImportIdError,
    MappingError,
    SkyformError,
    TerminalStateError,
    WaitError,
    WaitTimeoutError,
    is_not_found,
)
from .identity import SEPARATOR, CompositeId
from .labels import diff_labels, map_labels, to_string_map
from .values import (
    BoolValue,
    Int64Value,
    ListValue,
    MapValue,
    ObjectValue,
    StringValue,
    is_undefined,
)

__all__ = [
    "Diagnostic",
    "Diagnostics",
    "Severity",
    "SkyformError",
    "ConfigurationError",
    "MappingError",
    "ImportIdError",
    "ApiError",
    "WaitError",
    "WaitTimeoutError",
    "TerminalStateError",
    "is_not_found",
    "SEPARATOR",
    "CompositeId",
    "diff_labels",
    "map_labels",
    "to_string_map",
    "StringValue",
    "BoolValue",
    "Int64Value",
    "ListValue",
    "MapValue",
    "ObjectValue",
    "is_undefined",
]
