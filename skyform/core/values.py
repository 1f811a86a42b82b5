"""Three-valued attribute values.

Every attribute of a resource model is either null (absent), unknown (to be
computed by the API) or known. The scalar kinds mirror what resource
schemas declare: strings, booleans and 64-bit integers; collections are
ordered lists, string maps (labels) and fixed-shape objects.

Example:
    >>> name = StringValue.of("my-table")
    >>> name.is_known()
    True
    >>> StringValue.from_optional(None).is_null()
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Self

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueState(Enum):
    NULL = "null"
    UNKNOWN = "unknown"
    KNOWN = "known"


@dataclass(frozen=True, slots=True)
class _Value[T]:
    _value: T | None = None
    state: ValueState = ValueState.NULL

    kind: ClassVar[str] = "value"

    @classmethod
    def _check(cls, value: Any) -> T:
        return value

    @classmethod
    def of(cls, value: T) -> Self:
        if value is None:
            raise ValueError(f"{cls.__name__}.of() requires a value, use null() instead")
        return cls(cls._check(value), ValueState.KNOWN)

    @classmethod
    def null(cls) -> Self:
        return cls(None, ValueState.NULL)

    @classmethod
    def unknown(cls) -> Self:
        return cls(None, ValueState.UNKNOWN)

    @classmethod
    def from_optional(cls, value: T | None) -> Self:
        return cls.null() if value is None else cls.of(value)

    def is_null(self) -> bool:
        return self.state is ValueState.NULL

    def is_unknown(self) -> bool:
        return self.state is ValueState.UNKNOWN

    def is_known(self) -> bool:
        return self.state is ValueState.KNOWN

    @property
    def value(self) -> T:
        if self.state is not ValueState.KNOWN:
            raise ValueError(f"{self.kind} value is {self.state.value}")
        return self._value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        return self._value if self.state is ValueState.KNOWN else default  # type: ignore[return-value]

    def optional(self) -> T | None:
        """The known value, or None for null and unknown."""
        return self._value if self.state is ValueState.KNOWN else None

    def __repr__(self) -> str:
        if self.state is ValueState.KNOWN:
            return f"{type(self).__name__}({self._value!r})"
        return f"{type(self).__name__}.{self.state.value}()"


class StringValue(_Value[str]):
    __slots__ = ()
    kind: ClassVar[str] = "string"

    @classmethod
    def _check(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeError(f"expected str, got {type(value).__name__}")
        return value


class BoolValue(_Value[bool]):
    __slots__ = ()
    kind: ClassVar[str] = "bool"

    @classmethod
    def _check(cls, value: Any) -> bool:
        if not isinstance(value, bool):
            raise TypeError(f"expected bool, got {type(value).__name__}")
        return value


class Int64Value(_Value[int]):
    __slots__ = ()
    kind: ClassVar[str] = "int64"

    @classmethod
    def _check(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"{value} does not fit in int64")
        return value


class ListValue(_Value[tuple[Any, ...]]):
    """Ordered list of values; elements are plain Python values or ObjectValues."""

    __slots__ = ()
    kind: ClassVar[str] = "list"

    @classmethod
    def _check(cls, value: Any) -> tuple[Any, ...]:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TypeError(f"expected an iterable, got {type(value).__name__}")
        return tuple(value)

    def elements(self) -> tuple[Any, ...]:
        return self._value if self.state is ValueState.KNOWN else ()  # type: ignore[return-value]


class MapValue(_Value[Mapping[str, str]]):
    """String to string map, used for labels."""

    __slots__ = ()
    kind: ClassVar[str] = "map"

    @classmethod
    def _check(cls, value: Any) -> Mapping[str, str]:
        if not isinstance(value, Mapping):
            raise TypeError(f"expected a mapping, got {type(value).__name__}")
        for k, v in value.items():
            if not isinstance(k, str) or not isinstance(v, str):
                raise TypeError(f"map entries must be str -> str, got {k!r}: {v!r}")
        return MappingProxyType(dict(value))

    def elements(self) -> dict[str, str]:
        return dict(self._value) if self.state is ValueState.KNOWN else {}  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MapValue):
            return NotImplemented
        return self.state is other.state and self.elements() == other.elements()

    def __hash__(self) -> int:
        return hash((self.state, tuple(sorted(self.elements().items()))))


@dataclass(frozen=True, slots=True)
class ObjectValue:
    """Fixed-shape nested object, e.g. a route's ``{type, value}`` next hop.

    ``attribute_names`` describes the shape and is kept for null and unknown
    objects too, so two null objects of different shapes are not equal.
    """

    attribute_names: tuple[str, ...]
    _attributes: Mapping[str, _Value[Any]] = field(default_factory=dict)
    state: ValueState = ValueState.NULL

    @classmethod
    def of(cls, attributes: Mapping[str, _Value[Any]]) -> ObjectValue:
        return cls(tuple(attributes), MappingProxyType(dict(attributes)), ValueState.KNOWN)

    @classmethod
    def null(cls, attribute_names: Iterable[str]) -> ObjectValue:
        return cls(tuple(attribute_names), MappingProxyType({}), ValueState.NULL)

    @classmethod
    def unknown(cls, attribute_names: Iterable[str]) -> ObjectValue:
        return cls(tuple(attribute_names), MappingProxyType({}), ValueState.UNKNOWN)

    def is_null(self) -> bool:
        return self.state is ValueState.NULL

    def is_unknown(self) -> bool:
        return self.state is ValueState.UNKNOWN

    def is_known(self) -> bool:
        return self.state is ValueState.KNOWN

    def __getitem__(self, name: str) -> _Value[Any]:
        if self.state is not ValueState.KNOWN:
            raise ValueError(f"object value is {self.state.value}")
        return self._attributes[name]

    def attributes(self) -> dict[str, _Value[Any]]:
        return dict(self._attributes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectValue):
            return NotImplemented
        return (
            self.state is other.state
            and set(self.attribute_names) == set(other.attribute_names)
            and dict(self._attributes) == dict(other._attributes)
        )

    def __hash__(self) -> int:
        return hash((self.state, frozenset(self.attribute_names)))


type AttributeValue = _Value[Any] | ObjectValue


def is_undefined(value: AttributeValue) -> bool:
    """Checks whether a value is null or unknown."""
    return value.is_null() or value.is_unknown()


__all__ = [
    "ValueState",
    "StringValue",
    "BoolValue",
    "Int64Value",
    "ListValue",
    "MapValue",
    "ObjectValue",
    "AttributeValue",
    "is_undefined",
]
