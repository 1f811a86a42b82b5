"""Declarative attribute schemas for resources and data sources.

A schema is static data: attribute names, kinds, required/optional/computed
flags and validators. ``Schema.validate`` checks a model against it before an
operation talks to the API.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any

from skyform.core.diagnostics import Diagnostics
from skyform.core.validate import Validator
from skyform.core.values import ObjectValue, StringValue, is_undefined


@dataclass(frozen=True, slots=True, kw_only=True)
class Attribute:
    description: str = ""
    required: bool = False
    optional: bool = False
    computed: bool = False
    sensitive: bool = False
    requires_replace: bool = False
    validators: tuple[Validator, ...] = ()

    kind = "attribute"

    @property
    def mode(self) -> str:
        if self.required:
            return "required"
        if self.optional and self.computed:
            return "optional, computed"
        if self.optional:
            return "optional"
        return "computed"


@dataclass(frozen=True, slots=True, kw_only=True)
class StringAttribute(Attribute):
    kind = "string"


@dataclass(frozen=True, slots=True, kw_only=True)
class BoolAttribute(Attribute):
    kind = "bool"


@dataclass(frozen=True, slots=True, kw_only=True)
class Int64Attribute(Attribute):
    kind = "int64"


@dataclass(frozen=True, slots=True, kw_only=True)
class ListAttribute(Attribute):
    element_kind: str = "string"
    kind = "list"


@dataclass(frozen=True, slots=True, kw_only=True)
class MapAttribute(Attribute):
    element_kind: str = "string"
    kind = "map"


@dataclass(frozen=True, slots=True, kw_only=True)
class SingleNestedAttribute(Attribute):
    attributes: Mapping[str, Attribute] = field(default_factory=dict)
    kind = "object"


@dataclass(frozen=True, slots=True, kw_only=True)
class ListNestedAttribute(Attribute):
    attributes: Mapping[str, Attribute] = field(default_factory=dict)
    kind = "list(object)"


@dataclass(frozen=True, slots=True)
class Schema:
    description: str
    attributes: Mapping[str, Attribute]

    def validate(self, model: Any) -> Diagnostics:
        """Check required attributes and run string validators over a model."""
        diags = Diagnostics()
        if not is_dataclass(model):
            raise TypeError(f"expected a model dataclass, got {type(model).__name__}")
        values = {f.name: getattr(model, f.name) for f in fields(model)}
        for name, attribute in self.attributes.items():
            if name not in values:
                continue
            _validate_attribute(name, attribute, values[name], diags)
        return diags

    def replaced_attributes(self, plan: Any, state: Any) -> list[str]:
        """Paths of ``requires_replace`` attributes whose planned value differs from state.

        A computed attribute left null or unknown in the plan keeps its state
        value and is not a change.
        """
        paths: list[str] = []
        for name, attribute in self.attributes.items():
            if hasattr(plan, name) and hasattr(state, name):
                _collect_replaced(name, attribute, getattr(plan, name), getattr(state, name), paths)
        return paths


def _collect_replaced(
    path: str, attribute: Attribute, planned: Any, current: Any, paths: list[str]
) -> None:
    if attribute.computed and is_undefined(planned):
        return
    if attribute.requires_replace:
        if planned != current:
            paths.append(path)
        return
    match attribute, planned, current:
        case SingleNestedAttribute(attributes=nested), ObjectValue(), ObjectValue() if (
            planned.is_known() and current.is_known()
        ):
            for name, child in nested.items():
                if name in planned.attribute_names and name in current.attribute_names:
                    _collect_replaced(f"{path}.{name}", child, planned[name], current[name], paths)


def _validate_attribute(path: str, attribute: Attribute, value: Any, diags: Diagnostics) -> None:
    if attribute.required and value.is_null():
        diags.add_error(
            "Missing required argument",
            f'The argument "{path}" is required, but no definition was found.',
            attribute=path,
        )
        return
    match attribute, value:
        case StringAttribute(validators=validators), StringValue():
            for validator in validators:
                validator.validate(path, value, diags)
        case SingleNestedAttribute(attributes=nested), ObjectValue() if not is_undefined(value):
            for name, child in nested.items():
                if name in value.attribute_names:
                    _validate_attribute(f"{path}.{name}", child, value[name], diags)


__all__ = [
    "Attribute",
    "StringAttribute",
    "BoolAttribute",
    "Int64Attribute",
    "ListAttribute",
    "MapAttribute",
    "SingleNestedAttribute",
    "ListNestedAttribute",
    "Schema",
]
