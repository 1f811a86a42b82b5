from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from skyform.core import validate
from skyform.core.diagnostics import Diagnostics
from skyform.core.schema import (
    ListAttribute,
    MapAttribute,
    Schema,
    SingleNestedAttribute,
    StringAttribute,
)
from skyform.core.values import ListValue, MapValue, ObjectValue, StringValue

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

UUID = "1b2c3d4e-5f60-4718-89ab-cdef01234567"


def _errors(validator: validate.Validator, raw: str) -> list[str]:
    diags = Diagnostics()
    validator.validate("attr", StringValue.of(raw), diags)
    return [d.detail for d in diags.errors]


class TestValidators:
    def test_uuid(self):
        assert _errors(validate.uuid(), UUID) == []
        assert _errors(validate.uuid(), "not-a-uuid") == [
            "Attribute attr value must be an UUID, got: not-a-uuid"
        ]

    def test_no_uuid(self):
        assert _errors(validate.no_uuid(), "my-name") == []
        assert len(_errors(validate.no_uuid(), UUID)) == 1

    def test_no_separator(self):
        assert len(_errors(validate.no_separator(), "a,b")) == 1

    @pytest.mark.parametrize("raw,ok", [("10.0.0.1", True), ("::1", True), ("10.0.0", False)])
    def test_ip(self, raw: str, ok: bool):
        assert (_errors(validate.ip(), raw) == []) is ok

    def test_ip_zero_address(self):
        assert _errors(validate.ip(), "0.0.0.0") == []
        assert len(_errors(validate.ip(allow_zero_address=False), "0.0.0.0")) == 1

    @pytest.mark.parametrize(
        "raw,ok",
        [("58.251.236.138/32", True), ("2001:db8::/32", True), ("10.0.0.1", False), ("x/8", False)],
    )
    def test_cidr(self, raw: str, ok: bool):
        assert (_errors(validate.cidr(), raw) == []) is ok

    def test_one_of(self):
        v = validate.one_of("cidrv4", "cidrv6")
        assert _errors(v, "cidrv4") == []
        assert "must be one of" in _errors(v, "cidrv5")[0]

    def test_undefined_values_are_skipped(self):
        diags = Diagnostics()
        validate.uuid().validate("attr", StringValue.unknown(), diags)
        validate.uuid().validate("attr", StringValue.null(), diags)
        assert len(diags) == 0


@dataclass
class _Model:
    project_id: StringValue = field(default_factory=StringValue.null)
    name: StringValue = field(default_factory=StringValue.null)
    next_hop: ObjectValue = field(default_factory=lambda: ObjectValue.null(("type", "value")))
    servers: ListValue = field(default_factory=ListValue.null)
    labels: MapValue = field(default_factory=MapValue.null)


SCHEMA = Schema(
    description="Test schema.",
    attributes={
        "project_id": StringAttribute(required=True, validators=(validate.uuid(),)),
        "name": StringAttribute(optional=True),
        "next_hop": SingleNestedAttribute(
            optional=True,
            attributes={
                "type": StringAttribute(required=True, validators=(validate.one_of("ipv4", "ipv6"),)),
                "value": StringAttribute(optional=True, validators=(validate.ip(),)),
            },
        ),
        "servers": ListAttribute(optional=True),
        "labels": MapAttribute(optional=True),
        "not_on_model": StringAttribute(computed=True),
    },
)


class TestSchema:
    def test_valid_model(self):
        assert not SCHEMA.validate(_Model(project_id=StringValue.of(UUID))).has_error()

    def test_missing_required(self):
        diags = SCHEMA.validate(_Model())
        assert diags.has_error()
        assert diags.errors[0].attribute == "project_id"
        assert diags.errors[0].summary == "Missing required argument"

    def test_nested_validators(self):
        model = _Model(
            project_id=StringValue.of(UUID),
            next_hop=ObjectValue.of({"type": StringValue.of("ipv5"), "value": StringValue.of("nope")}),
        )
        attributes = {d.attribute for d in SCHEMA.validate(model).errors}
        assert attributes == {"next_hop.type", "next_hop.value"}

    def test_not_a_dataclass(self):
        with pytest.raises(TypeError):
            SCHEMA.validate({"project_id": UUID})

    def test_attribute_mode(self):
        assert StringAttribute(required=True).mode == "required"
        assert StringAttribute(optional=True, computed=True).mode == "optional, computed"
        assert StringAttribute(computed=True).mode == "computed"


@dataclass
class _Route:
    route_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)
    next_hop: ObjectValue = field(default_factory=lambda: ObjectValue.null(("type", "value")))
    labels: MapValue = field(default_factory=MapValue.null)


ROUTE_SCHEMA = Schema(
    description="Route.",
    attributes={
        "route_id": StringAttribute(computed=True, requires_replace=True),
        "region": StringAttribute(optional=True, computed=True, requires_replace=True),
        "next_hop": SingleNestedAttribute(
            required=True,
            attributes={
                "type": StringAttribute(required=True, requires_replace=True),
                "value": StringAttribute(optional=True, requires_replace=True),
            },
        ),
        "labels": MapAttribute(optional=True),
    },
)


def _hop(kind: str, value: str | None = None) -> ObjectValue:
    return ObjectValue.of({"type": StringValue.of(kind), "value": StringValue.from_optional(value)})


def _route(**overrides) -> _Route:
    route = _Route(
        route_id=StringValue.of("r-1"),
        region=StringValue.of("eu01"),
        next_hop=_hop("ipv4", "10.1.1.1"),
        labels=MapValue.of({"a": "1"}),
    )
    for key, value in overrides.items():
        setattr(route, key, value)
    return route


class TestReplacedAttributes:
    def test_label_change_is_in_place(self):
        plan = _route(labels=MapValue.of({"b": "2"}))
        assert ROUTE_SCHEMA.replaced_attributes(plan, _route()) == []

    def test_nested_change_names_the_leaf(self):
        plan = _route(next_hop=_hop("ipv4", "10.9.9.9"))
        assert ROUTE_SCHEMA.replaced_attributes(plan, _route()) == ["next_hop.value"]

    def test_variant_change(self):
        plan = _route(next_hop=_hop("blackhole"))
        assert ROUTE_SCHEMA.replaced_attributes(plan, _route()) == ["next_hop.type", "next_hop.value"]

    def test_unset_computed_keeps_state(self):
        plan = _route(route_id=StringValue.unknown(), region=StringValue.null())
        assert ROUTE_SCHEMA.replaced_attributes(plan, _route()) == []

    def test_configured_region_change(self):
        plan = _route(region=StringValue.of("eu02"))
        assert ROUTE_SCHEMA.replaced_attributes(plan, _route()) == ["region"]
