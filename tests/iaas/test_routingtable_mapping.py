from __future__ import annotations

from dataclasses import replace

import pytest

from skyform.core.exceptions import MappingError
from skyform.core.values import BoolValue, MapValue, ObjectValue, StringValue
from skyform.services.iaas.routingtable import route, routes, table, tables
from skyform.services.iaas.routingtable.shared import (
    TYPED_VALUE_ATTRIBUTES,
    RouteModel,
    RoutingTableModel,
    destination_from_object,
    map_route_model,
    map_routing_table_model,
    nexthop_from_object,
    route_payload,
    typed_object,
)
from skyform.services.iaas.types import (
    DestinationCIDRv4,
    NexthopBlackhole,
    NexthopInternet,
    NexthopIPv4,
    NexthopIPv6,
    parse_nexthop,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def _typed(kind: str, value: str | None = None) -> ObjectValue:
    return ObjectValue.of({"type": StringValue.of(kind), "value": StringValue.from_optional(value)})


def _route_model(**overrides) -> RouteModel:
    model = RouteModel(
        organization_id=StringValue.of("orgId"),
        network_area_id=StringValue.of("areaId"),
        routing_table_id=StringValue.of("tableId"),
    )
    for key, value in overrides.items():
        setattr(model, key, value)
    return model


ROUTE_RESPONSE = {
    "id": "routeId",
    "destination": {"type": "cidrv4", "value": "58.251.236.138/32"},
    "nexthop": {"type": "ipv4", "value": "10.20.42.2"},
    "labels": {"foo1": "bar1", "foo2": "bar2"},
    "createdAt": "2025-01-15T10:30:00Z",
    "updatedAt": "2025-01-16T08:00:00Z",
}


# ─── Routes ──────────────────────────────────────────────────────────


class TestMapRouteModel:
    def test_full_response(self):
        model = _route_model()
        map_route_model(ROUTE_RESPONSE, model, "eu02")
        assert model.id == StringValue.of("orgId,eu02,areaId,tableId,routeId")
        assert model.route_id == StringValue.of("routeId")
        assert model.destination == _typed("cidrv4", "58.251.236.138/32")
        assert model.next_hop == _typed("ipv4", "10.20.42.2")
        assert model.labels == MapValue.of({"foo1": "bar1", "foo2": "bar2"})
        assert model.created_at == StringValue.of("2025-01-15T10:30:00Z")
        assert model.updated_at == StringValue.of("2025-01-16T08:00:00Z")
        assert model.region == StringValue.of("eu02")

    def test_model_route_id_wins(self):
        model = _route_model(route_id=StringValue.of("known"))
        map_route_model({**ROUTE_RESPONSE, "id": "other"}, model, "eu01")
        assert model.route_id == StringValue.of("known")

    def test_nil_response(self):
        with pytest.raises(MappingError, match="response input is nil"):
            map_route_model(None, _route_model(), "eu01")

    def test_nil_model(self):
        with pytest.raises(MappingError, match="model input is nil"):
            map_route_model(ROUTE_RESPONSE, None, "eu01")

    def test_missing_id_leaves_model_unchanged(self):
        model = _route_model(labels=MapValue.of({"keep": "me"}))
        before = replace(model)
        response = {k: v for k, v in ROUTE_RESPONSE.items() if k != "id"}
        with pytest.raises(MappingError, match="route id not present"):
            map_route_model(response, model, "eu01")
        assert model == before

    def test_empty_nexthop_wrapper_is_an_error(self):
        model = _route_model()
        before = replace(model)
        with pytest.raises(MappingError, match="nexthop"):
            map_route_model({**ROUTE_RESPONSE, "nexthop": {}}, model, "eu01")
        assert model == before

    def test_absent_wrappers_become_null_objects(self):
        model = _route_model()
        map_route_model({"id": "r1"}, model, "eu01")
        assert model.next_hop.is_null()
        assert model.destination.is_null()
        assert model.labels.is_null()
        assert model.created_at.is_null()

    @pytest.mark.parametrize(
        "nexthop,expected",
        [
            ({"type": "blackhole"}, ("blackhole", None)),
            ({"type": "internet"}, ("internet", None)),
            ({"type": "ipv6", "value": "2001:db8::1"}, ("ipv6", "2001:db8::1")),
        ],
    )
    def test_nexthop_variants(self, nexthop, expected):
        model = _route_model()
        map_route_model({**ROUTE_RESPONSE, "nexthop": nexthop}, model, "eu01")
        assert model.next_hop == _typed(*expected)


class TestRouteList:
    def test_single_route(self):
        model = _route_model()
        route.map_fields_from_list({"items": [ROUTE_RESPONSE]}, model, "eu02")
        assert model.route_id.value == "routeId"

    def test_nil_response(self):
        with pytest.raises(MappingError, match="response input is nil"):
            route.map_fields_from_list(None, _route_model(), "eu01")

    def test_empty_items(self):
        with pytest.raises(MappingError, match="no routes found"):
            route.map_fields_from_list({"items": []}, _route_model(), "eu01")

    def test_more_than_one(self):
        with pytest.raises(MappingError, match="more than 1 route"):
            route.map_fields_from_list({"items": [ROUTE_RESPONSE, ROUTE_RESPONSE]}, _route_model(), "eu01")


class TestRoutesDataSourceMapping:
    def test_maps_every_route(self):
        model = routes.RoutesDataSourceModel(
            organization_id=StringValue.of("orgId"),
            network_area_id=StringValue.of("areaId"),
            routing_table_id=StringValue.of("tableId"),
        )
        second = {**ROUTE_RESPONSE, "id": "route2", "nexthop": {"type": "internet"}}
        routes.map_routes({"items": [ROUTE_RESPONSE, second]}, model, "eu01")
        assert model.id == StringValue.of("orgId,eu01,areaId,tableId")
        items = model.routes.value
        assert [item["route_id"].value for item in items] == ["routeId", "route2"]
        assert items[1]["next_hop"] == _typed("internet")

    def test_nil_items(self):
        with pytest.raises(MappingError, match="items input is nil"):
            routes.map_routes({}, routes.RoutesDataSourceModel(), "eu01")

    def test_bad_item_names_index(self):
        bad = {**ROUTE_RESPONSE, "destination": {"type": "cidrv9", "value": "x"}}
        with pytest.raises(MappingError, match="index 1"):
            routes.map_routes({"items": [ROUTE_RESPONSE, bad]}, routes.RoutesDataSourceModel(), "eu01")


# ─── Polymorphic wrappers ────────────────────────────────────────────


class TestTypedObjects:
    @pytest.mark.parametrize(
        "variant",
        [NexthopIPv4("10.0.0.1"), NexthopIPv6("::1"), NexthopInternet(), NexthopBlackhole()],
    )
    def test_nexthop_object_round_trip(self, variant):
        assert nexthop_from_object(typed_object(variant)) == variant

    def test_null_object(self):
        assert typed_object(None) == ObjectValue.null(TYPED_VALUE_ATTRIBUTES)
        assert nexthop_from_object(ObjectValue.unknown(TYPED_VALUE_ATTRIBUTES)) is None
        assert destination_from_object(ObjectValue.null(TYPED_VALUE_ATTRIBUTES)) is None

    def test_unknown_nexthop_type(self):
        with pytest.raises(MappingError, match="unknown nexthop type: gre"):
            nexthop_from_object(_typed("gre", "x"))

    def test_ip_nexthop_requires_value(self):
        with pytest.raises(MappingError, match="requires a value"):
            nexthop_from_object(_typed("ipv4"))

    def test_unknown_destination_type(self):
        with pytest.raises(MappingError, match="unknown destination type"):
            destination_from_object(_typed("cidrv5", "10.0.0.0/8"))

    def test_parse_nexthop_without_value(self):
        with pytest.raises(MappingError):
            parse_nexthop({"type": "ipv4"})


# ─── Payloads ────────────────────────────────────────────────────────


class TestRoutePayloads:
    def test_create_payload(self):
        model = _route_model(
            destination=_typed("cidrv4", "58.251.236.138/32"),
            next_hop=_typed("blackhole"),
            labels=MapValue.of({"env": "prod"}),
        )
        assert route.to_create_payload(model) == [{
            "labels": {"env": "prod"},
            "nexthop": {"type": "blackhole"},
            "destination": {"type": "cidrv4", "value": "58.251.236.138/32"},
        }]

    def test_create_payload_without_labels(self):
        model = _route_model(next_hop=_typed("internet"))
        assert route_payload(model) == {"labels": {}, "nexthop": {"type": "internet"}}

    def test_update_payload_is_label_diff(self):
        model = _route_model(labels=MapValue.of({"foo1": "bar1", "foo2": "bar2"}))
        payload = route.to_update_payload(model, MapValue.of({"foo1": "foobar", "foo3": "bar3"}))
        assert payload == {"labels": {"foo1": "bar1", "foo2": "bar2", "foo3": None}}

    def test_nil_model(self):
        with pytest.raises(MappingError, match="nil model"):
            route.to_update_payload(None, MapValue.null())
        with pytest.raises(MappingError, match="nil model"):
            route.to_create_payload(None)


# ─── Routing tables ──────────────────────────────────────────────────


TABLE_RESPONSE = {
    "id": "tableId",
    "name": "main",
    "description": "primary table",
    "labels": {"env": "prod"},
    "default": False,
    "systemRoutes": True,
    "createdAt": "2025-01-15T10:30:00Z",
    "updatedAt": "2025-01-15T10:30:00Z",
}


class TestRoutingTableMapping:
    def test_full_response(self):
        model = RoutingTableModel(
            organization_id=StringValue.of("orgId"), network_area_id=StringValue.of("areaId")
        )
        map_routing_table_model(TABLE_RESPONSE, model, "eu01")
        assert model.id.value == "orgId,eu01,areaId,tableId"
        assert model.name.value == "main"
        assert model.description.value == "primary table"
        assert model.system_routes.value is True
        assert model.default.value is False
        assert model.labels == MapValue.of({"env": "prod"})

    def test_missing_id_leaves_model_unchanged(self):
        model = RoutingTableModel(name=StringValue.of("before"))
        before = replace(model)
        with pytest.raises(MappingError, match="routing table id not present"):
            map_routing_table_model({"name": "after"}, model, "eu01")
        assert model == before

    def test_create_payload(self):
        model = RoutingTableModel(
            name=StringValue.of("main"),
            system_routes=BoolValue.of(False),
            labels=MapValue.of({"a": "1"}),
        )
        assert table.to_create_payload(model) == {
            "labels": {"a": "1"},
            "name": "main",
            "systemRoutes": False,
        }

    def test_update_payload(self):
        model = RoutingTableModel(
            name=StringValue.of("renamed"),
            description=StringValue.of(""),
            labels=MapValue.of({"a": "1"}),
        )
        assert table.to_update_payload(model, MapValue.of({"a": "1", "b": "2"})) == {
            "labels": {"b": None},
            "name": "renamed",
            "description": "",
        }


class TestRoutingTablesDataSourceMapping:
    def test_maps_every_table(self):
        model = tables.RoutingTablesDataSourceModel(
            organization_id=StringValue.of("orgId"), network_area_id=StringValue.of("areaId")
        )
        default = {**TABLE_RESPONSE, "id": "defaultId", "name": "default", "default": True}
        tables.map_routing_tables({"items": [TABLE_RESPONSE, default]}, model, "eu01")
        assert model.id == StringValue.of("orgId,eu01,areaId")
        assert model.region == StringValue.of("eu01")
        items = model.items.value
        assert [item["routing_table_id"].value for item in items] == ["tableId", "defaultId"]
        assert items[1]["default"] == BoolValue.of(True)
        assert items[0]["description"] == StringValue.of("primary table")

    def test_empty_list(self):
        model = tables.RoutingTablesDataSourceModel()
        tables.map_routing_tables({"items": []}, model, "eu01")
        assert model.items.value == ()

    def test_nil_items(self):
        with pytest.raises(MappingError, match="items input is nil"):
            tables.map_routing_tables({}, tables.RoutingTablesDataSourceModel(), "eu01")

    def test_nil_response(self):
        with pytest.raises(MappingError, match="response input is nil"):
            tables.map_routing_tables(None, tables.RoutingTablesDataSourceModel(), "eu01")

    def test_bad_item_names_index(self):
        missing_id = {k: v for k, v in TABLE_RESPONSE.items() if k != "id"}
        with pytest.raises(MappingError, match="index 1: routing table id not present"):
            tables.map_routing_tables(
                {"items": [TABLE_RESPONSE, missing_id]}, tables.RoutingTablesDataSourceModel(), "eu01"
            )
