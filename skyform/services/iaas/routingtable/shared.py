"""Models, schema attributes and field mappers shared by the routing table
resources and data sources."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from skyform.config import ProviderData
from skyform.core import validate
from skyform.core.conversion import format_possible_values, timestamp_value
from skyform.core.diagnostics import Diagnostics
from skyform.core.exceptions import MappingError
from skyform.core.identity import CompositeId
from skyform.core.labels import map_labels
from skyform.core.schema import (
    Attribute,
    BoolAttribute,
    MapAttribute,
    SingleNestedAttribute,
    StringAttribute,
)
from skyform.core.values import BoolValue, MapValue, ObjectValue, StringValue, is_undefined
from skyform.features import ROUTING_TABLES_EXPERIMENT, check_experiment_enabled

from ..client import IaasClient, configure_client
from ..types import (
    DESTINATION_TYPES,
    NEXTHOP_TYPES,
    Destination,
    DestinationCIDRv4,
    DestinationCIDRv6,
    Nexthop,
    NexthopBlackhole,
    NexthopInternet,
    NexthopIPv4,
    NexthopIPv6,
    RouteResponse,
    RoutingTableResponse,
    destination_payload,
    nexthop_payload,
    parse_destination,
    parse_nexthop,
)

ROUTING_TABLE_ID = CompositeId(("organization_id", "region", "network_area_id", "routing_table_id"))
ROUTE_ID = CompositeId(
    ("organization_id", "region", "network_area_id", "routing_table_id", "route_id")
)

TYPED_VALUE_ATTRIBUTES = ("type", "value")


# =============================================================================
# Models
# =============================================================================


@dataclass(slots=True)
class RouteReadModel:
    route_id: StringValue = field(default_factory=StringValue.null)
    destination: ObjectValue = field(default_factory=lambda: ObjectValue.null(TYPED_VALUE_ATTRIBUTES))
    next_hop: ObjectValue = field(default_factory=lambda: ObjectValue.null(TYPED_VALUE_ATTRIBUTES))
    labels: MapValue = field(default_factory=MapValue.null)
    created_at: StringValue = field(default_factory=StringValue.null)
    updated_at: StringValue = field(default_factory=StringValue.null)


@dataclass(slots=True)
class RouteModel(RouteReadModel):
    id: StringValue = field(default_factory=StringValue.null)
    organization_id: StringValue = field(default_factory=StringValue.null)
    network_area_id: StringValue = field(default_factory=StringValue.null)
    routing_table_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)


@dataclass(slots=True)
class RoutingTableReadModel:
    routing_table_id: StringValue = field(default_factory=StringValue.null)
    name: StringValue = field(default_factory=StringValue.null)
    description: StringValue = field(default_factory=StringValue.null)
    labels: MapValue = field(default_factory=MapValue.null)
    default: BoolValue = field(default_factory=BoolValue.null)
    system_routes: BoolValue = field(default_factory=BoolValue.null)
    created_at: StringValue = field(default_factory=StringValue.null)
    updated_at: StringValue = field(default_factory=StringValue.null)


@dataclass(slots=True)
class RoutingTableModel(RoutingTableReadModel):
    id: StringValue = field(default_factory=StringValue.null)
    organization_id: StringValue = field(default_factory=StringValue.null)
    network_area_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)


# =============================================================================
# Polymorphic sub-objects
# =============================================================================


def typed_object(variant: Nexthop | Destination | None) -> ObjectValue:
    """``{type, value}`` object for a next hop or destination; null for ``None``."""
    if variant is None:
        return ObjectValue.null(TYPED_VALUE_ATTRIBUTES)
    return ObjectValue.of({
        "type": StringValue.of(variant.type),
        "value": StringValue.from_optional(variant.value),
    })


def _typed_fields(obj: ObjectValue) -> tuple[str, str | None]:
    kind = obj["type"]
    value = obj["value"]
    if not isinstance(kind, StringValue) or not kind.is_known():
        raise MappingError("type is not set")
    return kind.value, value.optional()


def nexthop_from_object(obj: ObjectValue) -> Nexthop | None:
    if is_undefined(obj):
        return None
    kind, value = _typed_fields(obj)
    match kind, value:
        case "ipv4", str():
            return NexthopIPv4(value)
        case "ipv6", str():
            return NexthopIPv6(value)
        case "internet", _:
            return NexthopInternet()
        case "blackhole", _:
            return NexthopBlackhole()
        case ("ipv4" | "ipv6"), None:
            raise MappingError(f"nexthop type {kind} requires a value")
    raise MappingError(f"unknown nexthop type: {kind}")


def destination_from_object(obj: ObjectValue) -> Destination | None:
    if is_undefined(obj):
        return None
    kind, value = _typed_fields(obj)
    if kind not in DESTINATION_TYPES:
        raise MappingError(f"unknown destination type: {kind}")
    if value is None:
        raise MappingError(f"destination type {kind} requires a value")
    return DestinationCIDRv4(value) if kind == "cidrv4" else DestinationCIDRv6(value)


# =============================================================================
# Mappers
# =============================================================================


def _resolve_id(current: StringValue, response: Mapping[str, Any], what: str) -> str:
    if current.is_known() and current.value:
        return current.value
    if (found := response.get("id")) is not None:
        return found
    raise MappingError(f"{what} id not present")


def map_route_read_model(route: RouteResponse | None, model: RouteReadModel | None) -> None:
    """Copy a route response into ``model``; the model is untouched on error."""
    if route is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    route_id = _resolve_id(model.route_id, route, "route")
    labels = map_labels(route.get("labels"), model.labels)
    destination = typed_object(parse_destination(route.get("destination")))
    next_hop = typed_object(parse_nexthop(route.get("nexthop")))
    created_at = timestamp_value(route.get("createdAt"))
    updated_at = timestamp_value(route.get("updatedAt"))

    model.route_id = StringValue.of(route_id)
    model.destination = destination
    model.next_hop = next_hop
    model.labels = labels
    model.created_at = created_at
    model.updated_at = updated_at


def map_route_model(route: RouteResponse | None, model: RouteModel | None, region: str) -> None:
    if route is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    map_route_read_model(route, model)
    model.id = StringValue.of(ROUTE_ID.build(
        model.organization_id.value_or(""),
        region,
        model.network_area_id.value_or(""),
        model.routing_table_id.value_or(""),
        model.route_id.value,
    ))
    model.region = StringValue.of(region)


def map_routing_table_read_model(
    table: RoutingTableResponse | None, model: RoutingTableReadModel | None
) -> None:
    if table is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    routing_table_id = _resolve_id(model.routing_table_id, table, "routing table")
    labels = map_labels(table.get("labels"), model.labels)
    created_at = timestamp_value(table.get("createdAt"))
    updated_at = timestamp_value(table.get("updatedAt"))

    model.routing_table_id = StringValue.of(routing_table_id)
    model.name = StringValue.from_optional(table.get("name"))
    model.description = StringValue.from_optional(table.get("description"))
    model.default = BoolValue.from_optional(table.get("default"))
    model.system_routes = BoolValue.from_optional(table.get("systemRoutes"))
    model.labels = labels
    model.created_at = created_at
    model.updated_at = updated_at


def map_routing_table_model(
    table: RoutingTableResponse | None, model: RoutingTableModel | None, region: str
) -> None:
    if table is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    map_routing_table_read_model(table, model)
    model.id = StringValue.of(ROUTING_TABLE_ID.build(
        model.organization_id.value_or(""),
        region,
        model.network_area_id.value_or(""),
        model.routing_table_id.value,
    ))
    model.region = StringValue.of(region)


def route_payload(model: RouteReadModel | None) -> dict[str, Any]:
    """One route item for the add-routes request."""
    if model is None:
        raise MappingError("nil model")

    payload: dict[str, Any] = {"labels": model.labels.elements() if model.labels.is_known() else {}}
    if (next_hop := nexthop_from_object(model.next_hop)) is not None:
        payload["nexthop"] = nexthop_payload(next_hop)
    if (destination := destination_from_object(model.destination)) is not None:
        payload["destination"] = destination_payload(destination)
    return payload


# =============================================================================
# Configuration
# =============================================================================


class RoutingTablesComponent:
    """Client setup shared by everything in the routing-tables experiment."""

    client: IaasClient | None = None

    def configure_client(self, data: ProviderData, diags: Diagnostics) -> None:
        local = Diagnostics()
        check_experiment_enabled(data, ROUTING_TABLES_EXPERIMENT, self.type_name, self.kind, local)  # type: ignore[attr-defined]
        diags.extend(local)
        if local.has_error():
            return
        self.client = configure_client(data, diags)


# =============================================================================
# Schema attributes
# =============================================================================

KEY_VALIDATORS = (validate.uuid(), validate.no_separator())


def key_attributes() -> dict[str, Attribute]:
    """Attributes a data source is looked up by."""
    return {
        "organization_id": StringAttribute(
            description="Organization ID to which the routing table is associated.",
            required=True,
            validators=KEY_VALIDATORS,
        ),
        "routing_table_id": StringAttribute(
            description="The routing tables ID.",
            required=True,
            validators=KEY_VALIDATORS,
        ),
        "network_area_id": StringAttribute(
            description="The network area ID to which the routing table is associated.",
            required=True,
            validators=KEY_VALIDATORS,
        ),
        "region": StringAttribute(
            description="The resource region. If not defined, the provider region is used.",
            optional=True,
        ),
    }


def typed_value_attributes(type_description: str, value_description: str) -> dict[str, Attribute]:
    return {
        "type": StringAttribute(description=type_description, computed=True),
        "value": StringAttribute(description=value_description, computed=True),
    }


def route_response_attributes() -> dict[str, Attribute]:
    return {
        "route_id": StringAttribute(description="Route ID.", computed=True),
        "destination": SingleNestedAttribute(
            description="Destination of the route.",
            computed=True,
            attributes=typed_value_attributes(
                f"CIDRV type. {format_possible_values(*DESTINATION_TYPES)}", "An CIDR string."
            ),
        ),
        "next_hop": SingleNestedAttribute(
            description="Next hop destination.",
            computed=True,
            attributes=typed_value_attributes(
                f"Type of the next hop. {format_possible_values(*NEXTHOP_TYPES)}",
                "Either IPv4 or IPv6 (not set for blackhole and internet).",
            ),
        ),
        "labels": MapAttribute(
            description="Labels are key-value string pairs which can be attached to a resource container",
            computed=True,
        ),
        "created_at": StringAttribute(description="Date-time when the route was created", computed=True),
        "updated_at": StringAttribute(description="Date-time when the route was updated", computed=True),
    }


def routing_table_response_attributes() -> dict[str, Attribute]:
    return {
        "routing_table_id": StringAttribute(description="The routing tables ID.", computed=True),
        "name": StringAttribute(description="The name of the routing table.", computed=True),
        "description": StringAttribute(description="Description of the routing table.", computed=True),
        "labels": MapAttribute(
            description="Labels are key-value string pairs which can be attached to a resource container",
            computed=True,
        ),
        "default": BoolAttribute(
            description=(
                "When true this is the default routing table for this network area. It can't be "
                "deleted and is used if the user does not specify it otherwise."
            ),
            computed=True,
        ),
        "system_routes": BoolAttribute(
            description=(
                "This controls whether the routes for project-to-project communication are "
                "created automatically or not."
            ),
            computed=True,
        ),
        "created_at": StringAttribute(
            description="Date-time when the routing table was created", computed=True
        ),
        "updated_at": StringAttribute(
            description="Date-time when the routing table was updated", computed=True
        ),
    }


__all__ = [
    "KEY_VALIDATORS",
    "RoutingTablesComponent",
    "ROUTE_ID",
    "ROUTING_TABLE_ID",
    "TYPED_VALUE_ATTRIBUTES",
    "RouteReadModel",
    "RouteModel",
    "RoutingTableReadModel",
    "RoutingTableModel",
    "typed_object",
    "nexthop_from_object",
    "destination_from_object",
    "map_route_read_model",
    "map_route_model",
    "map_routing_table_read_model",
    "map_routing_table_model",
    "route_payload",
    "key_attributes",
    "typed_value_attributes",
    "route_response_attributes",
    "routing_table_response_attributes",
]
