"""``skyform_routing_table_route`` resource and data source."""

from __future__ import annotations

from typing import Any

from loguru import logger

from skyform.core import validate
from skyform.core.conversion import format_possible_values
from skyform.core.diagnostics import log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError, is_not_found
from skyform.core.labels import diff_labels
from skyform.core.schema import (
    MapAttribute,
    Schema,
    SingleNestedAttribute,
    StringAttribute,
)
from skyform.core.values import MapValue, StringValue
from skyform.resource import (
    CreateRequest,
    DataSource,
    DataSourceReadRequest,
    DeleteRequest,
    ReadRequest,
    Resource,
    Response,
    UpdateRequest,
)

from ..types import DESTINATION_TYPES, NEXTHOP_TYPES, RouteListResponse
from .shared import (
    KEY_VALIDATORS,
    ROUTE_ID,
    RouteModel,
    RoutingTablesComponent,
    key_attributes,
    map_route_model,
    route_payload,
    route_response_attributes,
)


def map_fields_from_list(
    routes: RouteListResponse | None, model: RouteModel | None, region: str
) -> None:
    """Map the single route returned by the add-routes call."""
    if routes is None:
        raise MappingError("response input is nil")
    items = routes.get("items") or []
    if not items:
        raise MappingError("no routes found in response")
    if len(items) > 1:
        raise MappingError("more than 1 route found in response")
    map_route_model(items[0], model, region)


def to_create_payload(model: RouteModel | None) -> list[dict[str, Any]]:
    return [route_payload(model)]


def to_update_payload(model: RouteModel | None, current_labels: MapValue) -> dict[str, Any]:
    """Routes only support label updates; labels are sent as a diff."""
    if model is None:
        raise MappingError("nil model")
    return {"labels": diff_labels(model.labels, current_labels)}


class RouteResource(RoutingTablesComponent, Resource[RouteModel]):
    type_suffix = "routing_table_route"
    display_name = "routing table route"
    composite_id = ROUTE_ID

    def schema(self) -> Schema:
        return Schema(
            description=(
                "Routing table route resource schema. "
                "Must have a `region` specified in the provider configuration."
            ),
            attributes={
                "id": StringAttribute(
                    description=(
                        "Terraform's internal resource ID. It is structured as "
                        '"`organization_id`,`region`,`network_area_id`,`routing_table_id`,`route_id`".'
                    ),
                    computed=True,
                ),
                "organization_id": StringAttribute(
                    description="Organization ID to which the routing table is associated.",
                    required=True,
                    requires_replace=True,
                    validators=KEY_VALIDATORS,
                ),
                "routing_table_id": StringAttribute(
                    description="The routing tables ID.",
                    required=True,
                    requires_replace=True,
                    validators=KEY_VALIDATORS,
                ),
                "network_area_id": StringAttribute(
                    description="The network area ID to which the routing table is associated.",
                    required=True,
                    requires_replace=True,
                    validators=KEY_VALIDATORS,
                ),
                "region": StringAttribute(
                    description="The resource region. If not defined, the provider region is used.",
                    optional=True,
                    computed=True,
                    requires_replace=True,
                ),
                "route_id": StringAttribute(
                    description="The ID of the route.",
                    computed=True,
                    requires_replace=True,
                    validators=KEY_VALIDATORS,
                ),
                "destination": SingleNestedAttribute(
                    description="Destination of the route.",
                    required=True,
                    attributes={
                        "type": StringAttribute(
                            description=f"CIDRV type. {format_possible_values(*DESTINATION_TYPES)}",
                            required=True,
                            requires_replace=True,
                            validators=(validate.one_of(*DESTINATION_TYPES),),
                        ),
                        "value": StringAttribute(
                            description="An CIDR string.",
                            required=True,
                            requires_replace=True,
                            validators=(validate.cidr(),),
                        ),
                    },
                ),
                "next_hop": SingleNestedAttribute(
                    description="Next hop destination.",
                    required=True,
                    attributes={
                        "type": StringAttribute(
                            description=f"Type of the next hop. {format_possible_values(*NEXTHOP_TYPES)}",
                            required=True,
                            requires_replace=True,
                            validators=(validate.one_of(*NEXTHOP_TYPES),),
                        ),
                        "value": StringAttribute(
                            description="Either IPv4 or IPv6 (not set for blackhole and internet).",
                            optional=True,
                            requires_replace=True,
                            validators=(validate.ip(),),
                        ),
                    },
                ),
                "labels": MapAttribute(
                    description="Labels are key-value string pairs which can be attached to a resource container",
                    optional=True,
                ),
                "created_at": StringAttribute(
                    description="Date-time when the route was created.", computed=True
                ),
                "updated_at": StringAttribute(
                    description="Date-time when the route was updated.", computed=True
                ),
            },
        )

    def _keys(self, model: RouteModel) -> tuple[str, str, str, str]:
        return (
            model.organization_id.value_or(""),
            model.network_area_id.value_or(""),
            self.configured_data.get_region_with_override(model.region),
            model.routing_table_id.value_or(""),
        )

    async def create(self, request: CreateRequest[RouteModel]) -> Response[RouteModel]:
        response: Response[RouteModel] = Response()
        model = request.plan
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error() or (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region, routing_table_id = self._keys(model)
        log = logger.bind(
            component="resource", resource=self.display_name, organization_id=organization_id,
            network_area_id=network_area_id, region=region, routing_table_id=routing_table_id,
        )
        summary = "Error creating routing table route"

        try:
            payload = to_create_payload(model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            routes = await client.add_routes(
                organization_id, network_area_id, region, routing_table_id, payload
            )
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        try:
            map_fields_from_list(routes, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        log.bind(route_id=model.route_id.value).info("Routing table route created")
        return response

    async def read(self, request: ReadRequest[RouteModel]) -> Response[RouteModel]:
        response: Response[RouteModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region, routing_table_id = self._keys(model)
        route_id = model.route_id.value_or("")
        log = logger.bind(
            component="resource", resource=self.display_name, organization_id=organization_id,
            network_area_id=network_area_id, region=region, routing_table_id=routing_table_id,
            route_id=route_id,
        )

        try:
            route = await client.get_route(
                organization_id, network_area_id, region, routing_table_id, route_id
            )
        except ApiError as e:
            if is_not_found(e):
                log.info("Routing table route not found, removing from state")
                response.remove_resource()
                return response
            log_error(response.diagnostics, e, "Error reading routing table route", f"Calling API: {e}")
            return response

        try:
            map_route_model(route, model, region)
        except MappingError as e:
            log_and_add_error(
                response.diagnostics, "Error reading routing table route", f"Processing API payload: {e}"
            )
            return response

        response.state = model
        log.info("Routing table route read")
        return response

    async def update(self, request: UpdateRequest[RouteModel]) -> Response[RouteModel]:
        response: Response[RouteModel] = Response()
        model, state = request.plan, request.state
        if not self.check_in_place_update(request, response.diagnostics):
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region, routing_table_id = self._keys(model)
        route_id = model.route_id.value_or("") or state.route_id.value_or("")
        log = logger.bind(
            component="resource", resource=self.display_name, organization_id=organization_id,
            network_area_id=network_area_id, region=region, routing_table_id=routing_table_id,
            route_id=route_id,
        )
        summary = "Error updating routing table route"

        try:
            payload = to_update_payload(model, state.labels)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            route = await client.update_route(
                organization_id, network_area_id, region, routing_table_id, route_id,
                payload,
            )
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        if model.route_id.is_unknown() or model.route_id.is_null():
            model.route_id = StringValue.of(route_id)
        try:
            map_route_model(route, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        log.info("Routing table route updated")
        return response

    async def delete(self, request: DeleteRequest[RouteModel]) -> Response[RouteModel]:
        response: Response[RouteModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region, routing_table_id = self._keys(model)
        route_id = model.route_id.value_or("")
        try:
            await client.delete_route(
                organization_id, network_area_id, region, routing_table_id, route_id
            )
        except ApiError as e:
            if not is_not_found(e):
                log_and_add_error(
                    response.diagnostics, "Error deleting routing table route", f"Calling API: {e}"
                )
                return response

        logger.bind(
            component="resource", resource=self.display_name, route_id=route_id
        ).info("Routing table route deleted")
        return response


class RouteDataSource(RoutingTablesComponent, DataSource[RouteModel]):
    type_suffix = "routing_table_route"
    display_name = "routing table route"

    def schema(self) -> Schema:
        attributes = key_attributes()
        attributes.update(route_response_attributes())
        attributes["route_id"] = StringAttribute(
            description="Route ID.", required=True, validators=KEY_VALIDATORS
        )
        attributes["id"] = StringAttribute(
            description=(
                "Terraform's internal datasource ID. It is structured as "
                '"`organization_id`,`region`,`network_area_id`,`routing_table_id`,`route_id`".'
            ),
            computed=True,
        )
        return Schema(description="Routing table route datasource schema.", attributes=attributes)

    async def read(self, request: DataSourceReadRequest[RouteModel]) -> Response[RouteModel]:
        response: Response[RouteModel] = Response()
        model = request.config
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error():
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id = model.organization_id.value_or("")
        network_area_id = model.network_area_id.value_or("")
        routing_table_id = model.routing_table_id.value_or("")
        route_id = model.route_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)

        try:
            route = await client.get_route(
                organization_id, network_area_id, region, routing_table_id, route_id
            )
        except ApiError as e:
            log_error(
                response.diagnostics, e, "Error reading routing table route", f"Calling API: {e}",
                {404: f"Route {route_id!r} in routing table {routing_table_id!r} does not exist."},
                route_id=route_id,
            )
            return response

        try:
            map_route_model(route, model, region)
        except MappingError as e:
            log_and_add_error(
                response.diagnostics, "Error reading routing table route", f"Processing API payload: {e}"
            )
            return response

        response.state = model
        logger.bind(component="datasource", route_id=route_id).info("Routing table route read")
        return response


__all__ = [
    "RouteResource",
    "RouteDataSource",
    "map_fields_from_list",
    "to_create_payload",
    "to_update_payload",
]
