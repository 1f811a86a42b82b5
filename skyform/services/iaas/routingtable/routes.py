"""``skyform_routing_table_routes`` data source: every route of a routing table."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from skyform.core.diagnostics import log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError
from skyform.core.identity import CompositeId
from skyform.core.schema import ListNestedAttribute, Schema, StringAttribute
from skyform.core.values import ListValue, ObjectValue, StringValue
from skyform.resource import DataSource, DataSourceReadRequest, Response

from ..types import RouteListResponse
from .shared import (
    RouteReadModel,
    RoutingTablesComponent,
    key_attributes,
    map_route_read_model,
    route_response_attributes,
)

ROUTES_ID = CompositeId(("organization_id", "region", "network_area_id", "routing_table_id"))


@dataclass(slots=True)
class RoutesDataSourceModel:
    id: StringValue = field(default_factory=StringValue.null)
    organization_id: StringValue = field(default_factory=StringValue.null)
    network_area_id: StringValue = field(default_factory=StringValue.null)
    routing_table_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)
    routes: ListValue = field(default_factory=ListValue.null)


def route_object(route: RouteReadModel) -> ObjectValue:
    return ObjectValue.of({
        "route_id": route.route_id,
        "destination": route.destination,
        "next_hop": route.next_hop,
        "labels": route.labels,
        "created_at": route.created_at,
        "updated_at": route.updated_at,
    })


def map_routes(
    routes: RouteListResponse | None, model: RoutesDataSourceModel | None, region: str
) -> None:
    if routes is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")
    if routes.get("items") is None:
        raise MappingError("items input is nil")

    items: list[ObjectValue] = []
    for i, route in enumerate(routes["items"]):
        route_model = RouteReadModel()
        try:
            map_route_read_model(route, route_model)
        except MappingError as e:
            raise MappingError(f"mapping route at index {i}: {e}") from e
        items.append(route_object(route_model))

    model.id = StringValue.of(ROUTES_ID.build(
        model.organization_id.value_or(""),
        region,
        model.network_area_id.value_or(""),
        model.routing_table_id.value_or(""),
    ))
    model.region = StringValue.of(region)
    model.routes = ListValue.of(items)


class RoutesDataSource(RoutingTablesComponent, DataSource[RoutesDataSourceModel]):
    type_suffix = "routing_table_routes"
    display_name = "routing table routes"

    def schema(self) -> Schema:
        attributes = key_attributes()
        attributes["id"] = StringAttribute(
            description=(
                "Terraform's internal datasource ID. It is structured as "
                '"`organization_id`,`region`,`network_area_id`,`routing_table_id`".'
            ),
            computed=True,
        )
        attributes["routes"] = ListNestedAttribute(
            description="List of routes.",
            computed=True,
            attributes=route_response_attributes(),
        )
        return Schema(description="Routing table routes datasource schema.", attributes=attributes)

    async def read(
        self, request: DataSourceReadRequest[RoutesDataSourceModel]
    ) -> Response[RoutesDataSourceModel]:
        response: Response[RoutesDataSourceModel] = Response()
        model = request.config
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error():
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id = model.organization_id.value_or("")
        network_area_id = model.network_area_id.value_or("")
        routing_table_id = model.routing_table_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        summary = "Error reading routes of routing table"

        try:
            routes = await client.list_routes(organization_id, network_area_id, region, routing_table_id)
        except ApiError as e:
            log_error(
                response.diagnostics, e, summary, f"Calling API: {e}",
                {404: f"Routing table {routing_table_id!r} does not exist."},
                routing_table_id=routing_table_id,
            )
            return response

        try:
            map_routes(routes, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(
            component="datasource", routing_table_id=routing_table_id, region=region
        ).info("Routing table routes read")
        return response


__all__ = ["RoutesDataSource", "RoutesDataSourceModel", "map_routes", "route_object"]
