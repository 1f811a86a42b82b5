"""``skyform_routing_tables`` data source: every routing table of a network area."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from skyform.core.diagnostics import log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError
from skyform.core.identity import CompositeId
from skyform.core.schema import ListNestedAttribute, Schema, StringAttribute
from skyform.core.values import ListValue, ObjectValue, StringValue
from skyform.resource import DataSource, DataSourceReadRequest, Response

from ..types import RoutingTableListResponse
from .shared import (
    RoutingTableReadModel,
    RoutingTablesComponent,
    key_attributes,
    map_routing_table_read_model,
    routing_table_response_attributes,
)

ROUTING_TABLES_ID = CompositeId(("organization_id", "region", "network_area_id"))


@dataclass(slots=True)
class RoutingTablesDataSourceModel:
    id: StringValue = field(default_factory=StringValue.null)
    organization_id: StringValue = field(default_factory=StringValue.null)
    network_area_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)
    items: ListValue = field(default_factory=ListValue.null)


def routing_table_object(table: RoutingTableReadModel) -> ObjectValue:
    return ObjectValue.of({
        "routing_table_id": table.routing_table_id,
        "name": table.name,
        "description": table.description,
        "labels": table.labels,
        "default": table.default,
        "system_routes": table.system_routes,
        "created_at": table.created_at,
        "updated_at": table.updated_at,
    })


def map_routing_tables(
    tables: RoutingTableListResponse | None,
    model: RoutingTablesDataSourceModel | None,
    region: str,
) -> None:
    if tables is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")
    if tables.get("items") is None:
        raise MappingError("items input is nil")

    items: list[ObjectValue] = []
    for i, table in enumerate(tables["items"]):
        table_model = RoutingTableReadModel()
        try:
            map_routing_table_read_model(table, table_model)
        except MappingError as e:
            raise MappingError(f"mapping routing table at index {i}: {e}") from e
        items.append(routing_table_object(table_model))

    model.id = StringValue.of(ROUTING_TABLES_ID.build(
        model.organization_id.value_or(""),
        region,
        model.network_area_id.value_or(""),
    ))
    model.region = StringValue.of(region)
    model.items = ListValue.of(items)


class RoutingTablesDataSource(RoutingTablesComponent, DataSource[RoutingTablesDataSourceModel]):
    type_suffix = "routing_tables"
    display_name = "routing tables"

    def schema(self) -> Schema:
        attributes = key_attributes()
        del attributes["routing_table_id"]
        attributes["id"] = StringAttribute(
            description=(
                "Terraform's internal datasource ID. It is structured as "
                '"`organization_id`,`region`,`network_area_id`".'
            ),
            computed=True,
        )
        attributes["items"] = ListNestedAttribute(
            description="List of routing tables.",
            computed=True,
            attributes=routing_table_response_attributes(),
        )
        return Schema(
            description=(
                "Routing tables datasource schema. "
                "Must have a `region` specified in the provider configuration."
            ),
            attributes=attributes,
        )

    async def read(
        self, request: DataSourceReadRequest[RoutingTablesDataSourceModel]
    ) -> Response[RoutingTablesDataSourceModel]:
        response: Response[RoutingTablesDataSourceModel] = Response()
        model = request.config
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error():
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id = model.organization_id.value_or("")
        network_area_id = model.network_area_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)

        try:
            tables = await client.list_routing_tables(organization_id, network_area_id, region)
        except ApiError as e:
            log_error(
                response.diagnostics, e, "Error reading routing tables",
                f"Routing tables of network area {network_area_id!r} in organization "
                f"{organization_id!r} could not be read: {e}",
                {
                    403: f"Organization {organization_id!r} not found or access is forbidden.",
                    404: (
                        f"Network area {network_area_id!r} does not exist "
                        f"in organization {organization_id!r}."
                    ),
                },
                organization_id=organization_id, network_area_id=network_area_id,
            )
            return response

        try:
            map_routing_tables(tables, model, region)
        except MappingError as e:
            log_and_add_error(
                response.diagnostics, "Error reading routing tables", f"Processing API payload: {e}"
            )
            return response

        response.state = model
        logger.bind(
            component="datasource", organization_id=organization_id,
            network_area_id=network_area_id, region=region,
        ).info("Routing tables read")
        return response


__all__ = [
    "RoutingTablesDataSource",
    "RoutingTablesDataSourceModel",
    "map_routing_tables",
    "routing_table_object",
]
