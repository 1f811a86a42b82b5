"""``skyform_routing_table`` resource and data source."""

from __future__ import annotations

from typing import Any

from loguru import logger

from skyform.core.diagnostics import log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError, is_not_found
from skyform.core.labels import diff_labels, to_string_map
from skyform.core.schema import BoolAttribute, MapAttribute, Schema, StringAttribute
from skyform.core.values import MapValue, StringValue, is_undefined
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

from .shared import (
    KEY_VALIDATORS,
    ROUTING_TABLE_ID,
    RoutingTableModel,
    RoutingTablesComponent,
    key_attributes,
    map_routing_table_model,
    routing_table_response_attributes,
)

_ID_DESCRIPTION = (
    "Terraform's internal resource ID. It is structured as "
    '"`organization_id`,`region`,`network_area_id`,`routing_table_id`".'
)


def to_create_payload(model: RoutingTableModel | None) -> dict[str, Any]:
    if model is None:
        raise MappingError("nil model")
    payload: dict[str, Any] = {"labels": to_string_map(model.labels)}
    if model.name.is_known():
        payload["name"] = model.name.value
    if model.description.is_known():
        payload["description"] = model.description.value
    if model.system_routes.is_known():
        payload["systemRoutes"] = model.system_routes.value
    return payload


def to_update_payload(model: RoutingTableModel | None, current_labels: MapValue) -> dict[str, Any]:
    if model is None:
        raise MappingError("nil model")
    payload: dict[str, Any] = {"labels": diff_labels(model.labels, current_labels)}
    if model.name.is_known():
        payload["name"] = model.name.value
    if not is_undefined(model.description):
        payload["description"] = model.description.value
    return payload


class RoutingTableResource(RoutingTablesComponent, Resource[RoutingTableModel]):
    type_suffix = "routing_table"
    display_name = "routing table"
    composite_id = ROUTING_TABLE_ID

    def schema(self) -> Schema:
        return Schema(
            description="Routing table resource schema.",
            attributes={
                "id": StringAttribute(description=_ID_DESCRIPTION, computed=True),
                "organization_id": StringAttribute(
                    description="Organization ID to which the routing table is associated.",
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
                "routing_table_id": StringAttribute(
                    description="The routing tables ID.",
                    computed=True,
                    requires_replace=True,
                    validators=KEY_VALIDATORS,
                ),
                "name": StringAttribute(description="The name of the routing table.", required=True),
                "description": StringAttribute(
                    description="Description of the routing table.", optional=True
                ),
                "labels": MapAttribute(
                    description="Labels are key-value string pairs which can be attached to a resource container",
                    optional=True,
                ),
                "default": BoolAttribute(
                    description="When true this is the default routing table for this network area.",
                    computed=True,
                ),
                "system_routes": BoolAttribute(
                    description=(
                        "This controls whether the routes for project-to-project communication "
                        "are created automatically or not."
                    ),
                    optional=True,
                    computed=True,
                ),
                "created_at": StringAttribute(
                    description="Date-time when the routing table was created", computed=True
                ),
                "updated_at": StringAttribute(
                    description="Date-time when the routing table was updated", computed=True
                ),
            },
        )

    def _keys(self, model: RoutingTableModel) -> tuple[str, str, str]:
        return (
            model.organization_id.value_or(""),
            model.network_area_id.value_or(""),
            self.configured_data.get_region_with_override(model.region),
        )

    async def create(self, request: CreateRequest[RoutingTableModel]) -> Response[RoutingTableModel]:
        response: Response[RoutingTableModel] = Response()
        model = request.plan
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error() or (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region = self._keys(model)
        summary = "Error creating routing table"
        try:
            payload = to_create_payload(model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            table = await client.create_routing_table(organization_id, network_area_id, region, payload)
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        try:
            map_routing_table_model(table, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(
            component="resource", resource=self.display_name, organization_id=organization_id,
            network_area_id=network_area_id, region=region,
            routing_table_id=model.routing_table_id.value,
        ).info("Routing table created")
        return response

    async def read(self, request: ReadRequest[RoutingTableModel]) -> Response[RoutingTableModel]:
        response: Response[RoutingTableModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region = self._keys(model)
        routing_table_id = model.routing_table_id.value_or("")
        log = logger.bind(
            component="resource", resource=self.display_name, organization_id=organization_id,
            network_area_id=network_area_id, region=region, routing_table_id=routing_table_id,
        )

        try:
            table = await client.get_routing_table(
                organization_id, network_area_id, region, routing_table_id
            )
        except ApiError as e:
            if is_not_found(e):
                log.info("Routing table not found, removing from state")
                response.remove_resource()
                return response
            log_error(response.diagnostics, e, "Error reading routing table", f"Calling API: {e}")
            return response

        try:
            map_routing_table_model(table, model, region)
        except MappingError as e:
            log_and_add_error(
                response.diagnostics, "Error reading routing table", f"Processing API payload: {e}"
            )
            return response

        response.state = model
        log.info("Routing table read")
        return response

    async def update(self, request: UpdateRequest[RoutingTableModel]) -> Response[RoutingTableModel]:
        response: Response[RoutingTableModel] = Response()
        model, state = request.plan, request.state
        if not self.check_in_place_update(request, response.diagnostics):
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region = self._keys(model)
        routing_table_id = model.routing_table_id.value_or("") or state.routing_table_id.value_or("")
        summary = "Error updating routing table"

        try:
            payload = to_update_payload(model, state.labels)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            table = await client.update_routing_table(
                organization_id, network_area_id, region, routing_table_id, payload
            )
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        if is_undefined(model.routing_table_id):
            model.routing_table_id = StringValue.of(routing_table_id)
        try:
            map_routing_table_model(table, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(
            component="resource", resource=self.display_name, routing_table_id=routing_table_id
        ).info("Routing table updated")
        return response

    async def delete(self, request: DeleteRequest[RoutingTableModel]) -> Response[RoutingTableModel]:
        response: Response[RoutingTableModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        organization_id, network_area_id, region = self._keys(model)
        routing_table_id = model.routing_table_id.value_or("")
        try:
            await client.delete_routing_table(organization_id, network_area_id, region, routing_table_id)
        except ApiError as e:
            if not is_not_found(e):
                log_and_add_error(response.diagnostics, "Error deleting routing table", f"Calling API: {e}")
                return response

        logger.bind(
            component="resource", resource=self.display_name, routing_table_id=routing_table_id
        ).info("Routing table deleted")
        return response


class RoutingTableDataSource(RoutingTablesComponent, DataSource[RoutingTableModel]):
    type_suffix = "routing_table"
    display_name = "routing table"

    def schema(self) -> Schema:
        attributes = routing_table_response_attributes()
        attributes.update(key_attributes())
        attributes["id"] = StringAttribute(
            description=_ID_DESCRIPTION.replace("resource ID", "datasource ID"), computed=True
        )
        return Schema(description="Routing table datasource schema.", attributes=attributes)

    async def read(
        self, request: DataSourceReadRequest[RoutingTableModel]
    ) -> Response[RoutingTableModel]:
        response: Response[RoutingTableModel] = Response()
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

        try:
            table = await client.get_routing_table(
                organization_id, network_area_id, region, routing_table_id
            )
        except ApiError as e:
            log_error(
                response.diagnostics, e, "Error reading routing table", f"Calling API: {e}",
                {
                    403: f"Access to routing table {routing_table_id!r} is forbidden.",
                    404: f"Routing table {routing_table_id!r} does not exist.",
                },
                routing_table_id=routing_table_id,
            )
            return response

        try:
            map_routing_table_model(table, model, region)
        except MappingError as e:
            log_and_add_error(
                response.diagnostics, "Error reading routing table", f"Processing API payload: {e}"
            )
            return response

        response.state = model
        logger.bind(component="datasource", routing_table_id=routing_table_id).info(
            "Routing table read"
        )
        return response


__all__ = [
    "RoutingTableResource",
    "RoutingTableDataSource",
    "to_create_payload",
    "to_update_payload",
]
