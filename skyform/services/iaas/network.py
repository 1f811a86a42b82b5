"""``skyform_network`` resource.

Networks are created asynchronously: after create and update the resource
polls until the network reports ``CREATED`` again, and after delete until the
API answers 404.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Any

from injector import inject
from loguru import logger

from skyform.config import ProviderData
from skyform.core import validate
from skyform.core.conversion import reconcile_string_lists, to_string_list
from skyform.core.diagnostics import Diagnostics, log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError, WaitError, is_not_found
from skyform.core.identity import CompositeId
from skyform.core.labels import diff_labels, map_labels, to_string_map
from skyform.core.schema import (
    BoolAttribute,
    Int64Attribute,
    ListAttribute,
    MapAttribute,
    Schema,
    StringAttribute,
)
from skyform.core.values import (
    BoolValue,
    Int64Value,
    ListValue,
    MapValue,
    StringValue,
    is_undefined,
)
from skyform.features import NETWORK_EXPERIMENT, BetaGate, check_experiment_enabled
from skyform.resource import (
    CreateRequest,
    DeleteRequest,
    ReadRequest,
    Resource,
    Response,
    UpdateRequest,
)

from .client import IaasClient, configure_client
from .types import NetworkResponse
from .wait import (
    create_network_wait_handler,
    delete_network_wait_handler,
    update_network_wait_handler,
)

NETWORK_ID = CompositeId(("project_id", "region", "network_id"))


@dataclass(slots=True)
class NetworkModel:
    id: StringValue = field(default_factory=StringValue.null)
    project_id: StringValue = field(default_factory=StringValue.null)
    network_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)
    name: StringValue = field(default_factory=StringValue.null)
    ipv4_nameservers: ListValue = field(default_factory=ListValue.null)
    ipv4_prefix: StringValue = field(default_factory=StringValue.null)
    ipv4_prefix_length: Int64Value = field(default_factory=Int64Value.null)
    ipv4_prefixes: ListValue = field(default_factory=ListValue.null)
    ipv4_gateway: StringValue = field(default_factory=StringValue.null)
    no_ipv4_gateway: BoolValue = field(default_factory=BoolValue.null)
    public_ip: StringValue = field(default_factory=StringValue.null)
    labels: MapValue = field(default_factory=MapValue.null)
    routed: BoolValue = field(default_factory=BoolValue.null)
    routing_table_id: StringValue = field(default_factory=StringValue.null)


# =============================================================================
# Mapping
# =============================================================================


def _prefix_length(prefix: str) -> Int64Value:
    try:
        return Int64Value.of(ipaddress.ip_network(prefix, strict=False).prefixlen)
    except ValueError:
        logger.bind(component="mapper").error("ipv4_prefix_length: invalid prefix {p}", p=prefix)
        return Int64Value.null()


def map_fields(network: NetworkResponse | None, model: NetworkModel | None, region: str) -> None:
    if network is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    if model.network_id.is_known() and model.network_id.value:
        network_id = model.network_id.value
    elif network.get("id") is not None:
        network_id = network["id"]
    else:
        raise MappingError("network id not present")

    labels = map_labels(network.get("labels"), model.labels)
    ipv4 = network.get("ipv4") or {}

    nameservers = ListValue.null()
    if (resp_nameservers := ipv4.get("nameservers")) is not None:
        nameservers = ListValue.of(
            reconcile_string_lists(to_string_list(model.ipv4_nameservers), resp_nameservers)
        )

    prefixes = ListValue.null()
    prefix, prefix_length = model.ipv4_prefix, model.ipv4_prefix_length
    if (resp_prefixes := ipv4.get("prefixes")) is not None:
        prefixes = ListValue.of(resp_prefixes)
        if resp_prefixes:
            prefix = StringValue.of(resp_prefixes[0])
            prefix_length = _prefix_length(resp_prefixes[0])

    model.id = StringValue.of(NETWORK_ID.build(model.project_id.value_or(""), region, network_id))
    model.network_id = StringValue.of(network_id)
    model.name = StringValue.from_optional(network.get("name"))
    model.ipv4_nameservers = nameservers
    model.ipv4_prefixes = prefixes
    model.ipv4_prefix = prefix
    model.ipv4_prefix_length = prefix_length
    model.ipv4_gateway = StringValue.from_optional(ipv4.get("gateway"))
    model.public_ip = StringValue.from_optional(ipv4.get("publicIp"))
    model.labels = labels
    model.routed = BoolValue.from_optional(network.get("routed"))
    model.routing_table_id = StringValue.from_optional(network.get("routingTableId"))
    model.region = StringValue.of(region)


def _gateway(model: NetworkModel) -> dict[str, Any]:
    if model.no_ipv4_gateway.value_or(False):
        return {"gateway": None}
    if not is_undefined(model.ipv4_gateway):
        return {"gateway": model.ipv4_gateway.value}
    return {}


def to_create_payload(model: NetworkModel | None) -> dict[str, Any]:
    if model is None:
        raise MappingError("nil model")

    nameservers = to_string_list(model.ipv4_nameservers)
    ipv4: dict[str, Any] | None = None
    if not is_undefined(model.ipv4_prefix_length):
        ipv4 = {"nameservers": nameservers, "prefixLength": model.ipv4_prefix_length.value}
    elif not is_undefined(model.ipv4_prefix):
        ipv4 = {"nameservers": nameservers, "prefix": model.ipv4_prefix.value, **_gateway(model)}

    payload: dict[str, Any] = {"labels": to_string_map(model.labels)}
    if model.name.is_known():
        payload["name"] = model.name.value
    if model.routed.is_known():
        payload["routed"] = model.routed.value
    if model.routing_table_id.is_known():
        payload["routingTableId"] = model.routing_table_id.value
    if ipv4 is not None:
        payload["ipv4"] = ipv4
    return payload


def to_update_payload(model: NetworkModel | None, state: NetworkModel | None) -> dict[str, Any]:
    if model is None or state is None:
        raise MappingError("nil model")

    payload: dict[str, Any] = {"labels": diff_labels(model.labels, state.labels)}
    if model.name.is_known():
        payload["name"] = model.name.value
    if model.routing_table_id.is_known():
        payload["routingTableId"] = model.routing_table_id.value
    if not model.ipv4_nameservers.is_null():
        payload["ipv4"] = {"nameservers": to_string_list(model.ipv4_nameservers), **_gateway(model)}
    return payload


# =============================================================================
# Resource
# =============================================================================


class NetworkResource(Resource[NetworkModel]):
    type_suffix = "network"
    display_name = "network"
    composite_id = NETWORK_ID

    client: IaasClient | None = None
    wait_interval: float = 5.0

    @inject
    def __init__(self, beta_gate: BetaGate) -> None:
        super().__init__()
        self._beta_gate = beta_gate

    def configure_client(self, data: ProviderData, diags: Diagnostics) -> None:
        if not self._beta_gate.check(data, diags, self.type_name, self.kind):
            return
        self.client = configure_client(data, diags)

    def schema(self) -> Schema:
        key = (validate.uuid(), validate.no_separator())
        return Schema(
            description="Network resource schema.",
            attributes={
                "id": StringAttribute(
                    description=(
                        "Terraform's internal resource ID. It is structured as "
                        '"`project_id`,`region`,`network_id`".'
                    ),
                    computed=True,
                ),
                "project_id": StringAttribute(
                    description="Project ID to which the network is associated.",
                    required=True,
                    requires_replace=True,
                    validators=key,
                ),
                "network_id": StringAttribute(description="The network ID.", computed=True, validators=key),
                "region": StringAttribute(
                    description="The resource region. If not defined, the provider region is used.",
                    optional=True,
                    computed=True,
                    requires_replace=True,
                ),
                "name": StringAttribute(description="The name of the network.", required=True),
                "ipv4_nameservers": ListAttribute(
                    description="The IPv4 nameservers of the network.", optional=True, computed=True
                ),
                "ipv4_prefix": StringAttribute(
                    description="The IPv4 prefix of the network (CIDR).",
                    optional=True,
                    computed=True,
                    requires_replace=True,
                    validators=(validate.cidr(),),
                ),
                "ipv4_prefix_length": Int64Attribute(
                    description="The IPv4 prefix length of the network.",
                    optional=True,
                    computed=True,
                    requires_replace=True,
                ),
                "ipv4_prefixes": ListAttribute(
                    description="The IPv4 prefixes of the network.", computed=True
                ),
                "ipv4_gateway": StringAttribute(
                    description="The IPv4 gateway of a network. If not specified, the first IP of the network will be assigned as the gateway.",
                    optional=True,
                    computed=True,
                    validators=(validate.ip(allow_zero_address=False),),
                ),
                "no_ipv4_gateway": BoolAttribute(
                    description="If set to `true`, the network doesn't have a gateway.", optional=True
                ),
                "public_ip": StringAttribute(description="The public IP of the network.", computed=True),
                "labels": MapAttribute(
                    description="Labels are key-value string pairs which can be attached to a resource container",
                    optional=True,
                ),
                "routed": BoolAttribute(
                    description="If set to `true`, the network is routed and therefore accessible from other networks.",
                    optional=True,
                    computed=True,
                    requires_replace=True,
                ),
                "routing_table_id": StringAttribute(
                    description="The ID of the routing table associated with the network.",
                    optional=True,
                    computed=True,
                    validators=key,
                ),
            },
        )

    def _check_routing_table(self, model: NetworkModel, diags: Diagnostics) -> None:
        if model.routing_table_id.is_known():
            check_experiment_enabled(
                self.configured_data, NETWORK_EXPERIMENT, self.type_name, self.kind, diags
            )

    async def create(self, request: CreateRequest[NetworkModel]) -> Response[NetworkModel]:
        response: Response[NetworkModel] = Response()
        model = request.plan
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error() or (client := self.require_client(response.diagnostics)) is None:
            return response
        self._check_routing_table(model, response.diagnostics)
        if response.diagnostics.has_error():
            return response

        project_id = model.project_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        log = logger.bind(component="resource", resource="network", project_id=project_id, region=region)
        summary = "Error creating network"

        try:
            payload = to_create_payload(model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            created = await client.create_network(project_id, region, payload)
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        if not (network_id := (created or {}).get("id")):
            log_and_add_error(response.diagnostics, summary, "Processing API payload: network id not present")
            return response
        log = log.bind(network_id=network_id)

        try:
            network = await create_network_wait_handler(
                client, project_id, region, network_id, interval=self.wait_interval,
                sleep_before_wait=min(2.0, self.wait_interval),
            ).wait()
        except (ApiError, MappingError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Network creation waiting: {e}")
            return response

        try:
            map_fields(network, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        log.info("Network created")
        return response

    async def read(self, request: ReadRequest[NetworkModel]) -> Response[NetworkModel]:
        response: Response[NetworkModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        project_id = model.project_id.value_or("")
        network_id = model.network_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        log = logger.bind(
            component="resource", resource="network", project_id=project_id,
            network_id=network_id, region=region,
        )

        try:
            network = await client.get_network(project_id, region, network_id)
        except ApiError as e:
            if is_not_found(e):
                log.info("Network not found, removing from state")
                response.remove_resource()
                return response
            log_error(response.diagnostics, e, "Error reading network", f"Calling API: {e}")
            return response

        try:
            map_fields(network, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, "Error reading network", f"Processing API payload: {e}")
            return response

        response.state = model
        log.info("Network read")
        return response

    async def update(self, request: UpdateRequest[NetworkModel]) -> Response[NetworkModel]:
        response: Response[NetworkModel] = Response()
        model, state = request.plan, request.state
        if not self.check_in_place_update(request, response.diagnostics):
            return response
        if (client := self.require_client(response.diagnostics)) is None:
            return response
        self._check_routing_table(model, response.diagnostics)
        if response.diagnostics.has_error():
            return response

        project_id = model.project_id.value_or("")
        network_id = model.network_id.value_or("") or state.network_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        summary = "Error updating network"

        try:
            payload = to_update_payload(model, state)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            await client.update_network(project_id, region, network_id, payload)
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        try:
            network = await update_network_wait_handler(
                client, project_id, region, network_id, interval=self.wait_interval,
                sleep_before_wait=min(2.0, self.wait_interval),
            ).wait()
        except (ApiError, MappingError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Network update waiting: {e}")
            return response

        if is_undefined(model.network_id):
            model.network_id = StringValue.of(network_id)
        try:
            map_fields(network, model, region)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(component="resource", resource="network", network_id=network_id).info("Network updated")
        return response

    async def delete(self, request: DeleteRequest[NetworkModel]) -> Response[NetworkModel]:
        response: Response[NetworkModel] = Response()
        model = request.state
        if (client := self.require_client(response.diagnostics)) is None:
            return response

        project_id = model.project_id.value_or("")
        network_id = model.network_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        summary = "Error deleting network"

        try:
            await client.delete_network(project_id, region, network_id)
        except ApiError as e:
            if is_not_found(e):
                return response
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        try:
            await delete_network_wait_handler(
                client, project_id, region, network_id, interval=self.wait_interval
            ).wait()
        except (ApiError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Network deletion waiting: {e}")
            return response

        logger.bind(component="resource", resource="network", network_id=network_id).info("Network deleted")
        return response


__all__ = [
    "NETWORK_ID",
    "NetworkModel",
    "NetworkResource",
    "map_fields",
    "to_create_payload",
    "to_update_payload",
]
