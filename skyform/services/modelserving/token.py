"""``skyform_modelserving_token`` resource and data source.

The token content is only returned by the create call, so it is kept from the
prior state on every later refresh. Tokens expire on their own: an
``inactive`` token is dropped from state with an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from skyform.config import ProviderData
from skyform.core import validate
from skyform.core.conversion import timestamp_value
from skyform.core.diagnostics import Diagnostics, log_and_add_error, log_error
from skyform.core.exceptions import ApiError, MappingError, WaitError, is_not_found
from skyform.core.identity import CompositeId
from skyform.core.schema import Schema, StringAttribute
from skyform.core.values import StringValue, is_undefined
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

from .client import ModelServingClient, configure_client
from .types import TokenEnvelope, TokenResponse
from .wait import (
    INACTIVE_STATE,
    create_token_wait_handler,
    delete_token_wait_handler,
    update_token_wait_handler,
)

TOKEN_ID = CompositeId(("project_id", "token_id"))

EXPIRED_DETAIL = "Model serving auth token has expired"


@dataclass(slots=True)
class TokenModel:
    id: StringValue = field(default_factory=StringValue.null)
    project_id: StringValue = field(default_factory=StringValue.null)
    region: StringValue = field(default_factory=StringValue.null)
    token_id: StringValue = field(default_factory=StringValue.null)
    name: StringValue = field(default_factory=StringValue.null)
    description: StringValue = field(default_factory=StringValue.null)
    state: StringValue = field(default_factory=StringValue.null)
    valid_until: StringValue = field(default_factory=StringValue.null)
    ttl_duration: StringValue = field(default_factory=StringValue.null)
    content: StringValue = field(default_factory=StringValue.null)


# =============================================================================
# Mapping
# =============================================================================


def map_token(token: TokenResponse | None, model: TokenModel | None) -> None:
    if token is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")

    token_id = token.get("id") or model.token_id.value_or("")
    if not token_id:
        raise MappingError("token id not present")

    # validUntil is always set by the API; fall back to now if it is not
    valid_until = timestamp_value(token.get("validUntil") or datetime.now(UTC))

    model.id = StringValue.of(TOKEN_ID.build(model.project_id.value_or(""), token_id))
    model.token_id = StringValue.of(token_id)
    model.name = StringValue.from_optional(token.get("name"))
    model.description = StringValue.from_optional(token.get("description"))
    model.state = StringValue.from_optional(token.get("state"))
    model.valid_until = valid_until
    if (region := token.get("region")) is not None:
        model.region = StringValue.of(region)


def map_get_response(response: TokenEnvelope | None, model: TokenModel | None) -> None:
    if response is None:
        raise MappingError("response input is nil")
    map_token(response.get("token"), model)


def map_create_response(
    created: TokenEnvelope | None, waited: TokenEnvelope | None, model: TokenModel | None
) -> None:
    """Map the create response, taking the state from the final wait response."""
    if created is None:
        raise MappingError("response input is nil")
    if model is None:
        raise MappingError("model input is nil")
    token = created.get("token")
    if token is None:
        raise MappingError("token input is nil")
    if not token.get("id"):
        raise MappingError("token id not present")
    # the create answer still says "creating"; the state comes from the wait
    state = ((waited or {}).get("token") or {}).get("state")
    if state is None:
        raise MappingError("wait response input is nil")

    map_token(token, model)
    model.content = StringValue.from_optional(token.get("content"))
    model.state = StringValue.of(state)


def to_create_payload(model: TokenModel | None) -> dict[str, Any]:
    if model is None:
        raise MappingError("nil model")
    payload: dict[str, Any] = {}
    if model.name.is_known():
        payload["name"] = model.name.value
    if model.description.is_known():
        payload["description"] = model.description.value
    if model.ttl_duration.is_known():
        payload["ttlDuration"] = model.ttl_duration.value
    return payload


def to_update_payload(model: TokenModel | None) -> dict[str, Any]:
    if model is None:
        raise MappingError("nil model")
    payload: dict[str, Any] = {}
    if model.name.is_known():
        payload["name"] = model.name.value
    if not is_undefined(model.description):
        payload["description"] = model.description.value
    return payload


def _is_inactive(response: TokenEnvelope | None) -> bool:
    return ((response or {}).get("token") or {}).get("state") == INACTIVE_STATE


# =============================================================================
# Resource
# =============================================================================


class _TokenComponent:
    """Per-region client cache; the model serving endpoint is regional."""

    type_name: str
    configured_data: ProviderData
    client: ModelServingClient | None = None

    def configure_client(self, data: ProviderData, diags: Diagnostics) -> None:
        self._clients: dict[str, ModelServingClient] = {}
        if (client := configure_client(data, diags)) is not None:
            self.client = client
            self._clients[data.get_region()] = client

    def active_clients(self) -> list[ModelServingClient]:
        # the default region client is one of these
        return list(getattr(self, "_clients", {}).values())

    def client_for(self, region: str, diags: Diagnostics) -> ModelServingClient | None:
        if (client := self._clients.get(region)) is not None:
            return client
        if (client := configure_client(self.configured_data, diags, region)) is not None:
            self._clients[region] = client
        return client


def _key_attribute(description: str, **kwargs: Any) -> StringAttribute:
    return StringAttribute(
        description=description, validators=(validate.uuid(), validate.no_separator()), **kwargs
    )


class ModelServingTokenResource(_TokenComponent, Resource[TokenModel]):
    type_suffix = "modelserving_token"
    display_name = "model serving auth token"
    composite_id = TOKEN_ID

    wait_interval: float = 5.0

    def schema(self) -> Schema:
        return Schema(
            description="Model Serving Auth Token Resource schema.",
            attributes={
                "id": StringAttribute(
                    description=(
                        "Terraform's internal resource ID. It is structured as "
                        '"`project_id`,`token_id`".'
                    ),
                    computed=True,
                ),
                "project_id": _key_attribute(
                    "Project ID to which the model serving auth token is associated.",
                    required=True,
                ),
                "region": StringAttribute(
                    description="Region to which the model serving auth token is associated. "
                    "If not defined, the provider region is used.",
                    optional=True,
                    computed=True,
                ),
                "token_id": _key_attribute("The model serving auth token ID.", computed=True),
                "name": StringAttribute(
                    description="Name of the model serving auth token.", required=True
                ),
                "description": StringAttribute(
                    description="The description of the model serving auth token.", optional=True
                ),
                "ttl_duration": StringAttribute(
                    description="The TTL duration of the model serving auth token. E.g. 5h30m40s,5h,5h30m,30m,30s",
                    optional=True,
                ),
                "state": StringAttribute(
                    description="State of the model serving auth token.", computed=True
                ),
                "content": StringAttribute(
                    description="Content of the model serving auth token.",
                    computed=True,
                    sensitive=True,
                ),
                "valid_until": StringAttribute(
                    description="The time until the model serving auth token is valid.",
                    computed=True,
                ),
            },
        )

    def _region(self, model: TokenModel) -> str:
        return self.configured_data.get_region_with_override(model.region)

    async def create(self, request: CreateRequest[TokenModel]) -> Response[TokenModel]:
        response: Response[TokenModel] = Response()
        model = request.plan
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error() or self.require_client(response.diagnostics) is None:
            return response

        project_id = model.project_id.value_or("")
        region = self._region(model)
        if (client := self.client_for(region, response.diagnostics)) is None:
            return response
        log = logger.bind(component="resource", resource="modelserving_token", project_id=project_id, region=region)
        summary = "Error creating model serving auth token"

        try:
            payload = to_create_payload(model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            created = await client.create_token(region, project_id, payload)
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        if not (token_id := ((created or {}).get("token") or {}).get("id")):
            log_and_add_error(response.diagnostics, summary, "Processing API payload: token id not present")
            return response
        log = log.bind(token_id=token_id)

        try:
            waited = await create_token_wait_handler(
                client, region, project_id, token_id, interval=self.wait_interval
            ).wait()
        except (ApiError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Waiting for token to be active: {e}")
            return response

        model.region = StringValue.of(region)
        try:
            map_create_response(created, waited, model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        log.info("Model serving auth token created")
        return response

    async def read(self, request: ReadRequest[TokenModel]) -> Response[TokenModel]:
        response: Response[TokenModel] = Response()
        model = request.state
        if self.require_client(response.diagnostics) is None:
            return response

        project_id = model.project_id.value_or("")
        token_id = model.token_id.value_or("")
        region = self._region(model)
        if (client := self.client_for(region, response.diagnostics)) is None:
            return response
        log = logger.bind(
            component="resource", resource="modelserving_token", project_id=project_id,
            token_id=token_id, region=region,
        )
        summary = "Error reading model serving auth token"

        try:
            token = await client.get_token(region, project_id, token_id)
        except ApiError as e:
            if is_not_found(e):
                log.info("Model serving auth token not found, removing from state")
                response.remove_resource()
                return response
            log_error(response.diagnostics, e, summary, f"Calling API: {e}")
            return response

        if _is_inactive(token):
            response.remove_resource()
            log_and_add_error(response.diagnostics, summary, EXPIRED_DETAIL, token_id=token_id)
            return response

        try:
            map_get_response(token, model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        log.info("Model serving auth token read")
        return response

    async def update(self, request: UpdateRequest[TokenModel]) -> Response[TokenModel]:
        response: Response[TokenModel] = Response()
        model, state = request.plan, request.state
        if self.require_client(response.diagnostics) is None:
            return response

        project_id = model.project_id.value_or("")
        token_id = model.token_id.value_or("") or state.token_id.value_or("")
        region = self._region(model)
        if (client := self.client_for(region, response.diagnostics)) is None:
            return response
        summary = "Error updating model serving auth token"

        try:
            payload = to_update_payload(model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Creating API payload: {e}")
            return response

        try:
            updated = await client.update_token(region, project_id, token_id, payload)
        except ApiError as e:
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        if _is_inactive(updated):
            response.remove_resource()
            log_and_add_error(response.diagnostics, summary, EXPIRED_DETAIL, token_id=token_id)
            return response

        try:
            waited = await update_token_wait_handler(
                client, region, project_id, token_id, interval=self.wait_interval
            ).wait()
        except (ApiError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Waiting for token to be updated: {e}")
            return response

        if is_undefined(model.token_id):
            model.token_id = StringValue.of(token_id)
        # content is never returned after create
        model.content = state.content
        try:
            map_get_response(waited, model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(component="resource", resource="modelserving_token", token_id=token_id).info(
            "Model serving auth token updated"
        )
        return response

    async def delete(self, request: DeleteRequest[TokenModel]) -> Response[TokenModel]:
        response: Response[TokenModel] = Response()
        model = request.state
        if self.require_client(response.diagnostics) is None:
            return response

        project_id = model.project_id.value_or("")
        token_id = model.token_id.value_or("")
        region = self._region(model)
        if (client := self.client_for(region, response.diagnostics)) is None:
            return response
        summary = "Error deleting model serving auth token"

        try:
            await client.delete_token(region, project_id, token_id)
        except ApiError as e:
            if is_not_found(e):
                return response
            log_and_add_error(response.diagnostics, summary, f"Calling API: {e}")
            return response

        try:
            await delete_token_wait_handler(
                client, region, project_id, token_id, interval=self.wait_interval
            ).wait()
        except (ApiError, WaitError) as e:
            log_and_add_error(response.diagnostics, summary, f"Waiting for token to be deleted: {e}")
            return response

        logger.bind(component="resource", resource="modelserving_token", token_id=token_id).info(
            "Model serving auth token deleted"
        )
        return response


class ModelServingTokenDataSource(_TokenComponent, DataSource[TokenModel]):
    type_suffix = "modelserving_token"
    display_name = "model serving auth token"

    def schema(self) -> Schema:
        return Schema(
            description="Model Serving Auth Token datasource schema.",
            attributes={
                "id": StringAttribute(
                    description=(
                        "Terraform's internal datasource ID. It is structured as "
                        '"`project_id`,`token_id`".'
                    ),
                    computed=True,
                ),
                "project_id": _key_attribute(
                    "Project ID to which the model serving auth token is associated.",
                    required=True,
                ),
                "region": StringAttribute(
                    description="Region to which the model serving auth token is associated.",
                    optional=True,
                    computed=True,
                ),
                "token_id": _key_attribute("The model serving auth token ID.", required=True),
                "name": StringAttribute(description="Name of the model serving auth token.", computed=True),
                "description": StringAttribute(
                    description="The description of the model serving auth token.", computed=True
                ),
                "state": StringAttribute(description="State of the model serving auth token.", computed=True),
                "valid_until": StringAttribute(
                    description="The time until the model serving auth token is valid.", computed=True
                ),
            },
        )

    async def read(self, request: DataSourceReadRequest[TokenModel]) -> Response[TokenModel]:
        response: Response[TokenModel] = Response()
        model = request.config
        response.diagnostics.extend(self.schema().validate(model))
        if response.diagnostics.has_error() or self.require_client(response.diagnostics) is None:
            return response

        project_id = model.project_id.value_or("")
        token_id = model.token_id.value_or("")
        region = self.configured_data.get_region_with_override(model.region)
        if (client := self.client_for(region, response.diagnostics)) is None:
            return response
        summary = "Error reading model serving auth token"

        try:
            token = await client.get_token(region, project_id, token_id)
        except ApiError as e:
            log_error(
                response.diagnostics, e, summary, f"Calling API: {e}",
                {404: f"Model serving auth token {token_id!r} does not exist."},
                token_id=token_id,
            )
            return response

        if _is_inactive(token):
            log_and_add_error(response.diagnostics, summary, EXPIRED_DETAIL, token_id=token_id)
            return response

        model.region = StringValue.of(region)
        try:
            map_get_response(token, model)
        except MappingError as e:
            log_and_add_error(response.diagnostics, summary, f"Processing API payload: {e}")
            return response

        response.state = model
        logger.bind(component="datasource", token_id=token_id, region=region).info(
            "Model serving auth token read"
        )
        return response


__all__ = [
    "TOKEN_ID",
    "EXPIRED_DETAIL",
    "TokenModel",
    "ModelServingTokenResource",
    "ModelServingTokenDataSource",
    "map_token",
    "map_get_response",
    "map_create_response",
    "to_create_payload",
    "to_update_payload",
]
