"""Resource and data source shells.

The host invokes a fixed set of lifecycle methods on every resource:
``metadata``, ``schema``, ``configure``, ``create``, ``read``, ``update``,
``delete`` and ``import_state``. Each operation receives the model built from
the plan or prior state, and returns the new state plus diagnostics. A
response without errors whose ``state`` is ``None`` tells the host to drop
the resource; on errors the host keeps the prior state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from loguru import logger

from skyform.config import ProviderData, parse_provider_data
from skyform.core.diagnostics import Diagnostics, log_and_add_error
from skyform.core.exceptions import ConfigurationError, ImportIdError
from skyform.core.identity import CompositeId
from skyform.core.schema import Schema
from skyform.features import ResourceKind

PROVIDER_TYPE_NAME = "skyform"

# ─── Requests / responses ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CreateRequest[M]:
    plan: M


@dataclass(frozen=True, slots=True)
class ReadRequest[M]:
    state: M


@dataclass(frozen=True, slots=True)
class UpdateRequest[M]:
    plan: M
    state: M


@dataclass(frozen=True, slots=True)
class DeleteRequest[M]:
    state: M


@dataclass(frozen=True, slots=True)
class ImportStateRequest:
    id: str


@dataclass(frozen=True, slots=True)
class DataSourceReadRequest[M]:
    config: M


@dataclass(slots=True)
class Response[M]:
    state: M | None = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def remove_resource(self) -> None:
        self.state = None


@dataclass(slots=True)
class ImportStateResponse:
    attributes: dict[str, Any] = field(default_factory=dict)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


# ─── Shells ──────────────────────────────────────────────────────────


class _Configurable(ABC):
    type_suffix: ClassVar[str]
    display_name: ClassVar[str]
    kind: ClassVar[ResourceKind]

    provider_data: ProviderData | None
    _retired_clients: list[Any]
    client: Any = None

    def metadata(self, provider_type_name: str) -> str:
        """Full type name, e.g. ``skyform_routing_table_route``."""
        return f"{provider_type_name}_{self.type_suffix}"

    @property
    def type_name(self) -> str:
        return self.metadata(PROVIDER_TYPE_NAME)

    @abstractmethod
    def schema(self) -> Schema: ...

    def configure(self, provider_data: Any, diags: Diagnostics) -> None:
        """Store provider data and build the API client.

        ``None`` means the provider is not configured yet and is ignored. The
        host may call this again: unchanged settings keep the current client,
        changed ones retire it until ``close``.
        """
        data, ok = parse_provider_data(provider_data, diags)
        if not ok or data is None:
            return
        current = self.active_clients()
        if data == self.provider_data and current:
            return
        self._retired_clients.extend(current)
        self.client = None
        self.provider_data = data
        self.configure_client(data, diags)

    @abstractmethod
    def configure_client(self, data: ProviderData, diags: Diagnostics) -> None: ...

    def active_clients(self) -> list[Any]:
        return [] if self.client is None else [self.client]

    @property
    def configured_data(self) -> ProviderData:
        if self.provider_data is None:
            raise ConfigurationError(f"{self.type_name} has not been configured")
        return self.provider_data

    def require_client(self, diags: Diagnostics) -> Any:
        """The configured API client, or ``None`` with an error diagnostic."""
        if self.client is None or self.provider_data is None:
            log_and_add_error(
                diags,
                f"Error using {self.display_name}",
                "The provider has not been configured",
            )
            return None
        return self.client

    async def close(self) -> None:
        """Close the current API clients and every client retired by a reconfigure."""
        clients, self._retired_clients = [*self._retired_clients, *self.active_clients()], []
        for client in clients:
            await client.close()


class Resource[M](_Configurable):
    """Base class for managed resources."""

    kind = "resource"

    composite_id: ClassVar[CompositeId]

    def __init__(self) -> None:
        self.provider_data = None
        self._retired_clients = []

    @abstractmethod
    async def create(self, request: CreateRequest[M]) -> Response[M]: ...

    @abstractmethod
    async def read(self, request: ReadRequest[M]) -> Response[M]: ...

    @abstractmethod
    async def update(self, request: UpdateRequest[M]) -> Response[M]: ...

    @abstractmethod
    async def delete(self, request: DeleteRequest[M]) -> Response[M]: ...

    def check_in_place_update(self, request: UpdateRequest[M], diags: Diagnostics) -> bool:
        """Reject an update that changes attributes only settable on create.

        Returns ``False`` after adding one error per changed attribute.
        """
        replaced = self.schema().replaced_attributes(request.plan, request.state)
        for path in replaced:
            logger.bind(component="resource", resource=self.display_name).error(
                "Planned change to {path} needs a replacement", path=path
            )
            diags.add_error(
                f"Error updating {self.display_name}",
                f'Attribute "{path}" cannot be updated in place. '
                f"The {self.display_name} has to be replaced.",
                attribute=path,
            )
        return not replaced

    def import_state(self, request: ImportStateRequest) -> ImportStateResponse:
        """Seed state attributes from a composite import identifier."""
        response = ImportStateResponse()
        try:
            response.attributes = self.composite_id.parse_dict(request.id)
        except ImportIdError as e:
            log_and_add_error(response.diagnostics, f"Error importing {self.display_name}", str(e))
            return response
        logger.bind(component="resource", resource=self.display_name, **response.attributes).info(
            "{name} state imported", name=self.display_name
        )
        return response


class DataSource[M](_Configurable):
    """Base class for read-only data sources."""

    kind = "datasource"

    def __init__(self) -> None:
        self.provider_data = None
        self._retired_clients = []

    @abstractmethod
    async def read(self, request: DataSourceReadRequest[M]) -> Response[M]: ...


__all__ = [
    "CreateRequest",
    "ReadRequest",
    "UpdateRequest",
    "DeleteRequest",
    "PROVIDER_TYPE_NAME",
    "ImportStateRequest",
    "DataSourceReadRequest",
    "Response",
    "ImportStateResponse",
    "Resource",
    "DataSource",
]
