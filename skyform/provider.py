"""In-process provider runtime.

Builds ``ProviderData`` and wires the resources through an injector. Each
resource is configured the first time it is looked up, so gated resources
that are never used produce no diagnostics.

Example:

    provider = Provider()
    diags = provider.configure({"experiments": ["routing-tables"]})
    tables = provider.resource("skyform_routing_table")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from injector import Binder, Injector, Module, provider, singleton
from loguru import logger

from skyform.config import ProviderData, build_provider_data, resolve_provider_data
from skyform.core.diagnostics import Diagnostics, log_and_add_error
from skyform.core.exceptions import ConfigurationError
from skyform.features import BetaGate
from skyform.resource import PROVIDER_TYPE_NAME, DataSource, Resource
from skyform.services.iaas import (
    NetworkResource,
    RouteDataSource,
    RouteResource,
    RoutesDataSource,
    RoutingTableDataSource,
    RoutingTableResource,
    RoutingTablesDataSource,
)
from skyform.services.modelserving import ModelServingTokenDataSource, ModelServingTokenResource

RESOURCES: tuple[type[Resource[Any]], ...] = (
    NetworkResource,
    RoutingTableResource,
    RouteResource,
    ModelServingTokenResource,
)

DATA_SOURCES: tuple[type[DataSource[Any]], ...] = (
    RoutingTableDataSource,
    RouteDataSource,
    RoutesDataSource,
    RoutingTablesDataSource,
    ModelServingTokenDataSource,
)


class ProviderModule(Module):
    """Binds the provider settings and the state shared by all resources.

    Usage:
        injector = Injector([ProviderModule(data)])
        network = injector.get(NetworkResource)
    """

    def __init__(self, data: ProviderData) -> None:
        self._data = data

    def configure(self, binder: Binder) -> None:
        binder.bind(ProviderData, to=self._data)

    @singleton
    @provider
    def provide_beta_gate(self) -> BetaGate:
        return BetaGate()


class Provider:
    """Registry of configured resources and data sources, keyed by type name."""

    type_name = PROVIDER_TYPE_NAME

    def __init__(self) -> None:
        self._data: ProviderData | None = None
        self._injector: Injector | None = None
        self._resources: dict[str, Resource[Any]] = {}
        self._data_sources: dict[str, DataSource[Any]] = {}
        self._configured: set[str] = set()
        # replaced by a later configure; closed with the provider
        self._retired: list[Resource[Any] | DataSource[Any]] = []

    @property
    def data(self) -> ProviderData | None:
        return self._data

    @property
    def resources(self) -> list[str]:
        return sorted(self._resources)

    @property
    def data_sources(self) -> list[str]:
        return sorted(self._data_sources)

    def configure(self, config: ProviderData | Mapping[str, Any] | None = None) -> Diagnostics:
        """Configure the provider and instantiate every registered resource.

        ``config`` may be ready ``ProviderData``, a raw mapping, or ``None`` to
        load the TOML files and environment.
        """
        diags = Diagnostics()
        try:
            match config:
                case ProviderData():
                    data = config
                case None:
                    data = resolve_provider_data()
                case _:
                    data = build_provider_data(dict(config))
        except ConfigurationError as e:
            log_and_add_error(diags, "Error configuring provider", str(e))
            return diags

        if data == self._data:
            logger.bind(component="provider").debug("Provider settings unchanged, keeping resources")
            return diags

        self._retired.extend((*self._resources.values(), *self._data_sources.values()))
        self._data = data
        self._injector = Injector([ProviderModule(data)])
        self._resources = {}
        self._data_sources = {}
        self._configured = set()

        for resource_cls in RESOURCES:
            resource = self._injector.get(resource_cls)
            self._resources[resource.metadata(self.type_name)] = resource
        for data_source_cls in DATA_SOURCES:
            data_source = self._injector.get(data_source_cls)
            self._data_sources[data_source.metadata(self.type_name)] = data_source

        logger.bind(component="provider").info(
            "Provider configured: {n} resources, {m} data sources, region {region}",
            n=len(self._resources), m=len(self._data_sources), region=data.get_region(),
        )
        return diags

    def resource(self, type_name: str, diags: Diagnostics | None = None) -> Resource[Any]:
        """Look up a resource, configuring it on first use.

        Configuration diagnostics (beta warnings, disabled experiments) are
        added to ``diags``.
        """
        if type_name not in self._resources:
            raise KeyError(f"Unknown resource type '{type_name}'")
        resource = self._resources[type_name]
        self._ensure_configured(f"resource:{type_name}", resource, diags)
        return resource

    def data_source(self, type_name: str, diags: Diagnostics | None = None) -> DataSource[Any]:
        if type_name not in self._data_sources:
            raise KeyError(f"Unknown data source type '{type_name}'")
        data_source = self._data_sources[type_name]
        self._ensure_configured(f"datasource:{type_name}", data_source, diags)
        return data_source

    def _ensure_configured(
        self, key: str, item: Resource[Any] | DataSource[Any], diags: Diagnostics | None
    ) -> None:
        if key in self._configured or self._data is None:
            return
        item.configure(self._data, diags if diags is not None else Diagnostics())
        self._configured.add(key)

    async def close(self) -> None:
        items = [*self._retired, *self._resources.values(), *self._data_sources.values()]
        self._retired = []
        for item in items:
            await item.close()

    async def __aenter__(self) -> Provider:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


__all__ = ["Provider", "ProviderModule", "RESOURCES", "DATA_SOURCES"]
