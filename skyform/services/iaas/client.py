"""Async HTTP client for the IaaS (alpha) API."""

from __future__ import annotations

from typing import Any

from loguru import logger

from skyform.config import ProviderData
from skyform.core.diagnostics import Diagnostics, log_and_add_error
from skyform.core.exceptions import ApiError, ConfigurationError
from skyform.infra.http import BearerAuth, HttpClient, HttpError
from skyform.retry import API_BACKOFF, on_status_code, retry

from .types import (
    NetworkResponse,
    RouteListResponse,
    RouteResponse,
    RoutingTableListResponse,
    RoutingTableResponse,
)

API_VERSION = "v1alpha1"


class IaasClient:
    """Async HTTP client for routing tables, routes and networks."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 30,
        user_agent: str = "skyform/dev",
    ) -> None:
        self._http = HttpClient(
            base_url,
            BearerAuth(token) if token else None,
            timeout=timeout,
            default_headers={"User-Agent": user_agent},
            service="iaas",
        )
        self._log = logger.bind(service="iaas", component="client")

    @classmethod
    def from_provider_data(cls, data: ProviderData, region: str | None = None) -> IaasClient:
        return cls(
            data.endpoint_for("iaas", region),
            data.service_account_token,
            timeout=data.request_timeout,
            user_agent=f"skyform/{data.version}",
        )

    @property
    def base_url(self) -> str:
        return self._http.base_url

    async def __aenter__(self) -> IaasClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.close()

    @retry(on=on_status_code(429, 503), policy=API_BACKOFF)
    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            return await self._http.request(method, f"/{API_VERSION}{path}", json=json)
        except HttpError as e:
            self._log.warning(
                "API error {method} {path}: {status}",
                method=method, path=path, status=e.status,
            )
            raise ApiError(e.status, e.body) from e

    # =========================================================================
    # Routing tables
    # =========================================================================

    @staticmethod
    def _tables(organization_id: str, network_area_id: str, region: str) -> str:
        return (
            f"/organizations/{organization_id}/network-areas/{network_area_id}"
            f"/regions/{region}/routing-tables"
        )

    async def create_routing_table(
        self, organization_id: str, network_area_id: str, region: str, payload: dict[str, Any]
    ) -> RoutingTableResponse:
        return await self._request(
            "POST", self._tables(organization_id, network_area_id, region), payload
        )

    async def get_routing_table(
        self, organization_id: str, network_area_id: str, region: str, routing_table_id: str
    ) -> RoutingTableResponse:
        path = f"{self._tables(organization_id, network_area_id, region)}/{routing_table_id}"
        return await self._request("GET", path)

    async def list_routing_tables(
        self, organization_id: str, network_area_id: str, region: str
    ) -> RoutingTableListResponse:
        return await self._request("GET", self._tables(organization_id, network_area_id, region))

    async def update_routing_table(
        self,
        organization_id: str,
        network_area_id: str,
        region: str,
        routing_table_id: str,
        payload: dict[str, Any],
    ) -> RoutingTableResponse:
        path = f"{self._tables(organization_id, network_area_id, region)}/{routing_table_id}"
        return await self._request("PATCH", path, payload)

    async def delete_routing_table(
        self, organization_id: str, network_area_id: str, region: str, routing_table_id: str
    ) -> None:
        path = f"{self._tables(organization_id, network_area_id, region)}/{routing_table_id}"
        await self._request("DELETE", path)

    # =========================================================================
    # Routes
    # =========================================================================

    def _routes(
        self, organization_id: str, network_area_id: str, region: str, routing_table_id: str
    ) -> str:
        return f"{self._tables(organization_id, network_area_id, region)}/{routing_table_id}/routes"

    async def add_routes(
        self,
        organization_id: str,
        network_area_id: str,
        region: str,
        routing_table_id: str,
        routes: list[dict[str, Any]],
    ) -> RouteListResponse:
        path = self._routes(organization_id, network_area_id, region, routing_table_id)
        return await self._request("POST", path, {"items": routes})

    async def get_route(
        self,
        organization_id: str,
        network_area_id: str,
        region: str,
        routing_table_id: str,
        route_id: str,
    ) -> RouteResponse:
        path = f"{self._routes(organization_id, network_area_id, region, routing_table_id)}/{route_id}"
        return await self._request("GET", path)

    async def list_routes(
        self, organization_id: str, network_area_id: str, region: str, routing_table_id: str
    ) -> RouteListResponse:
        return await self._request(
            "GET", self._routes(organization_id, network_area_id, region, routing_table_id)
        )

    async def update_route(
        self,
        organization_id: str,
        network_area_id: str,
        region: str,
        routing_table_id: str,
        route_id: str,
        payload: dict[str, Any],
    ) -> RouteResponse:
        path = f"{self._routes(organization_id, network_area_id, region, routing_table_id)}/{route_id}"
        return await self._request("PATCH", path, payload)

    async def delete_route(
        self,
        organization_id: str,
        network_area_id: str,
        region: str,
        routing_table_id: str,
        route_id: str,
    ) -> None:
        path = f"{self._routes(organization_id, network_area_id, region, routing_table_id)}/{route_id}"
        await self._request("DELETE", path)

    # =========================================================================
    # Networks
    # =========================================================================

    @staticmethod
    def _networks(project_id: str, region: str) -> str:
        return f"/projects/{project_id}/regions/{region}/networks"

    async def create_network(
        self, project_id: str, region: str, payload: dict[str, Any]
    ) -> NetworkResponse:
        return await self._request("POST", self._networks(project_id, region), payload)

    async def get_network(self, project_id: str, region: str, network_id: str) -> NetworkResponse:
        return await self._request("GET", f"{self._networks(project_id, region)}/{network_id}")

    async def update_network(
        self, project_id: str, region: str, network_id: str, payload: dict[str, Any]
    ) -> None:
        await self._request("PATCH", f"{self._networks(project_id, region)}/{network_id}", payload)

    async def delete_network(self, project_id: str, region: str, network_id: str) -> None:
        await self._request("DELETE", f"{self._networks(project_id, region)}/{network_id}")


def configure_client(data: ProviderData, diags: Diagnostics) -> IaasClient | None:
    """Build the client a resource talks to, honouring a custom endpoint."""
    try:
        client = IaasClient.from_provider_data(data)
    except ConfigurationError as e:
        log_and_add_error(diags, "Error configuring API client", str(e), service="iaas")
        return None
    logger.bind(service="iaas", component="client").info(
        "IaaS client configured for {url}", url=client.base_url
    )
    return client


__all__ = ["IaasClient", "API_VERSION", "configure_client"]
