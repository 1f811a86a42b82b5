"""IaaS (alpha): networks, routing tables and routes."""

from .client import IaasClient, configure_client
from .network import NetworkResource
from .routingtable import (
    RouteDataSource,
    RouteResource,
    RoutesDataSource,
    RoutingTableDataSource,
    RoutingTableResource,
    RoutingTablesDataSource,
)

__all__ = [
    "IaasClient",
    "configure_client",
    "NetworkResource",
    "RoutingTableResource",
    "RoutingTableDataSource",
    "RouteResource",
    "RouteDataSource",
    "RoutesDataSource",
    "RoutingTablesDataSource",
]
