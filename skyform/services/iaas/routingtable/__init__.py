from .route import RouteDataSource, RouteResource
from .routes import RoutesDataSource
from .table import RoutingTableDataSource, RoutingTableResource
from .tables import RoutingTablesDataSource

__all__ = [
    "RoutingTableResource",
    "RoutingTableDataSource",
    "RouteResource",
    "RouteDataSource",
    "RoutesDataSource",
    "RoutingTablesDataSource",
]
