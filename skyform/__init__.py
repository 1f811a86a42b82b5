"""Skyform - a cloud provider resource layer.

Resources map between plan/state models and cloud API payloads: composite
import identifiers, field mappers, label diffs and wait handlers for
asynchronous operations.

Example:

    from skyform import Provider, CreateRequest
    from skyform.services.iaas.routingtable.shared import RoutingTableModel

    provider = Provider()
    provider.configure({"experiments": ["routing-tables"]})
    tables = provider.resource("skyform_routing_table")
    response = await tables.create(CreateRequest(plan=RoutingTableModel(...)))
"""

# Logging is off until setup_logging() is called
from skyform.observability import LogConfig, setup_logging, teardown_logging

from skyform.config import ProviderData, resolve_provider_data
from skyform.core import (
    ApiError,
    CompositeId,
    ConfigurationError,
    Diagnostics,
    ImportIdError,
    MappingError,
    SkyformError,
    WaitError,
)
from skyform.provider import Provider
from skyform.resource import (
    CreateRequest,
    DataSource,
    DataSourceReadRequest,
    DeleteRequest,
    ImportStateRequest,
    ReadRequest,
    Resource,
    Response,
    UpdateRequest,
)
from skyform.wait import WaitHandler

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "LogConfig",
    "setup_logging",
    "teardown_logging",
    "ProviderData",
    "resolve_provider_data",
    "Provider",
    "Diagnostics",
    "CompositeId",
    "SkyformError",
    "ConfigurationError",
    "MappingError",
    "ImportIdError",
    "ApiError",
    "WaitError",
    "CreateRequest",
    "ReadRequest",
    "UpdateRequest",
    "DeleteRequest",
    "ImportStateRequest",
    "DataSourceReadRequest",
    "Response",
    "Resource",
    "DataSource",
    "WaitHandler",
]
