"""Wait handlers for IaaS network operations."""

from __future__ import annotations

from skyform.core.exceptions import MappingError
from skyform.wait import CheckFn, WaitHandler, deleted_check

from .client import IaasClient
from .types import NetworkResponse

CREATE_SUCCESS = "CREATED"
NETWORK_TIMEOUT = 15 * 60


def _network_ready(
    client: IaasClient, project_id: str, region: str, network_id: str, action: str
) -> CheckFn[NetworkResponse]:
    async def check() -> tuple[bool, NetworkResponse | None]:
        network = await client.get_network(project_id, region, network_id)
        if network.get("id") is None or network.get("status") is None:
            raise MappingError(
                f"{action} failed for network with id {network_id}, the response is not valid: "
                "the id or the state are missing"
            )
        # the status returns to CREATED once the operation completed
        return network["id"] == network_id and network["status"] == CREATE_SUCCESS, network

    return check


def create_network_wait_handler(
    client: IaasClient, project_id: str, region: str, network_id: str, *, interval: float = 5.0,
    sleep_before_wait: float = 2.0,
) -> WaitHandler[NetworkResponse]:
    return WaitHandler(
        _network_ready(client, project_id, region, network_id, "create"),
        timeout=NETWORK_TIMEOUT,
        interval=interval,
        sleep_before_wait=sleep_before_wait,
        description=f"network {network_id}",
    )


def update_network_wait_handler(
    client: IaasClient, project_id: str, region: str, network_id: str, *, interval: float = 5.0,
    sleep_before_wait: float = 2.0,
) -> WaitHandler[NetworkResponse]:
    return WaitHandler(
        _network_ready(client, project_id, region, network_id, "update"),
        timeout=NETWORK_TIMEOUT,
        interval=interval,
        sleep_before_wait=sleep_before_wait,
        description=f"network {network_id}",
    )


def delete_network_wait_handler(
    client: IaasClient, project_id: str, region: str, network_id: str, *, interval: float = 5.0
) -> WaitHandler[NetworkResponse]:
    return WaitHandler(
        deleted_check(lambda: client.get_network(project_id, region, network_id)),
        timeout=NETWORK_TIMEOUT,
        interval=interval,
        description=f"network {network_id} deletion",
    )


__all__ = [
    "CREATE_SUCCESS",
    "NETWORK_TIMEOUT",
    "create_network_wait_handler",
    "update_network_wait_handler",
    "delete_network_wait_handler",
]
