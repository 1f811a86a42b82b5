"""Wait handlers for model serving auth tokens."""

from __future__ import annotations

from skyform.wait import WaitHandler, deleted_check, status_check

from .client import ModelServingClient
from .types import TokenEnvelope

ACTIVE_STATE = "active"
INACTIVE_STATE = "inactive"
TOKEN_TIMEOUT = 10 * 60


def _state_of(envelope: TokenEnvelope) -> str | None:
    return (envelope.get("token") or {}).get("state")


def _active_handler(
    client: ModelServingClient, region: str, project_id: str, token_id: str, interval: float
) -> WaitHandler[TokenEnvelope]:
    description = f"model serving auth token {token_id}"
    return WaitHandler(
        status_check(
            lambda: client.get_token(region, project_id, token_id),
            _state_of,
            success={ACTIVE_STATE},
            failure={INACTIVE_STATE},
            description=description,
        ),
        timeout=TOKEN_TIMEOUT,
        interval=interval,
        description=description,
    )


def create_token_wait_handler(
    client: ModelServingClient, region: str, project_id: str, token_id: str, *, interval: float = 5.0
) -> WaitHandler[TokenEnvelope]:
    return _active_handler(client, region, project_id, token_id, interval)


def update_token_wait_handler(
    client: ModelServingClient, region: str, project_id: str, token_id: str, *, interval: float = 5.0
) -> WaitHandler[TokenEnvelope]:
    return _active_handler(client, region, project_id, token_id, interval)


def delete_token_wait_handler(
    client: ModelServingClient, region: str, project_id: str, token_id: str, *, interval: float = 5.0
) -> WaitHandler[TokenEnvelope]:
    return WaitHandler(
        deleted_check(lambda: client.get_token(region, project_id, token_id)),
        timeout=TOKEN_TIMEOUT,
        interval=interval,
        description=f"model serving auth token {token_id} deletion",
    )


__all__ = [
    "ACTIVE_STATE",
    "INACTIVE_STATE",
    "TOKEN_TIMEOUT",
    "create_token_wait_handler",
    "update_token_wait_handler",
    "delete_token_wait_handler",
]
