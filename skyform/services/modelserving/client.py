"""Async HTTP client for the model serving API."""

from __future__ import annotations

from typing import Any

from loguru import logger

from skyform.config import ProviderData
from skyform.core.diagnostics import Diagnostics, log_and_add_error
from skyform.core.exceptions import ApiError, ConfigurationError
from skyform.infra.http import BearerAuth, HttpClient, HttpError
from skyform.retry import API_BACKOFF, on_status_code, retry

from .types import TokenEnvelope

API_VERSION = "v1"


class ModelServingClient:
    """Async HTTP client for model serving auth tokens.

    The endpoint is regional, so one client talks to exactly one region.
    """

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
            service="modelserving",
        )
        self._log = logger.bind(service="modelserving", component="client")

    @classmethod
    def from_provider_data(cls, data: ProviderData, region: str) -> ModelServingClient:
        return cls(
            data.endpoint_for("modelserving", region),
            data.service_account_token,
            timeout=data.request_timeout,
            user_agent=f"skyform/{data.version}",
        )

    @property
    def base_url(self) -> str:
        return self._http.base_url

    async def close(self) -> None:
        await self._http.close()

    @retry(on=on_status_code(429, 503), policy=API_BACKOFF)
    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        try:
            return await self._http.request(method, f"/{API_VERSION}{path}", json=json)
        except HttpError as e:
            self._log.warning(
                "API error {method} {path}: {status}",
                method=method, path=path, status=e.status,
            )
            raise ApiError(e.status, e.body) from e

    @staticmethod
    def _tokens(region: str, project_id: str) -> str:
        return f"/regions/{region}/projects/{project_id}/tokens"

    async def create_token(
        self, region: str, project_id: str, payload: dict[str, Any]
    ) -> TokenEnvelope:
        return await self._request("POST", self._tokens(region, project_id), payload)

    async def get_token(self, region: str, project_id: str, token_id: str) -> TokenEnvelope:
        return await self._request("GET", f"{self._tokens(region, project_id)}/{token_id}")

    async def update_token(
        self, region: str, project_id: str, token_id: str, payload: dict[str, Any]
    ) -> TokenEnvelope:
        return await self._request("PATCH", f"{self._tokens(region, project_id)}/{token_id}", payload)

    async def delete_token(self, region: str, project_id: str, token_id: str) -> None:
        await self._request("DELETE", f"{self._tokens(region, project_id)}/{token_id}")


def configure_client(
    data: ProviderData, diags: Diagnostics, region: str | None = None
) -> ModelServingClient | None:
    """Build a client for ``region``, the provider region by default."""
    region = region or data.get_region()
    try:
        client = ModelServingClient.from_provider_data(data, region)
    except ConfigurationError as e:
        log_and_add_error(
            diags,
            "Error configuring API client",
            f"Configuring client: {e}. This is an error related to the provider configuration, "
            "not to the resource configuration",
            service="modelserving",
        )
        return None
    logger.bind(service="modelserving", component="client", region=region).info(
        "Model serving client configured for {url}", url=client.base_url
    )
    return client


__all__ = ["ModelServingClient", "API_VERSION", "configure_client"]
