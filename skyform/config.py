"""TOML-based provider configuration.

Loads ~/.skyform/provider.toml (global) and skyform.toml (project), merges
them, applies environment overrides and validates the result into
``ProviderData``, the provider-wide settings every resource is configured
with.

Example ``skyform.toml``::

    default_region = "eu01"
    enable_beta_resources = true
    experiments = ["routing-tables"]

    [custom_endpoints]
    iaas = "https://iaas.example.internal"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skyform.core.diagnostics import Diagnostics, log_and_add_error
from skyform.core.exceptions import ConfigurationError
from skyform.core.values import StringValue

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skyform" / "provider.toml"
PROJECT_CONFIG_NAME = "skyform.toml"
ENV_PREFIX = "SKYFORM_"

DEFAULT_REGION = "eu01"

DEFAULT_ENDPOINTS: dict[str, str] = {
    "iaas": "https://iaas.api.stackit.cloud",
    "modelserving": "https://model-serving.api.{region}.stackit.cloud",
}


class ProviderData(BaseModel):
    """Provider-wide settings handed to every resource's ``configure``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_region: str = Field(default=DEFAULT_REGION, description="Region used when a resource sets none")
    service_account_token: str | None = Field(default=None, description="Bearer token for all API calls")
    custom_endpoints: dict[str, str] = Field(default_factory=dict, description="Service name to endpoint URL")
    enable_beta_resources: bool = Field(default=False, description="Enable resources in beta stage")
    experiments: list[str] = Field(default_factory=list, description="Enabled experiments")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    version: str = Field(default="dev", description="Provider version, sent as user agent")

    def get_region(self) -> str:
        return self.default_region

    def get_region_with_override(self, override: StringValue) -> str:
        """The model's region when it is set, else the provider default."""
        if override.is_known() and override.value:
            return override.value
        return self.default_region

    def endpoint_for(self, service: str, region: str | None = None) -> str:
        if custom := self.custom_endpoints.get(service):
            return custom
        template = DEFAULT_ENDPOINTS.get(service)
        if template is None:
            raise ConfigurationError(f"No endpoint known for service '{service}'")
        return template.format(region=region or self.default_region)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def _env_overrides(environ: Mapping[str, str]) -> RawConfig:
    overrides: RawConfig = {}
    if token := environ.get(f"{ENV_PREFIX}SERVICE_ACCOUNT_TOKEN"):
        overrides["service_account_token"] = token
    if region := environ.get(f"{ENV_PREFIX}DEFAULT_REGION"):
        overrides["default_region"] = region

    endpoints: dict[str, str] = {}
    suffix = "_CUSTOM_ENDPOINT"
    for key, value in environ.items():
        if key.startswith(ENV_PREFIX) and key.endswith(suffix) and value:
            service = key[len(ENV_PREFIX):-len(suffix)].lower()
            endpoints[service] = value
    if endpoints:
        overrides["custom_endpoints"] = endpoints
    return overrides


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_cfg = _read_toml((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME)

    merged = _deep_merge(global_cfg, project_cfg)
    return _deep_merge(merged, _env_overrides(os.environ if environ is None else environ))


def build_provider_data(raw: RawConfig) -> ProviderData:
    try:
        return ProviderData.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid provider configuration: {e}") from e


def resolve_provider_data(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProviderData:
    return build_provider_data(
        load_config(project_dir=project_dir, global_path=global_path, environ=environ)
    )


def parse_provider_data(provider_data: Any, diags: Diagnostics) -> tuple[ProviderData | None, bool]:
    """Type-check what the host passed to ``configure``.

    Returns ``(data, ok)``. ``None`` means the provider has not been configured
    yet, which is not an error.
    """
    if provider_data is None:
        return None, False
    if not isinstance(provider_data, ProviderData):
        log_and_add_error(
            diags,
            "Error configuring API client",
            f"Expected configure type ProviderData, got {type(provider_data).__name__}",
        )
        return None, False
    return provider_data, True


__all__ = [
    "ProviderData",
    "DEFAULT_REGION",
    "DEFAULT_ENDPOINTS",
    "load_config",
    "build_provider_data",
    "resolve_provider_data",
    "parse_provider_data",
]
