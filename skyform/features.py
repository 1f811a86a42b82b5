"""Beta resources and experiments.

Some resources are only usable when the provider opts in, either through
``enable_beta_resources`` (overridable with ``SKYFORM_ENABLE_BETA_RESOURCES``)
or by listing an experiment in ``experiments``.
"""

from __future__ import annotations

import os
import threading
from typing import Literal

from skyform.config import ProviderData
from skyform.core.diagnostics import Diagnostics, log_and_add_error, log_and_add_warning

BETA_ENV_VAR = "SKYFORM_ENABLE_BETA_RESOURCES"

ROUTING_TABLES_EXPERIMENT = "routing-tables"
NETWORK_EXPERIMENT = "network"
IAM_EXPERIMENT = "iam"

AVAILABLE_EXPERIMENTS: tuple[str, ...] = (IAM_EXPERIMENT, ROUTING_TABLES_EXPERIMENT, NETWORK_EXPERIMENT)

type ResourceKind = Literal["resource", "datasource"]


def beta_resources_enabled(data: ProviderData, diags: Diagnostics) -> bool:
    value = os.environ.get(BETA_ENV_VAR)
    if value is not None:
        match value.lower():
            case "true":
                return True
            case "false":
                return False
            case _:
                diags.add_warning(
                    "Invalid value for SKYFORM_ENABLE_BETA_RESOURCES environment variable.",
                    "The value of SKYFORM_ENABLE_BETA_RESOURCES must be one of 'true' or 'false'. "
                    "Falling back to the provider configuration.",
                )
    return data.enable_beta_resources


def check_beta_resources_enabled(
    data: ProviderData, diags: Diagnostics, resource_name: str, kind: ResourceKind
) -> bool:
    """Error when beta resources are disabled, warning when they are enabled."""
    if not beta_resources_enabled(data, diags):
        log_and_add_error(
            diags,
            f"{resource_name} is in beta stage and beta resources are disabled",
            f"Enable beta resources by setting 'enable_beta_resources = true' in the provider "
            f"configuration or the {BETA_ENV_VAR} environment variable.",
        )
        return False
    log_and_add_warning(
        diags,
        f"{resource_name} {kind} is in beta stage",
        f"The {kind} is in beta stage and may change or be removed in the future. "
        "Use it at your own discretion.",
    )
    return True


class BetaGate:
    """One-time beta warnings per resource type.

    The host may call ``configure`` several times per provider lifetime; the
    gate makes sure each resource type warns only once. One gate is shared by
    all resources of a provider instance.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._checked: set[str] = set()

    def check(
        self, data: ProviderData, diags: Diagnostics, resource_name: str, kind: ResourceKind
    ) -> bool:
        with self._lock:
            if resource_name in self._checked:
                return True
            enabled = check_beta_resources_enabled(data, diags, resource_name, kind)
            if enabled:
                self._checked.add(resource_name)
            return enabled

    def reset(self) -> None:
        with self._lock:
            self._checked.clear()


def valid_experiment(experiment: str, diags: Diagnostics) -> bool:
    if any(e.lower() == experiment.lower() for e in AVAILABLE_EXPERIMENTS):
        return True
    diags.add_error(
        "Invalid Experiment",
        f"The Experiment {experiment} is invalid. This is most likely a bug in the provider. "
        f"Available Experiments: {list(AVAILABLE_EXPERIMENTS)}",
    )
    return False


def experiment_enabled(
    data: ProviderData, experiment: str, resource_name: str, kind: ResourceKind, diags: Diagnostics
) -> bool:
    """Like ``check_experiment_enabled`` but without an error when disabled."""
    if not valid_experiment(experiment, diags):
        diags.add_error(
            f"The experiment {experiment} does not exist.",
            "This is a bug in the provider. Please open an issue.",
        )
        return False
    if any(e.lower() == experiment.lower() for e in data.experiments):
        log_and_add_warning(
            diags,
            f"{resource_name} is part of the {experiment} experiment.",
            f"This {kind} is part of the {experiment} experiment and is likely going to undergo "
            "significant changes or be removed in the future. Use it at your own discretion.",
        )
        return True
    return False


def check_experiment_enabled(
    data: ProviderData, experiment: str, resource_name: str, kind: ResourceKind, diags: Diagnostics
) -> None:
    local = Diagnostics()
    enabled = experiment_enabled(data, experiment, resource_name, kind, local)
    diags.extend(local)
    if enabled or local.has_error():
        return
    log_and_add_error(
        diags,
        f"{resource_name} is part of the {experiment} experiment, which is currently disabled by default",
        f"Enable the {experiment} experiment by adding it into your provider configuration.",
    )


__all__ = [
    "BETA_ENV_VAR",
    "AVAILABLE_EXPERIMENTS",
    "ROUTING_TABLES_EXPERIMENT",
    "NETWORK_EXPERIMENT",
    "IAM_EXPERIMENT",
    "BetaGate",
    "beta_resources_enabled",
    "check_beta_resources_enabled",
    "valid_experiment",
    "experiment_enabled",
    "check_experiment_enabled",
]
