from __future__ import annotations

import pytest

from skyform.config import ProviderData
from skyform.core.diagnostics import Diagnostics
from skyform.features import (
    BETA_ENV_VAR,
    BetaGate,
    beta_resources_enabled,
    check_experiment_enabled,
    experiment_enabled,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestBetaResources:
    def test_disabled_by_default(self):
        assert not beta_resources_enabled(ProviderData(), Diagnostics())

    def test_env_overrides_config(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(BETA_ENV_VAR, "TRUE")
        assert beta_resources_enabled(ProviderData(), Diagnostics())
        monkeypatch.setenv(BETA_ENV_VAR, "false")
        assert not beta_resources_enabled(ProviderData(enable_beta_resources=True), Diagnostics())

    def test_invalid_env_value_warns(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(BETA_ENV_VAR, "yes")
        diags = Diagnostics()
        assert beta_resources_enabled(ProviderData(enable_beta_resources=True), diags)
        assert len(diags.warnings) == 1


class TestBetaGate:
    def test_disabled_is_an_error(self, beta_gate: BetaGate):
        diags = Diagnostics()
        assert not beta_gate.check(ProviderData(), diags, "skyform_network", "resource")
        assert "beta resources are disabled" in diags.errors[0].summary

    def test_warns_once_per_type(self, beta_gate: BetaGate):
        data = ProviderData(enable_beta_resources=True)
        first, second, other = Diagnostics(), Diagnostics(), Diagnostics()
        assert beta_gate.check(data, first, "skyform_network", "resource")
        assert beta_gate.check(data, second, "skyform_network", "resource")
        assert beta_gate.check(data, other, "skyform_network_area", "resource")
        assert len(first.warnings) == 1
        assert len(second) == 0
        assert len(other.warnings) == 1

    def test_reset(self, beta_gate: BetaGate):
        data = ProviderData(enable_beta_resources=True)
        beta_gate.check(data, Diagnostics(), "skyform_network", "resource")
        beta_gate.reset()
        diags = Diagnostics()
        beta_gate.check(data, diags, "skyform_network", "resource")
        assert len(diags.warnings) == 1

    def test_error_does_not_mark_checked(self, beta_gate: BetaGate):
        beta_gate.check(ProviderData(), Diagnostics(), "skyform_network", "resource")
        diags = Diagnostics()
        assert beta_gate.check(ProviderData(enable_beta_resources=True), diags, "skyform_network", "resource")
        assert len(diags.warnings) == 1


class TestExperiments:
    def test_enabled_warns(self):
        diags = Diagnostics()
        data = ProviderData(experiments=["Routing-Tables"])
        assert experiment_enabled(data, "routing-tables", "skyform_routing_table", "resource", diags)
        assert not diags.has_error()
        assert "routing-tables experiment" in diags.warnings[0].summary

    def test_disabled_is_an_error(self):
        diags = Diagnostics()
        check_experiment_enabled(ProviderData(), "network", "skyform_network", "resource", diags)
        assert diags.errors[0].summary == (
            "skyform_network is part of the network experiment, which is currently disabled by default"
        )

    def test_unknown_experiment(self):
        diags = Diagnostics()
        check_experiment_enabled(ProviderData(experiments=["dns"]), "dns", "skyform_dns", "resource", diags)
        summaries = [d.summary for d in diags.errors]
        assert summaries == ["Invalid Experiment", "The experiment dns does not exist."]
