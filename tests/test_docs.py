from __future__ import annotations

import pytest
from rich.console import Console

from skyform.docs import MODE_STYLES, print_provider_docs, render_schema, schema_table
from skyform.provider import Provider
from skyform.services.iaas import RouteResource
from skyform.services.modelserving import ModelServingTokenResource

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def _render(renderable) -> str:
    console = Console(record=True, width=200, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestRenderSchema:
    def test_nested_attributes_become_branches(self):
        text = _render(render_schema("skyform_routing_table_route", RouteResource().schema()))
        assert "skyform_routing_table_route" in text
        assert "next_hop (object, required)" in text
        assert "destination (object, required)" in text
        lines = text.splitlines()
        value_lines = [line for line in lines if "value (string" in line]
        assert len(value_lines) == 2

    def test_replacement_marker(self):
        text = _render(render_schema("skyform_routing_table_route", RouteResource().schema()))
        assert "organization_id (string, required, forces replacement)" in text
        assert "labels (map, optional)" in text

    def test_sensitive_marker(self):
        text = _render(render_schema("skyform_modelserving_token", ModelServingTokenResource().schema()))
        assert "content (string, computed, sensitive)" in text


class TestSchemaTable:
    def test_one_row_per_top_level_attribute(self):
        schema = RouteResource().schema()
        table = schema_table(schema)
        assert table.row_count == len(schema.attributes)
        assert [c.header for c in table.columns] == ["Attribute", "Type", "Mode", "Description"]

    def test_modes_are_styled(self):
        assert set(MODE_STYLES) == {"required", "optional", "optional, computed", "computed"}


class TestProviderDocs:
    @pytest.mark.asyncio
    async def test_prints_every_type(self):
        console = Console(record=True, width=200, color_system=None)
        async with Provider() as provider:
            provider.configure({"experiments": ["routing-tables"]})
            print_provider_docs(provider, console)
        text = console.export_text()
        assert "Resources" in text
        assert "Data sources" in text
        for name in provider.resources + provider.data_sources:
            assert name in text
