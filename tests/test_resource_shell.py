from __future__ import annotations

from typing import Any

import pytest

from skyform.config import ProviderData
from skyform.core.diagnostics import Diagnostics
from skyform.core.exceptions import ConfigurationError
from skyform.core.identity import CompositeId
from skyform.core.schema import Schema, StringAttribute
from skyform.resource import (
    PROVIDER_TYPE_NAME,
    CreateRequest,
    DeleteRequest,
    ImportStateRequest,
    ReadRequest,
    Resource,
    Response,
    UpdateRequest,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class FakeClient:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class Widget(Resource[dict[str, Any]]):
    type_suffix = "widget"
    display_name = "widget"
    composite_id = CompositeId(("project_id", "widget_id"))

    def schema(self) -> Schema:
        return Schema(description="Widget.", attributes={"id": StringAttribute(computed=True)})

    def configure_client(self, data: ProviderData, diags: Diagnostics) -> None:
        self.client = FakeClient()

    async def create(self, request: CreateRequest[dict[str, Any]]) -> Response[dict[str, Any]]:
        response: Response[dict[str, Any]] = Response()
        if self.require_client(response.diagnostics) is not None:
            response.state = request.plan
        return response

    async def read(self, request: ReadRequest[dict[str, Any]]) -> Response[dict[str, Any]]:
        return Response(state=request.state)

    async def update(self, request: UpdateRequest[dict[str, Any]]) -> Response[dict[str, Any]]:
        return Response(state=request.plan)

    async def delete(self, request: DeleteRequest[dict[str, Any]]) -> Response[dict[str, Any]]:
        return Response()


class TestMetadata:
    def test_type_name(self):
        assert Widget().type_name == f"{PROVIDER_TYPE_NAME}_widget"
        assert Widget().metadata("other") == "other_widget"


class TestConfigure:
    def test_none_is_ignored(self):
        widget, diags = Widget(), Diagnostics()
        widget.configure(None, diags)
        assert len(diags) == 0
        assert widget.client is None

    def test_wrong_type(self):
        widget, diags = Widget(), Diagnostics()
        widget.configure({"default_region": "eu01"}, diags)
        assert diags.errors[0].summary == "Error configuring API client"
        assert diags.errors[0].detail == "Expected configure type ProviderData, got dict"
        assert widget.provider_data is None

    def test_stores_data_and_client(self):
        widget, data = Widget(), ProviderData()
        widget.configure(data, Diagnostics())
        assert widget.provider_data is data
        assert isinstance(widget.client, FakeClient)

    @pytest.mark.asyncio
    async def test_close(self):
        widget = Widget()
        widget.configure(ProviderData(), Diagnostics())
        await widget.close()
        assert widget.client.closed

    def test_same_settings_keep_client(self):
        widget = Widget()
        widget.configure(ProviderData(), Diagnostics())
        first = widget.client
        widget.configure(ProviderData(), Diagnostics())
        assert widget.client is first

    @pytest.mark.asyncio
    async def test_changed_settings_retire_client(self):
        widget = Widget()
        widget.configure(ProviderData(), Diagnostics())
        first = widget.client
        widget.configure(ProviderData(default_region="eu02"), Diagnostics())
        assert widget.client is not first
        assert widget.configured_data.get_region() == "eu02"
        assert not first.closed
        await widget.close()
        assert first.closed
        assert widget.client.closed

    def test_configured_data_requires_configure(self):
        with pytest.raises(ConfigurationError, match="skyform_widget has not been configured"):
            Widget().configured_data


class TestRequireClient:
    @pytest.mark.asyncio
    async def test_unconfigured(self):
        response = await Widget().create(CreateRequest(plan={"id": "x"}))
        assert response.state is None
        assert response.diagnostics.errors[0].summary == "Error using widget"

    @pytest.mark.asyncio
    async def test_configured(self):
        widget = Widget()
        widget.configure(ProviderData(), Diagnostics())
        response = await widget.create(CreateRequest(plan={"id": "x"}))
        assert response.state == {"id": "x"}


class TestResponse:
    def test_remove_resource(self):
        response = Response(state={"id": "x"})
        response.remove_resource()
        assert response.state is None
        assert not response.diagnostics.has_error()


class TestImportState:
    def test_parses_composite_id(self):
        response = Widget().import_state(ImportStateRequest(id="p1,w1"))
        assert response.attributes == {"project_id": "p1", "widget_id": "w1"}
        assert len(response.diagnostics) == 0

    @pytest.mark.parametrize("raw", ["p1", "p1,", ",w1", "p1,w1,extra"])
    def test_rejects_malformed(self, raw: str):
        response = Widget().import_state(ImportStateRequest(id=raw))
        assert response.attributes == {}
        assert response.diagnostics.errors[0].summary == "Error importing widget"
