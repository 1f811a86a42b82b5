from __future__ import annotations

import itertools
import uuid
from collections.abc import AsyncIterator
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from skyform.config import ProviderData
from skyform.features import BetaGate

ORG_ID = "8f4c7a3e-0d3b-4a8e-9a1e-2c5b9f0e6d11"
AREA_ID = "1b2c3d4e-5f60-4718-89ab-cdef01234567"
PROJECT_ID = "a4f6f2a1-7c2e-4b9a-b1d4-6f0e3c2d1a90"
TOKEN = "test-token"
TIMESTAMP = "2025-01-15T10:30:00Z"


def new_id() -> str:
    return str(uuid.uuid4())


# ─── Fake IaaS API ───────────────────────────────────────────────────


class FakeIaas:
    """In-memory IaaS API: routing tables, routes and networks.

    Networks report ``CREATING`` on the first poll after create/update and
    ``CREATED`` afterwards.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = {}
        self.routes: dict[str, dict[str, dict[str, Any]]] = {}
        self.networks: dict[str, dict[str, Any]] = {}
        self.pending_polls: dict[str, int] = {}
        self.requests: list[tuple[str, str, Any]] = []
        self.fail_with: dict[str, int] = {}

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._middleware])
        tables = "/v1alpha1/organizations/{org}/network-areas/{area}/regions/{region}/routing-tables"
        app.router.add_post(tables, self.create_table, name="create_table")
        app.router.add_get(tables, self.list_tables, name="list_tables")
        app.router.add_get(tables + "/{table}", self.get_table, name="get_table")
        app.router.add_patch(tables + "/{table}", self.update_table, name="update_table")
        app.router.add_delete(tables + "/{table}", self.delete_table, name="delete_table")
        app.router.add_post(tables + "/{table}/routes", self.add_routes, name="add_routes")
        app.router.add_get(tables + "/{table}/routes", self.list_routes, name="list_routes")
        app.router.add_get(tables + "/{table}/routes/{route}", self.get_route, name="get_route")
        app.router.add_patch(tables + "/{table}/routes/{route}", self.update_route, name="update_route")
        app.router.add_delete(tables + "/{table}/routes/{route}", self.delete_route, name="delete_route")

        networks = "/v1alpha1/projects/{project}/regions/{region}/networks"
        app.router.add_post(networks, self.create_network, name="create_network")
        app.router.add_get(networks + "/{network}", self.get_network, name="get_network")
        app.router.add_patch(networks + "/{network}", self.update_network, name="update_network")
        app.router.add_delete(networks + "/{network}", self.delete_network, name="delete_network")
        return app

    @web.middleware
    async def _middleware(self, request: web.Request, handler: Any) -> web.StreamResponse:
        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return web.json_response({"message": "unauthorized"}, status=401)
        body = await request.json() if request.can_read_body else None
        self.requests.append((request.method, request.path, body))
        if (status := self.fail_with.get(request.match_info.route.name or "")) is not None:
            return web.json_response({"message": "injected failure"}, status=status)
        return await handler(request)

    # routing tables

    async def create_table(self, request: web.Request) -> web.Response:
        body = await request.json()
        table = {
            "id": new_id(),
            "name": body["name"],
            "description": body.get("description"),
            "labels": body.get("labels") or {},
            "default": False,
            "systemRoutes": body.get("systemRoutes", True),
            "createdAt": TIMESTAMP,
            "updatedAt": TIMESTAMP,
        }
        self.tables[table["id"]] = table
        self.routes[table["id"]] = {}
        return web.json_response(table, status=201)

    async def list_tables(self, _: web.Request) -> web.Response:
        return web.json_response({"items": list(self.tables.values())})

    def _table(self, request: web.Request) -> dict[str, Any]:
        if (table := self.tables.get(request.match_info["table"])) is None:
            raise web.HTTPNotFound(text='{"message": "routing table not found"}')
        return table

    async def get_table(self, request: web.Request) -> web.Response:
        return web.json_response(self._table(request))

    async def update_table(self, request: web.Request) -> web.Response:
        table = self._table(request)
        body = await request.json()
        _apply_label_patch(table, body.pop("labels", None))
        table.update(body)
        return web.json_response(table)

    async def delete_table(self, request: web.Request) -> web.Response:
        self._table(request)
        del self.tables[request.match_info["table"]]
        return web.Response(status=204)

    # routes

    async def add_routes(self, request: web.Request) -> web.Response:
        self._table(request)
        body = await request.json()
        created = []
        for item in body["items"]:
            route = {
                "id": new_id(),
                "destination": item.get("destination"),
                "nexthop": item.get("nexthop"),
                "labels": item.get("labels") or {},
                "createdAt": TIMESTAMP,
                "updatedAt": TIMESTAMP,
            }
            self.routes[request.match_info["table"]][route["id"]] = route
            created.append(route)
        return web.json_response({"items": created}, status=201)

    async def list_routes(self, request: web.Request) -> web.Response:
        self._table(request)
        return web.json_response({"items": list(self.routes[request.match_info["table"]].values())})

    def _route(self, request: web.Request) -> dict[str, Any]:
        self._table(request)
        if (route := self.routes[request.match_info["table"]].get(request.match_info["route"])) is None:
            raise web.HTTPNotFound(text='{"message": "route not found"}')
        return route

    async def get_route(self, request: web.Request) -> web.Response:
        return web.json_response(self._route(request))

    async def update_route(self, request: web.Request) -> web.Response:
        route = self._route(request)
        body = await request.json()
        _apply_label_patch(route, body.get("labels"))
        return web.json_response(route)

    async def delete_route(self, request: web.Request) -> web.Response:
        self._route(request)
        del self.routes[request.match_info["table"]][request.match_info["route"]]
        return web.Response(status=204)

    # networks

    async def create_network(self, request: web.Request) -> web.Response:
        body = await request.json()
        ipv4 = body.get("ipv4") or {}
        network = {
            "id": new_id(),
            "name": body["name"],
            "status": "CREATING",
            "labels": body.get("labels") or {},
            "ipv4": {
                "nameservers": ipv4.get("nameservers", []),
                "prefixes": [ipv4.get("prefix", "10.0.0.0/24")],
                "gateway": ipv4.get("gateway", "10.0.0.1"),
                "publicIp": "193.148.160.10",
            },
            "routed": body.get("routed", True),
        }
        if "routingTableId" in body:
            network["routingTableId"] = body["routingTableId"]
        self.networks[network["id"]] = network
        self.pending_polls[network["id"]] = 1
        return web.json_response({"id": network["id"], "name": network["name"], "status": "CREATING"}, status=202)

    def _network(self, request: web.Request) -> dict[str, Any]:
        if (network := self.networks.get(request.match_info["network"])) is None:
            raise web.HTTPNotFound(text='{"message": "network not found"}')
        return network

    async def get_network(self, request: web.Request) -> web.Response:
        network = self._network(request)
        if self.pending_polls.get(network["id"], 0) > 0:
            self.pending_polls[network["id"]] -= 1
        else:
            network["status"] = "CREATED"
        return web.json_response(network)

    async def update_network(self, request: web.Request) -> web.Response:
        network = self._network(request)
        body = await request.json()
        _apply_label_patch(network, body.pop("labels", None))
        if (ipv4 := body.pop("ipv4", None)) is not None:
            network["ipv4"].update(ipv4)
        network.update(body)
        network["status"] = "UPDATING"
        self.pending_polls[network["id"]] = 1
        return web.Response(status=202)

    async def delete_network(self, request: web.Request) -> web.Response:
        self._network(request)
        del self.networks[request.match_info["network"]]
        return web.Response(status=202)


def _apply_label_patch(target: dict[str, Any], patch: dict[str, str | None] | None) -> None:
    if patch is None:
        return
    labels = dict(target.get("labels") or {})
    for key, value in patch.items():
        if value is None:
            labels.pop(key, None)
        else:
            labels[key] = value
    target["labels"] = labels


# ─── Fake model serving API ──────────────────────────────────────────


class FakeModelServing:
    """In-memory model serving API; new tokens are ``creating`` for one poll."""

    def __init__(self) -> None:
        self.tokens: dict[str, dict[str, Any]] = {}
        self.pending_polls: dict[str, int] = {}
        self.counter = itertools.count(1)

    def app(self) -> web.Application:
        app = web.Application()
        tokens = "/v1/regions/{region}/projects/{project}/tokens"
        app.router.add_post(tokens, self.create_token)
        app.router.add_get(tokens + "/{token}", self.get_token)
        app.router.add_patch(tokens + "/{token}", self.update_token)
        app.router.add_delete(tokens + "/{token}", self.delete_token)
        return app

    async def create_token(self, request: web.Request) -> web.Response:
        body = await request.json()
        token = {
            "id": new_id(),
            "name": body.get("name"),
            "description": body.get("description"),
            "state": "creating",
            "region": request.match_info["region"],
            "validUntil": "2030-01-01T00:00:00Z",
        }
        self.tokens[token["id"]] = token
        self.pending_polls[token["id"]] = 1
        return web.json_response(
            {"token": {**token, "content": f"secret-{next(self.counter)}"}}, status=201
        )

    def _token(self, request: web.Request) -> dict[str, Any]:
        if (token := self.tokens.get(request.match_info["token"])) is None:
            raise web.HTTPNotFound(text='{"message": "token not found"}')
        return token

    async def get_token(self, request: web.Request) -> web.Response:
        token = self._token(request)
        if self.pending_polls.get(token["id"], 0) > 0:
            self.pending_polls[token["id"]] -= 1
        elif token["state"] == "creating":
            token["state"] = "active"
        return web.json_response({"token": token})

    async def update_token(self, request: web.Request) -> web.Response:
        token = self._token(request)
        token.update(await request.json())
        return web.json_response({"token": token})

    async def delete_token(self, request: web.Request) -> web.Response:
        self._token(request)
        del self.tokens[request.match_info["token"]]
        return web.Response(status=204)


# ─── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def fake_iaas() -> FakeIaas:
    return FakeIaas()


@pytest.fixture
def fake_modelserving() -> FakeModelServing:
    return FakeModelServing()


@pytest.fixture
async def iaas_url(fake_iaas: FakeIaas) -> AsyncIterator[str]:
    srv = TestServer(fake_iaas.app())
    await srv.start_server()
    yield f"http://{srv.host}:{srv.port}"
    await srv.close()


@pytest.fixture
async def modelserving_url(fake_modelserving: FakeModelServing) -> AsyncIterator[str]:
    srv = TestServer(fake_modelserving.app())
    await srv.start_server()
    yield f"http://{srv.host}:{srv.port}"
    await srv.close()


@pytest.fixture
def provider_data(iaas_url: str) -> ProviderData:
    return ProviderData(
        default_region="eu01",
        service_account_token=TOKEN,
        custom_endpoints={"iaas": iaas_url},
        enable_beta_resources=True,
        experiments=["routing-tables", "network"],
    )


@pytest.fixture
def beta_gate() -> BetaGate:
    return BetaGate()


@pytest.fixture(autouse=True)
def _no_beta_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SKYFORM_ENABLE_BETA_RESOURCES", raising=False)
