"""Shared pytest fixtures for MILKEE MCP server tests.

HTTP traffic goes through httpx.MockTransport; no live API is needed.
"""

import asyncio
import json

import httpx
import pytest

from mcp_server_milkee.config import MilkeeConfig
from mcp_server_milkee.handlers import ToolDispatcher
from mcp_server_milkee.milkee_client import MilkeeClient

COMPANY_ID = "42"
API_PREFIX = f"/api/v2/companies/{COMPANY_ID}"


class FakeMilkee:
    """Records requests and answers them from a (method, path) route table.

    Paths are relative to the company prefix. Unrouted requests get
    ``{"data": {"id": 1}}``.
    """

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, status=200, json_body=None, text=None):
        self.routes[(method, path)] = (status, json_body, text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        status, json_body, text = self.routes.get(
            (request.method, path), (200, {"data": {"id": 1}}, None)
        )
        if text is not None:
            return httpx.Response(status, text=text)
        if json_body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=json_body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def body_of(request: httpx.Request):
    return json.loads(request.content) if request.content else None


@pytest.fixture
def config():
    return MilkeeConfig(api_token="test-token", company_id=COMPANY_ID)


@pytest.fixture
def fake_api():
    return FakeMilkee()


@pytest.fixture
def client(config, fake_api):
    milkee = MilkeeClient(config, transport=httpx.MockTransport(fake_api.handler))
    yield milkee
    asyncio.run(milkee.aclose())


@pytest.fixture
def dispatcher(client, config):
    return ToolDispatcher(client, config)


@pytest.fixture
def read_only_dispatcher(client, config):
    return ToolDispatcher(client, config.model_copy(update={"read_only": True}))
