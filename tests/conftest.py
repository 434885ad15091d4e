"""
Shared pytest fixtures for the ICD MCP server.

Unit tests run against a fake WHO ICD-API served through httpx.MockTransport.
Integration tests (marked `integration`) talk to a locally running Function App.
"""

import os
from typing import Any

import httpx
import pytest
import pytest_asyncio

from icd_mcp.config import WHOSettings
from icd_mcp.who_client import WHOICDClient

TOKEN_HOST = "icdaccessmanagement.who.int"

MCP_BASE_URL = os.getenv("MCP_BASE_URL", "http://localhost:7071/api")
MCP_FUNCTION_KEY = os.getenv("MCP_FUNCTION_KEY", "")  # empty for local, set for Azure


# ---------------------------------------------------------------------------
# Fake WHO ICD-API
# ---------------------------------------------------------------------------


class FakeWHOApi:
    """Canned ICD-API responses keyed by URL path.

    Each path holds a queue of (status, body) pairs; the last one is reused
    once the others are consumed. Unknown paths answer 404.
    """

    def __init__(self):
        self.routes: dict[str, list[tuple[int, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.token_status = 200
        self.expires_in = 3600

    def add(self, path: str, body: Any = None, status: int = 200) -> "FakeWHOApi":
        self.routes.setdefault(path, []).append((status, body))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == TOKEN_HOST:
            self.token_calls += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="invalid_client")
            return httpx.Response(
                200, json={"access_token": f"token-{self.token_calls}", "expires_in": self.expires_in}
            )

        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, text="Not Found")
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body or "")

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host != TOKEN_HOST]


@pytest.fixture
def settings() -> WHOSettings:
    return WHOSettings(client_id="test-client", client_secret="test-secret")


@pytest.fixture
def who_api() -> FakeWHOApi:
    return FakeWHOApi()


@pytest_asyncio.fixture
async def icd_client(settings, who_api) -> WHOICDClient:
    """WHOICDClient wired to the fake API."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(who_api.handler))
    client = WHOICDClient(settings, http_client=http)
    yield client
    await client.aclose()


# ---------------------------------------------------------------------------
# Live server helpers
# ---------------------------------------------------------------------------


class MCPClient:
    """Lightweight wrapper for MCP JSON-RPC calls."""

    def __init__(self, base_url: str):
        headers = {"Content-Type": "application/json"}
        if MCP_FUNCTION_KEY:
            headers["x-functions-key"] = MCP_FUNCTION_KEY
        self._http = httpx.Client(base_url=base_url, headers=headers, timeout=60.0)
        self._id = 0

    def _next_id(self) -> int:
        self._id += 1
        return self._id

    def discover(self) -> httpx.Response:
        return self._http.get("/.well-known/mcp")

    def rpc(self, method: str, params: dict | None = None) -> httpx.Response:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or {},
        }
        return self._http.post("/mcp", json=payload)

    def initialize(self) -> httpx.Response:
        return self.rpc(
            "initialize",
            {
                "protocolVersion": "2025-06-18",
                "clientInfo": {"name": "pytest", "version": "1.0.0"},
            },
        )

    def list_tools(self) -> httpx.Response:
        return self.rpc("tools/list")

    def call_icd(self, **arguments) -> dict:
        """Call the icd tool and return the MCP result object."""
        resp = self.rpc("tools/call", {"name": "icd", "arguments": arguments})
        resp.raise_for_status()
        return resp.json().get("result", {})

    def close(self):
        self._http.close()


@pytest.fixture(scope="session")
def mcp_icd() -> MCPClient:
    client = MCPClient(MCP_BASE_URL)
    yield client
    client.close()
