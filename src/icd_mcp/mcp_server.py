"""
MCP server for the ICD tool.

Handles the JSON-RPC envelope of MCP Streamable HTTP (initialize, tools/list,
tools/call, ping) and the /.well-known/mcp discovery document. Transport and
hosting are left to Azure Functions (see function_app.py).
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from .config import WHOSettings
from .errors import ConfigurationError
from .handlers import TOOLS, handle_action
from .models import ToolResult
from .who_client import WHOICDClient

logger = logging.getLogger(__name__)

SERVER_NAME = "icd-mcp-server"
SERVER_VERSION = "1.0.0"
SERVER_DESCRIPTION = "WHO ICD-10 and ICD-11 Classification MCP Server"


@dataclass
class Tool:
    """MCP Tool definition."""
    name: str
    description: str
    input_schema: dict
    handler: Callable[[dict], Awaitable[ToolResult]] = None

    def describe(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class MCPServer:
    name: str
    version: str
    description: str
    protocol_version: str
    tools: list[Tool] = field(default_factory=list)

    def register_tool(self, name: str, description: str, input_schema: dict):
        """Decorator to register a tool handler."""
        def decorator(func: Callable[[dict], Awaitable[ToolResult]]):
            self.tools.append(Tool(
                name=name,
                description=description,
                input_schema=input_schema,
                handler=func,
            ))
            return func
        return decorator

    def get_discovery_response(self) -> dict:
        """Generate the /.well-known/mcp discovery response."""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "protocol_version": self.protocol_version,
            "capabilities": {
                "tools": True,
                "resources": False,
                "prompts": False,
            },
            "tools": [tool.describe() for tool in self.tools],
        }

    def _find_tool(self, name: str) -> Tool | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    async def handle_message(self, message: dict) -> dict:
        """Handle one MCP JSON-RPC request and return the response envelope."""
        method = message.get("method")
        params = message.get("params") or {}
        msg_id = message.get("id")

        try:
            if method == "initialize":
                return self._response(msg_id, {
                    "protocolVersion": self.protocol_version,
                    "serverInfo": {"name": self.name, "version": self.version},
                    "capabilities": {"tools": {"listChanged": False}},
                })

            elif method == "tools/list":
                return self._response(msg_id, {"tools": [tool.describe() for tool in self.tools]})

            elif method == "tools/call":
                tool_name = params.get("name")
                tool = self._find_tool(tool_name)
                if not tool:
                    return self._error(msg_id, -32602, f"Unknown tool: {tool_name}")

                try:
                    result = await tool.handler(params.get("arguments") or {})
                except Exception as e:
                    logger.exception("Tool execution error: %s", tool_name)
                    return self._error(msg_id, -32603, f"Tool execution failed: {e!s}")
                return self._response(msg_id, result.to_dict())

            elif method == "ping":
                return self._response(msg_id, {})

            else:
                return self._error(msg_id, -32601, f"Method not found: {method}")

        except Exception as e:
            logger.exception("Error handling MCP message")
            return self._error(msg_id, -32603, f"Internal error: {e!s}")

    def _response(self, msg_id: Any, result: dict) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def _error(self, msg_id: Any, code: int, message: str) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


def create_server(settings: WHOSettings, client: WHOICDClient | None = None) -> MCPServer:
    """Build the MCP server exposing the single `icd` tool."""
    server = MCPServer(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        description=SERVER_DESCRIPTION,
        protocol_version=settings.mcp_protocol_version,
    )
    icd_client = client or WHOICDClient(settings)
    tool_def = TOOLS[0]

    @server.register_tool(tool_def["name"], tool_def["description"], tool_def["inputSchema"])
    async def icd_tool(arguments: dict) -> ToolResult:
        try:
            settings.require_credentials()
        except ConfigurationError as e:
            return ToolResult.error(f"Error: {e}")
        return await handle_action(arguments, icd_client)

    return server


def create_function_app_handlers(server: MCPServer):
    """Create Azure Function handlers for an MCP server.

    Supports both:
    - Discovery endpoint: GET /.well-known/mcp
    - Streamable HTTP transport: GET and POST /mcp
    """
    import azure.functions as func

    def _headers(session_id: str | None = None) -> dict:
        headers = {"X-MCP-Protocol-Version": server.protocol_version, "Cache-Control": "no-cache"}
        if session_id:
            headers["Mcp-Session-Id"] = session_id
        return headers

    async def discovery_handler(req: func.HttpRequest) -> func.HttpResponse:
        return func.HttpResponse(
            json.dumps(server.get_discovery_response()),
            mimetype="application/json",
            headers=_headers(),
        )

    async def transport_handler(req: func.HttpRequest) -> func.HttpResponse:
        """GET /mcp: transport negotiation. SSE is not offered; clients must POST."""
        session_id = req.headers.get("Mcp-Session-Id", str(uuid.uuid4()))

        if "text/event-stream" in req.headers.get("Accept", ""):
            return func.HttpResponse(
                json.dumps({
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {
                        "code": -32600,
                        "message": "SSE transport not supported. Use POST for Streamable HTTP transport.",
                    },
                }),
                status_code=405,
                mimetype="application/json",
                headers={"Allow": "POST", **_headers(session_id)},
            )

        return func.HttpResponse(
            json.dumps({
                "name": server.name,
                "version": server.version,
                "protocol_version": server.protocol_version,
                "transport": "streamable-http",
                "endpoint": "/mcp",
                "methods_supported": ["POST"],
            }),
            mimetype="application/json",
            headers=_headers(),
        )

    async def message_handler(req: func.HttpRequest) -> func.HttpResponse:
        """POST /mcp: one JSON-RPC message per request."""
        session_id = req.headers.get("Mcp-Session-Id", str(uuid.uuid4()))

        try:
            body = req.get_json()
        except ValueError:
            return func.HttpResponse(
                json.dumps({
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"code": -32700, "message": "Parse error"},
                }),
                status_code=400,
                mimetype="application/json",
            )

        if not isinstance(body, dict):
            return func.HttpResponse(
                json.dumps({
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"code": -32600, "message": "Invalid Request"},
                }),
                status_code=400,
                mimetype="application/json",
            )

        response = await server.handle_message(body)
        return func.HttpResponse(
            json.dumps(response),
            mimetype="application/json",
            headers=_headers(session_id),
        )

    return discovery_handler, transport_handler, message_handler
