"""
ICD MCP Server - Azure Function App

Serves the single `icd` tool (WHO ICD-10 / ICD-11) over MCP Streamable HTTP.
"""

import azure.functions as func

from icd_mcp.config import WHOSettings
from icd_mcp.mcp_server import create_function_app_handlers, create_server

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)

server = create_server(WHOSettings.from_env())
discovery_handler, transport_handler, message_handler = create_function_app_handlers(server)


@app.route(route=".well-known/mcp", methods=["GET"])
async def mcp_discovery(req: func.HttpRequest) -> func.HttpResponse:
    """MCP Discovery endpoint — returns server capabilities and the icd tool."""
    return await discovery_handler(req)


@app.route(route="mcp", methods=["GET"])
async def mcp_get(req: func.HttpRequest) -> func.HttpResponse:
    """MCP GET — transport negotiation. Directs clients to use POST."""
    return await transport_handler(req)


@app.route(route="mcp", methods=["POST"])
async def mcp_message(req: func.HttpRequest) -> func.HttpResponse:
    """MCP Message endpoint — handles JSON-RPC messages via Streamable HTTP."""
    return await message_handler(req)
