"""
MCP Streamable HTTP server for Gourmeet.

Exposes the tool registry over the low-level MCP server. Input validation is
left to the registry so every tool is checked against its own parameter model
before its handler runs. Any other failure escaping a handler is logged here
and reported to the caller without its message.

Transport mode: stateless. No Mcp-Session-Id is issued, every HTTP request
gets a fresh server transport that is torn down when the request ends, and a
session id sent by a client is never used to resume anything.
"""

import logging
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from .config import SERVICE_NAME, SERVICE_VERSION
from .errors import TransportFault, ValidationError
from .registry import ToolRegistry

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal Server Error"


def create_mcp_server(registry: ToolRegistry) -> Server:
    app = Server(SERVICE_NAME, version=SERVICE_VERSION)

    @app.list_tools()
    async def list_tools() -> list[types.Tool]:
        return registry.list_tools()

    @app.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.ContentBlock]:
        try:
            return await registry.dispatch(name, arguments)
        except ValidationError as e:
            logger.info(f"MCP tool '{name}' rejected: {e.message}")
            raise
        except Exception:
            # The SDK echoes the exception text to the caller; keep internals in the log
            logger.exception(f"MCP tool '{name}' failed")
            raise TransportFault(INTERNAL_ERROR) from None

    return app


def create_mcp_session_manager(registry: ToolRegistry, json_response: bool = True) -> StreamableHTTPSessionManager:
    """Create a stateless MCP session manager."""
    return StreamableHTTPSessionManager(
        app=create_mcp_server(registry),
        event_store=None,
        json_response=json_response,
        stateless=True,
    )
