"""
ASGI front door for the MCP endpoint.

Handles what the MCP session manager does not: CORS headers, preflight,
method filtering, probe paths some connectors request, and turning an
unexpected fault into a bare 500. Everything else is handed to the session
manager inside a tracked call context.
"""

import logging

from .sessions import CallTracker

logger = logging.getLogger(__name__)

PROTOCOL_METHODS = ("GET", "POST", "DELETE")
ALLOW_METHODS = "GET,POST,DELETE,OPTIONS"
ALLOW_HEADERS = "content-type, mcp-session-id, mcp-protocol-version, accept, authorization"

CORS_HEADERS = [
    (b"access-control-allow-origin", b"*"),
    (b"access-control-allow-methods", ALLOW_METHODS.encode()),
    (b"access-control-allow-headers", ALLOW_HEADERS.encode()),
    (b"access-control-expose-headers", b"Mcp-Session-Id"),
    (b"vary", b"Origin"),
]
_CORS_NAMES = {name for name, _ in CORS_HEADERS}

# Connectors probe these under the MCP prefix; answer 404 instead of routing
# them into the protocol handler.
PROBE_PREFIXES = ("oauth", ".well-known")


def _sub_path(scope) -> str:
    path = scope.get("path", "")
    root = scope.get("root_path", "")
    if root and path.startswith(root):
        path = path[len(root):]
    return path.lstrip("/")


async def _respond(send, status: int, body: bytes = b"", headers=()):
    await send({
        "type": "http.response.start",
        "status": status,
        "headers": [(b"content-type", b"text/plain; charset=utf-8"), *headers],
    })
    await send({"type": "http.response.body", "body": body})


class McpTransport:
    def __init__(self, session_manager, tracker: CallTracker | None = None):
        self.session_manager = session_manager
        self.tracker = tracker or CallTracker()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.session_manager.handle_request(scope, receive, send)
            return

        started = False

        async def send_with_cors(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
                headers = [h for h in message.get("headers", []) if h[0].lower() not in _CORS_NAMES]
                message = {**message, "headers": headers + CORS_HEADERS}
            await send(message)

        method = scope.get("method", "").upper()
        if method == "OPTIONS":
            await _respond(send_with_cors, 204)
            return

        sub_path = _sub_path(scope)
        if sub_path.split("/", 1)[0] in PROBE_PREFIXES:
            await _respond(send_with_cors, 404, b"Not Found")
            return

        if method not in PROTOCOL_METHODS:
            await _respond(send_with_cors, 405, b"Method Not Allowed", [(b"allow", ALLOW_METHODS.encode())])
            return

        async with self.tracker.open(scope):
            try:
                await self.session_manager.handle_request(scope, receive, send_with_cors)
            except Exception:
                logger.exception(f"MCP transport fault on {method} {scope.get('path', '')}")
                if not started:
                    await _respond(send_with_cors, 500, b"Internal Server Error")
