import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from .config import (
    DATABASE_URL, DB_POOL_MIN, DB_POOL_MAX, LOG_LEVEL, MCP_JSON_RESPONSE,
    MCP_MOUNT_PATH, SERVICE_NAME, SERVICE_VERSION,
)
from .database import init_pool, close_pool
from .mcp_server import create_mcp_session_manager
from .routes import health
from .sessions import CallTracker
from .store import PostgresStore
from .tools import build_registry
from .transport import McpTransport

logger = logging.getLogger(__name__)


def create_app(store=None, json_response: bool = MCP_JSON_RESPONSE) -> FastAPI:
    """Build the gateway app.

    With no store given the app owns a PostgresStore and opens the asyncpg
    pool for its lifetime; tests pass an in-memory store instead.
    """
    logging.basicConfig(level=LOG_LEVEL)
    owns_pool = store is None
    store = store or PostgresStore()
    registry = build_registry(store)
    # A session manager can only be run once, so each app gets its own
    session_manager = create_mcp_session_manager(registry, json_response=json_response)
    tracker = CallTracker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_pool:
            await init_pool(DATABASE_URL, min_size=DB_POOL_MIN, max_size=DB_POOL_MAX)
            logger.info("Database pool initialized")
        try:
            async with session_manager.run():
                yield
        finally:
            if owns_pool:
                await close_pool()

    app = FastAPI(
        title="Gourmeet MCP",
        description="MCP tool gateway over Gourmeet posts, profiles, places and follows",
        version=SERVICE_VERSION,
        lifespan=lifespan
    )
    app.state.store = store
    app.state.registry = registry
    app.state.tracker = tracker

    @app.middleware("http")
    async def no_cache(request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        response.headers["Pragma"] = "no-cache"
        return response

    # ── MCP Streamable HTTP endpoint ─────────────────────────────────
    # Mounted as a raw ASGI sub-application; connectors point at /mcp/
    app.mount(MCP_MOUNT_PATH, app=McpTransport(session_manager, tracker))

    @app.get("/")
    async def api_root():
        """Service manifest."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "mcp": {
                "endpoint": f"{MCP_MOUNT_PATH}/",
                "transport": "Streamable HTTP (stateless)",
                "response_mode": "json" if json_response else "sse",
                "tools": registry.names(),
            },
            "endpoints": [
                {"method": "GET", "path": "/", "description": "This manifest"},
                {"method": "GET", "path": "/health", "description": "Database connectivity check"},
            ],
        }

    app.include_router(health.router)
    return app


app = create_app()
