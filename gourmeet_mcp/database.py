import json

import asyncpg

_pool = None

# Column types decoded into Python objects instead of raw JSON text
JSON_TYPES = ("json", "jsonb")


async def init_connection(conn: asyncpg.Connection):
    """Per-connection setup: json/jsonb columns come back as dicts and lists."""
    for type_name in JSON_TYPES:
        await conn.set_type_codec(type_name, encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        raise RuntimeError("Database pool not initialized")
    return _pool


async def init_pool(dsn: str, min_size: int = 1, max_size: int = 10):
    global _pool
    _pool = await asyncpg.create_pool(
        dsn,
        min_size=min_size,
        max_size=max_size,
        command_timeout=30,
        init=init_connection,
    )


async def close_pool():
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
