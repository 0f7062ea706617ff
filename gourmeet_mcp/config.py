import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SERVICE_NAME = os.environ.get("GOURMEET_SERVICE_NAME", "gourmeet-mcp")
SERVICE_VERSION = "0.1.0"

DATABASE_URL = os.environ.get(
    "GOURMEET_DATABASE_URL",
    "postgresql://postgres@localhost:5432/postgres"
)
DB_POOL_MIN = int(os.environ.get("GOURMEET_DB_POOL_MIN", "1"))
DB_POOL_MAX = int(os.environ.get("GOURMEET_DB_POOL_MAX", "10"))

# True: POST replies are a single JSON body. False: replies stream as SSE.
MCP_JSON_RESPONSE = _env_bool("GOURMEET_MCP_JSON_RESPONSE", True)
MCP_MOUNT_PATH = "/mcp"

LOG_LEVEL = os.environ.get("GOURMEET_LOG_LEVEL", "INFO").upper()
