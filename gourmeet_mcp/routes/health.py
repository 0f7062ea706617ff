import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def get_health(request: Request):
    try:
        ok = await request.app.state.store.ping()
        db_status = "connected" if ok else "error"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        db_status = "error"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "time": datetime.now(timezone.utc).isoformat()
    }
