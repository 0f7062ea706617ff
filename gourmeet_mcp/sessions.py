"""
Per-call context lifetime.

Every protocol request handled by the transport runs inside CallTracker.open().
The context is registered on entry and removed on every exit path, including
cancellation when the peer drops the connection mid-call, so nothing tied to
a call outlives it.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"


@dataclass
class CallContext:
    method: str
    path: str
    session_id: Optional[str] = None
    call_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    opened_at: float = field(default_factory=time.monotonic)


def _header(scope, name: str) -> Optional[str]:
    raw = name.encode("latin-1")
    for key, value in scope.get("headers") or []:
        if key.lower() == raw:
            return value.decode("latin-1")
    return None


class CallTracker:
    def __init__(self):
        # Inserted and removed without an intervening await, so the event
        # loop never observes a half-registered context.
        self._active: dict[str, CallContext] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def get(self, call_id: str) -> Optional[CallContext]:
        return self._active.get(call_id)

    @asynccontextmanager
    async def open(self, scope) -> AsyncIterator[CallContext]:
        ctx = CallContext(
            method=scope.get("method", ""),
            path=scope.get("path", ""),
            session_id=_header(scope, SESSION_HEADER),
        )
        if ctx.session_id:
            logger.debug(f"Ignoring session id {ctx.session_id} (stateless transport)")
        self._active[ctx.call_id] = ctx
        logger.debug(f"Call {ctx.call_id} opened: {ctx.method} {ctx.path}")
        try:
            yield ctx
        finally:
            self._active.pop(ctx.call_id, None)
            elapsed = (time.monotonic() - ctx.opened_at) * 1000
            logger.debug(f"Call {ctx.call_id} released after {elapsed:.1f} ms")
