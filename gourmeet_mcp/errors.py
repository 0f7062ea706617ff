"""
Error taxonomy for the gateway.

ValidationError   bad tool name or arguments; raised by the dispatcher before
                  any handler runs.
DomainError       the store reported a failure; handlers turn it into an
                  "Error: ..." content block.
TransportFault    anything outside handler control (store unreachable, pool
                  not initialized). Inside a tool call it surfaces as an
                  isError result reading only "Internal Server Error"; a
                  fault escaping the session manager gets a bare 500.

A missing row is not an error: lookups return None and enrichment attaches None.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class ValidationError(GatewayError):
    def __init__(self, tool: str, message: str, field: Optional[str] = None):
        self.tool = tool
        self.message = message
        self.field = field
        super().__init__(f"Invalid arguments for tool '{tool}': {message}")


class DuplicateToolError(GatewayError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class DomainError(GatewayError):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StoreError(DomainError):
    """A query was rejected or failed inside the store."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"{table}: {message}")


class TransportFault(GatewayError):
    pass
