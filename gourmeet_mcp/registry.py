"""
Tool registry and dispatcher.

Each tool is a name, a description, a pydantic parameter model (its input
schema) and an async handler taking the parsed model. dispatch() validates
raw arguments against the model before the handler is touched; the handler's
content list is returned as-is.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable
from uuid import UUID

import pydantic
from mcp import types

from .errors import DuplicateToolError, ValidationError

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[list[types.ContentBlock]]]


def _json_serial(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, UUID):
        return str(obj)
    raise TypeError(f"Type {type(obj)} not serializable")


def to_json(data: Any) -> str:
    return json.dumps(data, default=_json_serial, indent=2, ensure_ascii=False)


def text_content(text: str) -> list[types.ContentBlock]:
    return [types.TextContent(type="text", text=text)]


def json_content(payload: Any) -> list[types.ContentBlock]:
    return text_content(to_json(payload))


def error_content(exc: Exception) -> list[types.ContentBlock]:
    return text_content(f"Error: {exc}")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: type[pydantic.BaseModel]
    handler: Handler

    def definition(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.params.model_json_schema(),
        )


def _describe(exc: pydantic.ValidationError) -> tuple[str, str | None]:
    """Flatten pydantic errors into one message and the first offending field."""
    parts, first_field = [], None
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        if loc and first_field is None:
            first_field = loc
        msg = err["msg"]
        if err["type"] == "value_error":
            msg = msg.removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts), first_field


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, ToolSpec] = {}

    def register(self, name: str, params: type[pydantic.BaseModel], description: str, handler: Handler) -> ToolSpec:
        if name in self._tools:
            raise DuplicateToolError(name)
        spec = ToolSpec(name=name, description=description, params=params, handler=handler)
        self._tools[name] = spec
        return spec

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[types.Tool]:
        return [spec.definition() for spec in self._tools.values()]

    def parse(self, name: str, arguments: dict[str, Any] | None) -> tuple[ToolSpec, pydantic.BaseModel]:
        spec = self._tools.get(name)
        if spec is None:
            raise ValidationError(name, f"unknown tool '{name}'", field="name")
        try:
            params = spec.params.model_validate(arguments or {})
        except pydantic.ValidationError as e:
            message, field = _describe(e)
            raise ValidationError(name, message, field=field) from e
        return spec, params

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> list[types.ContentBlock]:
        spec, params = self.parse(name, arguments)
        return await spec.handler(params)
