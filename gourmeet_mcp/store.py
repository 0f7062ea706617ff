"""
Read-only store client.

Tools describe what they need as a Query (table, projection, filters,
ordering, limit) and the store turns it into a single parameterized SELECT.
There are no joins: cross-table composition happens in enrichment.py.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Optional

import asyncpg

from .database import get_pool
from .errors import StoreError, TransportFault

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str  # eq | in | ilike
    value: Any


@dataclass(frozen=True)
class Query:
    table: str
    columns: tuple = ("*",)
    filters: tuple = ()
    order_by: Optional[str] = None
    descending: bool = False
    max_rows: Optional[int] = None

    def where(self, column: str, op: str, value: Any) -> "Query":
        return replace(self, filters=self.filters + (Filter(column, op, value),))

    def eq(self, column: str, value: Any) -> "Query":
        return self.where(column, "eq", value)

    def in_(self, column: str, values) -> "Query":
        return self.where(column, "in", list(values))

    def ilike(self, column: str, pattern: str) -> "Query":
        return self.where(column, "ilike", pattern)

    def order(self, column: str, desc: bool = False) -> "Query":
        return replace(self, order_by=column, descending=desc)

    def limit(self, n: int) -> "Query":
        return replace(self, max_rows=n)


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains(text: str) -> str:
    return f"%{escape_like(text)}%"


def _ident(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


def compile_query(query: Query) -> tuple[str, list]:
    """Build the SQL text and positional arguments for a Query."""
    if query.columns == ("*",):
        projection = "*"
    else:
        projection = ", ".join(_ident(c) for c in query.columns)
    sql = f"SELECT {projection} FROM {_ident(query.table)}"

    clauses, args = [], []
    for f in query.filters:
        args.append(f.value)
        idx = len(args)
        if f.op == "eq":
            clauses.append(f"{_ident(f.column)} = ${idx}")
        elif f.op == "in":
            clauses.append(f"{_ident(f.column)} = ANY(${idx})")
        elif f.op == "ilike":
            clauses.append(f"{_ident(f.column)} ILIKE ${idx}")
        else:
            raise ValueError(f"Unsupported filter operator: {f.op}")
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)

    if query.order_by:
        direction = "DESC NULLS LAST" if query.descending else "ASC"
        sql += f" ORDER BY {_ident(query.order_by)} {direction}"

    if query.max_rows is not None:
        args.append(int(query.max_rows))
        sql += f" LIMIT ${len(args)}"
    return sql, args


class PostgresStore:
    """Store client backed by the shared asyncpg pool."""

    async def select(self, query: Query) -> list[dict]:
        sql, args = compile_query(query)
        try:
            pool = await get_pool()
            rows = await pool.fetch(sql, *args)
        except asyncpg.PostgresError as e:
            logger.warning(f"Query on '{query.table}' failed: {e}")
            raise StoreError(query.table, str(e)) from e
        except (OSError, RuntimeError, asyncpg.InterfaceError) as e:
            raise TransportFault(f"Store unavailable: {e}") from e
        return [dict(r) for r in rows]

    async def ping(self) -> bool:
        pool = await get_pool()
        row = await pool.fetchrow("SELECT 1 AS ok")
        return bool(row)
