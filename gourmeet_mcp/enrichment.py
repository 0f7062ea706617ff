"""
Batched foreign-key resolution.

Rows coming back from the store carry bare references (posts.user_id,
posts.place_id, follows.follower_id, ...). Instead of one lookup per row,
enrich() collects the distinct referenced ids per target table, fetches each
table once with an `id = ANY(...)` filter, and attaches the matches in memory.
A reference with no matching row is attached as None.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .store import Query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForeignKey:
    field: str        # referencing column on the record, e.g. "user_id"
    table: str        # target table, e.g. "profiles"
    columns: tuple    # projection fetched from the target table
    attach_as: str    # key the resolved entity is stored under, e.g. "author"
    key: str = "id"   # join column on the target table


def distinct_ids(values: Iterable[Any]) -> list:
    """Non-null values in first-seen order, duplicates dropped."""
    return list(dict.fromkeys(v for v in values if v is not None))


async def gather_fetches(*fetches) -> list:
    """Run store fetches concurrently; the first failure cancels the rest.

    Nothing started here is still running once this returns or raises.
    """
    tasks = [asyncio.ensure_future(f) for f in fetches]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def resolve(store, table: str, columns: tuple, ids: Iterable[Any], key: str = "id") -> dict:
    """Fetch every row of `table` whose `key` is in `ids` with a single query."""
    wanted = distinct_ids(ids)
    if not wanted:
        return {}
    projection = columns if key in columns or columns == ("*",) else (key,) + tuple(columns)
    rows = await store.select(Query(table, projection).in_(key, wanted))
    return {row[key]: row for row in rows}


async def enrich(store, records: list[dict], specs: Iterable[ForeignKey]) -> list[dict]:
    """Return copies of `records` with each spec's target entity attached.

    Specs sharing a target (table, key, projection) are resolved together, so
    each entity type costs at most one store call regardless of batch size.
    """
    specs = list(specs)
    groups: dict[tuple, list[ForeignKey]] = {}
    for spec in specs:
        groups.setdefault((spec.table, spec.key, spec.columns), []).append(spec)

    targets = list(groups)
    fetches = []
    for table, key, columns in targets:
        refs = [r.get(spec.field) for spec in groups[(table, key, columns)] for r in records]
        fetches.append(resolve(store, table, columns, refs, key=key))
    lookups = await gather_fetches(*fetches)
    by_target = dict(zip(targets, lookups))
    logger.debug(f"Enriched {len(records)} records across {len(targets)} target tables")

    enriched = []
    for record in records:
        out = dict(record)
        for spec in specs:
            lookup = by_target[(spec.table, spec.key, spec.columns)]
            ref = record.get(spec.field)
            out[spec.attach_as] = lookup.get(ref) if ref is not None else None
        enriched.append(out)
    return enriched
