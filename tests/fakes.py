"""In-memory store double and row builders used across the tests."""

import asyncio
import json
import re
from collections import Counter
from datetime import datetime, timedelta, timezone

from gourmeet_mcp.errors import StoreError
from gourmeet_mcp.store import Query

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _like_regex(pattern: str) -> re.Pattern:
    out, i = [], 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.IGNORECASE | re.DOTALL)


def _matches(row: dict, f) -> bool:
    value = row.get(f.column)
    if f.op == "eq":
        return value == f.value
    if f.op == "in":
        return value in f.value
    if f.op == "ilike":
        return value is not None and _like_regex(f.value).fullmatch(value) is not None
    raise AssertionError(f"unexpected operator {f.op}")


class FakeStore:
    """Store double with per-table call counting and injectable failures."""

    def __init__(self, tables=None, fail=(), delay=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.fail = set(fail)
        self.delay = delay
        self.queries: list[Query] = []

    @property
    def calls(self) -> Counter:
        return Counter(q.table for q in self.queries)

    async def select(self, query: Query) -> list[dict]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay(query))
        if query.table in self.fail:
            raise StoreError(query.table, "permission denied for table")
        rows = [r for r in self.tables.get(query.table, []) if all(_matches(r, f) for f in query.filters)]
        if query.order_by:
            rows.sort(key=lambda r: r[query.order_by], reverse=query.descending)
        if query.max_rows is not None:
            rows = rows[:query.max_rows]
        if query.columns == ("*",):
            return [dict(r) for r in rows]
        return [{c: r.get(c) for c in query.columns} for r in rows]

    async def ping(self) -> bool:
        return True


def profile(pid, username, display_name):
    return {
        "id": pid, "username": username, "display_name": display_name,
        "avatar_url": f"https://img.example/{pid}.png", "header_image_url": None,
        "bio": None, "is_public": True, "updated_at": T0,
    }


def place(pid, name, address):
    return {
        "id": pid, "name": name, "address": address, "lat": 35.68, "lng": 139.76,
        "photo_url": None, "primary_type": "restaurant", "genre_tags": ["ramen"],
        "genre_source": "google", "genre_confidence": 0.9, "updated_at": T0,
    }


def post(pid, user_id, minutes, place_id=None, content=None):
    return {
        "id": pid, "user_id": user_id, "content": content or f"post {pid}",
        "created_at": at(minutes), "image_urls": [f"https://img.example/{pid}.jpg"],
        "place_name": None, "place_address": None, "place_id": place_id,
        "image_variants": None, "recommend_score": 8, "price_yen": 1200,
        "price_range": "1000-2000",
    }


def follow(follower, followee, minutes, status="accepted"):
    return {
        "follower_id": follower, "followee_id": followee, "status": status,
        "request_read": True, "created_at": at(minutes),
    }


def payload(content) -> dict:
    """Decode the JSON body of a single text content block."""
    assert len(content) == 1
    assert content[0].type == "text"
    return json.loads(content[0].text)
