"""
Gourmeet MCP tools.

Every tool is a fixed access pattern over the posts / profiles / places /
follows tables, followed by in-memory enrichment where rows reference other
entities. Successful calls return {"data": ...}; a store failure comes back as
an "Error: ..." text block so the caller always gets a parseable response.
"""

import logging
from functools import partial

from .enrichment import ForeignKey, distinct_ids, enrich, gather_fetches
from .errors import DomainError
from .registry import ToolRegistry, error_content, json_content, text_content
from .schemas import (
    IdParams, LimitParams, PingParams, PlacePostsParams, ProfileLookupParams,
    SearchParams, UserParams, clamp_limit,
)
from .store import Query, contains, escape_like

logger = logging.getLogger(__name__)

ACCEPTED = "accepted"

# Feed fan-out bounds
FEED_MAX_FOLLOWING = 200
FEED_MAX_AUTHORS = 200

POST_COLUMNS = (
    "id", "user_id", "content", "created_at", "image_urls", "place_name",
    "place_address", "place_id", "image_variants", "recommend_score",
    "price_yen", "price_range",
)
PROFILE_COLUMNS = (
    "id", "username", "display_name", "avatar_url", "header_image_url",
    "bio", "is_public", "updated_at",
)
PLACE_COLUMNS = (
    "id", "name", "address", "lat", "lng", "photo_url", "primary_type",
    "genre_tags", "genre_source", "genre_confidence", "updated_at",
)
FOLLOW_COLUMNS = ("follower_id", "followee_id", "status", "request_read", "created_at")

# Projections attached to other rows
AUTHOR_COLUMNS = ("id", "username", "display_name", "avatar_url")
PLACE_SUMMARY_COLUMNS = ("id", "name", "address", "lat", "lng", "photo_url", "primary_type", "genre_tags")

POST_RELATIONS = (
    ForeignKey("user_id", "profiles", AUTHOR_COLUMNS, "author"),
    ForeignKey("place_id", "places", PLACE_SUMMARY_COLUMNS, "place"),
)
FOLLOWER_RELATION = ForeignKey("follower_id", "profiles", AUTHOR_COLUMNS, "follower")
FOLLOWEE_RELATION = ForeignKey("followee_id", "profiles", AUTHOR_COLUMNS, "followee")


def _failed(tool: str, exc: DomainError):
    logger.warning(f"MCP tool '{tool}' store failure: {exc}")
    return error_content(exc)


def merge_unique(*batches: list[dict], key: str = "id", limit: int | None = None) -> list[dict]:
    """Concatenate batches in order, keep the first row per key, then truncate.

    Earlier batches take precedence: a row present in both the first and the
    second batch keeps its position from the first.
    """
    merged: dict = {}
    for batch in batches:
        for row in batch:
            merged.setdefault(row[key], row)
    rows = list(merged.values())
    return rows if limit is None else rows[:limit]


# ── System ────────────────────────────────────────────────────────

async def ping(store, params: PingParams):
    return text_content(f"pong: {params.message}" if params.message else "pong")


# ── Places ────────────────────────────────────────────────────────

async def get_place(store, params: IdParams):
    try:
        rows = await store.select(Query("places", PLACE_COLUMNS).eq("id", params.id).limit(1))
    except DomainError as e:
        return _failed("get_place", e)
    return json_content({"data": rows[0] if rows else None})


async def search_places(store, params: SearchParams):
    limit = clamp_limit(params.limit)
    query = Query("places", PLACE_COLUMNS).ilike("name", contains(params.query)).order("name").limit(limit)
    try:
        rows = await store.select(query)
    except DomainError as e:
        return _failed("search_places", e)
    return json_content({"data": rows})


# ── Profiles ──────────────────────────────────────────────────────

async def get_profile(store, params: ProfileLookupParams):
    query = Query("profiles", PROFILE_COLUMNS)
    if params.id is not None:
        query = query.eq("id", params.id)
    else:
        query = query.ilike("username", escape_like(params.username))
    try:
        rows = await store.select(query.limit(1))
    except DomainError as e:
        return _failed("get_profile", e)
    return json_content({"data": rows[0] if rows else None})


async def search_profiles(store, params: SearchParams):
    limit = clamp_limit(params.limit)
    pattern = contains(params.query)
    base = Query("profiles", PROFILE_COLUMNS)
    try:
        by_username, by_display_name = await gather_fetches(
            store.select(base.ilike("username", pattern).order("username").limit(limit)),
            store.select(base.ilike("display_name", pattern).order("username").limit(limit)),
        )
    except DomainError as e:
        return _failed("search_profiles", e)
    return json_content({"data": merge_unique(by_username, by_display_name, limit=limit)})


# ── Posts ─────────────────────────────────────────────────────────

async def _newest_posts(store, query: Query, limit: int) -> list[dict]:
    rows = await store.select(query.order("created_at", desc=True).limit(limit))
    return await enrich(store, rows, POST_RELATIONS)


async def recent_posts(store, params: LimitParams):
    try:
        posts = await _newest_posts(store, Query("posts", POST_COLUMNS), clamp_limit(params.limit))
    except DomainError as e:
        return _failed("recent_posts", e)
    return json_content({"data": posts})


async def get_post(store, params: IdParams):
    try:
        rows = await store.select(Query("posts", POST_COLUMNS).eq("id", params.id).limit(1))
        posts = await enrich(store, rows, POST_RELATIONS)
    except DomainError as e:
        return _failed("get_post", e)
    return json_content({"data": posts[0] if posts else None})


async def posts_by_place(store, params: PlacePostsParams):
    query = Query("posts", POST_COLUMNS).eq("place_id", params.place_id)
    try:
        posts = await _newest_posts(store, query, clamp_limit(params.limit))
    except DomainError as e:
        return _failed("posts_by_place", e)
    return json_content({"data": posts})


async def posts_by_user(store, params: UserParams):
    query = Query("posts", POST_COLUMNS).eq("user_id", params.user_id)
    try:
        posts = await _newest_posts(store, query, clamp_limit(params.limit))
    except DomainError as e:
        return _failed("posts_by_user", e)
    return json_content({"data": posts})


# ── Follows ───────────────────────────────────────────────────────

def _accepted_edges(side: str, user_id: str) -> Query:
    return (
        Query("follows", FOLLOW_COLUMNS)
        .eq(side, user_id)
        .eq("status", ACCEPTED)
        .order("created_at", desc=True)
    )


async def list_followers(store, params: UserParams):
    try:
        edges = await store.select(_accepted_edges("followee_id", params.user_id).limit(clamp_limit(params.limit)))
        edges = await enrich(store, edges, [FOLLOWER_RELATION])
    except DomainError as e:
        return _failed("list_followers", e)
    return json_content({"data": edges})


async def list_following(store, params: UserParams):
    try:
        edges = await store.select(_accepted_edges("follower_id", params.user_id).limit(clamp_limit(params.limit)))
        edges = await enrich(store, edges, [FOLLOWEE_RELATION])
    except DomainError as e:
        return _failed("list_following", e)
    return json_content({"data": edges})


# ── Feed ──────────────────────────────────────────────────────────

async def home_feed(store, params: UserParams):
    """Own posts plus posts from accepted followees, newest first.

    The social graph is expanded in the application: one query for the
    followee ids, then one filtered post query over the resulting author set.
    """
    limit = clamp_limit(params.limit)
    try:
        edges = await store.select(_accepted_edges("follower_id", params.user_id).limit(FEED_MAX_FOLLOWING))
        authors = distinct_ids([params.user_id] + [e["followee_id"] for e in edges])[:FEED_MAX_AUTHORS]
        posts = await _newest_posts(store, Query("posts", POST_COLUMNS).in_("user_id", authors), limit)
    except DomainError as e:
        return _failed("home_feed", e)
    return json_content({"data": posts})


TOOLS = (
    ("ping", PingParams, "Health check. Returns 'pong' (or 'pong: <message>').", ping),
    ("get_place", IdParams, "Single place by ID. data is null when the place does not exist.", get_place),
    ("search_places", SearchParams, "Places whose name contains the query (case-insensitive).", search_places),
    ("get_profile", ProfileLookupParams, "Single profile by ID or by username (exactly one). data is null when not found.", get_profile),
    ("search_profiles", SearchParams, "Profiles whose username or display name contains the query. Username matches rank first.", search_profiles),
    ("recent_posts", LimitParams, "Newest posts with author and place attached.", recent_posts),
    ("get_post", IdParams, "Single post with author and place attached. data is null when not found.", get_post),
    ("posts_by_place", PlacePostsParams, "Newest posts at a place with author and place attached.", posts_by_place),
    ("posts_by_user", UserParams, "Newest posts by a user with author and place attached.", posts_by_user),
    ("list_followers", UserParams, "Accepted followers of a user, newest first, with the follower profile attached.", list_followers),
    ("list_following", UserParams, "Accounts a user follows (accepted), newest first, with the followee profile attached.", list_following),
    ("home_feed", UserParams, "Home feed: the user's own posts and posts from accounts they follow, newest first.", home_feed),
)


def build_registry(store) -> ToolRegistry:
    registry = ToolRegistry()
    for name, params, description, handler in TOOLS:
        registry.register(name, params, description, partial(handler, store))
    return registry
