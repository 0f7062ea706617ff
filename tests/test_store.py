"""Query building and PostgresStore failure mapping."""

import pytest

from gourmeet_mcp import store as store_module
from gourmeet_mcp.errors import DomainError, StoreError, TransportFault
from gourmeet_mcp.store import PostgresStore, Query, compile_query, contains, escape_like


def test_compile_full_query():
    query = (
        Query("posts", ("id", "user_id", "created_at"))
        .in_("user_id", ["u-1", "u-2"])
        .eq("place_id", "pl-1")
        .order("created_at", desc=True)
        .limit(10)
    )
    sql, args = compile_query(query)
    assert sql == (
        'SELECT "id", "user_id", "created_at" FROM "posts" '
        'WHERE "user_id" = ANY($1) AND "place_id" = $2 '
        'ORDER BY "created_at" DESC NULLS LAST LIMIT $3'
    )
    assert args == [["u-1", "u-2"], "pl-1", 10]


def test_compile_star_projection_without_filters():
    sql, args = compile_query(Query("places"))
    assert sql == 'SELECT * FROM "places"'
    assert args == []


def test_compile_ilike():
    sql, args = compile_query(Query("profiles", ("id",)).ilike("username", contains("an_n")))
    assert sql == 'SELECT "id" FROM "profiles" WHERE "username" ILIKE $1'
    assert args == ["%an\\_n%"]


def test_query_builder_is_immutable():
    base = Query("posts", ("id",))
    narrowed = base.eq("id", "p1").limit(1)
    assert base.filters == ()
    assert base.max_rows is None
    assert len(narrowed.filters) == 1


def test_identifiers_are_validated():
    with pytest.raises(ValueError):
        compile_query(Query("posts; DROP TABLE posts", ("id",)))
    with pytest.raises(ValueError):
        compile_query(Query("posts", ('id"',)))


def test_escape_like_matches_metacharacters_literally():
    assert escape_like("100%_off\\") == "100\\%\\_off\\\\"
    assert contains("ann") == "%ann%"


def test_store_error_is_a_domain_error():
    err = StoreError("posts", "relation does not exist")
    assert isinstance(err, DomainError)
    assert err.table == "posts"
    assert "relation does not exist" in str(err)


class _FailingPool:
    def __init__(self, exc):
        self.exc = exc

    async def fetch(self, sql, *args):
        raise self.exc


@pytest.mark.asyncio
async def test_postgres_error_becomes_store_error(monkeypatch):
    import asyncpg

    async def fake_get_pool():
        return _FailingPool(asyncpg.exceptions.UndefinedTableError("relation \"posts\" does not exist"))

    monkeypatch.setattr(store_module, "get_pool", fake_get_pool)
    with pytest.raises(StoreError) as exc_info:
        await PostgresStore().select(Query("posts", ("id",)))
    assert exc_info.value.table == "posts"


@pytest.mark.asyncio
async def test_unreachable_store_is_a_transport_fault(monkeypatch):
    async def fake_get_pool():
        return _FailingPool(ConnectionRefusedError("connection refused"))

    monkeypatch.setattr(store_module, "get_pool", fake_get_pool)
    with pytest.raises(TransportFault):
        await PostgresStore().select(Query("posts", ("id",)))


@pytest.mark.asyncio
async def test_uninitialized_pool_is_a_transport_fault():
    with pytest.raises(TransportFault):
        await PostgresStore().select(Query("posts", ("id",)))


@pytest.mark.asyncio
async def test_rows_are_returned_as_dicts(monkeypatch):
    class _Pool:
        async def fetch(self, sql, *args):
            self.sql, self.args = sql, args
            return [{"id": "p1"}, {"id": "p2"}]

    pool = _Pool()

    async def fake_get_pool():
        return pool

    monkeypatch.setattr(store_module, "get_pool", fake_get_pool)
    rows = await PostgresStore().select(Query("posts", ("id",)).eq("id", "p1"))
    assert rows == [{"id": "p1"}, {"id": "p2"}]
    assert pool.args == ("p1",)


@pytest.mark.asyncio
async def test_pool_connections_decode_json_columns(monkeypatch):
    from gourmeet_mcp import database

    created = {}

    async def fake_create_pool(dsn, **kwargs):
        created.update(kwargs, dsn=dsn)
        return object()

    class _Conn:
        def __init__(self):
            self.codecs = {}

        async def set_type_codec(self, type_name, *, encoder, decoder, schema):
            self.codecs[type_name] = (encoder, decoder, schema)

    monkeypatch.setattr(database, "_pool", None)
    monkeypatch.setattr(database.asyncpg, "create_pool", fake_create_pool)
    await database.init_pool("postgresql://localhost/gourmeet")
    assert created["init"] is database.init_connection

    conn = _Conn()
    await created["init"](conn)
    assert set(conn.codecs) == {"json", "jsonb"}
    encoder, decoder, schema = conn.codecs["jsonb"]
    assert schema == "pg_catalog"
    assert decoder('{"w640": {"url": "a.jpg", "width": 640}}') == {"w640": {"url": "a.jpg", "width": 640}}
    assert decoder(encoder({"w640": None})) == {"w640": None}
