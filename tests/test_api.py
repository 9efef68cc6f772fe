import pytest
from httpx import AsyncClient
from sqlalchemy import exc as sa_exc

TEXT = 25


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "postgres-readonly-gateway"


@pytest.mark.asyncio
async def test_run_query(client: AsyncClient, engine):
    engine.rows = [(1,), (2,)]
    response = await client.post("/query", json={"query": "SELECT id FROM t", "limit": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["rows"] == [{"id": 1}]
    assert data["fields"] == [{"name": "id", "type": "INT4"}]
    assert data["row_count"] == 1
    assert data["truncated"] is True


@pytest.mark.asyncio
async def test_rejected_query_is_400_with_reason(client: AsyncClient, engine):
    response = await client.post("/query", json={"query": "DROP TABLE users"})

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "query_rejected"
    assert data["reason"] == "disallowed-statement-type"
    assert data["retryable"] is False
    assert engine.calls == []


@pytest.mark.asyncio
async def test_comment_only_query_is_invalid_input(client: AsyncClient):
    response = await client.post("/query", json={"query": "-- nothing"})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


@pytest.mark.asyncio
async def test_missing_query_is_validation_error(client: AsyncClient):
    response = await client.post("/query", json={"limit": 5})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_pool_exhausted_is_503(client: AsyncClient, engine):
    engine.connect_error = sa_exc.TimeoutError("QueuePool limit reached")
    response = await client.post("/query", json={"query": "SELECT 1"})

    assert response.status_code == 503
    assert response.json()["code"] == "pool_exhausted"
    assert response.json()["retryable"] is True


@pytest.mark.asyncio
async def test_statement_timeout_is_504(client: AsyncClient, engine):
    engine.error = sa_exc.OperationalError("SELECT 1", None, FakeDriverError("canceled", "57014"))
    response = await client.post("/query", json={"query": "SELECT 1"})

    assert response.status_code == 504
    assert response.json()["code"] == "statement_timeout"


@pytest.mark.asyncio
async def test_backend_error_is_502_and_sanitized(client: AsyncClient, engine):
    engine.error = sa_exc.ProgrammingError(
        "SELECT 1", None, FakeDriverError("permission denied, password=S3cr3t")
    )
    response = await client.post("/query", json={"query": "SELECT 1"})

    assert response.status_code == 502
    assert response.json()["code"] == "backend_error"
    assert "S3cr3t" not in response.text


@pytest.mark.asyncio
async def test_unconfigured_target_is_400(client: AsyncClient, engine):
    response = await client.post("/query", json={"query": "SELECT 1", "database": "db2"})

    assert response.status_code == 400
    assert response.json()["code"] == "configuration_error"


@pytest.mark.asyncio
async def test_unknown_target_name_is_validation_error(client: AsyncClient):
    response = await client.get("/tables", params={"database": "prod"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_tables(client: AsyncClient, engine):
    engine.columns = [
        ("table_name", TEXT),
        ("table_type", TEXT),
        ("row_count_estimate", 20),
        ("table_schema", TEXT),
    ]
    engine.rows = [("users", "BASE TABLE", 12, "app")]

    response = await client.get("/tables", params={"schema": "app"})

    assert response.status_code == 200
    assert response.json() == [
        {"name": "users", "type": "BASE TABLE", "row_count": 12, "schema": "app"}
    ]
    assert engine.calls[0][1] == ("app",)


@pytest.mark.asyncio
async def test_get_table(client: AsyncClient, engine):
    engine.responses = [
        (
            [
                ("column_name", TEXT),
                ("data_type", TEXT),
                ("is_nullable", TEXT),
                ("column_default", TEXT),
                ("extra", TEXT),
                ("column_comment", TEXT),
            ],
            [("id", "bigint", "NO", None, "identity", None)],
        ),
        ([("column_name", TEXT)], [("id",)]),
        ([("column_name", TEXT)], []),
        ([("index_name", TEXT), ("index_definition", TEXT)], []),
    ]

    response = await client.get("/tables/users")

    assert response.status_code == 200
    data = response.json()
    assert data["table"] == "users"
    assert data["schema"] == "public"
    assert data["columns"][0]["extra"] == "identity"
    assert data["primary_key"] == ["id"]


@pytest.mark.asyncio
async def test_preview_truncates_long_text(client: AsyncClient, engine):
    engine.columns = [("bio", TEXT)]
    engine.rows = [("z" * 100,)]

    response = await client.post("/tables/users/preview", json={"limit": 3, "columns": ["bio"]})

    assert response.status_code == 200
    assert engine.calls[0][0] == (
        'SELECT * FROM (SELECT "bio" FROM "public"."users") AS gate_subquery LIMIT 4'
    )
    assert response.json()["rows"][0]["bio"] == "z" * 20 + "... (truncated)"


@pytest.mark.asyncio
async def test_get_relations(client: AsyncClient, engine):
    engine.columns = [
        ("table_name", TEXT),
        ("column_name", TEXT),
        ("referenced_table_name", TEXT),
        ("referenced_column_name", TEXT),
        ("constraint_name", TEXT),
    ]
    engine.rows = [("orders", "user_id", "users", "id", "orders_user_id_fkey")]

    response = await client.get("/tables/users/relations")

    assert response.status_code == 200
    assert response.json() == [
        {
            "table": "orders",
            "column": "user_id",
            "foreign_key": "orders_user_id_fkey",
            "relation_type": "one-to-many",
        }
    ]


@pytest.mark.asyncio
async def test_get_stats(client: AsyncClient, engine):
    engine.responses = [
        ([("size", TEXT)], [("1 MB",)]),
        ([("table_count", 20), ("total_rows", 1700)], [(1, 5)]),
        ([("table_name", TEXT), ("row_count", 20), ("total_size", TEXT)], [("t", 5, "16 kB")]),
    ]

    response = await client.get("/stats")

    assert response.status_code == 200
    assert response.json()["total_tables"] == 1
    assert response.json()["largest_tables"] == [{"table": "t", "rows": 5, "size": "16 kB"}]


@pytest.mark.asyncio
async def test_health(client: AsyncClient, engine):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == [{"target": "db", "status": "ok", "detail": None}]

    engine.connect_error = ConnectionRefusedError("Connection refused")
    response = await client.get("/health")
    report = response.json()[0]
    assert report["status"] == "connection_failed"
    assert "db@db.internal:5432/app" in report["detail"]
