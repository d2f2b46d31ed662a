import httpx
import pytest
from starlette.requests import Request

from movie_inferno.config import Settings
from movie_inferno.deps import get_db, get_settings_dep, get_tmdb_client
from movie_inferno.services.identity import IdentityClient
from movie_inferno.utils.exceptions import DatabaseException


class BrokenDatabase:
    table_names = []

    def ping(self):
        raise DatabaseException("database unreachable: connection refused")


def test_health_reports_database(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["database"]["connected"] is True
    assert body["checks"]["database"] == "pass"


def test_health_is_degraded_when_database_fails(app, client):
    app.dependency_overrides[get_db] = lambda: BrokenDatabase()

    resp = client.get("/api/health")
    db_resp = client.get("/api/health/database")

    assert resp.status_code == 503
    assert resp.json()["status"] == "degraded"
    assert db_resp.status_code == 503
    assert db_resp.json()["database"]["connected"] is False


def test_database_health_counts_rows(client):
    body = client.get("/api/health/database").json()

    assert body["status"] == "healthy"
    assert body["database"]["tables"]["movies"] == 3
    assert body["database"]["tables"]["tv_shows"] == 2


def test_sync_without_api_key_is_500(app, client, settings):
    app.dependency_overrides[get_settings_dep] = lambda: settings.model_copy(update={"tmdb_api_key": None})

    resp = client.get("/api/sync")

    assert resp.status_code == 500
    assert resp.json()["error"] == "TMDB API key not configured"


def test_sync_endpoint_runs_pipeline(app, client, make_tmdb):
    async def fake_tmdb_client():
        async with make_tmdb() as tmdb:
            yield tmdb

    app.dependency_overrides[get_tmdb_client] = fake_tmdb_client

    resp = client.get("/api/sync")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert "movies" in body["tables_populated"]
    assert body["summary"]["movies"] == 5
    assert body["summary"]["failures"] == 0
    assert client.get("/api/content/stats").json()["movies"] == 3 + 5


def test_database_select_orders_and_limits(client):
    resp = client.get(
        "/api/database/select",
        params={"table": "movies", "columns": "id, title", "orderBy": "rating", "ascending": "false", "limit": 2},
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == [
        {"id": 278, "title": "The Shawshank Redemption"},
        {"id": 238, "title": "The Godfather"},
    ]


def test_database_select_with_filters(client):
    resp = client.get(
        "/api/database/select",
        params={"table": "movies", "columns": "id", "filters": '[{"column": "title", "value": "The Dark Knight"}]'},
    )

    assert resp.json() == {"data": [{"id": 155}], "count": 1, "error": None}


def test_database_select_rejects_unknown_identifiers(client):
    bad_table = client.get("/api/database/select", params={"table": "pg_user"})
    bad_column = client.get("/api/database/select", params={"table": "movies", "orderBy": "1; DROP"})
    bad_filters = client.get("/api/database/select", params={"table": "movies", "filters": "{oops"})

    assert bad_table.status_code == 400
    assert bad_table.json()["code"] == "INVALID_IDENTIFIER"
    assert bad_column.status_code == 400
    assert bad_filters.status_code == 400


def test_database_insert(client, catalogue_db):
    resp = client.post("/api/database/insert", json={"table": "genres", "data": {"id": 35, "name": "Comedy"}})
    missing = client.post("/api/database/insert", json={"table": "genres"})

    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": 35, "name": "Comedy"}
    assert catalogue_db.table("genres").eq("id", 35).count().count == 1
    assert missing.status_code == 400


def test_database_routes_accept_iso_dates(client, catalogue_db):
    inserted = client.post(
        "/api/database/insert",
        json={"table": "movies", "data": {"id": 4242, "title": "Date Night", "release_date": "2024-01-02"}},
    )
    selected = client.get(
        "/api/database/select",
        params={"table": "movies", "columns": "id", "filters": '[{"column": "release_date", "value": "2008-07-16"}]'},
    )

    assert inserted.status_code == 200
    assert inserted.json()["data"]["release_date"] == "2024-01-02"
    assert selected.status_code == 200
    assert selected.json()["data"] == [{"id": 155}]


def test_database_routes_reject_malformed_dates(client):
    inserted = client.post(
        "/api/database/insert",
        json={"table": "movies", "data": {"id": 4243, "title": "Bad Date", "release_date": "2024-13-40"}},
    )
    selected = client.get(
        "/api/database/select",
        params={"table": "movies", "filters": '[{"column": "release_date", "value": "last tuesday"}]'},
    )

    assert inserted.status_code == 400
    assert inserted.json()["code"] == "VALIDATION_ERROR_release_date"
    assert selected.status_code == 400


def make_request(headers):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


@pytest.mark.anyio
async def test_identity_client_forwards_credentials():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["authorization"] = request.headers.get("authorization")
        return httpx.Response(200, json={"user": {"id": 1, "role": "admin"}})

    identity = IdentityClient("https://id.test/", transport=httpx.MockTransport(handler))
    user = await identity.get_session(make_request({"Authorization": "Bearer abc"}))

    assert seen == {"url": "https://id.test/session", "authorization": "Bearer abc"}
    assert user.id == 1
    assert user.role == "admin"


@pytest.mark.anyio
async def test_identity_client_is_anonymous_without_session():
    identity = IdentityClient(
        "https://id.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(401)),
    )

    assert await identity.get_session(make_request({"Cookie": "sid=1"})) is None
    assert await identity.get_session(make_request({})) is None
    assert await IdentityClient(None).get_session(make_request({"Cookie": "sid=1"})) is None


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SYNC_MOVIE_PAGES", "4")
    monkeypatch.setenv("USE_MOCK_DATABASE", "true")

    settings = Settings()

    assert settings.sync_movie_pages == 4
    assert settings.use_mock_database is True
    assert settings.db_pool_size == 20


def test_malformed_request_input_is_400(client):
    missing_table = client.get("/api/database/select")
    bad_type = client.get("/api/content/trending", params={"type": "anime"})
    too_long = client.post("/api/chatbot", json={"message": "x" * 2001})

    for resp in (missing_table, bad_type, too_long):
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"
        assert resp.json()["success"] is False
    assert missing_table.json()["details"][0]["loc"] == ["query", "table"]
