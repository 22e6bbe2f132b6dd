"""
Integration tests for the HTTP endpoint and client.

Tests cover:
- GET/POST /exec envelopes end to end
- text/plain and malformed bodies
- AuditTrailClient against the ASGI app
- SQLite-backed app with a missing store
"""

import tempfile

import httpx
import pytest
import pytest_asyncio

from audit_trail.api import Settings, create_app
from audit_trail.client import AuditTrailClient
from audit_trail.config import ServerConfig, StoreBackend, StoreConfig
from audit_trail.errors import ErrorKind, RemoteError
from audit_trail.rows import COLUMNS
from audit_trail.store import InMemoryTableStore, SqliteTableStore

TABLE = "Audit Trail"
BASE_URL = "http://audit-trail.test"


def make_config(**store_kwargs) -> ServerConfig:
    return ServerConfig(store=StoreConfig(table_name=TABLE, **store_kwargs))


@pytest_asyncio.fixture
async def store():
    store = InMemoryTableStore()
    await store.connect()
    await store.create_table(TABLE, COLUMNS)
    yield store
    await store.close()


@pytest.fixture
def app(store):
    return create_app(
        settings=Settings(),
        config=make_config(backend=StoreBackend.MEMORY),
        store=store,
    )


@pytest_asyncio.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


class TestExecEndpoint:
    """Tests for GET/POST /exec."""

    @pytest.mark.asyncio
    async def test_read_empty(self, http):
        response = await http.get("/exec", params={"action": "read"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"status": "success", "entries": [], "count": 0}

    @pytest.mark.asyncio
    async def test_create_read_delete_cycle(self, http):
        first = await http.post(
            "/exec",
            json={"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Checkout"},
        )
        second = await http.post(
            "/exec",
            json={"timestamp": "2025-01-02T00:00:00Z", "assetCode": "A-2", "action": "Return"},
        )
        assert first.json()["rowNumber"] == 2
        assert second.json()["rowNumber"] == 3

        deleted = await http.post("/exec", json={"action": "delete", "rowNumber": 2})
        assert deleted.json()["status"] == "success"
        assert deleted.json()["deletedRow"] == 2
        assert deleted.json()["assetCode"] == "A-1"

        body = (await http.get("/exec", params={"action": "read"})).json()
        assert body["count"] == 1
        assert body["entries"][0]["assetCode"] == "A-2"
        assert body["entries"][0]["rowNumber"] == 2

    @pytest.mark.asyncio
    async def test_text_plain_body(self, http):
        """Browsers post JSON as text/plain to skip preflight."""
        response = await http.post(
            "/exec",
            content='{"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Audit"}',
            headers={"Content-Type": "text/plain;charset=utf-8"},
        )

        assert response.json()["status"] == "success"

    @pytest.mark.asyncio
    async def test_malformed_body(self, http):
        response = await http.post("/exec", content="{not json")

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["code"] == ErrorKind.VALIDATION_ERROR.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    async def test_non_finite_value_rejected(self, http, constant):
        """Non-standard JSON constants never reach the table."""
        response = await http.post(
            "/exec",
            content=(
                '{"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", '
                f'"action": "Checkout", "value": {constant}}}'
            ),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["code"] == ErrorKind.VALIDATION_ERROR.value
        assert constant in response.json()["message"]

        read = await http.get("/exec", params={"action": "read"})
        assert read.status_code == 200
        assert read.json() == {"status": "success", "entries": [], "count": 0}

    @pytest.mark.asyncio
    async def test_empty_body_is_invalid_create(self, http):
        response = await http.post("/exec")

        assert response.json()["status"] == "error"
        assert "assetCode" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_unknown_get_action(self, http):
        response = await http.get("/exec", params={"action": "export"})

        assert response.status_code == 200
        assert response.json() == {
            "status": "error",
            "code": "UNKNOWN_ACTION",
            "message": "Unknown action: export",
        }

    @pytest.mark.asyncio
    async def test_delete_out_of_range(self, http):
        response = await http.post("/exec", json={"action": "delete", "rowNumber": 5})

        assert response.json()["status"] == "error"
        assert response.json()["code"] == ErrorKind.INVALID_IDENTIFIER.value

    @pytest.mark.asyncio
    async def test_health(self, http):
        response = await http.get("/health")

        assert response.json() == {"status": "healthy", "service": "audit-trail", "table": TABLE}


class TestMissingStore:
    """SQLite-backed app whose store was never initialized."""

    @pytest.mark.asyncio
    async def test_read_reports_store_not_found(self):
        with tempfile.TemporaryDirectory() as data_dir:
            store = SqliteTableStore(data_dir, store_id="nowhere", wal_mode=False)
            await store.connect()
            app = create_app(
                settings=Settings(),
                config=make_config(backend=StoreBackend.SQLITE, data_dir=data_dir),
                store=store,
            )

            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
                response = await http.get("/exec", params={"action": "read"})

        assert response.json()["status"] == "error"
        assert response.json()["code"] == ErrorKind.STORE_NOT_FOUND.value
        assert TABLE in response.json()["message"]


class TestLifespan:
    """App startup and shutdown around the table store."""

    @pytest.mark.asyncio
    async def test_memory_backend_serves_after_startup(self):
        app = create_app(settings=Settings(), config=make_config(backend=StoreBackend.MEMORY))

        async with app.router.lifespan_context(app):
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
                created = await http.post(
                    "/exec",
                    json={"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Checkout"},
                )
                read = await http.get("/exec", params={"action": "read"})

        assert created.json()["status"] == "success"
        assert created.json()["rowNumber"] == 2
        assert read.json()["status"] == "success"
        assert read.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_existing_memory_table_kept(self):
        store = InMemoryTableStore()
        await store.connect()
        await store.create_table(TABLE, COLUMNS)
        await store.append_row(TABLE, ["2025-01-01T00:00:00Z", "A-1"])
        app = create_app(
            settings=Settings(),
            config=make_config(backend=StoreBackend.MEMORY),
            store=store,
        )

        async with app.router.lifespan_context(app):
            assert await store.get_last_row(TABLE) == 2

        assert not store.is_connected


class TestAuditTrailClient:
    """Tests for AuditTrailClient."""

    @pytest_asyncio.fixture
    async def client(self, app):
        async with AuditTrailClient(BASE_URL, transport=httpx.ASGITransport(app=app)) as client:
            yield client

    @pytest.mark.asyncio
    async def test_create_and_read(self, client):
        created = await client.create(
            {"timestamp": "2025-01-01T00:00:00Z", "assetCode": "A-1", "action": "Checkout"}
        )

        entries = (await client.read())["entries"]

        assert created["rowNumber"] == 2
        assert entries[0]["assetCode"] == "A-1"
        assert entries[0]["value"] == 0

    @pytest.mark.asyncio
    async def test_delete(self, client):
        await client.create({"timestamp": "t", "assetCode": "A-1", "action": "Checkout"})

        deleted = await client.delete(2)

        assert deleted["assetCode"] == "A-1"
        assert (await client.read())["count"] == 0

    @pytest.mark.asyncio
    async def test_error_envelope_raises(self, client):
        with pytest.raises(RemoteError) as exc_info:
            await client.delete(1)

        assert exc_info.value.kind == ErrorKind.INVALID_IDENTIFIER
        assert exc_info.value.code == "INVALID_IDENTIFIER"
        assert "Invalid row number: 1" in exc_info.value.message

    def test_unknown_remote_code(self):
        error = RemoteError("boom", code="SOMETHING_NEW")

        assert error.kind == ErrorKind.UNHANDLED_FAILURE
        assert error.details == {"code": "SOMETHING_NEW"}

    @pytest.mark.asyncio
    async def test_error_envelope_returned(self, app):
        transport = httpx.ASGITransport(app=app)
        async with AuditTrailClient(BASE_URL, raise_on_error=False, transport=transport) as client:
            envelope = await client.create({"assetCode": "A-1"})

        assert envelope["status"] == "error"
        assert envelope["code"] == ErrorKind.VALIDATION_ERROR.value
