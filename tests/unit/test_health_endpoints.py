from fastapi.testclient import TestClient

from mediauth.infrastructure.persistence.mongo.constants import ConnectionState
from mediauth.main import create_app
from tests.conftest import FakeDatabase, build_app, make_settings


def test_health_is_200_and_reports_disconnected_by_default(test_app):
    client = TestClient(test_app)
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"] == "disconnected"
    assert body["databaseCode"] == 0
    assert body["environment"] == "production"
    assert body["version"] == "1.0.0"
    assert body["uptime"] >= 0
    assert body["memory"]["maxRss"] > 0
    assert body["pythonVersion"]
    assert body["timestamp"]


def test_health_reflects_last_known_state():
    database = FakeDatabase(state=ConnectionState.CONNECTED)
    client = TestClient(build_app(database=database))

    body = client.get("/health").json()
    assert body["database"] == "connected"
    assert body["databaseCode"] == 1

    database.set_state(ConnectionState.DISCONNECTED)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["database"] == "disconnected"


def test_health_reports_connecting_and_disconnecting_codes():
    database = FakeDatabase(state=ConnectionState.CONNECTING)
    client = TestClient(build_app(database=database))
    assert client.get("/health").json()["databaseCode"] == 2

    database.set_state(ConnectionState.DISCONNECTING)
    assert client.get("/health").json()["databaseCode"] == 3


def test_startup_without_db_uri_is_not_fatal_and_stays_disconnected():
    app = create_app(make_settings(db_uri=None))
    with TestClient(app) as client:
        assert app.state.database.current_state() == ConnectionState.DISCONNECTED
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["database"] == "disconnected"


def test_lifespan_initializes_and_shuts_down_database():
    database = FakeDatabase(initialize_to=ConnectionState.CONNECTED)
    app = build_app(database=database)
    with TestClient(app) as client:
        assert database.initialize_calls == 1
        assert client.get("/health").json()["database"] == "connected"
    assert database.shutdown_calls == 1
    assert database.closed_while_connected is True
    assert database.current_state() == ConnectionState.DISCONNECTED


def test_banner_lists_endpoints(test_app):
    client = TestClient(test_app)
    r = client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "running"
    assert body["database"] == "disconnected"
    assert body["endpoints"]["health"] == "/health"
    assert body["endpoints"]["testDb"] == "/api/test-db"
    assert body["endpoints"]["docs"] == "/api/docs"


def test_banner_collapses_transitional_states_to_disconnected():
    database = FakeDatabase(state=ConnectionState.CONNECTING)
    client = TestClient(build_app(database=database))
    assert client.get("/").json()["database"] == "disconnected"

    database.set_state(ConnectionState.CONNECTED)
    assert client.get("/").json()["database"] == "connected"


def test_health_is_not_rate_limited():
    client = TestClient(build_app(make_settings(rate_limit_max=1)))
    for _ in range(5):
        assert client.get("/health").status_code == 200
