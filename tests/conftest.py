import pytest

from app.batchflow import create_app
from app.batchflow.auth import reset_login_attempts
from app.batchflow.db import session_scope
from app.batchflow.models import Base
from scripts.init_db import seed_data

# Seeded ids (insertion order in scripts/init_db.py)
ADMIN_ID = 1
JOHN_ID = 2  # operator
MARIA_ID = 3  # operator
SARA_ID = 4  # quality_controller
HYDRATING_MOISTURIZER_ID = 1
VITAMIN_C_SERUM_ID = 2


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("ACTIVITY_LOG_DEFAULT_LIMIT", "ACTIVITY_LOG_MAX_LIMIT"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        seed_data(s, admin_username="admin", admin_password="pw", demo_password="pw")

    reset_login_attempts()
    yield app
    reset_login_attempts()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client):
    """Log a seeded user in; CSRF header is attached to every later request."""

    def _login(username="john.cooper", password="pw"):
        r = client.post("/api/auth/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.json
        client.environ_base["HTTP_X_CSRF_TOKEN"] = r.json["csrfToken"]
        return r.json["user"]

    return _login


@pytest.fixture()
def make_work_order(client):
    def _make(**overrides):
        payload = {
            "productId": HYDRATING_MOISTURIZER_ID,
            "batchSize": 500,
            "assignedOperatorId": JOHN_ID,
            "startDate": "2024-01-01T00:00:00Z",
        }
        payload.update(overrides)
        r = client.post("/api/work-orders", json=payload)
        assert r.status_code == 201, r.json
        return r.json

    return _make


@pytest.fixture()
def make_batch_record(client, make_work_order):
    def _make(work_order=None, **overrides):
        wo = work_order or make_work_order()
        payload = {"workOrderId": wo["id"]}
        payload.update(overrides)
        r = client.post("/api/batch-records", json=payload)
        assert r.status_code == 201, r.json
        return r.json

    return _make
