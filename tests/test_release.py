from sqlalchemy import create_engine, inspect, select

from app.batchflow.db import session_scope
from app.batchflow.models import Base, Product
from scripts.release import migrate, seed


def test_migrations_create_every_table(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)

    head = migrate(db_url)
    assert head == "5a1e0c7b3d21"

    engine = create_engine(db_url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert set(Base.metadata.tables) <= tables


def test_seed_is_idempotent(app, monkeypatch):
    monkeypatch.setenv("ADMIN_USERNAME", "admin")
    # Already seeded by the fixture
    assert seed(app) == {"users": 0, "products": 0}

    with session_scope(app) as s:
        s.delete(s.scalars(select(Product).where(Product.name == "Clay Face Mask")).one())
    assert seed(app) == {"users": 0, "products": 1}


def test_seed_keeps_existing_passwords(app, client, monkeypatch):
    monkeypatch.setenv("DEMO_PASSWORD", "something-else")
    seed(app)
    r = client.post("/api/auth/login", json={"username": "john.cooper", "password": "pw"})
    assert r.status_code == 200
