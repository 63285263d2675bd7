import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.batchflow.models import Product, User

# (username, full name, role, email)
DEMO_USERS = (
    ("john.cooper", "John Cooper", "operator", "john.cooper@batchflow.local"),
    ("maria.johnson", "Maria Johnson", "operator", "maria.johnson@batchflow.local"),
    ("sara.williams", "Sara Williams", "quality_controller", "sara.williams@batchflow.local"),
)

DEMO_PRODUCTS = (
    ("Hydrating Moisturizer", "Daily moisturizer with hyaluronic acid"),
    ("Vitamin C Serum", "Brightening serum with 15% vitamin C"),
    ("Gentle Cleanser", "Sulfate-free foaming cleanser"),
    ("SPF 50 Sunscreen", "Broad spectrum mineral sunscreen"),
    ("Clay Face Mask", "Purifying kaolin clay mask"),
)


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_data(s: Session, *, admin_username: str, admin_password: str, demo_password: str) -> dict[str, int]:
    """
    Insert the admin, demo users and products that are missing.
    Existing users keep their passwords; products are matched by name.
    Returns how many users and products were created.
    """
    created = {"users": 0, "products": 0}

    def ensure_user(username: str, full_name: str, role: str, email: str | None, password: str) -> User:
        u = s.query(User).filter(User.username == username).one_or_none()
        if not u:
            u = User(
                username=username,
                full_name=full_name,
                role=role,
                email=email,
                password_hash=generate_password_hash(password),
                is_active=True,
            )
            s.add(u)
            created["users"] += 1
        return u

    ensure_user(admin_username, "Administrator", "admin", None, admin_password)
    for username, full_name, role, email in DEMO_USERS:
        ensure_user(username, full_name, role, email, demo_password)

    for name, description in DEMO_PRODUCTS:
        if not s.query(Product).filter(Product.name == name).one_or_none():
            s.add(Product(name=name, description=description))
            created["products"] += 1

    return created


def seed_credentials() -> dict[str, str]:
    """Admin and demo passwords come from ADMIN_USERNAME / ADMIN_PASSWORD / DEMO_PASSWORD."""
    return {
        "admin_username": (os.environ.get("ADMIN_USERNAME") or "admin").strip().lower(),
        "admin_password": os.environ.get("ADMIN_PASSWORD") or "change-me",
        "demo_password": os.environ.get("DEMO_PASSWORD") or "password",
    }


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed admin/demo users and products in an idempotent way.
    Does NOT overwrite an existing user's password.
    """
    creds = seed_credentials()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///batchflow.db").strip()

    with _session_scope(db_url) as s:
        created = seed_data(s, **creds)

    print(f"Initialized database (seed_only): {created['users']} users, {created['products']} products created.")
    print(f"Admin username: {creds['admin_username']}")
    print("Admin password: (from ADMIN_PASSWORD)")
    print("Demo users: " + ", ".join(u[0] for u in DEMO_USERS) + " (password from DEMO_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
