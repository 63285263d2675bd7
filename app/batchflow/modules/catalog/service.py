from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.batchflow.errors import NotFoundError
from app.batchflow.models import User

from .models import Product

VALID_ROLES = ("operator", "quality_controller", "admin")


def list_users(s: Session) -> list[User]:
    return list(s.scalars(select(User).where(User.is_active.is_(True)).order_by(User.id)))


def get_user(s: Session, user_id: int) -> User:
    user = s.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(s: Session, username: str) -> User | None:
    return s.scalars(select(User).where(User.username == username.strip().lower())).one_or_none()


def list_products(s: Session) -> list[Product]:
    return list(s.scalars(select(Product).order_by(Product.id)))


def get_product(s: Session, product_id: int) -> Product:
    product = s.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product
