"""
Catalog routes: users and products (read-only, seeded data).
"""
from __future__ import annotations

from flask import Blueprint, jsonify

from app.batchflow.db import db_session
from app.batchflow.rbac import require_login
from app.batchflow.serializers import product_to_dict, user_to_dict

from .service import get_user, list_products, list_users

bp = Blueprint("catalog", __name__)


@bp.get("/users")
@require_login
def users_list():
    s = db_session()
    return jsonify([user_to_dict(u) for u in list_users(s)])


@bp.get("/users/<int:user_id>")
@require_login
def user_detail(user_id: int):
    s = db_session()
    return jsonify(user_to_dict(get_user(s, user_id)))


@bp.get("/products")
@require_login
def products_list():
    s = db_session()
    return jsonify([product_to_dict(p) for p in list_products(s)])
