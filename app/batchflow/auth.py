from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session
from werkzeug.security import check_password_hash

from app.batchflow.db import db_session
from app.batchflow.models import User
from app.batchflow.modules.catalog.service import get_user_by_username
from app.batchflow.rbac import current_user, require_login
from app.batchflow.security import ensure_csrf_token
from app.batchflow.serializers import user_to_dict

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def reset_login_attempts() -> None:
    _login_attempts.clear()


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for activity/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    user = s.get(User, int(user_id))
    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


@bp.post("/auth/login")
def login_post():
    payload = request.get_json(silent=True) or {}
    username = str(payload.get("username") or "").strip().lower()
    password = str(payload.get("password") or "")
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s)", ip)
        return jsonify({"error": "Too many login attempts. Please wait 5 minutes."}), 429

    _record_attempt(ip)

    s = db_session()
    user = get_user_by_username(s, username) if username else None
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        current_app.logger.warning(
            "Login failed (username=%s request_id=%s)", username, getattr(g, "request_id", None)
        )
        return jsonify({"error": "Invalid credentials"}), 401

    session.clear()
    session["user_id"] = user.id
    _login_attempts[ip].clear()
    current_app.logger.info("Login ok (user_id=%s request_id=%s)", user.id, getattr(g, "request_id", None))
    return jsonify({"user": user_to_dict(user), "csrfToken": ensure_csrf_token()})


@bp.post("/auth/logout")
@require_login
def logout():
    user = current_user()
    current_app.logger.info("Logout (user_id=%s)", user.id)
    session.clear()
    return jsonify({"ok": True})


@bp.get("/current-user")
@require_login
def current_user_get():
    data = user_to_dict(current_user())
    data["csrfToken"] = ensure_csrf_token()
    return jsonify(data)
