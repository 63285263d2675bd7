from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.batchflow.db import db_session
from app.batchflow.errors import ValidationError, field_error
from app.batchflow.rbac import require_login
from app.batchflow.serializers import activity_log_to_dict

from .service import dashboard_stats, recent_activity

bp = Blueprint("dashboard", __name__)


@bp.get("/dashboard/stats")
@require_login
def stats():
    s = db_session()
    return jsonify(dashboard_stats(s))


@bp.get("/activity-logs/recent")
@require_login
def activity_logs_recent():
    s = db_session()
    max_limit = current_app.config["ACTIVITY_LOG_MAX_LIMIT"]
    raw = (request.args.get("limit") or "").strip()
    try:
        limit = int(raw) if raw else current_app.config["ACTIVITY_LOG_DEFAULT_LIMIT"]
    except ValueError:
        limit = None
    if limit is None or limit < 1 or limit > max_limit:
        raise ValidationError(
            "Invalid limit",
            [field_error("limit", f"Must be an integer between 1 and {max_limit}")],
        )
    return jsonify([activity_log_to_dict(entry, with_relations=True) for entry in recent_activity(s, limit=limit)])
