"""
Work order routes.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.batchflow.db import db_session
from app.batchflow.errors import NotFoundError, ValidationError, field_error
from app.batchflow.rbac import current_user, require_login
from app.batchflow.serializers import batch_record_to_dict, work_order_to_dict
from app.batchflow.utils import json_body, parse_bool_arg

from .service import VALID_STATUSES, create_work_order, get_work_order, list_work_orders, update_work_order

bp = Blueprint("work_orders", __name__)


@bp.get("/work-orders")
@require_login
def work_orders_list():
    """List work orders, optionally filtered by ?status= and expanded with ?includeRelations=true."""
    s = db_session()
    status = (request.args.get("status") or "").strip() or None
    if status and status not in VALID_STATUSES:
        raise ValidationError(
            "Invalid status value",
            [field_error("status", f"Must be one of: {', '.join(VALID_STATUSES)}")],
        )
    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    work_orders = list_work_orders(s, status=status)
    return jsonify([work_order_to_dict(wo, with_relations=with_relations) for wo in work_orders])


@bp.get("/work-orders/<int:work_order_id>")
@require_login
def work_order_detail(work_order_id: int):
    s = db_session()
    wo = get_work_order(s, work_order_id)
    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    return jsonify(work_order_to_dict(wo, with_relations=with_relations))


@bp.post("/work-orders")
@require_login
def work_order_create():
    s = db_session()
    wo = create_work_order(s, json_body(), user=current_user())
    s.commit()
    return jsonify(work_order_to_dict(wo)), 201


@bp.patch("/work-orders/<int:work_order_id>")
@require_login
def work_order_update(work_order_id: int):
    s = db_session()
    wo = get_work_order(s, work_order_id)
    wo = update_work_order(s, wo, json_body(), user=current_user())
    s.commit()
    return jsonify(work_order_to_dict(wo))


@bp.get("/work-orders/<int:work_order_id>/batch-record")
@require_login
def work_order_batch_record(work_order_id: int):
    s = db_session()
    wo = get_work_order(s, work_order_id)
    if wo.batch_record is None:
        raise NotFoundError("Batch record not found for this work order")
    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    return jsonify(batch_record_to_dict(wo.batch_record, with_relations=with_relations))
