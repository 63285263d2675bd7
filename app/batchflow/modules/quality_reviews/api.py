"""
Quality review routes. Reviews are create-only; there is no PATCH.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.batchflow.db import db_session
from app.batchflow.errors import NotFoundError
from app.batchflow.modules.batch_records.service import get_batch_record
from app.batchflow.rbac import current_user, require_login, require_role
from app.batchflow.serializers import batch_record_to_dict, quality_review_to_dict
from app.batchflow.utils import json_body, parse_bool_arg

from .service import (
    REVIEWER_ROLES,
    create_quality_review,
    get_review_for_batch_record,
    list_pending_reviews,
    list_quality_reviews,
)

bp = Blueprint("quality_reviews", __name__)


@bp.get("/quality-reviews")
@require_login
def quality_reviews_list():
    """
    ?pending=true  -> batch records awaiting a decision (with relations)
    otherwise      -> reviews, expanded with ?includeRelations=true
    """
    s = db_session()
    if parse_bool_arg(request.args.get("pending")):
        return jsonify([batch_record_to_dict(br, with_relations=True) for br in list_pending_reviews(s)])

    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    return jsonify([quality_review_to_dict(r, with_relations=with_relations) for r in list_quality_reviews(s)])


@bp.post("/quality-reviews")
@require_role(*REVIEWER_ROLES)
def quality_review_create():
    s = db_session()
    review = create_quality_review(s, json_body(), user=current_user())
    s.commit()
    return jsonify(quality_review_to_dict(review)), 201


@bp.get("/batch-records/<int:batch_record_id>/quality-review")
@require_login
def batch_record_quality_review(batch_record_id: int):
    s = db_session()
    get_batch_record(s, batch_record_id)
    review = get_review_for_batch_record(s, batch_record_id)
    if review is None:
        raise NotFoundError("Quality review not found for this batch record")
    return jsonify(quality_review_to_dict(review))
