"""
Batch record routes.
Handles batch records, their manufacturing steps and QC tests.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.batchflow.db import db_session
from app.batchflow.rbac import current_user, require_login
from app.batchflow.serializers import (
    batch_record_to_dict,
    manufacturing_step_to_dict,
    quality_control_test_to_dict,
)
from app.batchflow.utils import json_body, parse_bool_arg

from .service import (
    add_manufacturing_step,
    add_quality_control_test,
    create_batch_record,
    get_batch_record,
    get_manufacturing_step,
    get_quality_control_test,
    list_batch_records,
    list_manufacturing_steps,
    list_quality_control_tests,
    update_batch_record,
    update_manufacturing_step,
    update_quality_control_test,
)

bp = Blueprint("batch_records", __name__)


# ─────────────────────────────────────────────────────────────────────────────
# Batch records
# ─────────────────────────────────────────────────────────────────────────────


@bp.get("/batch-records")
@require_login
def batch_records_list():
    s = db_session()
    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    return jsonify([batch_record_to_dict(br, with_relations=with_relations) for br in list_batch_records(s)])


@bp.get("/batch-records/<int:batch_record_id>")
@require_login
def batch_record_detail(batch_record_id: int):
    s = db_session()
    br = get_batch_record(s, batch_record_id)
    with_relations = parse_bool_arg(request.args.get("includeRelations"))
    return jsonify(batch_record_to_dict(br, with_relations=with_relations))


@bp.post("/batch-records")
@require_login
def batch_record_create():
    s = db_session()
    br = create_batch_record(s, json_body(), user=current_user())
    s.commit()
    return jsonify(batch_record_to_dict(br)), 201


@bp.patch("/batch-records/<int:batch_record_id>")
@require_login
def batch_record_update(batch_record_id: int):
    s = db_session()
    br = get_batch_record(s, batch_record_id)
    br = update_batch_record(s, br, json_body(), user=current_user())
    s.commit()
    return jsonify(batch_record_to_dict(br))


# ─────────────────────────────────────────────────────────────────────────────
# Manufacturing steps
# ─────────────────────────────────────────────────────────────────────────────


@bp.get("/batch-records/<int:batch_record_id>/manufacturing-steps")
@require_login
def manufacturing_steps_list(batch_record_id: int):
    s = db_session()
    get_batch_record(s, batch_record_id)
    return jsonify([manufacturing_step_to_dict(step) for step in list_manufacturing_steps(s, batch_record_id)])


@bp.post("/manufacturing-steps")
@require_login
def manufacturing_step_create():
    s = db_session()
    step = add_manufacturing_step(s, json_body())
    s.commit()
    return jsonify(manufacturing_step_to_dict(step)), 201


@bp.patch("/manufacturing-steps/<int:step_id>")
@require_login
def manufacturing_step_update(step_id: int):
    """Complete a step; the parent batch record's completion is recomputed in the same commit."""
    s = db_session()
    step = get_manufacturing_step(s, step_id)
    step = update_manufacturing_step(s, step, json_body(), user=current_user())
    s.commit()
    return jsonify(manufacturing_step_to_dict(step))


# ─────────────────────────────────────────────────────────────────────────────
# Quality control tests
# ─────────────────────────────────────────────────────────────────────────────


@bp.get("/batch-records/<int:batch_record_id>/quality-control-tests")
@require_login
def quality_control_tests_list(batch_record_id: int):
    s = db_session()
    get_batch_record(s, batch_record_id)
    return jsonify([quality_control_test_to_dict(t) for t in list_quality_control_tests(s, batch_record_id)])


@bp.post("/quality-control-tests")
@require_login
def quality_control_test_create():
    s = db_session()
    test = add_quality_control_test(s, json_body())
    s.commit()
    return jsonify(quality_control_test_to_dict(test)), 201


@bp.patch("/quality-control-tests/<int:test_id>")
@require_login
def quality_control_test_update(test_id: int):
    s = db_session()
    test = get_quality_control_test(s, test_id)
    test = update_quality_control_test(s, test, json_body(), user=current_user())
    s.commit()
    return jsonify(quality_control_test_to_dict(test))
