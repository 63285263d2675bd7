"""
Batch record service layer.
Handles batch record creation (numbering + seeded steps/tests), submission,
manufacturing step completion and QC test recording.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.batchflow.audit import record_activity
from app.batchflow.errors import ConflictError, NotFoundError, ValidationError, field_error
from app.batchflow.modules.catalog.service import get_user
from app.batchflow.modules.work_orders.service import apply_status, get_work_order, number_suffix
from app.batchflow.utils import optional_datetime, optional_int, optional_text, require_int, require_text

from .models import BatchRecord, ManufacturingStep, QualityControlTest

if TYPE_CHECKING:
    from app.batchflow.models import User

logger = logging.getLogger(__name__)


# Seeded when a batch record is created without an explicit step list.
DEFAULT_MANUFACTURING_STEPS = (
    ("Raw Material Preparation", "Weigh and prepare all raw materials according to formula"),
    ("Oil Phase Mixing", "Combine oil phase ingredients and heat to the required temperature"),
    ("Water Phase Preparation", "Combine water phase ingredients and heat to the required temperature"),
    ("Emulsification", "Add oil phase to water phase while mixing at high speed"),
    ("Cooling and Addition of Actives", "Cool to appropriate temperature and add heat-sensitive ingredients"),
    ("Filling and Packaging", "Fill product into containers and seal"),
)

DEFAULT_QUALITY_CONTROL_TESTS = (
    ("pH Test", "6.5-7.5"),
    ("Viscosity Test", "10,000-20,000 cP"),
    ("Appearance", "White to off-white cream"),
    ("Microbial Test", "No significant growth"),
)

BATCH_RECORD_UPDATABLE_FIELDS = ("completionPercentage", "isComplete", "submittedAt")


def product_prefix(product_name: str) -> str:
    """First two letters of the product name's first word, uppercased."""
    words = (product_name or "").split()
    return words[0][:2].upper() if words else ""


def build_batch_number(*, product_name: str, year: int, work_order_number: str, batch_size: int) -> str:
    """<PP>-<YY>-<work order suffix>-<batch size>, e.g. HY-24-001-500."""
    suffix = (work_order_number or "").split("-")
    seq = suffix[2] if len(suffix) >= 3 else f"{number_suffix(work_order_number):03d}"
    return f"{product_prefix(product_name)}-{year % 100:02d}-{seq}-{batch_size}"


def compute_completion_percentage(steps: list[ManufacturingStep]) -> int:
    """floor(100 * completed / total); a record with no steps is 0% done."""
    total = len(steps)
    if total == 0:
        return 0
    completed = sum(1 for step in steps if step.completed_at is not None)
    return (100 * completed) // total


# ─────────────────────────────────────────────────────────────────────────────
# Lookups
# ─────────────────────────────────────────────────────────────────────────────


def list_batch_records(s: Session) -> list[BatchRecord]:
    return list(s.scalars(select(BatchRecord).order_by(BatchRecord.id)))


def get_batch_record(s: Session, batch_record_id: int) -> BatchRecord:
    br = s.get(BatchRecord, batch_record_id)
    if not br:
        raise NotFoundError("Batch record not found")
    return br


def get_batch_record_for_work_order(s: Session, work_order_id: int) -> BatchRecord | None:
    return s.scalars(select(BatchRecord).where(BatchRecord.work_order_id == work_order_id)).one_or_none()


def get_manufacturing_step(s: Session, step_id: int) -> ManufacturingStep:
    step = s.get(ManufacturingStep, step_id)
    if not step:
        raise NotFoundError("Manufacturing step not found")
    return step


def list_manufacturing_steps(s: Session, batch_record_id: int) -> list[ManufacturingStep]:
    return list(
        s.scalars(
            select(ManufacturingStep)
            .where(ManufacturingStep.batch_record_id == batch_record_id)
            .order_by(ManufacturingStep.sort_order, ManufacturingStep.id)
        )
    )


def get_quality_control_test(s: Session, test_id: int) -> QualityControlTest:
    test = s.get(QualityControlTest, test_id)
    if not test:
        raise NotFoundError("Quality control test not found")
    return test


def list_quality_control_tests(s: Session, batch_record_id: int) -> list[QualityControlTest]:
    return list(
        s.scalars(
            select(QualityControlTest)
            .where(QualityControlTest.batch_record_id == batch_record_id)
            .order_by(QualityControlTest.id)
        )
    )


def _resolve_user_id(s: Session, user_id: int, *, label: str = "User") -> int:
    try:
        get_user(s, user_id)
    except NotFoundError:
        raise NotFoundError(f"{label} not found") from None
    return user_id


# ─────────────────────────────────────────────────────────────────────────────
# Batch record creation / submission
# ─────────────────────────────────────────────────────────────────────────────


def _clean_step_specs(raw: object, errors: list[dict[str, str]]) -> list[dict] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        errors.append(field_error("manufacturingSteps", "Expected a list"))
        return None
    specs = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append(field_error(f"manufacturingSteps[{idx}]", "Expected an object"))
            continue
        item_errors: list[dict[str, str]] = []
        name = require_text(item, "name", item_errors)
        description = optional_text(item, "description", item_errors)
        sort_order = optional_int(item, "sortOrder", item_errors)
        for e in item_errors:
            errors.append(field_error(f"manufacturingSteps[{idx}].{e['field']}", e["message"]))
        specs.append({
            "name": name,
            "description": description,
            "sort_order": sort_order if sort_order is not None else idx + 1,
        })
    return specs


def _clean_test_specs(raw: object, errors: list[dict[str, str]]) -> list[dict] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        errors.append(field_error("qualityControlTests", "Expected a list"))
        return None
    specs = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            errors.append(field_error(f"qualityControlTests[{idx}]", "Expected an object"))
            continue
        item_errors: list[dict[str, str]] = []
        name = require_text(item, "name", item_errors)
        acceptable_range = optional_text(item, "acceptableRange", item_errors)
        for e in item_errors:
            errors.append(field_error(f"qualityControlTests[{idx}].{e['field']}", e["message"]))
        specs.append({"name": name, "acceptable_range": acceptable_range})
    return specs


def create_batch_record(s: Session, payload: dict, *, user: User, now: datetime | None = None) -> BatchRecord:
    """
    Open the batch record for a work order.

    Moves the work order planned -> in_progress. A work order can only ever
    have one batch record; a second attempt is a ConflictError.
    """
    errors: list[dict[str, str]] = []
    work_order_id = require_int(payload, "workOrderId", errors, minimum=1)
    operator_id = optional_int(payload, "operatorId", errors, minimum=1)
    step_specs = _clean_step_specs(payload.get("manufacturingSteps"), errors)
    test_specs = _clean_test_specs(payload.get("qualityControlTests"), errors)
    if errors:
        raise ValidationError("Invalid batch record data", errors)

    wo = get_work_order(s, work_order_id)
    if get_batch_record_for_work_order(s, wo.id) is not None:
        raise ConflictError("Batch record already exists for this work order")

    operator_id = _resolve_user_id(s, operator_id or wo.assigned_operator_id, label="Operator")

    if step_specs is None:
        step_specs = [
            {"name": name, "description": description, "sort_order": idx}
            for idx, (name, description) in enumerate(DEFAULT_MANUFACTURING_STEPS, start=1)
        ]
    if test_specs is None:
        test_specs = [
            {"name": name, "acceptable_range": acceptable_range}
            for name, acceptable_range in DEFAULT_QUALITY_CONTROL_TESTS
        ]

    now = now or datetime.utcnow()
    br = BatchRecord(
        work_order=wo,
        operator_id=operator_id,
        batch_number=build_batch_number(
            product_name=wo.product.name,
            year=now.year,
            work_order_number=wo.work_order_number,
            batch_size=wo.batch_size,
        ),
        completion_percentage=0,
        is_complete=False,
        created_at=now,
        updated_at=now,
    )
    br.manufacturing_steps = [ManufacturingStep(created_at=now, **spec) for spec in step_specs]
    br.quality_control_tests = [QualityControlTest(created_at=now, **spec) for spec in test_specs]
    s.add(br)
    s.flush()  # Get ID

    if wo.status == "planned":
        apply_status(wo, "in_progress", now=now)

    record_activity(
        s,
        actor=user,
        activity_type="batch_record_created",
        entity_type="batch_record",
        entity_id=br.id,
        details=f"New batch record created for #{wo.work_order_number}",
    )
    logger.info("Created batch record %s for work order %s", br.batch_number, wo.work_order_number)
    return br


def update_batch_record(s: Session, br: BatchRecord, payload: dict, *, user: User, now: datetime | None = None) -> BatchRecord:
    """
    PATCH semantics for completionPercentage/isComplete/submittedAt.

    Marking the record complete submits it for quality review: percentage is
    forced to 100, submittedAt defaults to now, and the work order moves to
    under_review.
    """
    errors: list[dict[str, str]] = []
    updates = {k: payload[k] for k in BATCH_RECORD_UPDATABLE_FIELDS if k in payload}

    percentage = optional_int(updates, "completionPercentage", errors, minimum=0)
    if percentage is not None and percentage > 100:
        errors.append(field_error("completionPercentage", "Must be at most 100"))
        percentage = None

    is_complete = updates.get("isComplete")
    if "isComplete" in updates and not isinstance(is_complete, bool):
        errors.append(field_error("isComplete", "Expected a boolean"))

    submitted_at = optional_datetime(updates, "submittedAt", errors)
    if errors:
        raise ValidationError("Invalid batch record data", errors)

    now = now or datetime.utcnow()
    changed: list[str] = []

    if percentage is not None and percentage != br.completion_percentage:
        br.completion_percentage = percentage
        changed.append("completionPercentage")
    if "submittedAt" in updates and submitted_at != br.submitted_at:
        br.submitted_at = submitted_at
        changed.append("submittedAt")

    submitting = is_complete is True and not br.is_complete
    if is_complete is False and br.is_complete:
        br.is_complete = False
        changed.append("isComplete")

    if submitting:
        br.is_complete = True
        if br.submitted_at is None:
            br.submitted_at = now

    if br.is_complete:
        br.completion_percentage = 100

    br.updated_at = now

    if submitting:
        wo = br.work_order
        apply_status(wo, "under_review", now=now)
        record_activity(
            s,
            actor=user,
            activity_type="batch_record_submitted",
            entity_type="batch_record",
            entity_id=br.id,
            details=f"Quality review requested for work order #{wo.work_order_number}",
        )
    elif changed:
        record_activity(
            s,
            actor=user,
            activity_type="batch_record_updated",
            entity_type="batch_record",
            entity_id=br.id,
            details=f"Batch record {br.batch_number} updated ({', '.join(changed)})",
        )

    return br


# ─────────────────────────────────────────────────────────────────────────────
# Manufacturing steps
# ─────────────────────────────────────────────────────────────────────────────


def add_manufacturing_step(s: Session, payload: dict) -> ManufacturingStep:
    """Append a step to an existing batch record."""
    errors: list[dict[str, str]] = []
    batch_record_id = require_int(payload, "batchRecordId", errors, minimum=1)
    name = require_text(payload, "name", errors)
    description = optional_text(payload, "description", errors)
    sort_order = require_int(payload, "sortOrder", errors)
    if errors:
        raise ValidationError("Invalid manufacturing step data", errors)

    br = get_batch_record(s, batch_record_id)
    step = ManufacturingStep(
        batch_record=br,
        name=name,
        description=description,
        sort_order=sort_order,
    )
    s.add(step)
    s.flush()
    recompute_completion(s, br)
    return step


def recompute_completion(s: Session, br: BatchRecord) -> int:
    """
    Recompute and persist completion_percentage from every step of the record.
    A complete (submitted) record stays pinned at 100.
    """
    s.flush()
    if br.is_complete:
        br.completion_percentage = 100
    else:
        br.completion_percentage = compute_completion_percentage(list_manufacturing_steps(s, br.id))
    br.updated_at = datetime.utcnow()
    return br.completion_percentage


def update_manufacturing_step(s: Session, step: ManufacturingStep, payload: dict, *, user: User) -> ManufacturingStep:
    """
    Record step completion (completedAt, completedBy).

    Re-completing an already completed step is allowed and logs again.
    """
    errors: list[dict[str, str]] = []
    completed_at = optional_datetime(payload, "completedAt", errors)
    completed_by = optional_int(payload, "completedBy", errors, minimum=1)
    if errors:
        raise ValidationError("Invalid manufacturing step data", errors)

    if completed_by is not None:
        step.completed_by = _resolve_user_id(s, completed_by)

    if "completedAt" not in payload:
        return step

    step.completed_at = completed_at
    if completed_at is not None:
        if step.completed_by is None:
            step.completed_by = user.id
        record_activity(
            s,
            actor=user,
            activity_type="manufacturing_step_completed",
            entity_type="manufacturing_step",
            entity_id=step.id,
            details=f"Manufacturing step '{step.name}' completed",
        )
    else:
        step.completed_by = None

    pct = recompute_completion(s, step.batch_record)
    logger.info("Batch record %s completion now %s%%", step.batch_record.batch_number, pct)
    return step


# ─────────────────────────────────────────────────────────────────────────────
# Quality control tests
# ─────────────────────────────────────────────────────────────────────────────


def add_quality_control_test(s: Session, payload: dict) -> QualityControlTest:
    errors: list[dict[str, str]] = []
    batch_record_id = require_int(payload, "batchRecordId", errors, minimum=1)
    name = require_text(payload, "name", errors)
    acceptable_range = optional_text(payload, "acceptableRange", errors)
    if errors:
        raise ValidationError("Invalid quality control test data", errors)

    br = get_batch_record(s, batch_record_id)
    test = QualityControlTest(
        batch_record=br,
        name=name,
        acceptable_range=acceptable_range,
    )
    s.add(test)
    s.flush()
    return test


def update_quality_control_test(s: Session, test: QualityControlTest, payload: dict, *, user: User) -> QualityControlTest:
    """
    Record a QC result. isPassed is the operator's call (True/False/None);
    the result is never checked against acceptable_range here.
    """
    errors: list[dict[str, str]] = []
    result = optional_text(payload, "result", errors)
    is_passed = payload.get("isPassed")
    if "isPassed" in payload and is_passed is not None and not isinstance(is_passed, bool):
        errors.append(field_error("isPassed", "Expected true, false or null"))
    completed_at = optional_datetime(payload, "completedAt", errors)
    completed_by = optional_int(payload, "completedBy", errors, minimum=1)
    if errors:
        raise ValidationError("Invalid quality control test data", errors)

    was_completed = test.completed_at is not None

    if "result" in payload:
        test.result = result
    if "isPassed" in payload:
        test.is_passed = is_passed
    if completed_by is not None:
        test.completed_by = _resolve_user_id(s, completed_by)
    if "completedAt" in payload:
        test.completed_at = completed_at

    if test.completed_at is not None and not was_completed:
        if test.completed_by is None:
            test.completed_by = user.id
        record_activity(
            s,
            actor=user,
            activity_type="quality_test_completed",
            entity_type="quality_control_test",
            entity_id=test.id,
            details=f"Quality control test '{test.name}' completed",
        )

    return test
