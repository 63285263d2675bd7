"""
Work order service layer.
Handles numbering, creation, field updates and status writes.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.batchflow.audit import record_activity
from app.batchflow.errors import NotFoundError, ValidationError, field_error
from app.batchflow.modules.catalog.service import get_product, get_user
from app.batchflow.utils import optional_datetime, optional_int, optional_text, require_int

from .models import WorkOrder

if TYPE_CHECKING:
    from app.batchflow.models import User

logger = logging.getLogger(__name__)


# Ordered: planned → in_progress → completed → under_review → approved | rejected
VALID_STATUSES = ("planned", "in_progress", "completed", "under_review", "approved", "rejected")

# Fields a PATCH may touch; everything else in the body is ignored.
UPDATABLE_FIELDS = ("status", "notes", "endDate", "assignedOperatorId")


def number_suffix(number: str) -> int:
    """Numeric sequence part of "WO-2024-007" -> 7. Unparseable suffixes count as 0."""
    parts = (number or "").split("-")
    if len(parts) < 3:
        return 0
    try:
        return int(parts[2])
    except ValueError:
        return 0


def format_work_order_number(year: int, seq: int) -> str:
    return f"WO-{year}-{seq:03d}"


def next_work_order_number(s: Session, *, year: int) -> str:
    """
    Last-inserted work order's suffix + 1.

    Not a real sequence: concurrent creators can compute the same number.
    The unique constraint on work_order_number rejects the loser.
    """
    last = s.scalars(select(WorkOrder).order_by(WorkOrder.id.desc()).limit(1)).first()
    last_seq = 0
    if last is not None:
        last_seq = number_suffix(last.work_order_number)
        if last_seq == 0:
            logger.warning("Work order %s has no numeric suffix; restarting sequence", last.work_order_number)
    return format_work_order_number(year, last_seq + 1)


def clean_work_order_payload(payload: dict) -> dict:
    """Validate a create payload. Raises ValidationError with field-level detail."""
    errors: list[dict[str, str]] = []
    product_id = require_int(payload, "productId", errors, minimum=1)
    batch_size = require_int(payload, "batchSize", errors, minimum=1)
    operator_id = require_int(payload, "assignedOperatorId", errors, minimum=1)

    start_date = optional_datetime(payload, "startDate", errors)
    if start_date is None and not any(e["field"] == "startDate" for e in errors):
        errors.append(field_error("startDate", "Required"))
    end_date = optional_datetime(payload, "endDate", errors)

    status = payload.get("status") or "planned"
    if status not in VALID_STATUSES:
        errors.append(field_error("status", f"Must be one of: {', '.join(VALID_STATUSES)}"))

    notes = optional_text(payload, "notes", errors)

    if errors:
        raise ValidationError("Invalid work order data", errors)

    return {
        "product_id": product_id,
        "batch_size": batch_size,
        "assigned_operator_id": operator_id,
        "start_date": start_date,
        "end_date": end_date,
        "status": status,
        "notes": notes,
    }


def list_work_orders(s: Session, *, status: str | None = None) -> list[WorkOrder]:
    query = select(WorkOrder).order_by(WorkOrder.id)
    if status:
        query = query.where(WorkOrder.status == status)
    return list(s.scalars(query))


def get_work_order(s: Session, work_order_id: int) -> WorkOrder:
    wo = s.get(WorkOrder, work_order_id)
    if not wo:
        raise NotFoundError("Work order not found")
    return wo


def create_work_order(s: Session, payload: dict, *, user: User, now: datetime | None = None) -> WorkOrder:
    """Create a work order with a generated WO-<year>-<seq> number."""
    data = clean_work_order_payload(payload)
    get_product(s, data["product_id"])
    try:
        get_user(s, data["assigned_operator_id"])
    except NotFoundError:
        raise NotFoundError("Operator not found") from None

    now = now or datetime.utcnow()
    wo = WorkOrder(
        work_order_number=next_work_order_number(s, year=now.year),
        created_at=now,
        updated_at=now,
        **data,
    )
    s.add(wo)
    s.flush()  # Get ID

    record_activity(
        s,
        actor=user,
        activity_type="work_order_created",
        entity_type="work_order",
        entity_id=wo.id,
        details=f"Work order #{wo.work_order_number} created",
    )
    logger.info("Created work order %s (id=%s)", wo.work_order_number, wo.id)
    return wo


def apply_status(wo: WorkOrder, new_status: str, *, now: datetime | None = None) -> str:
    """
    Write a lifecycle status without logging. Returns the previous status.
    Callers own the activity log entry for the transition that caused it.
    """
    if new_status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {new_status}")
    old_status = wo.status
    wo.status = new_status
    wo.updated_at = now or datetime.utcnow()
    if old_status != new_status:
        logger.info("Work order %s: %s -> %s", wo.work_order_number, old_status, new_status)
    return old_status


def update_work_order(s: Session, wo: WorkOrder, payload: dict, *, user: User) -> WorkOrder:
    """
    PATCH semantics for status/notes/endDate/assignedOperatorId.
    A status change here is a manual override: any enum value is accepted.
    """
    errors: list[dict[str, str]] = []
    updates = {k: payload[k] for k in UPDATABLE_FIELDS if k in payload}

    new_status = updates.get("status")
    if "status" in updates and new_status not in VALID_STATUSES:
        raise ValidationError(
            "Invalid status value",
            [field_error("status", f"Must be one of: {', '.join(VALID_STATUSES)}")],
        )

    operator_id = optional_int(updates, "assignedOperatorId", errors, minimum=1)
    end_date = optional_datetime(updates, "endDate", errors)
    notes = optional_text(updates, "notes", errors)
    if errors:
        raise ValidationError("Invalid work order data", errors)

    changed: list[str] = []
    if operator_id is not None and operator_id != wo.assigned_operator_id:
        try:
            get_user(s, operator_id)
        except NotFoundError:
            raise NotFoundError("Operator not found") from None
        wo.assigned_operator_id = operator_id
        changed.append("assignedOperatorId")

    if "endDate" in updates and end_date != wo.end_date:
        wo.end_date = end_date
        changed.append("endDate")

    if "notes" in updates and notes != wo.notes:
        wo.notes = notes
        changed.append("notes")

    now = datetime.utcnow()
    wo.updated_at = now

    if new_status is not None and new_status != wo.status:
        apply_status(wo, new_status, now=now)
        record_activity(
            s,
            actor=user,
            activity_type="work_order_status_changed",
            entity_type="work_order",
            entity_id=wo.id,
            details=f"Work order #{wo.work_order_number} status changed to {new_status}",
        )

    if changed:
        record_activity(
            s,
            actor=user,
            activity_type="work_order_updated",
            entity_type="work_order",
            entity_id=wo.id,
            details=f"Work order #{wo.work_order_number} updated ({', '.join(changed)})",
        )

    return wo
