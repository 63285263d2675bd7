"""
Quality review service layer.

A review is the terminal QC decision on a submitted batch record. One review
per batch record, ever; there is no revision path (a "hold" decision leaves
the work order in under_review with its review slot used up).
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.batchflow.audit import record_activity
from app.batchflow.errors import ConflictError, ValidationError, field_error
from app.batchflow.modules.batch_records.models import BatchRecord
from app.batchflow.modules.batch_records.service import get_batch_record
from app.batchflow.modules.work_orders.models import WorkOrder
from app.batchflow.modules.work_orders.service import apply_status
from app.batchflow.utils import optional_text, require_int

from .models import QualityReview

if TYPE_CHECKING:
    from app.batchflow.models import User

logger = logging.getLogger(__name__)


VALID_DECISIONS = ("approve", "reject", "hold")

# Work order status each decision leads to; hold leaves status untouched.
DECISION_OUTCOMES = {
    "approve": "approved",
    "reject": "rejected",
    "hold": None,
}

REVIEWER_ROLES = ("quality_controller", "admin")


def get_review_for_batch_record(s: Session, batch_record_id: int) -> QualityReview | None:
    return s.scalars(select(QualityReview).where(QualityReview.batch_record_id == batch_record_id)).one_or_none()


def list_quality_reviews(s: Session) -> list[QualityReview]:
    return list(s.scalars(select(QualityReview).order_by(QualityReview.id)))


def list_pending_reviews(s: Session) -> list[BatchRecord]:
    """Complete batch records awaiting a decision (work order under_review, no review yet)."""
    query = (
        select(BatchRecord)
        .join(WorkOrder, WorkOrder.id == BatchRecord.work_order_id)
        .outerjoin(QualityReview, QualityReview.batch_record_id == BatchRecord.id)
        .where(
            WorkOrder.status == "under_review",
            BatchRecord.is_complete.is_(True),
            QualityReview.id.is_(None),
        )
        .order_by(BatchRecord.submitted_at, BatchRecord.id)
    )
    return list(s.scalars(query))


def create_quality_review(s: Session, payload: dict, *, user: User, now: datetime | None = None) -> QualityReview:
    """Record the QC decision and advance the work order."""
    errors: list[dict[str, str]] = []
    batch_record_id = require_int(payload, "batchRecordId", errors, minimum=1)
    decision = payload.get("decision")
    if decision is None:
        errors.append(field_error("decision", "Required"))
    elif decision not in VALID_DECISIONS:
        errors.append(field_error("decision", f"Must be one of: {', '.join(VALID_DECISIONS)}"))
    comments = optional_text(payload, "comments", errors)
    if errors:
        raise ValidationError("Invalid quality review data", errors)

    br = get_batch_record(s, batch_record_id)
    if get_review_for_batch_record(s, br.id) is not None:
        raise ConflictError("Quality review already exists for this batch record")

    now = now or datetime.utcnow()
    review = QualityReview(
        batch_record=br,
        reviewer_id=user.id,
        decision=decision,
        comments=comments,
        reviewed_at=now,
        created_at=now,
    )
    s.add(review)
    s.flush()  # Get ID

    wo = br.work_order
    new_status = DECISION_OUTCOMES[decision]
    if new_status is not None:
        apply_status(wo, new_status, now=now)

    verb = {"approve": "approved", "reject": "rejected", "hold": "put on hold"}[decision]
    record_activity(
        s,
        actor=user,
        activity_type="quality_review_completed",
        entity_type="quality_review",
        entity_id=review.id,
        details=f"Work order #{wo.work_order_number} {verb} by Quality Control",
    )
    logger.info("Quality review %s on batch %s: %s", review.id, br.batch_number, decision)
    return review
