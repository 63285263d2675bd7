from __future__ import annotations

import logging

from flask import g, has_request_context
from sqlalchemy.orm import Session

from app.batchflow.models import ActivityLog, User

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = (
    "work_order_created",
    "work_order_updated",
    "work_order_status_changed",
    "batch_record_created",
    "batch_record_updated",
    "batch_record_submitted",
    "manufacturing_step_completed",
    "quality_test_completed",
    "quality_review_completed",
)


def record_activity(
    s: Session,
    *,
    actor: User,
    activity_type: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    details: str | None = None,
) -> ActivityLog:
    """
    Append-only activity log helper.
    """
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")

    entry = ActivityLog(
        user_id=actor.id,
        activity_type=activity_type,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(entry)

    rid = getattr(g, "request_id", None) if has_request_context() else None
    logger.info(
        "activity %s %s=%s by user=%s (request_id=%s)",
        activity_type,
        entity_type,
        entity_id,
        actor.id,
        rid,
    )
    return entry
