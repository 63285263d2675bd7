from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.batchflow.models import ActivityLog
from app.batchflow.modules.quality_reviews.service import list_pending_reviews
from app.batchflow.modules.work_orders.models import WorkOrder
from app.batchflow.modules.work_orders.service import VALID_STATUSES


def start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def dashboard_stats(s: Session, *, now: datetime | None = None) -> dict:
    """Read-side aggregation; recomputed on every call."""
    now = now or datetime.utcnow()

    rows = s.execute(select(WorkOrder.status, func.count(WorkOrder.id)).group_by(WorkOrder.status)).all()
    status_counts = {status: 0 for status in VALID_STATUSES}
    for status, count in rows:
        status_counts[status] = count

    completed_this_month = s.scalar(
        select(func.count(WorkOrder.id)).where(
            WorkOrder.status.in_(("approved", "rejected")),
            WorkOrder.updated_at >= start_of_month(now),
        )
    ) or 0

    return {
        "activeWorkOrders": status_counts["in_progress"],
        "pendingQcReviews": len(list_pending_reviews(s)),
        "completedThisMonth": completed_this_month,
        "statusCounts": status_counts,
    }


def recent_activity(s: Session, *, limit: int) -> list[ActivityLog]:
    return list(
        s.scalars(
            select(ActivityLog)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
        )
    )
