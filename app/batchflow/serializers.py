"""
JSON views of the ORM models.

Keys are camelCase to match the public API. The ``with_relations`` variants
embed related rows (the "...WithRelations" shapes the UI consumes).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.batchflow.utils import isoformat

if TYPE_CHECKING:
    from app.batchflow.models import ActivityLog, User
    from app.batchflow.modules.batch_records.models import BatchRecord, ManufacturingStep, QualityControlTest
    from app.batchflow.modules.catalog.models import Product
    from app.batchflow.modules.quality_reviews.models import QualityReview
    from app.batchflow.modules.work_orders.models import WorkOrder


def user_to_dict(u: "User") -> dict[str, Any]:
    # Never expose password_hash.
    return {
        "id": u.id,
        "username": u.username,
        "fullName": u.full_name,
        "role": u.role,
        "email": u.email,
        "avatarUrl": u.avatar_url,
        "createdAt": isoformat(u.created_at),
    }


def product_to_dict(p: "Product") -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "createdAt": isoformat(p.created_at),
    }


def work_order_to_dict(wo: "WorkOrder", *, with_relations: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": wo.id,
        "workOrderNumber": wo.work_order_number,
        "productId": wo.product_id,
        "batchSize": wo.batch_size,
        "assignedOperatorId": wo.assigned_operator_id,
        "status": wo.status,
        "startDate": isoformat(wo.start_date),
        "endDate": isoformat(wo.end_date),
        "notes": wo.notes,
        "createdAt": isoformat(wo.created_at),
        "updatedAt": isoformat(wo.updated_at),
    }
    if with_relations:
        data["product"] = product_to_dict(wo.product)
        data["operator"] = user_to_dict(wo.operator)
        data["batchRecord"] = batch_record_to_dict(wo.batch_record) if wo.batch_record else None
    return data


def manufacturing_step_to_dict(step: "ManufacturingStep") -> dict[str, Any]:
    return {
        "id": step.id,
        "batchRecordId": step.batch_record_id,
        "name": step.name,
        "description": step.description,
        "sortOrder": step.sort_order,
        "completedAt": isoformat(step.completed_at),
        "completedBy": step.completed_by,
        "createdAt": isoformat(step.created_at),
    }


def quality_control_test_to_dict(test: "QualityControlTest") -> dict[str, Any]:
    return {
        "id": test.id,
        "batchRecordId": test.batch_record_id,
        "name": test.name,
        "acceptableRange": test.acceptable_range,
        "result": test.result,
        "isPassed": test.is_passed,
        "completedAt": isoformat(test.completed_at),
        "completedBy": test.completed_by,
        "createdAt": isoformat(test.created_at),
    }


def batch_record_to_dict(br: "BatchRecord", *, with_relations: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": br.id,
        "workOrderId": br.work_order_id,
        "operatorId": br.operator_id,
        "batchNumber": br.batch_number,
        "completionPercentage": br.completion_percentage,
        "isComplete": br.is_complete,
        "submittedAt": isoformat(br.submitted_at),
        "createdAt": isoformat(br.created_at),
        "updatedAt": isoformat(br.updated_at),
    }
    if with_relations:
        data["workOrder"] = work_order_to_dict(br.work_order)
        data["operator"] = user_to_dict(br.operator)
        data["manufacturingSteps"] = [
            manufacturing_step_to_dict(step)
            for step in sorted(br.manufacturing_steps, key=lambda st: (st.sort_order, st.id))
        ]
        data["qualityControlTests"] = [quality_control_test_to_dict(t) for t in br.quality_control_tests]
        data["qualityReview"] = quality_review_to_dict(br.quality_review) if br.quality_review else None
    return data


def quality_review_to_dict(review: "QualityReview", *, with_relations: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": review.id,
        "batchRecordId": review.batch_record_id,
        "reviewerId": review.reviewer_id,
        "decision": review.decision,
        "comments": review.comments,
        "reviewedAt": isoformat(review.reviewed_at),
        "createdAt": isoformat(review.created_at),
    }
    if with_relations:
        data["batchRecord"] = batch_record_to_dict(review.batch_record, with_relations=True)
        data["reviewer"] = user_to_dict(review.reviewer)
    return data


def activity_log_to_dict(entry: "ActivityLog", *, with_relations: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": entry.id,
        "userId": entry.user_id,
        "activityType": entry.activity_type,
        "entityId": entry.entity_id,
        "entityType": entry.entity_type,
        "details": entry.details,
        "createdAt": isoformat(entry.created_at),
    }
    if with_relations:
        data["user"] = user_to_dict(entry.user)
    return data
