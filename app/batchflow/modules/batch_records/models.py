from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.batchflow.models import Base, User

if TYPE_CHECKING:
    from app.batchflow.modules.quality_reviews.models import QualityReview
    from app.batchflow.modules.work_orders.models import WorkOrder


class BatchRecord(Base):
    __tablename__ = "batch_records"
    __table_args__ = (
        Index("idx_batch_records_is_complete", "is_complete"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # One batch record per work order
    work_order_id: Mapped[int] = mapped_column(
        ForeignKey("work_orders.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    operator_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    batch_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)  # e.g. "HY-24-001-500"

    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0..100
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Relationships
    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", back_populates="batch_record", lazy="selectin")
    operator: Mapped[User] = relationship("User", foreign_keys=[operator_id], lazy="selectin")
    manufacturing_steps: Mapped[list["ManufacturingStep"]] = relationship(
        "ManufacturingStep",
        back_populates="batch_record",
        order_by="ManufacturingStep.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    quality_control_tests: Mapped[list["QualityControlTest"]] = relationship(
        "QualityControlTest",
        back_populates="batch_record",
        order_by="QualityControlTest.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    quality_review: Mapped["QualityReview | None"] = relationship(
        "QualityReview",
        back_populates="batch_record",
        uselist=False,
        lazy="selectin",
    )


class ManufacturingStep(Base):
    __tablename__ = "manufacturing_steps"
    __table_args__ = (
        Index("idx_manufacturing_steps_batch_record", "batch_record_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    batch_record_id: Mapped[int] = mapped_column(ForeignKey("batch_records.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    completed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    batch_record: Mapped["BatchRecord"] = relationship("BatchRecord", back_populates="manufacturing_steps", lazy="selectin")


class QualityControlTest(Base):
    __tablename__ = "quality_control_tests"
    __table_args__ = (
        Index("idx_quality_control_tests_batch_record", "batch_record_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    batch_record_id: Mapped[int] = mapped_column(ForeignKey("batch_records.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)  # e.g. "pH Test"
    acceptable_range: Mapped[str | None] = mapped_column(String(255), nullable=True)  # free text, e.g. "6.5-7.5"
    result: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)  # None = not evaluated

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    completed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    batch_record: Mapped["BatchRecord"] = relationship("BatchRecord", back_populates="quality_control_tests", lazy="selectin")
