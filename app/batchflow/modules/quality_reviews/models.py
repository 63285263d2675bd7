from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.batchflow.models import Base, User

if TYPE_CHECKING:
    from app.batchflow.modules.batch_records.models import BatchRecord


class QualityReview(Base):
    """QC decision on a submitted batch record. Immutable once created."""

    __tablename__ = "quality_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # One review per batch record, ever
    batch_record_id: Mapped[int] = mapped_column(
        ForeignKey("batch_records.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    reviewer_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    decision: Mapped[str] = mapped_column(String(16), nullable=False)  # approve, reject, hold
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    batch_record: Mapped["BatchRecord"] = relationship("BatchRecord", back_populates="quality_review", lazy="selectin")
    reviewer: Mapped[User] = relationship("User", foreign_keys=[reviewer_id], lazy="selectin")
