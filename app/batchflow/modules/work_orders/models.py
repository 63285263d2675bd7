from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.batchflow.models import Base, User

if TYPE_CHECKING:
    from app.batchflow.modules.batch_records.models import BatchRecord
    from app.batchflow.modules.catalog.models import Product


class WorkOrder(Base):
    __tablename__ = "work_orders"
    __table_args__ = (
        Index("idx_work_orders_status", "status"),
        Index("idx_work_orders_updated_at", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Generated, immutable
    work_order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)  # e.g. "WO-2024-001"

    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_operator_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="planned")

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Relationships
    product: Mapped["Product"] = relationship("Product", lazy="selectin")
    operator: Mapped[User] = relationship("User", foreign_keys=[assigned_operator_id], lazy="selectin")
    batch_record: Mapped["BatchRecord | None"] = relationship(
        "BatchRecord",
        back_populates="work_order",
        uselist=False,
        lazy="selectin",
    )
