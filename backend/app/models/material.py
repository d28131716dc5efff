"""
TaskManager Backend — Material SQLAlchemy Model
================================================

What:  ORM model for the `materials` table: stock-tracked consumables that
       routine tasks and task activities draw from.
Why:   `stock_on_hand` is the only mutable counter shared between concurrent
       requests. It is never read-modify-written in Python; every change is
       a single conditional UPDATE issued by the inventory service.
How:   The CHECK constraint below is the last line of defence: even a buggy
       caller cannot commit a negative stock level.

Table Design Rationale:
    - inventory fields are flattened into columns (stock_on_hand,
      low_stock_threshold, reorder_quantity, last_restocked_at)
    - status is ACTIVE / INACTIVE; new consumption requires ACTIVE, returns
      of earlier consumption do not
    - name and sku are unique per organization + department
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import MaterialStatus
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin


class Material(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    """
    A stock-tracked material.

    Query Patterns:
        - Delta validation: SELECT id, status, is_deleted WHERE id IN (...)
          AND organization_id = :org AND department_id = :dept
        - Consumption: UPDATE ... SET stock_on_hand = stock_on_hand - :delta
          WHERE id = :id AND status = 'ACTIVE' AND stock_on_hand >= :delta
        - Return: UPDATE ... SET stock_on_hand = stock_on_hand + :delta
    """

    __tablename__ = "materials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sku: Mapped[str] = mapped_column(String(30), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False, default="pcs")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="Other")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MaterialStatus.ACTIVE.value,
        index=True,
    )

    # ── Inventory ─────────────────────────────────────────────────────────
    stock_on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_restocked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        CheckConstraint("stock_on_hand >= 0", name="ck_materials_stock_non_negative"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_materials_threshold_non_negative"),
        UniqueConstraint("organization_id", "department_id", "sku", name="uq_materials_scope_sku"),
        UniqueConstraint("organization_id", "department_id", "name", name="uq_materials_scope_name"),
        Index("idx_materials_scope_status", "organization_id", "department_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Material(id={self.id}, sku='{self.sku}', "
            f"stock_on_hand={self.stock_on_hand}, status='{self.status}')>"
        )
