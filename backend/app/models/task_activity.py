"""
TaskManager Backend — TaskActivity SQLAlchemy Models
=====================================================

What:  `task_activities` (progress entries on a Task) and
       `task_activity_materials` (stock consumed while doing that work).
How:   parent_id + parent_model reference the owning Task. parent_model is
       always "Task" today but is kept as a column so activities share the
       polymorphic parent shape of comments and attachments.
"""

import uuid
from typing import List

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import ParentModel
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin


class TaskActivity(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "task_activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    parent_model: Mapped[str] = mapped_column(
        String(50), nullable=False, default=ParentModel.TASK.value
    )
    activity: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    materials: Mapped[List["TaskActivityMaterial"]] = relationship(
        back_populates="activity",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("parent_model = 'Task'", name="ck_task_activities_parent_is_task"),
        Index("idx_task_activities_parent", "parent_id", "parent_model"),
    )

    def __repr__(self) -> str:
        return f"<TaskActivity(id={self.id}, task={self.parent_id}, is_deleted={self.is_deleted})>"


class TaskActivityMaterial(Base):
    __tablename__ = "task_activity_materials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("task_activities.id"), nullable=False, index=True
    )
    material_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("materials.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    activity: Mapped[TaskActivity] = relationship(back_populates="materials")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_task_activity_materials_quantity_positive"),
        UniqueConstraint("activity_id", "material_id", name="uq_task_activity_materials_activity_material"),
    )
