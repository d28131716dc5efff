"""
TaskManager Backend — Task SQLAlchemy Models
=============================================

What:  The `tasks` table and its three variants, plus the
       `routine_task_materials` association rows.
How:   Single-table inheritance keyed on `type` (ProjectTask, AssignedTask,
       RoutineTask). Only RoutineTask carries embedded material usage; the
       other variants record consumption through their TaskActivity children.

Ownership:
    Task is the root of every cascade tree. It owns TaskActivity and
    TaskComment children (parent_model == "Task") and Attachment /
    Notification leaves.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import TaskPriority, TaskStatus, TaskType
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin


class Task(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    """
    Base task row. Never instantiated directly; use one of the variants.

    Lifecycle:
        Created active → delete() marks it and its whole subtree deleted and
        returns consumed stock → restore() re-consumes stock and reactivates
        the subtree. Rows are never physically removed.
    """

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TaskStatus.TODO.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TaskPriority.MEDIUM.value
    )
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    __table_args__ = (
        Index("idx_tasks_scope_status", "organization_id", "department_id", "status"),
        Index("idx_tasks_scope_type", "organization_id", "department_id", "type"),
    )

    __mapper_args__ = {
        "polymorphic_on": "type",
    }

    def __repr__(self) -> str:
        return f"<{self.type}(id={self.id}, is_deleted={self.is_deleted})>"


class ProjectTask(Task):
    __mapper_args__ = {"polymorphic_identity": TaskType.PROJECT.value}


class AssignedTask(Task):
    __mapper_args__ = {"polymorphic_identity": TaskType.ASSIGNED.value}


class RoutineTask(Task):
    """
    A recurring task that consumes materials directly.

    `materials` is the committed stock consumption of this task: creating or
    editing it consumes stock, deleting the task returns it.
    """

    # Single-table inheritance: the column lives on `tasks` and is NULL for
    # the other variants.
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    materials: Mapped[List["RoutineTaskMaterial"]] = relationship(
        back_populates="task",
        lazy="raise",
    )

    __mapper_args__ = {"polymorphic_identity": TaskType.ROUTINE.value}


class RoutineTaskMaterial(Base):
    """One `(material, quantity)` pair recorded on a routine task."""

    __tablename__ = "routine_task_materials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id"), nullable=False, index=True
    )
    material_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("materials.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    task: Mapped[RoutineTask] = relationship(back_populates="materials")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_routine_task_materials_quantity_positive"),
        UniqueConstraint("task_id", "material_id", name="uq_routine_task_materials_task_material"),
    )
