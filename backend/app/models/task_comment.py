"""
TaskManager Backend — TaskComment SQLAlchemy Model
===================================================

What:  Threaded comments. A comment hangs off a Task, a TaskActivity or
       another TaskComment (parent_model + parent_id).
Why depth is stored: the reply depth is fixed at insert time
       (parent depth + 1, root comments are 0) so the cap can be enforced
       by a CHECK constraint instead of a recursive query.

Self-referential edges (TaskComment → TaskComment) are the only edges the
cascade engine expands breadth-first; see app.services.cascade_service.
"""

import uuid

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.config import settings
from app.database import Base
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin


class TaskComment(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "task_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    parent_model: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    __table_args__ = (
        CheckConstraint(
            f"depth >= 0 AND depth <= {settings.comment_max_depth}",
            name="ck_task_comments_depth_range",
        ),
        CheckConstraint(
            "parent_model IN ('Task', 'TaskActivity', 'TaskComment')",
            name="ck_task_comments_parent_model",
        ),
        Index("idx_task_comments_parent", "parent_id", "parent_model"),
    )

    def __repr__(self) -> str:
        return (
            f"<TaskComment(id={self.id}, parent={self.parent_model}:{self.parent_id}, "
            f"depth={self.depth}, is_deleted={self.is_deleted})>"
        )
