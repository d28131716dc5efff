"""
TaskManager Backend — Attachment SQLAlchemy Model
==================================================

What:  File metadata attached to a Task, TaskActivity or TaskComment.
       Attachments are cascade leaves: they have no children of their own.
"""

import uuid

from sqlalchemy import CheckConstraint, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin


class Attachment(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "attachments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    parent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    parent_model: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    __table_args__ = (
        CheckConstraint("file_size >= 0", name="ck_attachments_file_size_non_negative"),
        CheckConstraint(
            "parent_model IN ('Task', 'TaskActivity', 'TaskComment')",
            name="ck_attachments_parent_model",
        ),
        Index("idx_attachments_parent", "parent_id", "parent_model"),
    )

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, parent={self.parent_model}:{self.parent_id})>"
