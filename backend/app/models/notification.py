"""
TaskManager Backend — Notification SQLAlchemy Model
====================================================

What:  Per-user notifications pointing at an entity (entity_model + entity_id).
       Notifications are cascade leaves: when the entity they describe is
       soft-deleted they are hidden with it, and restored with it.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.mixins import SoftDeleteMixin, TenantScopedMixin, TimestampMixin, utc_now

# Unread notifications are kept for thirty days
NOTIFICATION_TTL = timedelta(days=30)


def _default_expiry() -> datetime:
    return utc_now() + NOTIFICATION_TTL


class Notification(SoftDeleteMixin, TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    entity_model: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_default_expiry
    )

    __table_args__ = (
        Index("idx_notifications_entity", "entity_id", "entity_model"),
        Index("idx_notifications_user_read", "user_id", "is_read"),
    )
