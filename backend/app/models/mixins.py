"""
Column mixins shared by every cascaded entity.

SoftDeleteMixin:    isDeleted / deletedAt / deletedBy. Records are never
                    removed; delete and restore only flip these three.
TenantScopedMixin:  organization + department. Every core query is filtered
                    by both (see app.services.scope.scoped).
TimestampMixin:     created_at / updated_at in UTC.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column


def utc_now() -> datetime:
    """Single source of truth for "now" throughout the application."""
    return datetime.now(timezone.utc)


class SoftDeleteMixin:
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        index=True,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        default=None,
    )


class TenantScopedMixin:
    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    department_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
