"""
TaskManager Backend — Pydantic Response Schemas
===============================================

What:  Pydantic models defining what the delete/restore boundary returns.
Why:   Automatic serialization and OpenAPI docs; the service-layer
       LifecycleResult stays a plain dataclass independent of HTTP.
Who:   Used by route handlers as response models.

Design Decision:
    Responses report COUNTS of flipped rows and the applied stock deltas,
    not the flipped rows themselves: a Task delete can touch hundreds of
    comments, and clients refetch what they display anyway.
"""

import uuid
from typing import Dict, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class FlippedCounts(BaseModel):
    """Rows whose soft-delete state changed, per collection."""
    activities: int = Field(default=0, description="TaskActivity rows flipped")
    comments: int = Field(default=0, description="TaskComment rows flipped")
    attachments: int = Field(default=0, description="Attachment rows flipped")
    notifications: int = Field(default=0, description="Notification rows flipped")


class LifecycleResponse(BaseModel):
    """
    What:  Outcome of a delete or restore request.
    Who:   Returned by DELETE /api/{resource}/{id} and POST /api/{resource}/{id}/restore.

    `changed` is False when the entity was already in the requested state;
    such requests succeed without touching anything (idempotent).
    """
    entity_model: str = Field(description="Task, TaskActivity, TaskComment or Attachment")
    entity_id: uuid.UUID = Field(description="ID of the entity addressed by the request")
    action: str = Field(description="deleted or restored")
    changed: bool = Field(description="False if the entity was already in the target state")
    task_id: Optional[uuid.UUID] = Field(default=None, description="Owning task, if resolvable")
    flipped: FlippedCounts = Field(default_factory=FlippedCounts)
    deltas: Dict[str, int] = Field(
        default_factory=dict,
        description="Applied stock deltas per material id (positive consumed, negative returned)",
    )

    @classmethod
    def from_result(cls, result) -> "LifecycleResponse":
        return cls(
            entity_model=result.entity_model,
            entity_id=result.entity_id,
            action=result.action,
            changed=result.changed,
            task_id=result.task_id,
            flipped=FlippedCounts(**result.cascade.counts()),
            deltas={str(k): v for k, v in result.deltas.items()},
        )


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "error": "insufficient_stock",
            "message": "Insufficient stock to restore",
            "details": {"material_id": "…", "requested": 3},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
