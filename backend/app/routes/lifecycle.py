"""
TaskManager Backend — Delete / Restore Route Handlers
=====================================================

What:  DELETE /api/{resource}/{id} and POST /api/{resource}/{id}/restore for
       tasks, activities, comments and attachments.
Why:   Surfaces the soft-delete lifecycle at the HTTP boundary.
How:   Reads the tenant scope and actor from headers, then makes exactly ONE
       TransactionCoordinator.run() call wrapping one LifecycleService method.
       Errors propagate to the global exception handlers unchanged.

Headers:
    X-Organization-ID   required, UUID
    X-Department-ID     required, UUID
    X-Actor-ID          optional, UUID (recorded as deleted_by)

Authentication is handled upstream of this service; these headers are
trusted as-is.
"""

import uuid
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Header

from app.schemas.lifecycle import ErrorResponse, LifecycleResponse
from app.services.lifecycle_service import LifecycleResult, lifecycle_service
from app.services.scope import TenantScope
from app.services.transaction import TransactionCoordinator, UnitOfWork, get_coordinator

router = APIRouter(prefix="/api", tags=["Lifecycle"])

_ERRORS = {
    400: {"description": "Invalid reference", "model": ErrorResponse},
    404: {"description": "Entity not found in scope", "model": ErrorResponse},
    409: {"description": "Conflict (deleted parent, insufficient stock)", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


# ── Dependencies ──────────────────────────────────────────────────────────

def get_scope(
    x_organization_id: uuid.UUID = Header(..., description="Organization the caller acts in"),
    x_department_id: uuid.UUID = Header(..., description="Department the caller acts in"),
) -> TenantScope:
    return TenantScope(organization_id=x_organization_id, department_id=x_department_id)


def get_actor(
    x_actor_id: Optional[uuid.UUID] = Header(default=None, description="User performing the change"),
) -> Optional[uuid.UUID]:
    return x_actor_id


LifecycleMethod = Callable[..., Awaitable[LifecycleResult]]


async def _run(
    coordinator: TransactionCoordinator,
    method: LifecycleMethod,
    entity_id: uuid.UUID,
    scope: TenantScope,
    actor_id: Optional[uuid.UUID],
) -> LifecycleResponse:
    async def work(uow: UnitOfWork) -> LifecycleResult:
        return await method(uow, entity_id, scope, actor_id)

    result = await coordinator.run(work)
    return LifecycleResponse.from_result(result)


# ── Routes ────────────────────────────────────────────────────────────────
# Path segment → (singular label, delete method, restore method)
_RESOURCES = {
    "tasks": ("task", lifecycle_service.delete_task, lifecycle_service.restore_task),
    "activities": ("activity", lifecycle_service.delete_activity, lifecycle_service.restore_activity),
    "comments": ("comment", lifecycle_service.delete_comment, lifecycle_service.restore_comment),
    "attachments": ("attachment", lifecycle_service.delete_attachment, lifecycle_service.restore_attachment),
}


def _register(
    resource: str, label: str, delete_method: LifecycleMethod, restore_method: LifecycleMethod
) -> None:
    async def delete_entity(
        entity_id: uuid.UUID,
        scope: TenantScope = Depends(get_scope),
        actor_id: Optional[uuid.UUID] = Depends(get_actor),
        coordinator: TransactionCoordinator = Depends(get_coordinator),
    ) -> LifecycleResponse:
        return await _run(coordinator, delete_method, entity_id, scope, actor_id)

    async def restore_entity(
        entity_id: uuid.UUID,
        scope: TenantScope = Depends(get_scope),
        actor_id: Optional[uuid.UUID] = Depends(get_actor),
        coordinator: TransactionCoordinator = Depends(get_coordinator),
    ) -> LifecycleResponse:
        return await _run(coordinator, restore_method, entity_id, scope, actor_id)

    router.add_api_route(
        f"/{resource}/{{entity_id}}",
        delete_entity,
        methods=["DELETE"],
        response_model=LifecycleResponse,
        responses=_ERRORS,
        name=f"delete_{label}",
        summary=f"Soft-delete a {label} and everything below it",
    )
    router.add_api_route(
        f"/{resource}/{{entity_id}}/restore",
        restore_entity,
        methods=["POST"],
        response_model=LifecycleResponse,
        responses=_ERRORS,
        name=f"restore_{label}",
        summary=f"Restore a soft-deleted {label} and everything below it",
    )


for _resource, (_label, _delete, _restore) in _RESOURCES.items():
    _register(_resource, _label, _delete, _restore)
