"""
TaskManager Backend — Polymorphic Parent Resolution
====================================================

What:  Explicit resolution of `parent_model` + `parent_id` references.
Why:   Comments, activities and attachments point at one of several tables.
       Instead of dispatching on a raw string wherever a parent is needed,
       a reference is a tagged value (ParentRef) and each variant has its
       own loader in PARENT_RESOLVERS.
How:   resolve_parent() picks the loader for the variant, applies tenant
       scope and returns the row (deleted rows included, so callers can
       tell "missing" apart from "deleted").

Ancestor checks:
    ensure_parent_active()            one level
    ensure_comment_ancestors_active() the whole chain from a comment up to
                                      its owning TaskActivity / Task
    ensure_ref_active()               a reference plus all of its ancestors
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, ParentDeletedError, ValidationError
from app.models import ParentModel, Task, TaskActivity, TaskComment
from app.services.scope import TenantScope, scoped

logger = logging.getLogger(__name__)

ParentEntity = Union[Task, TaskActivity, TaskComment]


@dataclass(frozen=True)
class ParentRef:
    model: ParentModel
    id: uuid.UUID

    @classmethod
    def of(cls, model: Union[str, ParentModel], parent_id: uuid.UUID) -> "ParentRef":
        try:
            return cls(ParentModel(model), parent_id)
        except ValueError:
            raise ValidationError(f"Parent model '{model}' is invalid", field="parent_model")

    @classmethod
    def of_comment(cls, comment: TaskComment) -> "ParentRef":
        return cls.of(comment.parent_model, comment.parent_id)

    def __str__(self) -> str:
        return f"{self.model.value}:{self.id}"


async def load_scoped(session: AsyncSession, model, entity_id: uuid.UUID, scope: TenantScope):
    """Scoped primary-key load that refreshes any stale identity-map copy."""
    stmt = scoped(select(model).where(model.id == entity_id), model, scope)
    result = await session.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def _resolve_task(session: AsyncSession, ref: ParentRef, scope: TenantScope) -> Task:
    return await load_scoped(session, Task, ref.id, scope)


async def _resolve_activity(session: AsyncSession, ref: ParentRef, scope: TenantScope) -> TaskActivity:
    return await load_scoped(session, TaskActivity, ref.id, scope)


async def _resolve_comment(session: AsyncSession, ref: ParentRef, scope: TenantScope) -> TaskComment:
    return await load_scoped(session, TaskComment, ref.id, scope)


PARENT_RESOLVERS: Dict[
    ParentModel, Callable[[AsyncSession, ParentRef, TenantScope], Awaitable[ParentEntity]]
] = {
    ParentModel.TASK: _resolve_task,
    ParentModel.TASK_ACTIVITY: _resolve_activity,
    ParentModel.TASK_COMMENT: _resolve_comment,
}


async def resolve_parent(
    session: AsyncSession, ref: ParentRef, scope: TenantScope
) -> ParentEntity:
    """
    Load the entity a ParentRef points at, deleted or not.

    Raises:
        NotFoundError: no such row inside the tenant scope.
    """
    entity = await PARENT_RESOLVERS[ref.model](session, ref, scope)
    if entity is None:
        raise NotFoundError(resource=ref.model.value, resource_id=str(ref.id))
    return entity


async def ensure_parent_active(
    session: AsyncSession, ref: ParentRef, scope: TenantScope
) -> ParentEntity:
    """Resolve `ref` and reject it with ParentDeletedError when soft-deleted."""
    entity = await resolve_parent(session, ref, scope)
    if entity.is_deleted:
        raise ParentDeletedError(ref.model.value, str(ref.id))
    return entity


async def find_owning_task_id(
    session: AsyncSession, ref: ParentRef, scope: TenantScope
) -> uuid.UUID:
    """Follow parent references up to the Task that owns `ref`."""
    current = ref
    for _ in range(settings.cascade_max_iterations + 2):
        if current.model is ParentModel.TASK:
            return current.id
        entity = await resolve_parent(session, current, scope)
        current = ParentRef.of(entity.parent_model, entity.parent_id)
    raise ConflictError(
        "Parent chain is too deep or cyclic",
        context={"start": str(ref)},
    )


async def ensure_comment_ancestors_active(
    session: AsyncSession, comment: TaskComment, scope: TenantScope
) -> None:
    """
    Require every ancestor of `comment` to be active.

    Walks parent comments up to the owning TaskActivity or Task; an owning
    TaskActivity additionally requires its Task to be active. The walk is
    bounded by `cascade_max_iterations` like the cascade traversal itself.

    Raises:
        ParentDeletedError: the nearest deleted ancestor.
        NotFoundError: a dangling parent reference.
        ConflictError: the chain does not terminate within the bound.
    """
    ref = ParentRef.of_comment(comment)
    for _ in range(settings.cascade_max_iterations + 1):
        parent = await ensure_parent_active(session, ref, scope)
        if ref.model is ParentModel.TASK:
            return
        if ref.model is ParentModel.TASK_ACTIVITY:
            await ensure_parent_active(session, ParentRef.of(parent.parent_model, parent.parent_id), scope)
            return
        ref = ParentRef.of_comment(parent)

    logger.warning("Comment %s has an unterminated parent chain", comment.id)
    raise ConflictError(
        "Comment parent chain is too deep or cyclic",
        context={"comment_id": str(comment.id)},
    )


async def ensure_ref_active(
    session: AsyncSession, ref: ParentRef, scope: TenantScope
) -> ParentEntity:
    """
    Require `ref` and everything above it to be active.

    Used before attaching a new child to `ref`, or restoring / deleting an
    existing child of it.
    """
    entity = await ensure_parent_active(session, ref, scope)
    if ref.model is ParentModel.TASK_ACTIVITY:
        await ensure_parent_active(session, ParentRef.of(entity.parent_model, entity.parent_id), scope)
    elif ref.model is ParentModel.TASK_COMMENT:
        await ensure_comment_ancestors_active(session, entity, scope)
    return entity
