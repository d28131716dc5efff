"""
TaskManager Backend — Soft-Delete Lifecycle Service (Business Logic Orchestrator)
=================================================================================

What:  One method per controller flow that deletes, restores, or changes the
       material consumption of a Task, TaskActivity, TaskComment or Attachment.
Why:   These flows touch several tables and the shared stock counters; each
       must commit as a single unit or not at all.
How:   Every method takes the UnitOfWork handed out by
       TransactionCoordinator.run() and composes the inventory applier, the
       cascade engine and the parent resolvers on its session. It never
       commits; the coordinator does.
Who:   Called by the lifecycle routes (one coordinator call per request)
       and directly by tests.

State machine (per entity):
    Active ──delete()──▶ Deleted        deleted_at / deleted_by recorded
    Deleted ─restore()─▶ Active         deleted_at / deleted_by cleared
    delete(Deleted) and restore(Active) succeed with changed=False.

Task delete ordering (one transaction):
    1. flip the Task; if the conditional UPDATE matched nothing, another
       transaction got there first and the call is a no-op
    2. fan out: activities, comment subtrees, attachments, notifications
    3. return stock (negative deltas, require_active=False)
         routine materials + materials of the activities step 2 flipped

Task restore runs the same steps with the opposite transition and
re-consumes stock last (positive deltas, require_active=False,
"Insufficient stock to restore"); a shortfall rolls back steps 1 and 2.
Stock moves only for rows this transaction actually flipped, never on
the strength of an earlier read.

Collaborators:
    A changed result registers exactly one LifecycleEvent via
    uow.after_commit; no-op results publish nothing.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, ParentDeletedError, ValidationError
from app.models import (
    Attachment,
    NotificationEntityModel,
    ParentModel,
    RoutineTaskMaterial,
    Task,
    TaskActivity,
    TaskActivityMaterial,
    TaskComment,
    TaskType,
)
from app.models.mixins import utc_now
from app.services.cascade_service import CascadeEngine, CascadeResult, cascade_engine
from app.services.events import Collaborator, LifecycleEvent, LoggingCollaborator
from app.services.inventory_service import (
    Deltas,
    InventoryService,
    compute_material_deltas,
    inventory_service,
    usage_to_deltas,
)
from app.services.parents import (
    ParentRef,
    ensure_comment_ancestors_active,
    ensure_ref_active,
    find_owning_task_id,
    load_scoped,
)
from app.services.scope import TenantScope, parse_id
from app.services.transaction import UnitOfWork, require_transaction

logger = logging.getLogger(__name__)

RESTORE_SHORTFALL_MESSAGE = "Insufficient stock to restore"

Usage = List[Tuple[uuid.UUID, int]]

_EVENT_PREFIX = {
    NotificationEntityModel.TASK.value: "task",
    NotificationEntityModel.TASK_ACTIVITY.value: "activity",
    NotificationEntityModel.TASK_COMMENT.value: "comment",
    NotificationEntityModel.ATTACHMENT.value: "attachment",
}


@dataclass
class LifecycleResult:
    """Outcome of one lifecycle method."""

    entity_model: str
    entity_id: uuid.UUID
    action: str
    changed: bool
    task_id: Optional[uuid.UUID] = None
    cascade: CascadeResult = field(default_factory=CascadeResult)
    deltas: Deltas = field(default_factory=dict)

    @property
    def event_name(self) -> str:
        return f"{_EVENT_PREFIX[self.entity_model]}:{self.action}"

    def payload(self) -> Dict[str, Any]:
        return {
            "flipped": self.cascade.counts(),
            "deltas": {str(k): v for k, v in self.deltas.items()},
        }


def normalize_usage(materials: Optional[Iterable[Any]]) -> Usage:
    """
    Turn `(material_id, quantity)` tuples or objects with `material_id` and
    `quantity` attributes into aggregated usage rows.

    Raises:
        ValidationError: unparsable id or a quantity that is not a positive integer.
    """
    pairs: Usage = []
    for item in materials or []:
        if isinstance(item, (tuple, list)):
            material_id, quantity = item
        else:
            material_id, quantity = item.material_id, item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(
                "Material quantity must be a positive integer",
                field="materials",
                context={"material_id": str(material_id)},
            )
        pairs.append((parse_id(material_id, field="material_id"), quantity))
    return list(usage_to_deltas(pairs).items())


class LifecycleService:
    """
    Business logic layer for soft-delete, restore and material consumption.

    Stateless apart from its collaborators, so one shared instance serves
    every request (see `lifecycle_service` below).
    """

    def __init__(
        self,
        cascade: Optional[CascadeEngine] = None,
        inventory: Optional[InventoryService] = None,
        collaborator: Optional[Collaborator] = None,
    ):
        self.cascade = cascade or cascade_engine
        self.inventory = inventory or inventory_service
        self.collaborator = collaborator or LoggingCollaborator()

    # ══════════════════════════════════════════════════════════════════════
    # Tasks
    # ══════════════════════════════════════════════════════════════════════

    async def delete_task(
        self,
        uow: UnitOfWork,
        task_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        """
        Soft-delete a Task and everything below it, returning its stock.

        Returns:
            LifecycleResult; changed=False if the task was already deleted.

        Raises:
            NotFoundError: no such task in scope.
            ValidationError: a consumed material no longer exists.
        """
        session = uow.session
        require_transaction(session)
        task = await self._get(session, Task, task_id, scope)
        if task.is_deleted:
            return self._noop(NotificationEntityModel.TASK, task.id, "deleted", task.id)

        now = utc_now()
        if not await self.cascade.flip_entities(session, Task, [task.id], scope, True, actor_id, now):
            # Another transaction deleted it after our read
            return self._noop(NotificationEntityModel.TASK, task.id, "deleted", task.id)
        cascade = await self.cascade.fan_out_task(session, task.id, scope, True, actor_id, now)

        usage = await self._task_usage(session, task, cascade.activities)
        applied = await self.inventory.apply_deltas(
            session, usage_to_deltas(usage, sign=-1), scope, require_active=False
        )

        result = LifecycleResult(
            NotificationEntityModel.TASK.value, task.id, "deleted", True, task.id, cascade, applied
        )
        logger.info("Task %s deleted: %s", task.id, cascade.counts())
        return self._publish(uow, result, scope, actor_id)

    async def restore_task(
        self,
        uow: UnitOfWork,
        task_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        """
        Restore a Task and everything below it, re-consuming the stock its
        delete returned.

        Raises:
            NotFoundError: no such task in scope.
            InsufficientStockError: the returned stock has since been used
                elsewhere; nothing is restored.
        """
        session = uow.session
        require_transaction(session)
        task = await self._get(session, Task, task_id, scope)
        if not task.is_deleted:
            return self._noop(NotificationEntityModel.TASK, task.id, "restored", task.id)

        if not await self.cascade.flip_entities(session, Task, [task.id], scope, False):
            return self._noop(NotificationEntityModel.TASK, task.id, "restored", task.id)
        cascade = await self.cascade.fan_out_task(session, task.id, scope, False)

        usage = await self._task_usage(session, task, cascade.activities)
        applied = await self.inventory.apply_deltas(
            session,
            usage_to_deltas(usage),
            scope,
            require_active=False,
            insufficient_message=RESTORE_SHORTFALL_MESSAGE,
        )

        result = LifecycleResult(
            NotificationEntityModel.TASK.value, task.id, "restored", True, task.id, cascade, applied
        )
        logger.info("Task %s restored: %s", task.id, cascade.counts())
        return self._publish(uow, result, scope, actor_id)

    async def set_routine_materials(
        self,
        uow: UnitOfWork,
        task_id: Union[str, uuid.UUID],
        materials: Optional[Iterable[Any]],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        """
        Replace the material usage of a routine task.

        Only the per-material difference is applied: increases consume
        (ACTIVE materials only), decreases and removals return stock.
        """
        session = uow.session
        require_transaction(session)
        task = await self._get(session, Task, task_id, scope)
        if task.type != TaskType.ROUTINE.value:
            raise ValidationError(
                "Materials can only be set on routine tasks", field="materials"
            )
        if task.is_deleted:
            raise ConflictError("Cannot change materials of a deleted task")

        after = normalize_usage(materials)
        before = await self._routine_usage(session, [task.id])
        deltas = compute_material_deltas(before, after)
        applied = await self.inventory.apply_deltas(session, deltas, scope, require_active=True)

        await session.execute(
            delete(RoutineTaskMaterial)
            .where(RoutineTaskMaterial.task_id == task.id)
            .execution_options(synchronize_session=False)
        )
        session.add_all(
            RoutineTaskMaterial(task_id=task.id, material_id=m, quantity=q) for m, q in after
        )
        await session.flush()

        changed = dict(before) != dict(after)
        result = LifecycleResult(
            NotificationEntityModel.TASK.value,
            task.id,
            "materials_updated",
            changed,
            task.id,
            deltas=applied,
        )
        return self._publish(uow, result, scope, actor_id)

    # ══════════════════════════════════════════════════════════════════════
    # Activities
    # ══════════════════════════════════════════════════════════════════════

    async def record_activity(
        self,
        uow: UnitOfWork,
        task_id: Union[str, uuid.UUID],
        activity: str,
        materials: Optional[Iterable[Any]],
        scope: TenantScope,
        actor_id: uuid.UUID,
    ) -> LifecycleResult:
        """
        Create a TaskActivity on an active, non-routine Task and consume the
        materials it records.

        Raises:
            ParentDeletedError: the task is deleted.
            ConflictError: routine tasks carry their materials directly
                and do not accept activities.
        """
        session = uow.session
        require_transaction(session)
        task = await self._get(session, Task, task_id, scope)
        if task.is_deleted:
            raise ParentDeletedError(ParentModel.TASK.value, str(task.id))
        if task.type == TaskType.ROUTINE.value:
            raise ConflictError(
                "Routine tasks do not accept activities",
                context={"task_id": str(task.id)},
            )
        if actor_id is None:
            raise ValidationError("An actor is required to record an activity", field="actor_id")
        text = (activity or "").strip()
        if not text:
            raise ValidationError("Activity text is required", field="activity")

        usage = normalize_usage(materials)
        applied = await self.inventory.apply_deltas(
            session, usage_to_deltas(usage), scope, require_active=True
        )

        entry = TaskActivity(
            id=uuid.uuid4(),
            parent_id=task.id,
            parent_model=ParentModel.TASK.value,
            activity=text,
            created_by=actor_id,
            organization_id=scope.organization_id,
            department_id=scope.department_id,
        )
        session.add(entry)
        session.add_all(
            TaskActivityMaterial(activity_id=entry.id, material_id=m, quantity=q) for m, q in usage
        )
        await session.flush()

        result = LifecycleResult(
            NotificationEntityModel.TASK_ACTIVITY.value,
            entry.id,
            "created",
            True,
            task.id,
            deltas=applied,
        )
        return self._publish(uow, result, scope, actor_id)

    async def update_activity_materials(
        self,
        uow: UnitOfWork,
        activity_id: Union[str, uuid.UUID],
        materials: Optional[Iterable[Any]],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, TaskActivity, activity_id, scope)
        if entry.is_deleted:
            raise ConflictError("Cannot change materials of a deleted activity")
        await ensure_ref_active(session, ParentRef.of(entry.parent_model, entry.parent_id), scope)

        after = normalize_usage(materials)
        before = await self._activity_usage(session, [entry.id])
        deltas = compute_material_deltas(before, after)
        applied = await self.inventory.apply_deltas(session, deltas, scope, require_active=True)

        await session.execute(
            delete(TaskActivityMaterial)
            .where(TaskActivityMaterial.activity_id == entry.id)
            .execution_options(synchronize_session=False)
        )
        session.add_all(
            TaskActivityMaterial(activity_id=entry.id, material_id=m, quantity=q) for m, q in after
        )
        await session.flush()

        result = LifecycleResult(
            NotificationEntityModel.TASK_ACTIVITY.value,
            entry.id,
            "materials_updated",
            dict(before) != dict(after),
            entry.parent_id,
            deltas=applied,
        )
        return self._publish(uow, result, scope, actor_id)

    async def delete_activity(
        self,
        uow: UnitOfWork,
        activity_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, TaskActivity, activity_id, scope)
        if entry.is_deleted:
            return self._noop(NotificationEntityModel.TASK_ACTIVITY, entry.id, "deleted", entry.parent_id)
        await ensure_ref_active(session, ParentRef.of(entry.parent_model, entry.parent_id), scope)

        now = utc_now()
        flipped = await self.cascade.flip_entities(
            session, TaskActivity, [entry.id], scope, True, actor_id, now
        )
        if not flipped:
            return self._noop(NotificationEntityModel.TASK_ACTIVITY, entry.id, "deleted", entry.parent_id)
        cascade = await self.cascade.fan_out_activity(session, entry.id, scope, True, actor_id, now)
        cascade.activities = flipped + cascade.activities

        usage = await self._activity_usage(session, flipped)
        applied = await self.inventory.apply_deltas(
            session, usage_to_deltas(usage, sign=-1), scope, require_active=False
        )

        result = LifecycleResult(
            NotificationEntityModel.TASK_ACTIVITY.value,
            entry.id,
            "deleted",
            True,
            entry.parent_id,
            cascade,
            applied,
        )
        return self._publish(uow, result, scope, actor_id)

    async def restore_activity(
        self,
        uow: UnitOfWork,
        activity_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        """
        Restore a TaskActivity below an active Task, re-consuming its materials.

        Raises:
            ParentDeletedError: the owning Task is still deleted.
            InsufficientStockError: the stock is no longer available.
        """
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, TaskActivity, activity_id, scope)
        if not entry.is_deleted:
            return self._noop(NotificationEntityModel.TASK_ACTIVITY, entry.id, "restored", entry.parent_id)
        await ensure_ref_active(session, ParentRef.of(entry.parent_model, entry.parent_id), scope)

        flipped = await self.cascade.flip_entities(session, TaskActivity, [entry.id], scope, False)
        if not flipped:
            return self._noop(NotificationEntityModel.TASK_ACTIVITY, entry.id, "restored", entry.parent_id)
        cascade = await self.cascade.fan_out_activity(session, entry.id, scope, False)
        cascade.activities = flipped + cascade.activities

        usage = await self._activity_usage(session, flipped)
        applied = await self.inventory.apply_deltas(
            session,
            usage_to_deltas(usage),
            scope,
            require_active=False,
            insufficient_message=RESTORE_SHORTFALL_MESSAGE,
        )

        result = LifecycleResult(
            NotificationEntityModel.TASK_ACTIVITY.value,
            entry.id,
            "restored",
            True,
            entry.parent_id,
            cascade,
            applied,
        )
        return self._publish(uow, result, scope, actor_id)

    # ══════════════════════════════════════════════════════════════════════
    # Comments
    # ══════════════════════════════════════════════════════════════════════

    async def add_comment(
        self,
        uow: UnitOfWork,
        parent_model: Union[str, ParentModel],
        parent_id: Union[str, uuid.UUID],
        comment: str,
        scope: TenantScope,
        actor_id: uuid.UUID,
    ) -> LifecycleResult:
        """
        Attach a comment (or reply) to an active Task, TaskActivity or TaskComment.

        Depth is the parent comment's depth + 1, or 0 under a Task/TaskActivity.

        Raises:
            ValidationError: empty text, bad parent model, or a reply deeper
                than comment_max_depth.
            ParentDeletedError: the parent or one of its ancestors is deleted.
        """
        session = uow.session
        require_transaction(session)
        ref = ParentRef.of(parent_model, parse_id(parent_id, field="parent_id"))
        text = (comment or "").strip()
        if not text:
            raise ValidationError("Comment text is required", field="comment")
        if actor_id is None:
            raise ValidationError("An actor is required to add a comment", field="actor_id")

        parent = await ensure_ref_active(session, ref, scope)
        depth = parent.depth + 1 if ref.model is ParentModel.TASK_COMMENT else 0
        if depth > settings.comment_max_depth:
            raise ValidationError(
                f"Comments cannot be nested deeper than {settings.comment_max_depth} levels",
                field="parent_id",
                context={"depth": depth},
            )

        entry = TaskComment(
            id=uuid.uuid4(),
            parent_id=ref.id,
            parent_model=ref.model.value,
            comment=text,
            depth=depth,
            created_by=actor_id,
            organization_id=scope.organization_id,
            department_id=scope.department_id,
        )
        session.add(entry)
        await session.flush()

        task_id = await find_owning_task_id(session, ref, scope)
        result = LifecycleResult(
            NotificationEntityModel.TASK_COMMENT.value, entry.id, "created", True, task_id
        )
        return self._publish(uow, result, scope, actor_id)

    async def delete_comment(
        self,
        uow: UnitOfWork,
        comment_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, TaskComment, comment_id, scope)
        ref = ParentRef.of_comment(entry)
        if entry.is_deleted:
            task_id = await find_owning_task_id(session, ref, scope)
            return self._noop(NotificationEntityModel.TASK_COMMENT, entry.id, "deleted", task_id)
        await ensure_comment_ancestors_active(session, entry, scope)

        cascade = await self.cascade.cascade_comments(
            session, [entry.id], scope, True, actor_id, utc_now()
        )
        task_id = await find_owning_task_id(session, ref, scope)
        if entry.id not in cascade.comments:
            return self._noop(NotificationEntityModel.TASK_COMMENT, entry.id, "deleted", task_id)
        result = LifecycleResult(
            NotificationEntityModel.TASK_COMMENT.value, entry.id, "deleted", True, task_id, cascade
        )
        return self._publish(uow, result, scope, actor_id)

    async def restore_comment(
        self,
        uow: UnitOfWork,
        comment_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        """
        Restore a comment subtree. Every ancestor must already be active:
        restores run top-down and are never chained automatically.
        """
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, TaskComment, comment_id, scope)
        ref = ParentRef.of_comment(entry)
        if not entry.is_deleted:
            task_id = await find_owning_task_id(session, ref, scope)
            return self._noop(NotificationEntityModel.TASK_COMMENT, entry.id, "restored", task_id)
        await ensure_comment_ancestors_active(session, entry, scope)

        cascade = await self.cascade.cascade_comments(session, [entry.id], scope, False)
        task_id = await find_owning_task_id(session, ref, scope)
        if entry.id not in cascade.comments:
            return self._noop(NotificationEntityModel.TASK_COMMENT, entry.id, "restored", task_id)
        result = LifecycleResult(
            NotificationEntityModel.TASK_COMMENT.value, entry.id, "restored", True, task_id, cascade
        )
        return self._publish(uow, result, scope, actor_id)

    # ══════════════════════════════════════════════════════════════════════
    # Attachments
    # ══════════════════════════════════════════════════════════════════════

    async def delete_attachment(
        self,
        uow: UnitOfWork,
        attachment_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        return await self._flip_attachment(uow, attachment_id, scope, True, actor_id)

    async def restore_attachment(
        self,
        uow: UnitOfWork,
        attachment_id: Union[str, uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LifecycleResult:
        return await self._flip_attachment(uow, attachment_id, scope, False, actor_id)

    async def _flip_attachment(
        self,
        uow: UnitOfWork,
        attachment_id: Union[str, uuid.UUID],
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID],
    ) -> LifecycleResult:
        session = uow.session
        require_transaction(session)
        entry = await self._get(session, Attachment, attachment_id, scope)
        ref = ParentRef.of(entry.parent_model, entry.parent_id)
        action = "deleted" if to_deleted else "restored"
        task_id = await find_owning_task_id(session, ref, scope)
        if entry.is_deleted == to_deleted:
            return self._noop(NotificationEntityModel.ATTACHMENT, entry.id, action, task_id)
        await ensure_ref_active(session, ref, scope)

        now = utc_now()
        cascade = CascadeResult()
        cascade.attachments = await self.cascade.flip_entities(
            session, Attachment, [entry.id], scope, to_deleted, actor_id, now
        )
        if not cascade.attachments:
            return self._noop(NotificationEntityModel.ATTACHMENT, entry.id, action, task_id)
        cascade.notifications = await self.cascade.flip_notifications(
            session,
            {NotificationEntityModel.ATTACHMENT.value: [entry.id]},
            scope,
            to_deleted,
            actor_id,
            now,
        )
        result = LifecycleResult(
            NotificationEntityModel.ATTACHMENT.value, entry.id, action, True, task_id, cascade
        )
        return self._publish(uow, result, scope, actor_id)

    # ══════════════════════════════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _get(
        self,
        session: AsyncSession,
        model,
        entity_id: Union[str, uuid.UUID],
        scope: TenantScope,
    ):
        key = parse_id(entity_id)
        entity = await load_scoped(session, model, key, scope)
        if entity is None:
            raise NotFoundError(resource=model.__name__, resource_id=str(key))
        return entity

    async def _routine_usage(self, session: AsyncSession, task_ids: Sequence[uuid.UUID]) -> Usage:
        if not task_ids:
            return []
        stmt = select(RoutineTaskMaterial.material_id, RoutineTaskMaterial.quantity).where(
            RoutineTaskMaterial.task_id.in_(list(task_ids))
        )
        return [(row.material_id, row.quantity) for row in (await session.execute(stmt)).all()]

    async def _activity_usage(
        self, session: AsyncSession, activity_ids: Sequence[uuid.UUID]
    ) -> Usage:
        if not activity_ids:
            return []
        stmt = select(TaskActivityMaterial.material_id, TaskActivityMaterial.quantity).where(
            TaskActivityMaterial.activity_id.in_(list(activity_ids))
        )
        return [(row.material_id, row.quantity) for row in (await session.execute(stmt)).all()]

    async def _task_usage(
        self, session: AsyncSession, task: Task, activity_ids: Sequence[uuid.UUID]
    ) -> Usage:
        usage = []
        if task.type == TaskType.ROUTINE.value:
            usage.extend(await self._routine_usage(session, [task.id]))
        usage.extend(await self._activity_usage(session, activity_ids))
        return list(usage_to_deltas(usage).items())

    def _noop(
        self,
        model: NotificationEntityModel,
        entity_id: uuid.UUID,
        action: str,
        task_id: Optional[uuid.UUID],
    ) -> LifecycleResult:
        logger.debug("%s %s already %s; nothing to do", model.value, entity_id, action)
        return LifecycleResult(model.value, entity_id, action, False, task_id)

    def _publish(
        self,
        uow: UnitOfWork,
        result: LifecycleResult,
        scope: TenantScope,
        actor_id: Optional[uuid.UUID],
    ) -> LifecycleResult:
        if not result.changed:
            return result
        event = LifecycleEvent(
            name=result.event_name,
            entity_model=result.entity_model,
            entity_id=result.entity_id,
            task_id=result.task_id,
            organization_id=scope.organization_id,
            department_id=scope.department_id,
            actor_id=actor_id,
            payload=result.payload(),
        )
        uow.after_commit(lambda: self.collaborator.publish(event))
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
lifecycle_service = LifecycleService()
