"""
TaskManager Backend — Cascade Traversal Engine
===============================================

What:  Flips the soft-delete state of everything reachable below a deleted
       or restored entity: nested comments, attachments and notifications.
Why:   A Task is the root of a tree
           Task ─┬─ TaskActivity ─┬─ TaskComment ─ TaskComment ─ ...
                 │                └─ Attachment / Notification
                 ├─ TaskComment ─ ...
                 └─ Attachment / Notification
       and that whole tree must change state together, in one transaction.
How:   Breadth-first expansion over TaskComment → TaskComment edges only,
       followed by one conditional bulk UPDATE per collection.

Traversal (collect_comment_subtree):
    visited  = seeds            frontier = seeds
    repeat at most cascade_max_iterations (6) times:
        children = comments WHERE parent_id IN frontier
                              AND parent_model = 'TaskComment'
                              AND is_deleted = <pre-transition state>
                              AND org/department = scope
        frontier = children - visited;  visited |= frontier
        stop when frontier is empty

    The bound is a safety cap, not the depth rule: comment depth is capped
    at 5, so a legal chain is exhausted after 5 rounds and the 6th finds
    nothing. A corrupt (cyclic) parent chain cannot loop because `visited`
    filters repeats and the cap halts the loop regardless.

Flip (_flip_where):
    UPDATE <table> SET is_deleted, deleted_at, deleted_by
    WHERE id IN (...) AND is_deleted = <pre-transition state> AND scope
    RETURNING id
    Only the ids RETURNING reports count as flipped. Rows already in the
    target state are not matched, so of two overlapping deletes the one
    that waits on the row lock gets an empty list back.

Ancestors (Task, TaskActivity) are never rediscovered by the traversal;
the lifecycle service flips them explicitly and calls the fan-out helpers
here for everything underneath.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import (
    Attachment,
    Notification,
    NotificationEntityModel,
    ParentModel,
    TaskActivity,
    TaskComment,
)
from app.models.mixins import utc_now
from app.services.scope import TenantScope, scoped
from app.services.transaction import require_transaction

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """IDs flipped by one cascade, per collection."""

    activities: List[uuid.UUID] = field(default_factory=list)
    comments: List[uuid.UUID] = field(default_factory=list)
    attachments: List[uuid.UUID] = field(default_factory=list)
    notifications: List[uuid.UUID] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "activities": len(self.activities),
            "comments": len(self.comments),
            "attachments": len(self.attachments),
            "notifications": len(self.notifications),
        }


def _unique(ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    return list(dict.fromkeys(ids))


class CascadeEngine:
    """
    Stateless traversal + bulk flip helpers. Every method requires the
    session to be inside a transaction (see TransactionCoordinator).
    """

    def __init__(self, max_iterations: Optional[int] = None):
        self.max_iterations = max_iterations or settings.cascade_max_iterations

    # ══════════════════════════════════════════════════════════════════════
    # Comment traversal
    # ══════════════════════════════════════════════════════════════════════

    async def collect_comment_subtree(
        self,
        session: AsyncSession,
        seed_ids: Sequence[uuid.UUID],
        scope: TenantScope,
        currently_deleted: bool,
    ) -> List[uuid.UUID]:
        """
        Seeds plus every TaskComment reachable from them through
        TaskComment → TaskComment edges whose `is_deleted` equals
        `currently_deleted` (False for a delete pass, True for a restore pass).
        """
        visited = _unique(seed_ids)
        seed_count = len(visited)
        seen = set(visited)
        frontier = list(visited)

        iterations = 0
        while frontier and iterations < self.max_iterations:
            iterations += 1
            stmt = scoped(
                select(TaskComment.id).where(
                    TaskComment.parent_id.in_(frontier),
                    TaskComment.parent_model == ParentModel.TASK_COMMENT.value,
                    TaskComment.is_deleted.is_(currently_deleted),
                ),
                TaskComment,
                scope,
            )
            children = (await session.execute(stmt)).scalars().all()
            frontier = [c for c in _unique(children) if c not in seen]
            seen.update(frontier)
            visited.extend(frontier)

        if frontier:
            logger.warning(
                "Comment traversal stopped at the %d-iteration bound with %d unexpanded ids",
                self.max_iterations,
                len(frontier),
            )
        logger.debug(
            "Comment traversal: %d seeds, %d visited, %d iterations",
            seed_count,
            len(visited),
            iterations,
        )
        return visited

    async def collect_root_comments(
        self,
        session: AsyncSession,
        parents: Dict[ParentModel, Sequence[uuid.UUID]],
        scope: TenantScope,
        currently_deleted: bool,
    ) -> List[uuid.UUID]:
        """Comments hanging directly off the given Task / TaskActivity rows."""
        clauses = [
            and_(TaskComment.parent_model == model.value, TaskComment.parent_id.in_(list(ids)))
            for model, ids in parents.items()
            if ids and model is not ParentModel.TASK_COMMENT
        ]
        if not clauses:
            return []
        stmt = scoped(
            select(TaskComment.id).where(
                or_(*clauses),
                TaskComment.is_deleted.is_(currently_deleted),
            ),
            TaskComment,
            scope,
        )
        return _unique((await session.execute(stmt)).scalars().all())

    # ══════════════════════════════════════════════════════════════════════
    # Public cascade operations
    # ══════════════════════════════════════════════════════════════════════

    async def cascade_delete(
        self,
        session: AsyncSession,
        seed_comment_ids: Sequence[uuid.UUID],
        scope: TenantScope,
        actor_id: Optional[uuid.UUID],
        deleted_at: Optional[datetime] = None,
    ) -> List[uuid.UUID]:
        """
        Delete the comment subtrees rooted at `seed_comment_ids`, with their
        attachments and notifications. Returns the comment ids flipped.
        Idempotent; an empty seed list is a no-op.
        """
        result = await self.cascade_comments(
            session, seed_comment_ids, scope, True, actor_id, deleted_at
        )
        return result.comments

    async def cascade_restore(
        self,
        session: AsyncSession,
        seed_comment_ids: Sequence[uuid.UUID],
        scope: TenantScope,
    ) -> List[uuid.UUID]:
        """Inverse of cascade_delete: clears the deletion fields on the same reachable set."""
        result = await self.cascade_comments(session, seed_comment_ids, scope, False)
        return result.comments

    async def cascade_comments(
        self,
        session: AsyncSession,
        seed_comment_ids: Sequence[uuid.UUID],
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ) -> CascadeResult:
        require_transaction(session)
        result = CascadeResult()
        if not seed_comment_ids:
            return result

        visited = await self.collect_comment_subtree(
            session, seed_comment_ids, scope, currently_deleted=not to_deleted
        )
        result.comments = await self.flip_entities(
            session, TaskComment, visited, scope, to_deleted, actor_id, at
        )
        result.attachments, result.notifications = await self.cascade_leaves(
            session, {ParentModel.TASK_COMMENT: visited}, scope, to_deleted, actor_id, at
        )
        return result

    async def fan_out_activity(
        self,
        session: AsyncSession,
        activity_id: uuid.UUID,
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ) -> CascadeResult:
        """
        Everything below one TaskActivity: its comment subtrees, and the
        attachments / notifications of the activity and of those comments.
        The activity row itself is flipped by the caller.
        """
        require_transaction(session)
        result = CascadeResult()

        roots = await self.collect_root_comments(
            session, {ParentModel.TASK_ACTIVITY: [activity_id]}, scope, not to_deleted
        )
        visited = await self.collect_comment_subtree(session, roots, scope, not to_deleted)
        result.comments = await self.flip_entities(
            session, TaskComment, visited, scope, to_deleted, actor_id, at
        )
        result.attachments, result.notifications = await self.cascade_leaves(
            session,
            {ParentModel.TASK_ACTIVITY: [activity_id], ParentModel.TASK_COMMENT: visited},
            scope,
            to_deleted,
            actor_id,
            at,
        )
        return result

    async def fan_out_task(
        self,
        session: AsyncSession,
        task_id: uuid.UUID,
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ) -> CascadeResult:
        """
        Everything below one Task: its activities, the root comments under
        the Task and under every activity (fed to ONE traversal pass), and
        all attachments / notifications of those rows.
        The task row itself is flipped by the caller.
        """
        require_transaction(session)
        result = CascadeResult()

        activity_ids = _unique(
            (
                await session.execute(
                    scoped(
                        select(TaskActivity.id).where(
                            TaskActivity.parent_id == task_id,
                            TaskActivity.parent_model == ParentModel.TASK.value,
                        ),
                        TaskActivity,
                        scope,
                    )
                )
            ).scalars().all()
        )

        roots = await self.collect_root_comments(
            session,
            {ParentModel.TASK: [task_id], ParentModel.TASK_ACTIVITY: activity_ids},
            scope,
            not to_deleted,
        )
        visited = await self.collect_comment_subtree(session, roots, scope, not to_deleted)

        result.activities = await self.flip_entities(
            session, TaskActivity, activity_ids, scope, to_deleted, actor_id, at
        )
        result.comments = await self.flip_entities(
            session, TaskComment, visited, scope, to_deleted, actor_id, at
        )
        result.attachments, result.notifications = await self.cascade_leaves(
            session,
            {
                ParentModel.TASK: [task_id],
                ParentModel.TASK_ACTIVITY: activity_ids,
                ParentModel.TASK_COMMENT: visited,
            },
            scope,
            to_deleted,
            actor_id,
            at,
        )
        return result

    # ══════════════════════════════════════════════════════════════════════
    # Leaves & flips
    # ══════════════════════════════════════════════════════════════════════

    async def cascade_leaves(
        self,
        session: AsyncSession,
        parents: Dict[ParentModel, Sequence[uuid.UUID]],
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ):
        """
        Flip the Attachment and Notification leaves of `parents`.

        Attachments match on parent_model/parent_id; notifications match on
        entity_model/entity_id, including notifications about the matched
        attachments. Returns (attachment ids flipped, notification ids flipped).
        """
        parents = {m: list(ids) for m, ids in parents.items() if ids}
        if not parents:
            return [], []

        attachment_stmt = scoped(
            select(Attachment.id).where(
                or_(
                    *[
                        and_(Attachment.parent_model == m.value, Attachment.parent_id.in_(ids))
                        for m, ids in parents.items()
                    ]
                )
            ),
            Attachment,
            scope,
        )
        attachment_ids = _unique((await session.execute(attachment_stmt)).scalars().all())
        flipped_attachments = await self.flip_entities(
            session, Attachment, attachment_ids, scope, to_deleted, actor_id, at
        )

        entities: Dict[str, List[uuid.UUID]] = {m.value: ids for m, ids in parents.items()}
        entities[NotificationEntityModel.ATTACHMENT.value] = attachment_ids
        flipped_notifications = await self.flip_notifications(
            session, entities, scope, to_deleted, actor_id, at
        )
        return flipped_attachments, flipped_notifications

    async def flip_notifications(
        self,
        session: AsyncSession,
        entities: Dict[str, Sequence[uuid.UUID]],
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ) -> List[uuid.UUID]:
        """Flip notifications whose entity_model/entity_id match `entities`."""
        entities = {m: list(ids) for m, ids in entities.items() if ids}
        if not entities:
            return []
        return await self._flip_where(
            session,
            Notification,
            or_(
                *[
                    and_(Notification.entity_model == m, Notification.entity_id.in_(ids))
                    for m, ids in entities.items()
                ]
            ),
            scope,
            to_deleted,
            actor_id,
            at,
        )

    async def flip_entities(
        self,
        session: AsyncSession,
        model,
        ids: Sequence[uuid.UUID],
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID] = None,
        at: Optional[datetime] = None,
    ) -> List[uuid.UUID]:
        """Flip the given rows of `model`; only rows still in the prior state change."""
        if not ids:
            return []
        return await self._flip_where(
            session, model, model.id.in_(list(ids)), scope, to_deleted, actor_id, at
        )

    async def _flip_where(
        self,
        session: AsyncSession,
        model,
        condition,
        scope: TenantScope,
        to_deleted: bool,
        actor_id: Optional[uuid.UUID],
        at: Optional[datetime],
    ) -> List[uuid.UUID]:
        require_transaction(session)
        prior = not to_deleted
        if to_deleted:
            values = {"is_deleted": True, "deleted_at": at or utc_now(), "deleted_by": actor_id}
        else:
            values = {"is_deleted": False, "deleted_at": None, "deleted_by": None}

        stmt = (
            scoped(update(model), model, scope)
            .where(condition, model.is_deleted.is_(prior))
            .values(**values)
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        flipped = _unique((await session.execute(stmt)).scalars().all())
        logger.debug("%s flip matched %d rows", model.__tablename__, len(flipped))
        return flipped


# ── Singleton Instance ────────────────────────────────────────────────────
cascade_engine = CascadeEngine()
