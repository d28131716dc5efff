"""
TaskManager Backend — Collaborator Events
==========================================

What:  The boundary to the notification/realtime collaborators.
Why:   Watchers, assignees and connected clients must hear about committed
       deletes and restores, but the core must not depend on them: their
       failures never roll anything back.
How:   Lifecycle operations build a LifecycleEvent inside the unit of work
       and register `collaborator.publish(event)` as an after-commit hook.
       The coordinator fires it only after COMMIT succeeded.

Room routing mirrors the realtime layer: every event is addressed to the
task room (`task:<id>`) and the department room (`dept:<id>`).
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleEvent:
    name: str                       # e.g. "task:deleted", "comment:restored"
    entity_model: str
    entity_id: uuid.UUID
    task_id: Optional[uuid.UUID]
    organization_id: uuid.UUID
    department_id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def rooms(self) -> List[str]:
        rooms = [f"dept:{self.department_id}"]
        if self.task_id:
            rooms.insert(0, f"task:{self.task_id}")
        return rooms


class Collaborator(ABC):
    """
    Contract for post-commit side effects (realtime fan-out, notifications).

    Implementations must tolerate being called after the request that
    caused the event has already been answered.
    """

    @abstractmethod
    async def publish(self, event: LifecycleEvent) -> None:
        ...


class LoggingCollaborator(Collaborator):
    """Default collaborator: records the event in the application log."""

    async def publish(self, event: LifecycleEvent) -> None:
        logger.info(
            "Event %s %s:%s rooms=%s payload=%s",
            event.name,
            event.entity_model,
            event.entity_id,
            ",".join(event.rooms),
            event.payload,
        )


class CompositeCollaborator(Collaborator):
    """Fans one event out to several collaborators; one failing does not stop the rest."""

    def __init__(self, collaborators: List[Collaborator]):
        self.collaborators = list(collaborators)

    async def publish(self, event: LifecycleEvent) -> None:
        for collaborator in self.collaborators:
            try:
                await collaborator.publish(event)
            except Exception:
                logger.error(
                    "Collaborator %s failed for %s",
                    type(collaborator).__name__,
                    event.name,
                    exc_info=True,
                )
