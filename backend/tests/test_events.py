"""
TaskManager Backend — Collaborator Event Tests
==============================================

What we test:
    ✅ Events are addressed to the task room and the department room
    ✅ The composite collaborator reaches every collaborator
    ✅ One failing collaborator neither stops the others nor raises
    ✅ A lifecycle service wired to a composite publishes through it
"""

import logging
import uuid
from unittest.mock import AsyncMock

import pytest

from app.services.events import (
    Collaborator,
    CompositeCollaborator,
    LifecycleEvent,
    LoggingCollaborator,
)
from app.services.lifecycle_service import LifecycleService


def make_event(task_id=None):
    return LifecycleEvent(
        name="task:deleted",
        entity_model="Task",
        entity_id=task_id or uuid.uuid4(),
        task_id=task_id,
        organization_id=uuid.uuid4(),
        department_id=uuid.uuid4(),
    )


def make_collaborator():
    mock = AsyncMock(spec=Collaborator)
    mock.publish = AsyncMock()
    return mock


class TestRooms:
    def test_task_room_first(self):
        task_id = uuid.uuid4()
        event = make_event(task_id)
        assert event.rooms == [f"task:{task_id}", f"dept:{event.department_id}"]

    def test_department_room_only_without_task(self):
        event = make_event()
        assert event.rooms == [f"dept:{event.department_id}"]


class TestCompositeCollaborator:
    @pytest.mark.asyncio
    async def test_publishes_to_every_collaborator(self):
        first, second = make_collaborator(), make_collaborator()
        event = make_event(uuid.uuid4())

        await CompositeCollaborator([first, second]).publish(event)

        first.publish.assert_awaited_once_with(event)
        second.publish.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_rest(self, caplog):
        broken, healthy = make_collaborator(), make_collaborator()
        broken.publish.side_effect = RuntimeError("socket closed")
        event = make_event(uuid.uuid4())

        with caplog.at_level(logging.ERROR, logger="app.services.events"):
            await CompositeCollaborator([broken, healthy]).publish(event)

        healthy.publish.assert_awaited_once_with(event)
        assert "task:deleted" in caplog.text

    @pytest.mark.asyncio
    async def test_lifecycle_service_publishes_through_composite(
        self, coordinator, seed, scope, actor_id, caplog
    ):
        recorder = make_collaborator()
        service = LifecycleService(
            collaborator=CompositeCollaborator([LoggingCollaborator(), recorder])
        )
        task = await seed.task()

        with caplog.at_level(logging.INFO, logger="app.services.events"):
            await coordinator.run(lambda uow: service.delete_task(uow, task.id, scope, actor_id))

        event = recorder.publish.await_args.args[0]
        assert event.name == "task:deleted"
        assert f"task:{task.id}" in event.rooms
        assert "Event task:deleted" in caplog.text
