"""
TaskManager Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Atomicity and idempotence are properties of real transactions, so the
       services run against a real database: a throwaway SQLite file per test.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    engine ─▶ session_factory ─┬─▶ coordinator (no retry back-off)
                               └─▶ seed (Seeder: commits fixture rows)
    scope / other_scope / actor_id: tenant and actor identities
    collaborator ─▶ service (LifecycleService publishing to an AsyncMock)
    test_client: HTTPX AsyncClient bound to a fresh app using `coordinator`
"""

import os
import uuid
from typing import Optional
from unittest.mock import AsyncMock

# Override settings for testing BEFORE any app imports
# Why: the module-level engine must never point at a real server
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.database import Base, build_engine, build_session_factory
from app.models import (
    AssignedTask,
    Attachment,
    Material,
    MaterialStatus,
    Notification,
    ParentModel,
    ProjectTask,
    RoutineTask,
    RoutineTaskMaterial,
    Task,
    TaskActivity,
    TaskActivityMaterial,
    TaskComment,
)
from app.services.events import Collaborator
from app.services.inventory_service import inventory_service
from app.services.lifecycle_service import LifecycleService
from app.services.scope import TenantScope
from app.services.transaction import TransactionCoordinator


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite file with the full schema (Base.metadata.create_all)."""
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskmanager.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def coordinator(session_factory):
    """Coordinator with the production retry policy but no waiting between attempts."""
    return TransactionCoordinator(session_factory, max_attempts=3, min_wait=0, max_wait=0)


# ══════════════════════════════════════════════════════════════════════════
# Identities
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def scope():
    return TenantScope(organization_id=uuid.uuid4(), department_id=uuid.uuid4())


@pytest.fixture
def other_scope(scope):
    """Same organization, different department."""
    return TenantScope(organization_id=scope.organization_id, department_id=uuid.uuid4())


@pytest.fixture
def actor_id():
    return uuid.uuid4()


@pytest.fixture
def collaborator():
    mock = AsyncMock(spec=Collaborator)
    mock.publish = AsyncMock()
    return mock


@pytest.fixture
def service(collaborator):
    return LifecycleService(collaborator=collaborator)


# ══════════════════════════════════════════════════════════════════════════
# Seeding
# ══════════════════════════════════════════════════════════════════════════

_PARENT_MODELS = (
    (TaskComment, ParentModel.TASK_COMMENT),
    (TaskActivity, ParentModel.TASK_ACTIVITY),
    (Task, ParentModel.TASK),
)


def parent_model_of(entity) -> str:
    for model, parent_model in _PARENT_MODELS:
        if isinstance(entity, model):
            return parent_model.value
    raise TypeError(f"{type(entity).__name__} cannot be a parent")


class Seeder:
    """
    Commits fixture rows in their own transactions.

    Usage rows (routine / activity materials) are recorded as-is: seeding
    does NOT consume stock, so tests pick `stock` as the level remaining
    after that consumption.
    """

    def __init__(self, session_factory, scope: TenantScope, actor_id: uuid.UUID):
        self.session_factory = session_factory
        self.scope = scope
        self.actor_id = actor_id

    def _scoped(self, scope: Optional[TenantScope]) -> dict:
        scope = scope or self.scope
        return {"organization_id": scope.organization_id, "department_id": scope.department_id}

    async def add(self, *rows):
        async with self.session_factory() as session:
            async with session.begin():
                session.add_all(rows)
        return rows[0] if len(rows) == 1 else rows

    async def material(
        self,
        stock: int = 10,
        status: MaterialStatus = MaterialStatus.ACTIVE,
        is_deleted: bool = False,
        scope: Optional[TenantScope] = None,
    ) -> Material:
        suffix = uuid.uuid4().hex[:8]
        return await self.add(
            Material(
                id=uuid.uuid4(),
                name=f"Material {suffix}",
                sku=f"SKU-{suffix}",
                status=status.value,
                stock_on_hand=stock,
                is_deleted=is_deleted,
                **self._scoped(scope),
            )
        )

    async def task(self, model=ProjectTask, materials=(), scope: Optional[TenantScope] = None) -> Task:
        task = model(
            id=uuid.uuid4(),
            title=f"{model.__name__} {uuid.uuid4().hex[:6]}",
            created_by=self.actor_id,
            **self._scoped(scope),
        )
        usage = [
            RoutineTaskMaterial(task_id=task.id, material_id=m.id, quantity=q) for m, q in materials
        ]
        await self.add(task, *usage)
        return task

    async def routine_task(self, materials=(), scope: Optional[TenantScope] = None) -> RoutineTask:
        return await self.task(RoutineTask, materials, scope)

    async def assigned_task(self, scope: Optional[TenantScope] = None) -> AssignedTask:
        return await self.task(AssignedTask, scope=scope)

    async def activity(self, task: Task, materials=(), scope: Optional[TenantScope] = None) -> TaskActivity:
        entry = TaskActivity(
            id=uuid.uuid4(),
            parent_id=task.id,
            parent_model=ParentModel.TASK.value,
            activity="Did the work",
            created_by=self.actor_id,
            **self._scoped(scope),
        )
        usage = [
            TaskActivityMaterial(activity_id=entry.id, material_id=m.id, quantity=q)
            for m, q in materials
        ]
        await self.add(entry, *usage)
        return entry

    async def comment(self, parent, scope: Optional[TenantScope] = None, depth: Optional[int] = None) -> TaskComment:
        if depth is None:
            depth = parent.depth + 1 if isinstance(parent, TaskComment) else 0
        return await self.add(
            TaskComment(
                id=uuid.uuid4(),
                parent_id=parent.id,
                parent_model=parent_model_of(parent),
                comment="A comment",
                depth=depth,
                created_by=self.actor_id,
                **self._scoped(scope),
            )
        )

    async def comment_chain(self, parent, length: int):
        """parent ◀ c0 ◀ c1 ◀ … ◀ c(length-1); returns the list of comments."""
        chain = []
        current = parent
        for _ in range(length):
            current = await self.comment(current)
            chain.append(current)
        return chain

    async def attachment(self, parent, scope: Optional[TenantScope] = None) -> Attachment:
        return await self.add(
            Attachment(
                id=uuid.uuid4(),
                filename="photo.jpg",
                file_url="https://files.example.com/photo.jpg",
                file_type="image/jpeg",
                file_size=1024,
                parent_id=parent.id,
                parent_model=parent_model_of(parent),
                uploaded_by=self.actor_id,
                **self._scoped(scope),
            )
        )

    async def notification(self, entity, scope: Optional[TenantScope] = None) -> Notification:
        entity_model = "Attachment" if isinstance(entity, Attachment) else parent_model_of(entity)
        return await self.add(
            Notification(
                id=uuid.uuid4(),
                title="Heads up",
                message="Something changed",
                entity_id=entity.id,
                entity_model=entity_model,
                user_id=uuid.uuid4(),
                **self._scoped(scope),
            )
        )

    # ── Reads (fresh session, committed state only) ──────────────────────

    async def get(self, model, entity_id: uuid.UUID):
        async with self.session_factory() as session:
            return (await session.execute(select(model).where(model.id == entity_id))).scalar_one()

    async def is_deleted(self, entity) -> bool:
        return (await self.get(type(entity), entity.id)).is_deleted

    async def stock(self, material: Material) -> Optional[int]:
        scope = TenantScope(
            organization_id=material.organization_id, department_id=material.department_id
        )
        async with self.session_factory() as session:
            return await inventory_service.get_stock(session, material.id, scope)

    async def count(self, model, **filters) -> int:
        async with self.session_factory() as session:
            stmt = select(model)
            for column, value in filters.items():
                stmt = stmt.where(getattr(model, column) == value)
            return len((await session.execute(stmt)).scalars().all())


@pytest.fixture
def seed(session_factory, scope, actor_id):
    return Seeder(session_factory, scope, actor_id)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(coordinator):
    """
    HTTPX AsyncClient talking to a fresh app whose coordinator writes to
    the per-test database.
    """
    from app.main import create_app
    from app.services.transaction import get_coordinator

    app = create_app()
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
