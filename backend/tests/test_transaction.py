"""
TaskManager Backend — Transaction Coordinator Tests
===================================================

What we test:
    ✅ Commit on success, rollback on any exception
    ✅ Transient OperationalError re-runs the whole unit of work
    ✅ Exhausted retries and unexpected database errors surface as DatabaseError
    ✅ Backoff starts at min_wait, stays under max_wait plus jitter, no deprecated arguments
    ✅ Domain errors are raised as-is and never retried
    ✅ After-commit hooks fire only on success; their failures are swallowed
"""

import uuid
import warnings

import pytest
from sqlalchemy.exc import OperationalError
from tenacity import RetryCallState

from app.exceptions import DatabaseError, NotFoundError
from app.models import Material
from app.services.transaction import TransactionCoordinator, require_transaction


def locked() -> OperationalError:
    return OperationalError("UPDATE materials ...", {}, Exception("database is locked"))


def new_material(scope, stock: int = 1) -> Material:
    suffix = uuid.uuid4().hex[:8]
    return Material(
        id=uuid.uuid4(),
        name=f"Material {suffix}",
        sku=f"SKU-{suffix}",
        stock_on_hand=stock,
        organization_id=scope.organization_id,
        department_id=scope.department_id,
    )


class TestCommitBoundary:
    @pytest.mark.asyncio
    async def test_commit_persists(self, coordinator, seed, scope):
        material = new_material(scope, stock=4)

        async def work(uow):
            uow.session.add(material)
            return "done"

        assert await coordinator.run(work) == "done"
        assert await seed.stock(material) == 4

    @pytest.mark.asyncio
    async def test_exception_rolls_back(self, coordinator, seed, scope):
        material = new_material(scope)

        async def work(uow):
            uow.session.add(material)
            await uow.session.flush()
            raise NotFoundError(resource="Task")

        with pytest.raises(NotFoundError):
            await coordinator.run(work)

        assert await seed.count(Material, id=material.id) == 0

    @pytest.mark.asyncio
    async def test_constraint_violation_becomes_database_error(self, coordinator, seed, scope):
        material = new_material(scope, stock=-1)

        async def work(uow):
            uow.session.add(material)
            await uow.session.flush()

        with pytest.raises(DatabaseError) as exc_info:
            await coordinator.run(work)

        assert exc_info.value.context["error_type"] == "IntegrityError"
        assert "stock" not in exc_info.value.message
        assert await seed.count(Material, id=material.id) == 0

    @pytest.mark.asyncio
    async def test_require_transaction(self, session_factory):
        async with session_factory() as session:
            with pytest.raises(RuntimeError):
                require_transaction(session)
            async with session.begin():
                require_transaction(session)


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_transient_error_reruns_whole_unit(self, coordinator, seed, scope):
        attempts = []
        materials = []

        async def work(uow):
            material = new_material(scope)
            materials.append(material)
            uow.session.add(material)
            await uow.session.flush()
            attempts.append(len(attempts) + 1)
            if len(attempts) < 2:
                raise locked()
            return material.id

        committed_id = await coordinator.run(work)

        assert attempts == [1, 2]
        assert committed_id == materials[1].id
        # The first attempt's insert was rolled back
        assert await seed.count(Material, id=materials[0].id) == 0
        assert await seed.count(Material, id=materials[1].id) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_database_error(self, session_factory):
        coordinator = TransactionCoordinator(session_factory, max_attempts=2, min_wait=0, max_wait=0)
        calls = []

        async def work(uow):
            calls.append(1)
            raise locked()

        with pytest.raises(DatabaseError) as exc_info:
            await coordinator.run(work)

        assert len(calls) == 2
        assert exc_info.value.context["attempts"] == 2
        assert exc_info.value.context["error_type"] == "OperationalError"

    @pytest.mark.asyncio
    async def test_domain_errors_are_not_retried(self, coordinator):
        calls = []

        async def work(uow):
            calls.append(1)
            raise NotFoundError(resource="Task", resource_id="abc")

        with pytest.raises(NotFoundError):
            await coordinator.run(work)

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_backoff_is_bounded_and_warning_free(self, session_factory):
        coordinator = TransactionCoordinator(
            session_factory, max_attempts=8, min_wait=0.05, max_wait=1.0
        )

        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            retrying = coordinator._retrying()

        state = RetryCallState(retrying, fn=None, args=(), kwargs={})
        waits = []
        for attempt in range(1, 8):
            state.attempt_number = attempt
            waits.append(retrying.wait(state))

        assert 0.05 <= waits[0] <= 0.1
        assert all(0 <= wait <= 1.05 for wait in waits)
        assert waits[-1] >= 1.0


class TestAfterCommitHooks:
    @pytest.mark.asyncio
    async def test_hooks_fire_after_commit(self, coordinator, seed, scope):
        material = new_material(scope, stock=3)
        seen = []

        async def async_hook():
            # Runs after commit: the row is visible from a fresh session
            seen.append(await seed.stock(material))

        async def work(uow):
            uow.session.add(material)
            uow.after_commit(async_hook)
            uow.after_commit(lambda: seen.append("sync"))

        await coordinator.run(work)

        assert seen == [3, "sync"]

    @pytest.mark.asyncio
    async def test_hooks_skipped_on_rollback(self, coordinator):
        fired = []

        async def work(uow):
            uow.after_commit(lambda: fired.append(1))
            raise NotFoundError(resource="Task")

        with pytest.raises(NotFoundError):
            await coordinator.run(work)

        assert fired == []

    @pytest.mark.asyncio
    async def test_hooks_from_failed_attempt_are_discarded(self, coordinator):
        fired = []

        async def work(uow):
            uow.after_commit(lambda: fired.append(len(fired)))
            if not getattr(work, "retried", False):
                work.retried = True
                raise locked()

        await coordinator.run(work)

        assert fired == [0]

    @pytest.mark.asyncio
    async def test_hook_failure_is_swallowed(self, coordinator, seed, scope):
        material = new_material(scope)
        fired = []

        def broken():
            raise RuntimeError("collaborator down")

        async def work(uow):
            uow.session.add(material)
            uow.after_commit(broken)
            uow.after_commit(lambda: fired.append(1))
            return "ok"

        assert await coordinator.run(work) == "ok"
        assert fired == [1]
        assert await seed.count(Material, id=material.id) == 1

    @pytest.mark.asyncio
    async def test_ping(self, coordinator):
        assert await coordinator.ping() is True
