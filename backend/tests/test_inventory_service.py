"""
TaskManager Backend — Inventory Delta Applier Tests
===================================================

What we test:
    ✅ Delta arithmetic helpers (aggregate, merge, before/after diff)
    ✅ Consumption to exactly zero, then rejection with stock unchanged
    ✅ A failing delta rolls back the whole batch
    ✅ Unknown / out-of-scope / soft-deleted materials rejected before any write
    ✅ require_active gates consumption but never returns
    ✅ Concurrent consumers racing for the last units: exactly one wins
    ✅ Stock reads stay inside the organization/department scope
"""

import asyncio
import uuid

import pytest

from app.exceptions import InactiveMaterialError, InsufficientStockError, ValidationError
from app.models import MaterialStatus
from app.services.inventory_service import (
    compute_material_deltas,
    inventory_service,
    merge_deltas,
    usage_to_deltas,
)
from app.services.transaction import TransactionCoordinator


async def apply(coordinator, deltas, scope, **kwargs):
    return await coordinator.run(
        lambda uow: inventory_service.apply_deltas(uow.session, deltas, scope, **kwargs)
    )


class TestDeltaHelpers:
    """Pure delta arithmetic."""

    def test_usage_to_deltas_aggregates_duplicates(self):
        m1, m2 = uuid.uuid4(), uuid.uuid4()
        deltas = usage_to_deltas([(m1, 2), (m2, 1), (m1, 3)])
        assert deltas == {m1: 5, m2: 1}

    def test_usage_to_deltas_negative_sign_returns_stock(self):
        m1 = uuid.uuid4()
        assert usage_to_deltas([(m1, 4)], sign=-1) == {m1: -4}

    def test_usage_to_deltas_parses_string_ids(self):
        m1 = uuid.uuid4()
        assert usage_to_deltas([(str(m1), 1)]) == {m1: 1}

    def test_usage_to_deltas_rejects_bad_id(self):
        with pytest.raises(ValidationError):
            usage_to_deltas([("not-a-uuid", 1)])

    def test_merge_deltas_sums_per_material(self):
        m1, m2 = uuid.uuid4(), uuid.uuid4()
        assert merge_deltas({m1: 2}, {m1: -5, m2: 1}) == {m1: -3, m2: 1}

    def test_compute_material_deltas(self):
        kept, grown, removed, added = (uuid.uuid4() for _ in range(4))
        before = [(kept, 2), (grown, 1), (removed, 4)]
        after = [(kept, 2), (grown, 3), (added, 5)]

        deltas = compute_material_deltas(before, after)

        assert deltas == {grown: 2, removed: -4, added: 5}
        assert kept not in deltas

    def test_compute_material_deltas_reorder_is_noop(self):
        m1, m2 = uuid.uuid4(), uuid.uuid4()
        assert compute_material_deltas([(m1, 1), (m2, 2)], [(m2, 2), (m1, 1)]) == {}


class TestApplyDeltas:
    """Conditional atomic stock updates against a real database."""

    @pytest.mark.asyncio
    async def test_consume_to_zero_then_reject(self, coordinator, seed, scope):
        m1 = await seed.material(stock=5)

        applied = await apply(coordinator, {m1.id: 5}, scope, require_active=True)
        assert applied == {m1.id: 5}
        assert await seed.stock(m1) == 0

        with pytest.raises(InsufficientStockError) as exc_info:
            await apply(coordinator, {m1.id: 1}, scope, require_active=True)

        assert exc_info.value.material_id == str(m1.id)
        assert exc_info.value.message == "Insufficient stock"
        assert await seed.stock(m1) == 0

    @pytest.mark.asyncio
    async def test_batch_is_all_or_nothing(self, coordinator, seed, scope):
        plenty = await seed.material(stock=10)
        scarce = await seed.material(stock=1)

        with pytest.raises(InsufficientStockError):
            await apply(coordinator, {plenty.id: 4, scarce.id: 2}, scope)

        assert await seed.stock(plenty) == 10
        assert await seed.stock(scarce) == 1

    @pytest.mark.asyncio
    async def test_return_increments_stock(self, coordinator, seed, scope):
        m1 = await seed.material(stock=2)
        await apply(coordinator, {m1.id: -3}, scope, require_active=False)
        assert await seed.stock(m1) == 5

    @pytest.mark.asyncio
    async def test_mixed_signs(self, coordinator, seed, scope):
        consumed = await seed.material(stock=5)
        returned = await seed.material(stock=0)

        await apply(coordinator, {consumed.id: 2, returned.id: -2}, scope)

        assert await seed.stock(consumed) == 3
        assert await seed.stock(returned) == 2

    @pytest.mark.asyncio
    async def test_unknown_material_rejected_before_any_write(self, coordinator, seed, scope):
        m1 = await seed.material(stock=5)

        with pytest.raises(ValidationError) as exc_info:
            await apply(coordinator, {m1.id: 1, uuid.uuid4(): 1}, scope)

        assert exc_info.value.message == "materials contains invalid materials"
        assert await seed.stock(m1) == 5

    @pytest.mark.asyncio
    async def test_out_of_scope_material_rejected(self, coordinator, seed, scope, other_scope):
        foreign = await seed.material(stock=5, scope=other_scope)

        with pytest.raises(ValidationError):
            await apply(coordinator, {foreign.id: 1}, scope)
        assert await seed.stock(foreign) == 5

    @pytest.mark.asyncio
    async def test_soft_deleted_material_rejected_even_for_returns(self, coordinator, seed, scope):
        gone = await seed.material(stock=5, is_deleted=True)

        with pytest.raises(ValidationError):
            await apply(coordinator, {gone.id: -1}, scope, require_active=False)
        assert await seed.stock(gone) == 5

    @pytest.mark.asyncio
    async def test_inactive_material_blocks_new_consumption(self, coordinator, seed, scope):
        inactive = await seed.material(stock=5, status=MaterialStatus.INACTIVE)

        with pytest.raises(InactiveMaterialError):
            await apply(coordinator, {inactive.id: 1}, scope, require_active=True)
        assert await seed.stock(inactive) == 5

    @pytest.mark.asyncio
    async def test_inactive_material_consumable_without_require_active(self, coordinator, seed, scope):
        inactive = await seed.material(stock=5, status=MaterialStatus.INACTIVE)
        await apply(coordinator, {inactive.id: 2}, scope, require_active=False)
        assert await seed.stock(inactive) == 3

    @pytest.mark.asyncio
    async def test_inactive_material_accepts_returns(self, coordinator, seed, scope):
        inactive = await seed.material(stock=0, status=MaterialStatus.INACTIVE)
        await apply(coordinator, {inactive.id: -4}, scope, require_active=True)
        assert await seed.stock(inactive) == 4

    @pytest.mark.asyncio
    async def test_custom_insufficient_message(self, coordinator, seed, scope):
        m1 = await seed.material(stock=0)
        with pytest.raises(InsufficientStockError, match="Insufficient stock to restore"):
            await apply(
                coordinator,
                {m1.id: 1},
                scope,
                require_active=False,
                insufficient_message="Insufficient stock to restore",
            )

    @pytest.mark.asyncio
    async def test_zero_and_empty_deltas_are_noops(self, coordinator, seed, scope):
        m1 = await seed.material(stock=3)
        assert await apply(coordinator, {}, scope) == {}
        assert await apply(coordinator, {m1.id: 0}, scope) == {}
        assert await seed.stock(m1) == 3

    @pytest.mark.asyncio
    async def test_non_integer_delta_rejected(self, coordinator, seed, scope):
        m1 = await seed.material(stock=3)
        with pytest.raises(ValidationError):
            await apply(coordinator, {m1.id: True}, scope)
        with pytest.raises(ValidationError):
            await apply(coordinator, {m1.id: 1.5}, scope)

    @pytest.mark.asyncio
    async def test_requires_active_transaction(self, session_factory, seed, scope):
        m1 = await seed.material(stock=3)
        async with session_factory() as session:
            with pytest.raises(RuntimeError):
                await inventory_service.apply_deltas(session, {m1.id: 1}, scope)
        assert await seed.stock(m1) == 3

    @pytest.mark.asyncio
    async def test_concurrent_consumers_cannot_both_win(self, session_factory, seed, scope):
        m1 = await seed.material(stock=5)
        coordinator = TransactionCoordinator(session_factory, max_attempts=5, min_wait=0, max_wait=0)

        outcomes = await asyncio.gather(
            apply(coordinator, {m1.id: 3}, scope),
            apply(coordinator, {m1.id: 3}, scope),
            return_exceptions=True,
        )

        successes = [o for o in outcomes if not isinstance(o, Exception)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)
        assert await seed.stock(m1) == 2


class TestGetStock:
    @pytest.mark.asyncio
    async def test_reads_committed_stock(self, session_factory, coordinator, seed, scope):
        m1 = await seed.material(stock=4)
        await apply(coordinator, {m1.id: 1}, scope)

        async with session_factory() as session:
            assert await inventory_service.get_stock(session, m1.id, scope) == 3

    @pytest.mark.asyncio
    async def test_other_department_reads_nothing(self, session_factory, seed, scope, other_scope):
        m1 = await seed.material(stock=4, scope=other_scope)

        async with session_factory() as session:
            assert await inventory_service.get_stock(session, m1.id, scope) is None
            assert await inventory_service.get_stock(session, uuid.uuid4(), scope) is None
