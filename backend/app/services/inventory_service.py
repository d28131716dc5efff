"""
TaskManager Backend — Inventory Delta Applier
==============================================

What:  Applies signed stock deltas (material_id → quantity) to materials.
Why:   Routine tasks and task activities consume stock; deleting them
       returns it, restoring them consumes it again. `stock_on_hand` must
       never go negative, and a batch either applies fully or not at all.
How:   Two phases, inside the caller's transaction:

    1. Validate the WHOLE batch with one scoped SELECT:
       every id must exist in the org/department and not be soft-deleted.
       Nothing is written if any reference is bad.

    2. For each non-zero delta:
       delta > 0 (consume) ─▶ UPDATE materials
                              SET stock_on_hand = stock_on_hand - :delta
                              WHERE id = :id [AND status = 'ACTIVE']
                                AND stock_on_hand >= :delta
                              0 rows ─▶ InsufficientStockError
       delta < 0 (return)  ─▶ UPDATE materials
                              SET stock_on_hand = stock_on_hand + |delta|
                              (no status condition: reversing an already
                               committed consumption is always allowed)

Concurrency:
    The conditional UPDATE is the stock check. Two requests racing for the
    last units both issue it; the database serializes the row update, the
    loser matches zero rows and its whole transaction aborts. No read of
    stock_on_hand is ever used to decide a write.

requireActive:
    True  for new consumption (routine materials, activity materials)
    False when returning stock on delete, or re-consuming on restore
"""

import logging
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InactiveMaterialError, InsufficientStockError, ValidationError
from app.models import Material, MaterialStatus
from app.services.scope import TenantScope, parse_id, scoped
from app.services.transaction import require_transaction

logger = logging.getLogger(__name__)

MaterialKey = Union[str, uuid.UUID]
Deltas = Dict[uuid.UUID, int]


# ══════════════════════════════════════════════════════════════════════════
# Delta arithmetic
# ══════════════════════════════════════════════════════════════════════════

def usage_to_deltas(usage: Iterable[Tuple[MaterialKey, int]], sign: int = 1) -> Deltas:
    """
    Aggregate (material_id, quantity) pairs into a signed delta map.

    sign=+1 consumes the usage, sign=-1 returns it.
    """
    deltas: Deltas = OrderedDict()
    for material_id, quantity in usage:
        key = parse_id(material_id, field="material_id")
        deltas[key] = deltas.get(key, 0) + sign * int(quantity)
    return deltas


def merge_deltas(*maps: Mapping[uuid.UUID, int]) -> Deltas:
    merged: Deltas = OrderedDict()
    for deltas in maps:
        for material_id, delta in deltas.items():
            merged[material_id] = merged.get(material_id, 0) + delta
    return merged


def compute_material_deltas(
    before: Iterable[Tuple[MaterialKey, int]],
    after: Iterable[Tuple[MaterialKey, int]],
) -> Deltas:
    """
    Per-material `after - before` for an edited usage list.

    Materials whose quantity did not change are left out, so an edit that
    only reorders the list applies nothing.
    """
    before_map = usage_to_deltas(before)
    after_map = usage_to_deltas(after)
    deltas: Deltas = OrderedDict()
    for material_id in list(before_map) + [m for m in after_map if m not in before_map]:
        delta = after_map.get(material_id, 0) - before_map.get(material_id, 0)
        if delta != 0:
            deltas[material_id] = delta
    return deltas


# ══════════════════════════════════════════════════════════════════════════
# Inventory Service
# ══════════════════════════════════════════════════════════════════════════

class InventoryService:
    """Stateless applier of stock deltas; one shared instance below."""

    async def apply_deltas(
        self,
        session: AsyncSession,
        deltas: Mapping[MaterialKey, int],
        scope: TenantScope,
        require_active: bool = True,
        insufficient_message: str = "Insufficient stock",
    ) -> Deltas:
        """
        Apply every delta in `deltas` or raise without effect.

        Args:
            session: transactional session (must be inside a transaction)
            deltas: material id → signed quantity (positive consumes)
            scope: organization + department the materials must belong to
            require_active: consuming deltas require status ACTIVE
            insufficient_message: message for InsufficientStockError

        Returns:
            The normalized, non-zero deltas that were applied.

        Raises:
            ValidationError: unknown, out-of-scope or deleted material, or a
                non-integer quantity. Raised before any UPDATE is issued.
            InactiveMaterialError: consuming an INACTIVE material while
                require_active is set.
            InsufficientStockError: a conditional decrement matched no row.
                Earlier updates of the same batch are undone by the
                surrounding transaction abort.
        """
        require_transaction(session)

        normalized = self._normalize(deltas)
        if not normalized:
            return normalized

        # ── Phase 1: validate the entire batch ────────────────────────────
        stmt = scoped(
            select(Material.id, Material.status, Material.is_deleted).where(
                Material.id.in_(list(normalized))
            ),
            Material,
            scope,
        )
        rows = {row.id: row for row in (await session.execute(stmt)).all()}

        invalid = [str(m) for m in normalized if m not in rows or rows[m].is_deleted]
        if invalid:
            logger.warning("Rejected inventory batch: invalid materials %s", invalid)
            raise ValidationError(
                "materials contains invalid materials",
                field="materials",
                context={"invalid_material_ids": invalid, **scope.as_context()},
            )

        # ── Phase 2: conditional atomic updates ───────────────────────────
        applied: Deltas = OrderedDict()
        for material_id, delta in normalized.items():
            if delta == 0:
                continue

            if delta > 0:
                if require_active and rows[material_id].status != MaterialStatus.ACTIVE.value:
                    raise InactiveMaterialError(material_id=str(material_id))
                await self._consume(session, material_id, delta, scope, require_active, insufficient_message)
            else:
                await self._return(session, material_id, -delta, scope)
            applied[material_id] = delta

        logger.info(
            "Applied %d inventory deltas (require_active=%s): %s",
            len(applied),
            require_active,
            {str(k): v for k, v in applied.items()},
        )
        return applied

    def _normalize(self, deltas: Mapping[MaterialKey, int]) -> Deltas:
        normalized: Deltas = OrderedDict()
        for raw_id, raw_delta in (deltas or {}).items():
            if isinstance(raw_delta, bool) or not isinstance(raw_delta, int):
                raise ValidationError(
                    f"Quantity delta for material '{raw_id}' must be an integer",
                    field="materials",
                )
            material_id = parse_id(raw_id, field="material_id")
            normalized[material_id] = normalized.get(material_id, 0) + raw_delta
        return normalized

    async def _consume(
        self,
        session: AsyncSession,
        material_id: uuid.UUID,
        quantity: int,
        scope: TenantScope,
        require_active: bool,
        insufficient_message: str,
    ) -> None:
        stmt = scoped(update(Material), Material, scope).where(
            Material.id == material_id,
            Material.is_deleted.is_(False),
            Material.stock_on_hand >= quantity,
        )
        if require_active:
            stmt = stmt.where(Material.status == MaterialStatus.ACTIVE.value)
        stmt = stmt.values(stock_on_hand=Material.stock_on_hand - quantity).execution_options(
            synchronize_session=False
        )

        result = await session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(
                "Insufficient stock for material %s (requested %d)", material_id, quantity
            )
            raise InsufficientStockError(
                message=insufficient_message,
                material_id=str(material_id),
                context={"requested": quantity},
            )

    async def _return(
        self,
        session: AsyncSession,
        material_id: uuid.UUID,
        quantity: int,
        scope: TenantScope,
    ) -> None:
        stmt = (
            scoped(update(Material), Material, scope)
            .where(Material.id == material_id, Material.is_deleted.is_(False))
            .values(stock_on_hand=Material.stock_on_hand + quantity)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def get_stock(
        self, session: AsyncSession, material_id: uuid.UUID, scope: TenantScope
    ) -> Optional[int]:
        """Current stock as seen by this session (reporting only, never used to decide writes)."""
        stmt = scoped(select(Material.stock_on_hand).where(Material.id == material_id), Material, scope)
        return (await session.execute(stmt)).scalar_one_or_none()


# ── Singleton Instance ────────────────────────────────────────────────────
inventory_service = InventoryService()
