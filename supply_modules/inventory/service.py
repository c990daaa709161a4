"""
Inventory Module Service (``supply_modules.inventory.service``).

Responsibility
--------------
Stock movements that do not come from receiving: opening balances,
physical count adjustments, manual corrections and batch consumption by
production stage.  Also the batch material cost rollup consumed by the
pricing collaborator and projection verification.

Architecture position
---------------------
**Modules layer** -- wraps kernel ``LedgerService`` postings in a
transaction per public operation.

Invariants enforced
-------------------
* ``adjust_to_count`` reads quantity on hand only after locking the
  material's projection row, so the posted delta is exact even with
  concurrent writers.
* Consumption is always posted as a negative CONSUMPTION entry tagged with
  its batch and stage.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.engine import transaction_boundary
from supply_kernel.domain.activity import ActivityAction, ActivityEvent
from supply_kernel.domain.actor import Actor
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.dtos import (
    LedgerEntry,
    MovementType,
    ProductionStage,
    ProjectionDrift,
    StockLevel,
)
from supply_kernel.exceptions import (
    InvalidQuantityError,
    MissingFieldError,
    ReferenceNotFoundError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.models.reference import Batch, Material
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.activity_publisher import ActivityPublisher
from supply_kernel.services.ledger_service import LedgerService
from supply_modules.inventory.config import InventoryConfig
from supply_modules.inventory.helpers import (
    adjustment_delta,
    consumed_quantity,
    net_by_material,
)
from supply_modules.inventory.models import BatchMaterialCost, BatchMaterialCostLine

logger = get_logger("modules.inventory.service")


class InventoryService:
    """
    Stock initialisation, adjustment, consumption and cost rollup.

    Guarantees
    ----------
    * Each mutating method commits exactly one ledger entry or nothing.
    * Activity events are published only after commit.
    """

    def __init__(
        self,
        session: Session,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
        publisher: ActivityPublisher | None = None,
    ):
        self._session = session
        self._config = config or InventoryConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._ledger = LedgerService(session, clock=self._clock)
        self._selector = LedgerSelector(session)

    def _post(
        self,
        operation: str,
        action: ActivityAction,
        actor: Actor,
        material_id: UUID,
        quantity_change: Decimal,
        movement_type: MovementType,
        details: str,
        **post_kwargs,
    ) -> LedgerEntry:
        with LogContext.bind(actor_id=str(actor.id), operation=operation):
            with transaction_boundary(self._session, f"inventory.{operation}"):
                entry = self._ledger.post(
                    material_id, quantity_change, movement_type, actor, **post_kwargs
                )
        self._publish(entry, action, actor, details)
        return entry

    def _publish(
        self, entry: LedgerEntry, action: ActivityAction, actor: Actor, details: str
    ) -> None:
        if self._publisher is None:
            return
        self._publisher.publish(ActivityEvent(
            entity_id=entry.material_id,
            entity_type="Material",
            actor_id=actor.id,
            actor_name=actor.name,
            action=action,
            details=details,
            timestamp=self._clock.now(),
            data={
                "ledger_entry_id": str(entry.id),
                "quantity_change": entry.quantity_change,
                "movement_type": entry.movement_type.value,
            },
        ))

    # =========================================================================
    # Movements
    # =========================================================================

    def record_initial_stock(
        self, material_id: UUID, quantity: Decimal, actor: Actor
    ) -> LedgerEntry:
        """Opening balance for a material."""
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise InvalidQuantityError("quantity", quantity, "initial stock must be positive")
        return self._post(
            "record_initial_stock",
            ActivityAction.STOCK_INITIALISED,
            actor,
            material_id,
            quantity,
            MovementType.INITIAL,
            f"Initial stock {quantity}",
            reason="Initial stock",
        )

    def adjust_to_count(
        self,
        material_id: UUID,
        counted_qty: Decimal,
        actor: Actor,
        *,
        reason: str | None = None,
    ) -> LedgerEntry | None:
        """
        Bring quantity on hand to a physical count.

        Returns ``None`` and writes nothing when the count matches.
        """
        counted_qty = Decimal(counted_qty)
        if counted_qty < 0:
            raise InvalidQuantityError("counted_qty", counted_qty, "count cannot be negative")

        with LogContext.bind(actor_id=str(actor.id), operation="adjust_to_count"):
            with transaction_boundary(self._session, "inventory.adjust_to_count"):
                current = self._ledger.lock_quantity_on_hand(material_id)
                delta = adjustment_delta(current, counted_qty)
                if delta == 0:
                    logger.info(
                        "inventory_count_matches",
                        extra={"material_id": str(material_id), "quantity": str(current)},
                    )
                    return None
                entry = self._ledger.post(
                    material_id,
                    delta,
                    MovementType.ADJUSTMENT,
                    actor,
                    reason=reason or f"Stock count: {current} -> {counted_qty}",
                )

        self._publish(
            entry, ActivityAction.STOCK_ADJUSTED, actor,
            f"Adjusted to count {counted_qty} (was {current})",
        )
        return entry

    def adjust(
        self,
        material_id: UUID,
        quantity_change: Decimal,
        actor: Actor,
        *,
        reason: str,
        batch_id: UUID | None = None,
    ) -> LedgerEntry:
        """Signed manual correction; tag it with a batch to revert its consumption."""
        if not (reason or "").strip():
            raise MissingFieldError("reason", "adjust stock")
        quantity_change = Decimal(quantity_change)
        return self._post(
            "adjust",
            ActivityAction.STOCK_ADJUSTED,
            actor,
            material_id,
            quantity_change,
            MovementType.ADJUSTMENT,
            f"Adjusted by {quantity_change}: {reason.strip()}",
            batch_id=batch_id,
            reason=reason.strip(),
        )

    def record_consumption(
        self,
        batch_id: UUID,
        material_id: UUID,
        quantity: Decimal,
        actor: Actor,
        *,
        stage: ProductionStage | None = None,
    ) -> LedgerEntry:
        """Consume ``quantity`` of a material for a batch at a production stage."""
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise InvalidQuantityError("quantity", quantity, "consumption must be positive")
        stage_label = stage.value if stage is not None else "unstaged"
        return self._post(
            "record_consumption",
            ActivityAction.STOCK_CONSUMED,
            actor,
            material_id,
            -quantity,
            MovementType.CONSUMPTION,
            f"Consumed {quantity} at {stage_label}",
            batch_id=batch_id,
            stage=stage,
            reason=f"Batch consumption ({stage_label})",
        )

    # =========================================================================
    # Cost rollup
    # =========================================================================

    def calculate_batch_material_cost(self, batch_id: UUID) -> BatchMaterialCost:
        """
        Material cost of a batch at standard cost.

        Nets the batch's rolled-up movements per material; only a negative
        net (stock actually used) is costed.
        """
        if self._session.get(Batch, batch_id) is None:
            raise ReferenceNotFoundError("Batch", str(batch_id))

        entries = self._selector.entries_for_batch(
            batch_id, movement_types=self._config.cost_rollup_movement_types
        )
        nets = net_by_material(entries)
        if not nets:
            return BatchMaterialCost(batch_id=batch_id)

        materials = {
            m.id: m
            for m in self._session.execute(
                select(Material).where(Material.id.in_(list(nets)))
            ).scalars()
        }

        lines = []
        for material_id, net in sorted(nets.items(), key=lambda item: str(item[0])):
            material = materials[material_id]
            consumed = consumed_quantity(net)
            lines.append(
                BatchMaterialCostLine(
                    material_id=material_id,
                    material_code=material.material_code,
                    net_quantity=net,
                    consumed_qty=consumed,
                    standard_cost=material.standard_cost,
                    cost=consumed * material.standard_cost,
                )
            )
        total = sum((line.cost for line in lines), Decimal("0"))

        logger.info(
            "inventory_batch_cost_calculated",
            extra={
                "batch_id": str(batch_id),
                "material_count": len(lines),
                "total": str(total),
            },
        )
        return BatchMaterialCost(batch_id=batch_id, lines=tuple(lines), total=total)

    # =========================================================================
    # Reads and projection maintenance
    # =========================================================================

    def stock_levels(self) -> list[StockLevel]:
        return self._selector.stock_levels()

    def movement_history(self, material_id: UUID) -> list[LedgerEntry]:
        return self._selector.entries_for_material(material_id)

    def verify_projection(self) -> list[ProjectionDrift]:
        drift = self._selector.projection_drift()
        if drift:
            logger.warning(
                "inventory_projection_drift_detected",
                extra={"material_ids": [str(d.material_id) for d in drift]},
            )
        return drift

    def rebuild_projection(self, material_id: UUID) -> StockLevel:
        with transaction_boundary(self._session, "inventory.rebuild_projection"):
            level = self._ledger.rebuild_projection(material_id)
        return level
