"""
LedgerService -- the only writer of the inventory ledger and its projection.

Responsibility:
    Appends signed inventory movements and keeps the MaterialStock
    projection in step with them inside the same transaction.  Every stock
    change in the system (receipt, replacement, consumption, adjustment,
    initial stock) goes through ``post()``.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only: the module service
    that owns the public operation commits or rolls back.

Invariants enforced:
    - Ledger sum: projection quantity == SUM(quantity_change) per material,
      because the entry insert and the projection increment share a
      transaction and the increment is applied atomically in SQL.
    - Read-then-write races are closed: the projection row is locked
      (SELECT ... FOR UPDATE) before the entry is written and the delta is
      applied as ``quantity_on_hand = quantity_on_hand + :delta``.
    - Zero deltas are rejected; negative results are allowed.

Failure modes:
    - InvalidQuantityError for a zero delta.
    - ReferenceNotFoundError for an unknown material or batch.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supply_kernel.domain.actor import Actor
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.dtos import LedgerEntry, MovementType, ProductionStage, StockLevel
from supply_kernel.exceptions import InvalidQuantityError, ReferenceNotFoundError
from supply_kernel.logging_config import get_logger
from supply_kernel.models.ledger import InventoryLedgerEntry, MaterialStock
from supply_kernel.models.reference import Batch, Material
from supply_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger")


class LedgerService:
    """
    Append-only inventory ledger writer.

    Contract:
        ``post()`` validates, locks the material's projection row, allocates
        a sequence number, inserts the entry and increments the projection.

    Non-goals:
        - Does NOT commit.  Callers wrap operations in transaction_boundary().
        - Does NOT check for sufficient stock; stock may go negative.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Projection row locking
    # ------------------------------------------------------------------

    def _locked_stock_row(self, material_id: UUID) -> MaterialStock:
        stock = self.session.execute(
            select(MaterialStock)
            .where(MaterialStock.material_id == material_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if stock is not None:
            return stock

        savepoint = self.session.begin_nested()
        try:
            stock = MaterialStock(
                material_id=material_id,
                quantity_on_hand=Decimal("0"),
                last_entry_seq=0,
            )
            self.session.add(stock)
            self.session.flush()
            savepoint.commit()
            return stock
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "material_stock_row_race_retry",
                extra={"material_id": str(material_id)},
            )
            return self.session.execute(
                select(MaterialStock)
                .where(MaterialStock.material_id == material_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one()

    def lock_quantity_on_hand(self, material_id: UUID) -> Decimal:
        """
        Lock the material's projection row and return its quantity.

        The lock is held until the caller's transaction ends, so a
        subsequent ``post()`` in the same transaction cannot race with
        another writer.
        """
        self._require_material(material_id)
        return self._locked_stock_row(material_id).quantity_on_hand

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def _require_material(self, material_id: UUID) -> Material:
        material = self.session.get(Material, material_id)
        if material is None:
            raise ReferenceNotFoundError("Material", str(material_id))
        return material

    def post(
        self,
        material_id: UUID,
        quantity_change: Decimal,
        movement_type: MovementType,
        actor: Actor,
        *,
        batch_id: UUID | None = None,
        order_id: UUID | None = None,
        receipt_id: UUID | None = None,
        stage: ProductionStage | None = None,
        reason: str | None = None,
    ) -> LedgerEntry:
        """
        Append one ledger entry and apply its delta to the projection.

        Preconditions:
            - quantity_change != 0.
            - material_id (and batch_id, when given) exist.

        Postconditions:
            - Exactly one new InventoryLedgerEntry with a fresh seq.
            - The material's projection moved by exactly quantity_change.
        """
        quantity_change = Decimal(quantity_change)
        if quantity_change == 0:
            raise InvalidQuantityError(
                "quantity_change", quantity_change, "ledger movements must be non-zero"
            )
        self._require_material(material_id)
        if batch_id is not None and self.session.get(Batch, batch_id) is None:
            raise ReferenceNotFoundError("Batch", str(batch_id))

        stock = self._locked_stock_row(material_id)
        seq = self._sequences.next_value(SequenceService.LEDGER_ENTRY)

        entry = InventoryLedgerEntry(
            seq=seq,
            material_id=material_id,
            quantity_change=quantity_change,
            movement_type=movement_type.value,
            batch_id=batch_id,
            order_id=order_id,
            receipt_id=receipt_id,
            stage=stage.value if stage is not None else None,
            reason=reason,
            performed_by_id=actor.id,
            performed_by_name=actor.name,
            occurred_at=self._clock.now(),
            created_by_id=actor.id,
        )
        self.session.add(entry)
        self.session.flush()

        self.session.execute(
            update(MaterialStock)
            .where(MaterialStock.id == stock.id)
            .values(
                quantity_on_hand=MaterialStock.quantity_on_hand + quantity_change,
                last_entry_seq=seq,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.expire(stock)

        logger.info(
            "ledger_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "seq": seq,
                "material_id": str(material_id),
                "quantity_change": str(quantity_change),
                "movement_type": movement_type.value,
                "batch_id": str(batch_id) if batch_id else None,
                "order_id": str(order_id) if order_id else None,
            },
        )
        return entry.to_dto()

    # ------------------------------------------------------------------
    # Projection maintenance
    # ------------------------------------------------------------------

    def rebuild_projection(self, material_id: UUID) -> StockLevel:
        """
        Recompute the material's projection from its ledger entries.

        Safe to run at any time; the result equals what incremental posting
        would have produced.
        """
        self._require_material(material_id)
        stock = self._locked_stock_row(material_id)

        total, last_seq = self.session.execute(
            select(
                func.coalesce(func.sum(InventoryLedgerEntry.quantity_change), 0),
                func.coalesce(func.max(InventoryLedgerEntry.seq), 0),
            ).where(InventoryLedgerEntry.material_id == material_id)
        ).one()
        total = Decimal(str(total))

        previous = stock.quantity_on_hand
        stock.quantity_on_hand = total
        stock.last_entry_seq = int(last_seq)
        self.session.flush()

        if previous != total:
            logger.warning(
                "material_stock_projection_rebuilt",
                extra={
                    "material_id": str(material_id),
                    "previous_qty": str(previous),
                    "ledger_qty": str(total),
                },
            )
        return stock.to_dto()
