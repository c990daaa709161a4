"""
Module: supply_kernel.selectors.ledger_selector
Responsibility: Read-only inventory queries: quantity on hand (projection),
    ledger balance (authoritative sum), entry history by material, batch or
    order, and projection drift detection.
Architecture position: Kernel > Selectors.  May import from models/ and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - ledger_balance() always derives from InventoryLedgerEntry rows.
    - quantity_on_hand() reads the projection, which LedgerService keeps
      equal to ledger_balance(); projection_drift() proves it.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.domain.dtos import LedgerEntry, MovementType, ProjectionDrift, StockLevel
from supply_kernel.models.ledger import InventoryLedgerEntry, MaterialStock


class LedgerSelector:
    """
    Read-only access to the inventory ledger and projection.

    Uses the caller's session and never adds, flushes or commits.
    """

    def __init__(self, session: Session):
        self.session = session

    def quantity_on_hand(self, material_id: UUID) -> Decimal:
        """Cached quantity on hand; 0 when the material has never moved."""
        qty = self.session.execute(
            select(MaterialStock.quantity_on_hand)
            .where(MaterialStock.material_id == material_id)
        ).scalar_one_or_none()
        return Decimal(qty) if qty is not None else Decimal("0")

    def ledger_balance(self, material_id: UUID) -> Decimal:
        """Sum of every ledger entry for the material."""
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryLedgerEntry.quantity_change), 0))
            .where(InventoryLedgerEntry.material_id == material_id)
        ).scalar_one()
        return Decimal(str(total))

    def _entries(self, *criteria, movement_types=None) -> list[LedgerEntry]:
        stmt = select(InventoryLedgerEntry).where(*criteria)
        if movement_types:
            stmt = stmt.where(
                InventoryLedgerEntry.movement_type.in_([m.value for m in movement_types])
            )
        rows = self.session.execute(stmt.order_by(InventoryLedgerEntry.seq)).scalars()
        return [row.to_dto() for row in rows]

    def entries_for_material(self, material_id: UUID) -> list[LedgerEntry]:
        return self._entries(InventoryLedgerEntry.material_id == material_id)

    def entries_for_batch(
        self,
        batch_id: UUID,
        movement_types: tuple[MovementType, ...] | None = None,
    ) -> list[LedgerEntry]:
        return self._entries(
            InventoryLedgerEntry.batch_id == batch_id,
            movement_types=movement_types,
        )

    def entries_for_order(self, order_id: UUID) -> list[LedgerEntry]:
        return self._entries(InventoryLedgerEntry.order_id == order_id)

    def stock_levels(self) -> list[StockLevel]:
        """All projection rows, ordered by material id."""
        rows = self.session.execute(
            select(MaterialStock).order_by(MaterialStock.material_id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def projection_drift(self) -> list[ProjectionDrift]:
        """
        Materials whose projection differs from the ledger sum.

        Also reports materials that have ledger entries but no projection row.
        """
        ledger_totals = dict(
            self.session.execute(
                select(
                    InventoryLedgerEntry.material_id,
                    func.sum(InventoryLedgerEntry.quantity_change),
                ).group_by(InventoryLedgerEntry.material_id)
            ).all()
        )
        projected = dict(
            self.session.execute(
                select(MaterialStock.material_id, MaterialStock.quantity_on_hand)
            ).all()
        )

        drift = []
        for material_id in sorted(set(ledger_totals) | set(projected), key=str):
            ledger_qty = Decimal(str(ledger_totals.get(material_id, 0)))
            projected_qty = Decimal(str(projected.get(material_id, 0)))
            if ledger_qty != projected_qty:
                drift.append(
                    ProjectionDrift(
                        material_id=material_id,
                        projected_qty=projected_qty,
                        ledger_qty=ledger_qty,
                    )
                )
        return drift
