"""
Module: supply_kernel.models.ledger
Responsibility: ORM persistence for the append-only inventory ledger and its
    derived per-material stock projection.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - For any material, quantity on hand = SUM(quantity_change) over its
      ledger entries.  The ledger is the only authority.
    - Ledger entries are never updated or deleted (ORM listeners, see
      db/immutability.py).
    - quantity_change is non-zero (ck_ledger_nonzero_change).
    - seq is unique and strictly increasing in posting order.
    - MaterialStock is a cache.  It may be rebuilt from the ledger at any
      time and is updated only by LedgerService with an atomic increment.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE of a ledger entry.
    - IntegrityError on duplicate seq or a zero quantity_change.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base, TrackedBase, UUIDString
from supply_kernel.db.immutability import protect


class InventoryLedgerEntry(TrackedBase):
    """
    One signed movement of stock for one material.

    Contract:
        Written once by LedgerService.post() and never touched again.
        order_id and receipt_id are opaque document references; the kernel
        does not know the tables they live in.

    Guarantees:
        - movement_type is a MovementType value.
        - stage is a ProductionStage value when set.
        - performed_by_name is a snapshot of the actor's name at posting time.
    """

    __tablename__ = "inventory_ledger_entries"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_ledger_seq"),
        CheckConstraint("quantity_change <> 0", name="ck_ledger_nonzero_change"),
        Index("idx_ledger_material", "material_id"),
        Index("idx_ledger_batch", "batch_id"),
        Index("idx_ledger_order", "order_id"),
        Index("idx_ledger_movement_type", "movement_type"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    quantity_change: Mapped[Decimal] = mapped_column(nullable=False)
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    batch_id: Mapped[UUID | None] = mapped_column(ForeignKey("batches.id"), nullable=True)
    order_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    receipt_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    stage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    performed_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    performed_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self):
        from supply_kernel.domain.dtos import LedgerEntry, MovementType, ProductionStage

        return LedgerEntry(
            id=self.id,
            seq=self.seq,
            material_id=self.material_id,
            quantity_change=self.quantity_change,
            movement_type=MovementType(self.movement_type),
            performed_by_id=self.performed_by_id,
            performed_by_name=self.performed_by_name,
            occurred_at=self.occurred_at,
            batch_id=self.batch_id,
            order_id=self.order_id,
            receipt_id=self.receipt_id,
            stage=ProductionStage(self.stage) if self.stage else None,
            reason=self.reason,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryLedgerEntry #{self.seq} {self.movement_type} "
            f"{self.quantity_change}>"
        )


protect(InventoryLedgerEntry, "InventoryLedgerEntry")


class MaterialStock(Base):
    """
    Cached quantity on hand for one material.

    Guarantees:
        - One row per material (uq_material_stock_material).
        - last_entry_seq is the seq of the newest entry folded into the row.
    """

    __tablename__ = "material_stock"

    __table_args__ = (
        UniqueConstraint("material_id", name="uq_material_stock_material"),
    )

    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    quantity_on_hand: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    last_entry_seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def to_dto(self):
        from supply_kernel.domain.dtos import StockLevel

        return StockLevel(
            material_id=self.material_id,
            quantity_on_hand=self.quantity_on_hand,
            last_entry_seq=self.last_entry_seq,
        )
