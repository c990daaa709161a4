"""
SQLAlchemy ORM persistence models for the Receiving module.

Responsibility
--------------
Persist saved goods receipt notes and their lines.

Invariants enforced
-------------------
* accepted_qty, rejected_qty and po_qty are non-negative.
* accepted_qty + rejected_qty = po_qty is checked by ReceivingService
  before insert (Numeric equality is not reliable as a CHECK on every
  backend).
* Saved receipts are immutable; on lines only ``replacement_received`` and
  ``replacement_confirmed_at`` may change (see db/immutability.py).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.immutability import AUDIT_FIELDS, protect


class GoodsReceiptModel(TrackedBase):
    """
    One delivery reconciled against a purchase order.

    Maps to the ``GoodsReceipt`` DTO in ``supply_modules.receiving.models``.
    """

    __tablename__ = "goods_receipts"

    __table_args__ = (
        UniqueConstraint("grn_number", name="uq_goods_receipt_number"),
        Index("idx_goods_receipt_order", "purchase_order_id"),
    )

    grn_number: Mapped[str] = mapped_column(String(30), nullable=False)
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    supplier_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    proof_ref: Mapped[str] = mapped_column(String(500), nullable=False)
    received_at: Mapped[datetime]
    received_by_id: Mapped[UUID]
    received_by_name: Mapped[str] = mapped_column(String(255), nullable=False)

    lines: Mapped[list["GoodsReceiptLineModel"]] = relationship(
        "GoodsReceiptLineModel",
        back_populates="receipt",
        order_by="GoodsReceiptLineModel.line_index",
        lazy="selectin",
    )

    def to_dto(self):
        from supply_modules.receiving.models import GoodsReceipt

        return GoodsReceipt(
            id=self.id,
            grn_number=self.grn_number,
            purchase_order_id=self.purchase_order_id,
            supplier_ref=self.supplier_ref,
            proof_ref=self.proof_ref,
            received_at=self.received_at,
            received_by_id=self.received_by_id,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<GoodsReceiptModel {self.grn_number}>"


class GoodsReceiptLineModel(TrackedBase):
    """Accepted/rejected split of one purchase order line."""

    __tablename__ = "goods_receipt_lines"

    __table_args__ = (
        UniqueConstraint("receipt_id", "line_index", name="uq_goods_receipt_line_index"),
        CheckConstraint("po_qty >= 0", name="ck_grn_line_po_qty"),
        CheckConstraint("accepted_qty >= 0", name="ck_grn_line_accepted"),
        CheckConstraint("rejected_qty >= 0", name="ck_grn_line_rejected"),
        Index("idx_grn_line_pending", "replacement_received"),
    )

    receipt_id: Mapped[UUID] = mapped_column(ForeignKey("goods_receipts.id"), nullable=False)
    line_index: Mapped[int] = mapped_column(nullable=False)
    purchase_order_line_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_order_lines.id"), nullable=False
    )
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    po_qty: Mapped[Decimal] = mapped_column(nullable=False)
    accepted_qty: Mapped[Decimal] = mapped_column(nullable=False)
    rejected_qty: Mapped[Decimal] = mapped_column(nullable=False)
    replacement_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    replacement_confirmed_at: Mapped[datetime | None]

    receipt: Mapped["GoodsReceiptModel"] = relationship(
        "GoodsReceiptModel", back_populates="lines"
    )

    def to_dto(self):
        from supply_modules.receiving.models import GoodsReceiptLine

        return GoodsReceiptLine(
            id=self.id,
            line_index=self.line_index,
            material_id=self.material_id,
            po_qty=self.po_qty,
            accepted_qty=self.accepted_qty,
            rejected_qty=self.rejected_qty,
            replacement_received=self.replacement_received,
            replacement_confirmed_at=self.replacement_confirmed_at,
        )


protect(GoodsReceiptModel, "GoodsReceipt", AUDIT_FIELDS)
protect(
    GoodsReceiptLineModel,
    "GoodsReceiptLine",
    AUDIT_FIELDS | {"replacement_received", "replacement_confirmed_at"},
)
