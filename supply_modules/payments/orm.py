"""
SQLAlchemy ORM persistence model for payment vouchers.

Vouchers are written once and never changed: cumulative paid amount for
an order is always the sum of its vouchers.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase
from supply_kernel.db.immutability import AUDIT_FIELDS, protect


class PaymentVoucherModel(TrackedBase):
    """One payment against a purchase order."""

    __tablename__ = "payment_vouchers"

    __table_args__ = (
        UniqueConstraint("voucher_number", name="uq_payment_voucher_number"),
        CheckConstraint("amount > 0", name="ck_payment_voucher_amount"),
        Index("idx_payment_voucher_order", "purchase_order_id"),
    )

    voucher_number: Mapped[str] = mapped_column(String(30), nullable=False)
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    goods_receipt_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("goods_receipts.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    reference: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    proof_ref: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    paid_at: Mapped[datetime]
    recorded_by_id: Mapped[UUID]

    def to_dto(self):
        from supply_modules.payments.models import PaymentVoucher

        return PaymentVoucher(
            id=self.id,
            voucher_number=self.voucher_number,
            purchase_order_id=self.purchase_order_id,
            amount=self.amount,
            method=self.method,
            reference=self.reference,
            proof_ref=self.proof_ref,
            paid_at=self.paid_at,
            recorded_by_id=self.recorded_by_id,
            goods_receipt_id=self.goods_receipt_id,
        )

    def __repr__(self) -> str:
        return f"<PaymentVoucherModel {self.voucher_number} {self.amount}>"


protect(PaymentVoucherModel, "PaymentVoucher", AUDIT_FIELDS)
