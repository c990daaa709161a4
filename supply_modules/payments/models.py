"""
Payment Domain Models.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from supply_modules.procurement.models import PurchaseOrderStatus


@dataclass(frozen=True)
class PaymentVoucher:
    """An immutable record of money paid against a purchase order."""
    id: UUID
    voucher_number: str
    purchase_order_id: UUID
    amount: Decimal
    method: str
    reference: str
    proof_ref: str
    paid_at: datetime
    recorded_by_id: UUID
    goods_receipt_id: UUID | None = None


@dataclass(frozen=True)
class PaymentResult:
    """
    Outcome of recording a payment.

    ``outstanding`` is negative when the order has been overpaid.
    """
    voucher: PaymentVoucher
    paid_to_date: Decimal
    outstanding: Decimal
    status: PurchaseOrderStatus

    @property
    def is_fully_paid(self) -> bool:
        return self.status == PurchaseOrderStatus.PAID
