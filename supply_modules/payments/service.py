"""
Payments Module Service (``supply_modules.payments.service``).

Responsibility
--------------
Records payment vouchers against received purchase orders and keeps the
order's payment status in step with the cumulative amount paid.

Invariants enforced
-------------------
* Paid-to-date is always the sum of the order's vouchers; no running
  total is stored.
* The purchase order row is locked while its vouchers are summed, so two
  concurrent payments cannot both compute a stale total.
* Status is PAID when paid-to-date reaches the order total, otherwise
  PARTIAL_PAID.  Overpayment is accepted and reported as a negative
  outstanding amount.

Failure modes
-------------
* ``InvalidQuantityError``  -> amount is not positive.
* ``MissingFieldError``  -> reference or proof missing (per config).
* ``InvalidTransitionError``  -> order has not been received yet.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from supply_kernel.db.engine import transaction_boundary
from supply_kernel.domain.activity import ActivityAction, ActivityEvent
from supply_kernel.domain.actor import Actor
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import (
    InvalidQuantityError,
    MissingFieldError,
    ReferenceNotFoundError,
    ValidationError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.activity_publisher import ActivityPublisher
from supply_kernel.services.sequence_service import SequenceService
from supply_modules.payments.config import PaymentConfig
from supply_modules.payments.models import PaymentResult, PaymentVoucher
from supply_modules.payments.orm import PaymentVoucherModel
from supply_modules.procurement.models import PurchaseOrderStatus
from supply_modules.procurement.orm import PurchaseOrderModel
from supply_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW
from supply_modules.receiving.orm import GoodsReceiptModel

logger = get_logger("modules.payments.service")


class PaymentService:
    """Payment vouchers and purchase order payment status."""

    def __init__(
        self,
        session: Session,
        config: PaymentConfig | None = None,
        clock: Clock | None = None,
        publisher: ActivityPublisher | None = None,
    ):
        self._session = session
        self._config = config or PaymentConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._sequences = SequenceService(session)

    def _sum_vouchers(self, po_id: UUID) -> Decimal:
        total = self._session.execute(
            select(func.coalesce(func.sum(PaymentVoucherModel.amount), 0))
            .where(PaymentVoucherModel.purchase_order_id == po_id)
        ).scalar_one()
        return Decimal(str(total))

    def record_payment(
        self,
        po_id: UUID,
        amount: Decimal,
        actor: Actor,
        *,
        method: str | None = None,
        reference: str = "",
        proof_ref: str = "",
        goods_receipt_id: UUID | None = None,
    ) -> PaymentResult:
        """
        Append a voucher and recompute the order's payment status.

        The order must be RECEIVED, PARTIAL_PAID or PAID.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise InvalidQuantityError("amount", amount, "payment amount must be positive")
        reference = (reference or "").strip()
        proof_ref = (proof_ref or "").strip()
        if self._config.require_reference and not reference:
            raise MissingFieldError("reference", "record a payment")
        if self._config.require_proof_ref and not proof_ref:
            raise MissingFieldError("proof_ref", "record a payment")

        with LogContext.bind(actor_id=str(actor.id), operation="record_payment"):
            with transaction_boundary(self._session, "payments.record_payment"):
                order = self._session.execute(
                    select(PurchaseOrderModel)
                    .where(PurchaseOrderModel.id == po_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()
                if order is None:
                    raise ReferenceNotFoundError("PurchaseOrder", str(po_id))

                if goods_receipt_id is not None:
                    receipt = self._session.get(GoodsReceiptModel, goods_receipt_id)
                    if receipt is None:
                        raise ReferenceNotFoundError("GoodsReceipt", str(goods_receipt_id))
                    if receipt.purchase_order_id != order.id:
                        raise ValidationError(
                            f"{receipt.grn_number} does not belong to {order.po_number}"
                        )

                paid_to_date = self._sum_vouchers(order.id) + amount
                action = "pay_in_full" if paid_to_date >= order.total_amount else "pay_partial"
                transition = PURCHASE_ORDER_WORKFLOW.transition_for(
                    order.status, action, entity_id=str(order.id)
                )

                voucher = PaymentVoucherModel(
                    voucher_number=self._sequences.next_number(SequenceService.PAYMENT_VOUCHER),
                    purchase_order_id=order.id,
                    goods_receipt_id=goods_receipt_id,
                    amount=amount,
                    method=(method or self._config.default_method).strip(),
                    reference=reference,
                    proof_ref=proof_ref,
                    paid_at=self._clock.now(),
                    recorded_by_id=actor.id,
                    created_by_id=actor.id,
                )
                self._session.add(voucher)

                order.status = transition.to_state
                order.updated_by_id = actor.id
                self._session.flush()

                outstanding = order.total_amount - paid_to_date
                po_number = order.po_number
                result = PaymentResult(
                    voucher=voucher.to_dto(),
                    paid_to_date=paid_to_date,
                    outstanding=outstanding,
                    status=PurchaseOrderStatus(order.status),
                )

            if outstanding < 0:
                logger.warning(
                    "payments_order_overpaid",
                    extra={"po_id": str(po_id), "overpaid_by": str(-outstanding)},
                )
            logger.info(
                "payments_voucher_recorded",
                extra={
                    "voucher_number": result.voucher.voucher_number,
                    "po_id": str(po_id),
                    "po_number": po_number,
                    "amount": str(amount),
                    "paid_to_date": str(paid_to_date),
                    "status": result.status.value,
                },
            )

        if self._publisher is not None:
            self._publisher.publish(ActivityEvent(
                entity_id=po_id,
                entity_type="PurchaseOrder",
                actor_id=actor.id,
                actor_name=actor.name,
                action=ActivityAction.PAYMENT_RECORDED,
                details=(
                    f"{result.voucher.voucher_number}: paid {amount} against "
                    f"{po_number}, status {result.status.value}"
                ),
                timestamp=self._clock.now(),
                data={"voucher_id": str(result.voucher.id), "amount": amount},
            ))
        return result

    def paid_to_date(self, po_id: UUID) -> Decimal:
        if self._session.get(PurchaseOrderModel, po_id) is None:
            raise ReferenceNotFoundError("PurchaseOrder", str(po_id))
        return self._sum_vouchers(po_id)

    def list_vouchers(self, *, po_id: UUID | None = None) -> list[PaymentVoucher]:
        stmt = select(PaymentVoucherModel)
        if po_id is not None:
            stmt = stmt.where(PaymentVoucherModel.purchase_order_id == po_id)
        rows = self._session.execute(stmt.order_by(PaymentVoucherModel.voucher_number)).scalars()
        return [row.to_dto() for row in rows]
