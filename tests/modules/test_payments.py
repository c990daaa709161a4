"""
Tests for payment vouchers and purchase order payment status.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.domain.activity import ActivityAction
from supply_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidQuantityError,
    InvalidTransitionError,
    MissingFieldError,
    ReferenceNotFoundError,
    ValidationError,
)
from supply_modules.payments.config import PaymentConfig
from supply_modules.payments.orm import PaymentVoucherModel
from supply_modules.payments.service import PaymentService
from supply_modules.procurement.models import PurchaseOrderStatus

REFS = {"reference": "TRX-88120", "proof_ref": "blob://payments/trx-88120.pdf"}


@pytest.fixture
def substrate_order(received_order, substrate):
    """A received order for 100 bags of substrate at 5.00 (total 500)."""
    order, receipt = received_order((substrate, "100", None))
    assert order.total_amount == Decimal("500")
    return order, receipt


class TestRecordPayment:

    def test_partial_then_full(self, payment_service, procurement_service, substrate_order, admin):
        order, _ = substrate_order

        first = payment_service.record_payment(order.id, Decimal("300"), admin, **REFS)
        assert first.status == PurchaseOrderStatus.PARTIAL_PAID
        assert first.paid_to_date == Decimal("300")
        assert first.outstanding == Decimal("200")
        assert not first.is_fully_paid

        second = payment_service.record_payment(order.id, Decimal("200"), admin, **REFS)
        assert second.status == PurchaseOrderStatus.PAID
        assert second.outstanding == Decimal("0")
        assert second.is_fully_paid

        assert procurement_service.get_purchase_order(order.id).status == PurchaseOrderStatus.PAID
        assert payment_service.paid_to_date(order.id) == Decimal("500")
        assert [v.voucher_number for v in payment_service.list_vouchers(po_id=order.id)] == [
            "PV-000001",
            "PV-000002",
        ]

    def test_single_full_payment(self, payment_service, substrate_order, admin):
        order, _ = substrate_order
        result = payment_service.record_payment(order.id, Decimal("500"), admin, **REFS)
        assert result.status == PurchaseOrderStatus.PAID

    def test_overpayment_allowed_and_logged(
        self, payment_service, substrate_order, admin, captured_logs
    ):
        order, _ = substrate_order
        payment_service.record_payment(order.id, Decimal("500"), admin, **REFS)

        result = payment_service.record_payment(order.id, Decimal("25"), admin, **REFS)

        assert result.status == PurchaseOrderStatus.PAID
        assert result.outstanding == Decimal("-25")
        overpaid = [r for r in captured_logs() if r["message"] == "payments_order_overpaid"]
        assert overpaid and overpaid[-1]["level"] == "WARNING"

    def test_voucher_fields(self, payment_service, substrate_order, admin, deterministic_clock):
        order, receipt = substrate_order
        voucher = payment_service.record_payment(
            order.id, Decimal("100"), admin, method="Cash",
            goods_receipt_id=receipt.id, **REFS,
        ).voucher
        assert voucher.method == "Cash"
        assert voucher.reference == "TRX-88120"
        assert voucher.goods_receipt_id == receipt.id
        assert voucher.recorded_by_id == admin.id
        assert voucher.paid_at == deterministic_clock.now()

    def test_default_method(self, payment_service, substrate_order, admin):
        order, _ = substrate_order
        voucher = payment_service.record_payment(order.id, Decimal("1"), admin, **REFS).voucher
        assert voucher.method == "Bank Transfer"

    def test_unreceived_order_rejected(self, payment_service, issued_order, substrate, admin):
        order = issued_order((substrate, "10", None))
        with pytest.raises(InvalidTransitionError):
            payment_service.record_payment(order.id, Decimal("10"), admin, **REFS)
        assert payment_service.list_vouchers() == []

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_must_be_positive(self, payment_service, substrate_order, admin, amount):
        order, _ = substrate_order
        with pytest.raises(InvalidQuantityError):
            payment_service.record_payment(order.id, Decimal(amount), admin, **REFS)

    @pytest.mark.parametrize("missing", ["reference", "proof_ref"])
    def test_references_required(self, payment_service, substrate_order, admin, missing):
        order, _ = substrate_order
        refs = dict(REFS, **{missing: ""})
        with pytest.raises(MissingFieldError) as exc_info:
            payment_service.record_payment(order.id, Decimal("10"), admin, **refs)
        assert exc_info.value.field_name == missing

    def test_references_optional_when_configured(
        self, session, deterministic_clock, substrate_order, admin
    ):
        order, _ = substrate_order
        service = PaymentService(
            session,
            config=PaymentConfig(require_reference=False, require_proof_ref=False),
            clock=deterministic_clock,
        )
        result = service.record_payment(order.id, Decimal("10"), admin)
        assert result.voucher.reference == ""

    def test_receipt_must_belong_to_order(
        self, payment_service, substrate_order, received_order, rye, admin
    ):
        order, _ = substrate_order
        _, other_receipt = received_order((rye, "10", None))
        with pytest.raises(ValidationError):
            payment_service.record_payment(
                order.id, Decimal("10"), admin, goods_receipt_id=other_receipt.id, **REFS
            )

    def test_unknown_order(self, payment_service, admin):
        with pytest.raises(ReferenceNotFoundError):
            payment_service.record_payment(uuid4(), Decimal("10"), admin, **REFS)

    def test_event_published(self, payment_service, publisher, substrate_order, admin):
        order, _ = substrate_order
        payment_service.record_payment(order.id, Decimal("10"), admin, **REFS)
        last = publisher.recent(limit=1)[0]
        assert last.action == ActivityAction.PAYMENT_RECORDED
        assert last.entity_id == order.id


def test_paid_to_date_unknown_order(payment_service):
    with pytest.raises(ReferenceNotFoundError):
        payment_service.paid_to_date(uuid4())


def test_voucher_is_immutable(session, payment_service, substrate_order, admin):
    order, _ = substrate_order
    voucher = payment_service.record_payment(order.id, Decimal("10"), admin, **REFS).voucher
    row = session.get(PaymentVoucherModel, voucher.id)
    row.amount = Decimal("1")
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
    session.rollback()


def test_blank_default_method_rejected():
    with pytest.raises(ValueError):
        PaymentConfig(default_method=" ")
