"""
Module-level fixtures: one service per module sharing the test session,
clock and publisher, plus builders for orders in a given state.
"""

from decimal import Decimal

import pytest

from supply_modules.inventory.service import InventoryService
from supply_modules.payments.service import PaymentService
from supply_modules.procurement.models import OrderLineEdit
from supply_modules.procurement.service import ProcurementService
from supply_modules.receiving.service import ReceivingService


@pytest.fixture
def procurement_service(session, deterministic_clock, publisher):
    return ProcurementService(session, clock=deterministic_clock, publisher=publisher)


@pytest.fixture
def receiving_service(session, deterministic_clock, publisher):
    return ReceivingService(session, clock=deterministic_clock, publisher=publisher)


@pytest.fixture
def payment_service(session, deterministic_clock, publisher):
    return PaymentService(session, clock=deterministic_clock, publisher=publisher)


@pytest.fixture
def inventory_service(session, deterministic_clock, publisher):
    return InventoryService(session, clock=deterministic_clock, publisher=publisher)


@pytest.fixture
def approved_request(procurement_service, batch, worker, admin):
    """Build an APPROVED purchase request for ``qty`` of a material."""

    def _make(material, qty):
        qty = Decimal(qty)
        submitted = procurement_service.submit_request(
            batch.id, material.id, qty, worker, required_qty=qty
        )
        return procurement_service.review_request(
            submitted.purchase_request.id, True, admin
        )

    return _make


@pytest.fixture
def issued_order(procurement_service, approved_request, vendor, admin):
    """Build an ISSUED purchase order with one line per (material, qty, unit_price)."""

    def _make(*lines):
        requests = [approved_request(material, qty) for material, qty, _ in lines]
        order = procurement_service.create_purchase_order(
            [r.id for r in requests], vendor.id, admin, quotation_ref="QT-2024-17"
        )
        edits = [
            OrderLineEdit(line_number=number, unit_price=Decimal(price))
            for number, (_, _, price) in enumerate(lines, start=1)
            if price is not None
        ]
        if edits:
            procurement_service.update_purchase_order(order.id, admin, line_edits=edits)
        return procurement_service.approve_purchase_order(order.id, admin)

    return _make


@pytest.fixture
def received_order(issued_order, receiving_service, admin):
    """Build a RECEIVED order; ``rejected`` maps line index to rejected qty."""

    def _make(*lines, rejected=None):
        order = issued_order(*lines)
        draft = receiving_service.open_receipt(order.id)
        for index, qty in (rejected or {}).items():
            draft.set_rejected(index, Decimal(qty))
        draft.supplier_ref = "DN-5512"
        draft.proof_ref = "blob://receipts/dn-5512.jpg"
        receipt = receiving_service.save_receipt(draft, admin)
        return order, receipt

    return _make
