"""
Immutability of the inventory ledger.

Ledger entries are append-only: the ORM listeners refuse any UPDATE or
DELETE once the row exists.
"""

from decimal import Decimal

import pytest

from supply_kernel.db.immutability import (
    protected_entities,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from supply_kernel.domain.dtos import MovementType
from supply_kernel.exceptions import ImmutabilityViolationError
from supply_kernel.models.ledger import InventoryLedgerEntry
from supply_kernel.services.ledger_service import LedgerService


@pytest.fixture
def posted_entry(session, deterministic_clock, rye, worker):
    entry = LedgerService(session, clock=deterministic_clock).post(
        rye.id, Decimal("10"), MovementType.INITIAL, worker
    )
    session.commit()
    return session.get(InventoryLedgerEntry, entry.id)


def test_protected_entities_registered(engine):
    assert set(protected_entities()) >= {
        "InventoryLedgerEntry",
        "GoodsReceipt",
        "GoodsReceiptLine",
        "PaymentVoucher",
    }


def test_update_blocked(session, posted_entry):
    posted_entry.quantity_change = Decimal("1000")
    with pytest.raises(ImmutabilityViolationError) as exc_info:
        session.flush()
    assert exc_info.value.entity_type == "InventoryLedgerEntry"
    session.rollback()


def test_delete_blocked(session, posted_entry):
    session.delete(posted_entry)
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
    session.rollback()


def test_violation_logged(session, posted_entry, captured_logs):
    posted_entry.reason = "rewritten"
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
    session.rollback()
    blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
    assert blocked[0]["field"] == "reason"
    assert blocked[0]["operation"] == "UPDATE"


def test_unregister_allows_correction(session, posted_entry):
    unregister_immutability_listeners()
    try:
        posted_entry.reason = "test-only correction"
        session.commit()
    finally:
        register_immutability_listeners()
    assert session.get(InventoryLedgerEntry, posted_entry.id).reason == "test-only correction"
