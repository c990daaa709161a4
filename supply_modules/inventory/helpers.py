"""
Pure helper functions for inventory calculations.

No I/O; callers pass ledger rows already loaded.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from supply_kernel.domain.dtos import LedgerEntry

ZERO = Decimal("0")


def net_by_material(entries: Iterable[LedgerEntry]) -> dict[UUID, Decimal]:
    """Signed sum of quantity_change per material."""
    totals: dict[UUID, Decimal] = {}
    for entry in entries:
        totals[entry.material_id] = totals.get(entry.material_id, ZERO) + entry.quantity_change
    return totals


def consumed_quantity(net_quantity: Decimal) -> Decimal:
    """
    Quantity actually used up by a batch.

    A reverted consumption nets to zero and a net return of stock
    contributes nothing.
    """
    return -net_quantity if net_quantity < 0 else ZERO


def adjustment_delta(current_qty: Decimal, counted_qty: Decimal) -> Decimal:
    """Delta that brings quantity on hand to a physical count."""
    return Decimal(counted_qty) - Decimal(current_qty)
