"""
Procurement helpers -- pure quantity arithmetic.

No I/O.  Used by ProcurementService for gap analysis and for splitting a
requirement between a purchase request and a stock reservation.
"""

from decimal import Decimal

from supply_kernel.exceptions import InvalidQuantityError
from supply_modules.procurement.models import RequestSplit

ZERO = Decimal("0")


def compute_gap(
    physical_stock: Decimal,
    reserved_qty: Decimal,
    required_qty: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    Return ``(available, deficit)`` for a requirement.

    available = max(0, physical - reserved)
    deficit   = max(0, required - available)

    Physical stock may be negative (the ledger allows it); available is
    still floored at zero.
    """
    available = max(ZERO, physical_stock - reserved_qty)
    deficit = max(ZERO, required_qty - available)
    return available, deficit


def split_request(required_qty: Decimal, request_qty: Decimal) -> RequestSplit:
    """
    Split a requirement into the quantity to buy and the quantity to reserve.

    The operator asks to buy ``request_qty``; whatever part of the
    requirement is not being bought is reserved from stock.

    Raises:
        InvalidQuantityError: unless 0 <= request_qty <= required_qty.
    """
    if required_qty < 0:
        raise InvalidQuantityError("required_qty", required_qty, "must not be negative")
    if request_qty < 0:
        raise InvalidQuantityError("request_qty", request_qty, "must not be negative")
    if request_qty > required_qty:
        raise InvalidQuantityError(
            "request_qty",
            request_qty,
            f"exceeds the required quantity {required_qty}",
        )
    return RequestSplit(
        required_qty=required_qty,
        to_buy=request_qty,
        to_reserve=max(ZERO, required_qty - request_qty),
    )


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return quantity * unit_price
