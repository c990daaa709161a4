"""
Receiving helpers -- pure accepted/rejected arithmetic.
"""

from decimal import Decimal

from supply_kernel.exceptions import InvalidQuantityError, QuantityMismatchError

ZERO = Decimal("0")


def redistribute(po_qty: Decimal, value: Decimal, *, clamp: bool, field_name: str) -> tuple[Decimal, Decimal]:
    """
    Return ``(edited, derived)`` so that ``edited + derived == po_qty``.

    With ``clamp`` the edited value is forced into [0, po_qty]; without it
    an out-of-range value raises InvalidQuantityError.
    """
    value = Decimal(value)
    if clamp:
        value = min(max(value, ZERO), po_qty)
    elif value < 0 or value > po_qty:
        raise InvalidQuantityError(field_name, value, f"must be between 0 and {po_qty}")
    return value, po_qty - value


def check_line(line_index: int, po_qty: Decimal, accepted: Decimal, rejected: Decimal) -> None:
    """
    Validate one receipt line before it is saved.

    Raises:
        InvalidQuantityError: a negative quantity.
        QuantityMismatchError: accepted + rejected differs from po_qty.
    """
    if accepted < 0:
        raise InvalidQuantityError("accepted_qty", accepted, f"line {line_index} is negative")
    if rejected < 0:
        raise InvalidQuantityError("rejected_qty", rejected, f"line {line_index} is negative")
    if accepted + rejected != po_qty:
        raise QuantityMismatchError(line_index, po_qty, accepted, rejected)
