"""
Tests for Procurement Helper Pure Functions.

Validates compute_gap and split_request.
All tests are pure -- no database, no session.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from supply_kernel.exceptions import InvalidQuantityError
from supply_modules.procurement.helpers import compute_gap, line_total, split_request

# =============================================================================
# Gap analysis
# =============================================================================


class TestComputeGap:

    def test_no_stock_whole_requirement_is_deficit(self):
        available, deficit = compute_gap(Decimal("0"), Decimal("0"), Decimal("50"))
        assert available == Decimal("0")
        assert deficit == Decimal("50")

    def test_stock_covers_requirement(self):
        available, deficit = compute_gap(Decimal("80"), Decimal("10"), Decimal("50"))
        assert available == Decimal("70")
        assert deficit == Decimal("0")

    def test_partial_cover(self):
        available, deficit = compute_gap(Decimal("30"), Decimal("10"), Decimal("50"))
        assert available == Decimal("20")
        assert deficit == Decimal("30")

    def test_available_floored_when_over_reserved(self):
        available, deficit = compute_gap(Decimal("20"), Decimal("35"), Decimal("10"))
        assert available == Decimal("0")
        assert deficit == Decimal("10")

    def test_negative_physical_stock(self):
        available, deficit = compute_gap(Decimal("-5"), Decimal("0"), Decimal("10"))
        assert available == Decimal("0")
        assert deficit == Decimal("10")

    @pytest.mark.parametrize("physical", ["0", "7.5", "40", "100"])
    @pytest.mark.parametrize("reserved", ["0", "12", "60"])
    def test_available_never_negative(self, physical, reserved):
        available, deficit = compute_gap(Decimal(physical), Decimal(reserved), Decimal("25"))
        assert available >= 0
        assert deficit >= 0
        assert deficit == max(Decimal("0"), Decimal("25") - available)


# =============================================================================
# Buy / reserve split
# =============================================================================


class TestSplitRequest:

    def test_buy_part_reserve_rest(self):
        split = split_request(Decimal("50"), Decimal("30"))
        assert split.to_buy == Decimal("30")
        assert split.to_reserve == Decimal("20")

    def test_buy_everything(self):
        split = split_request(Decimal("50"), Decimal("50"))
        assert split.to_buy == Decimal("50")
        assert split.to_reserve == Decimal("0")

    def test_reserve_everything(self):
        split = split_request(Decimal("50"), Decimal("0"))
        assert split.to_buy == Decimal("0")
        assert split.to_reserve == Decimal("50")

    @pytest.mark.parametrize("request_qty", ["0", "0.5", "12", "49.999", "50"])
    def test_split_is_complete(self, request_qty):
        split = split_request(Decimal("50"), Decimal(request_qty))
        assert split.to_buy + split.to_reserve == split.required_qty

    def test_request_above_requirement_rejected(self):
        with pytest.raises(InvalidQuantityError) as exc_info:
            split_request(Decimal("50"), Decimal("60"))
        assert exc_info.value.field_name == "request_qty"

    def test_negative_request_rejected(self):
        with pytest.raises(InvalidQuantityError):
            split_request(Decimal("50"), Decimal("-1"))

    def test_negative_requirement_rejected(self):
        with pytest.raises(InvalidQuantityError):
            split_request(Decimal("-1"), Decimal("0"))


def test_line_total():
    assert line_total(Decimal("100"), Decimal("2.50")) == Decimal("250.00")
