"""Selectors for the supply kernel (read side)."""

from supply_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
