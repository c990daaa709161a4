"""
Receiving Domain Models.

Goods receipt drafts (edited by the operator before save), saved goods
receipts, and the pending replacement view.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from supply_kernel.domain.dtos import LedgerEntry
from supply_kernel.exceptions import ReferenceNotFoundError
from supply_modules.receiving.helpers import redistribute


@dataclass
class ReceiptDraftLine:
    """One editable line of a receipt draft, seeded from a purchase order line."""
    line_index: int
    purchase_order_line_id: UUID
    material_id: UUID
    po_qty: Decimal
    accepted_qty: Decimal
    rejected_qty: Decimal = Decimal("0")


@dataclass
class ReceiptDraft:
    """
    A goods receipt being prepared for an ISSUED purchase order.

    Every edit keeps ``accepted_qty + rejected_qty == po_qty`` on the edited
    line: changing one side derives the other.
    """
    purchase_order_id: UUID
    po_number: str
    lines: list[ReceiptDraftLine] = field(default_factory=list)
    supplier_ref: str = ""
    proof_ref: str = ""
    clamp: bool = True

    def _line(self, index: int) -> ReceiptDraftLine:
        if not 0 <= index < len(self.lines):
            raise ReferenceNotFoundError("ReceiptDraftLine", f"{self.po_number}#{index}")
        return self.lines[index]

    def set_accepted(self, index: int, qty: Decimal) -> ReceiptDraftLine:
        line = self._line(index)
        line.accepted_qty, line.rejected_qty = redistribute(
            line.po_qty, qty, clamp=self.clamp, field_name="accepted_qty"
        )
        return line

    def set_rejected(self, index: int, qty: Decimal) -> ReceiptDraftLine:
        line = self._line(index)
        line.rejected_qty, line.accepted_qty = redistribute(
            line.po_qty, qty, clamp=self.clamp, field_name="rejected_qty"
        )
        return line

    @property
    def total_accepted(self) -> Decimal:
        return sum((line.accepted_qty for line in self.lines), Decimal("0"))

    @property
    def total_rejected(self) -> Decimal:
        return sum((line.rejected_qty for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class GoodsReceiptLine:
    """A saved receipt line."""
    id: UUID
    line_index: int
    material_id: UUID
    po_qty: Decimal
    accepted_qty: Decimal
    rejected_qty: Decimal
    replacement_received: bool = False
    replacement_confirmed_at: datetime | None = None

    @property
    def awaiting_replacement(self) -> bool:
        return self.rejected_qty > 0 and not self.replacement_received


@dataclass(frozen=True)
class GoodsReceipt:
    """A saved goods receipt note."""
    id: UUID
    grn_number: str
    purchase_order_id: UUID
    supplier_ref: str
    proof_ref: str
    received_at: datetime
    received_by_id: UUID
    lines: tuple[GoodsReceiptLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PendingReplacement:
    """A rejected quantity the vendor still owes."""
    receipt_id: UUID
    grn_number: str
    purchase_order_id: UUID
    line_index: int
    material_id: UUID
    rejected_qty: Decimal


@dataclass(frozen=True)
class ReplacementConfirmation:
    """Outcome of confirming a replacement delivery."""
    receipt_id: UUID
    line_index: int
    quantity: Decimal
    ledger_entry: LedgerEntry
