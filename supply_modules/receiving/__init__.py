"""
Receiving Module (``supply_modules.receiving``).

Responsibility
--------------
Goods receipt reconciliation: accepted/rejected split per purchase order
line, PROCUREMENT postings for accepted stock and the replacement loop
for rejected quantities.

Invariants enforced
-------------------
* accepted + rejected = ordered on every draft edit and every saved line.
* A replacement is posted at most once per receipt line.
"""

from supply_modules.receiving.config import ReceivingConfig
from supply_modules.receiving.models import (
    GoodsReceipt,
    GoodsReceiptLine,
    PendingReplacement,
    ReceiptDraft,
    ReceiptDraftLine,
    ReplacementConfirmation,
)
from supply_modules.receiving.service import ReceivingService

__all__ = [
    "GoodsReceipt",
    "GoodsReceiptLine",
    "PendingReplacement",
    "ReceiptDraft",
    "ReceiptDraftLine",
    "ReplacementConfirmation",
    "ReceivingService",
    "ReceivingConfig",
]
