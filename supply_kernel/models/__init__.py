"""ORM models owned by the supply kernel."""

from supply_kernel.models.ledger import InventoryLedgerEntry, MaterialStock
from supply_kernel.models.reference import Batch, BatchRecipeLine, Material, Vendor

__all__ = [
    "Batch",
    "BatchRecipeLine",
    "InventoryLedgerEntry",
    "Material",
    "MaterialStock",
    "Vendor",
]
