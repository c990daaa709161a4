"""
Inventory Module (``supply_modules.inventory``).

Opening stock, count adjustments, batch consumption and the batch
material cost rollup, all posted through the kernel inventory ledger.
"""

from supply_modules.inventory.config import InventoryConfig
from supply_modules.inventory.models import BatchMaterialCost, BatchMaterialCostLine
from supply_modules.inventory.service import InventoryService

__all__ = [
    "BatchMaterialCost",
    "BatchMaterialCostLine",
    "InventoryConfig",
    "InventoryService",
]
