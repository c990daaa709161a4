"""
Inventory Domain Models.

The cost rollup handed to the pricing collaborator.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class BatchMaterialCostLine:
    """Cost contributed by one material consumed by a batch."""
    material_id: UUID
    material_code: str
    net_quantity: Decimal  # signed net of the rolled-up movements
    consumed_qty: Decimal  # |net| when net < 0, else 0
    standard_cost: Decimal
    cost: Decimal


@dataclass(frozen=True)
class BatchMaterialCost:
    """Material cost of a batch at standard cost."""
    batch_id: UUID
    lines: tuple[BatchMaterialCostLine, ...] = field(default_factory=tuple)
    total: Decimal = Decimal("0")
