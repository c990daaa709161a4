"""
Kernel DTOs -- frozen values returned by kernel services and selectors.

ORM instances never leave a service; callers receive these instead.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class MovementType(Enum):
    """Why an inventory ledger entry was posted."""
    PROCUREMENT = "procurement"
    CONSUMPTION = "consumption"
    ADJUSTMENT = "adjustment"
    INITIAL = "initial"
    REPLACEMENT = "replacement"


class ProductionStage(Enum):
    """Production stage a batch consumption is attributed to."""
    CULTURE = "culture"
    SPAWN = "spawn"
    SUBSTRATE = "substrate"
    INOCULATION = "inoculation"
    INCUBATION = "incubation"
    FRUITING = "fruiting"
    HARVEST = "harvest"


@dataclass(frozen=True)
class MaterialInfo:
    """Master data view of a material."""
    id: UUID
    material_code: str
    name: str
    uom: str
    standard_cost: Decimal
    category: str | None = None
    default_vendor_id: UUID | None = None


@dataclass(frozen=True)
class VendorInfo:
    id: UUID
    vendor_code: str
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    payment_terms: str | None = None


@dataclass(frozen=True)
class BatchInfo:
    id: UUID
    batch_code: str
    species: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class BatchRequirement:
    """How much of one material a batch needs, as supplied by the recipe owner."""
    batch_id: UUID
    material_id: UUID
    required_qty: Decimal


@dataclass(frozen=True)
class LedgerEntry:
    """One immutable inventory movement."""
    id: UUID
    seq: int
    material_id: UUID
    quantity_change: Decimal
    movement_type: MovementType
    performed_by_id: UUID
    performed_by_name: str
    occurred_at: datetime
    batch_id: UUID | None = None
    order_id: UUID | None = None
    receipt_id: UUID | None = None
    stage: ProductionStage | None = None
    reason: str | None = None


@dataclass(frozen=True)
class StockLevel:
    """Projection row: cached quantity on hand for one material."""
    material_id: UUID
    quantity_on_hand: Decimal
    last_entry_seq: int


@dataclass(frozen=True)
class ProjectionDrift:
    """A material whose cached quantity disagrees with its ledger sum."""
    material_id: UUID
    projected_qty: Decimal
    ledger_qty: Decimal

    @property
    def difference(self) -> Decimal:
        return self.projected_qty - self.ledger_qty
