"""
Procurement Domain Models.

The nouns of procurement: gap analyses, purchase requests (including
stock reservations) and purchase orders.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from supply_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.models")


class PurchaseRequestStatus(Enum):
    """Purchase request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ORDERED = "ordered"  # linked into a purchase order
    STOCK_ALLOCATED = "stock_allocated"  # reservation against existing stock


class PurchaseOrderStatus(Enum):
    """Purchase order lifecycle states."""
    PENDING_APPROVAL = "pending_approval"
    ISSUED = "issued"
    RECEIVED = "received"
    PARTIAL_PAID = "partial_paid"
    PAID = "paid"


@dataclass(frozen=True)
class Reservation:
    """Stock held back for one batch by a STOCK_ALLOCATED request."""
    request_id: UUID
    batch_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class GapAnalysis:
    """
    How much of a batch requirement existing stock can cover.

    ``available`` never goes below zero, even when reservations exceed
    physical stock.  ``deficit`` is the suggested purchase quantity.
    """
    batch_id: UUID
    material_id: UUID
    required_qty: Decimal
    physical_stock: Decimal
    reserved_qty: Decimal
    available_qty: Decimal
    deficit_qty: Decimal
    reservations: tuple[Reservation, ...] = field(default_factory=tuple)

    @property
    def suggested_request_qty(self) -> Decimal:
        return self.deficit_qty


@dataclass(frozen=True)
class RequestSplit:
    """Division of a requirement between purchase and reservation."""
    required_qty: Decimal
    to_buy: Decimal
    to_reserve: Decimal


@dataclass(frozen=True)
class PurchaseRequest:
    """A request to buy, or a reservation of existing stock."""
    id: UUID
    request_number: str
    batch_id: UUID
    material_id: UUID
    requested_qty: Decimal
    status: PurchaseRequestStatus
    requester_id: UUID
    requester_name: str
    requested_at: datetime
    admin_notes: str | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    purchase_order_id: UUID | None = None

    @property
    def is_reservation(self) -> bool:
        return self.status is PurchaseRequestStatus.STOCK_ALLOCATED


@dataclass(frozen=True)
class SubmitResult:
    """
    Outcome of submitting (or re-editing) a requirement.

    ``purchase_request`` is absent when the whole requirement was reserved
    from stock; ``superseded_request_id`` names an edited request that was
    removed for that reason.  ``released_reservation_ids`` lists the
    batch's earlier reservations for the material that an edit replaced.
    """
    split: RequestSplit
    purchase_request: PurchaseRequest | None = None
    reservation: PurchaseRequest | None = None
    superseded_request_id: UUID | None = None
    released_reservation_ids: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class PurchaseOrderLine:
    """A line item on a purchase order."""
    id: UUID
    purchase_order_id: UUID
    line_number: int
    material_id: UUID
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    purchase_request_id: UUID | None = None


@dataclass(frozen=True)
class PurchaseOrder:
    """A purchase order issued to one vendor."""
    id: UUID
    po_number: str
    vendor_id: UUID
    status: PurchaseOrderStatus
    total_amount: Decimal
    lines: tuple[PurchaseOrderLine, ...] = field(default_factory=tuple)
    request_ids: tuple[UUID, ...] = field(default_factory=tuple)
    quotation_ref: str | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class OrderLineEdit:
    """A change to one purchase order line; ``None`` leaves a value unchanged."""
    line_number: int
    quantity: Decimal | None = None
    unit_price: Decimal | None = None

    def __post_init__(self):
        if self.quantity is None and self.unit_price is None:
            logger.warning(
                "order_line_edit_empty",
                extra={"line_number": self.line_number},
            )
