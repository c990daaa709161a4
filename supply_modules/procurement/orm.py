"""
SQLAlchemy ORM persistence models for the Procurement module.

Responsibility
--------------
Database-backed persistence for purchase requests (including stock
reservations), purchase orders and purchase order lines.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``ProcurementService``,
``ReceivingService`` and ``PaymentService``.  Inherits from ``TrackedBase``
(kernel db layer).

Invariants enforced
-------------------
* All quantities and amounts use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String for readability and portability.
* A purchase request is linked to at most one purchase order: the link is
  the single nullable ``purchase_order_id`` column.
* ``requested_qty >= 0`` and order line ``quantity > 0``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# PurchaseRequestModel
# ---------------------------------------------------------------------------


class PurchaseRequestModel(TrackedBase):
    """
    A purchase request or a stock reservation for one batch and material.

    Maps to the ``PurchaseRequest`` DTO in ``supply_modules.procurement.models``.

    Guarantees:
        - ``request_number`` is unique.
        - ``status`` follows PURCHASE_REQUEST_WORKFLOW; ``stock_allocated``
          rows are reservations and never change status.
    """

    __tablename__ = "purchase_requests"

    __table_args__ = (
        UniqueConstraint("request_number", name="uq_purchase_request_number"),
        CheckConstraint("requested_qty >= 0", name="ck_purchase_request_qty"),
        Index("idx_purchase_request_status", "status"),
        Index("idx_purchase_request_material_status", "material_id", "status"),
        Index("idx_purchase_request_batch", "batch_id"),
        Index("idx_purchase_request_order", "purchase_order_id"),
    )

    request_number: Mapped[str] = mapped_column(String(30), nullable=False)
    batch_id: Mapped[UUID] = mapped_column(ForeignKey("batches.id"), nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    requested_qty: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    requester_id: Mapped[UUID]
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False)
    requested_at: Mapped[datetime]
    admin_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    reviewed_by_id: Mapped[UUID | None]
    reviewed_at: Mapped[datetime | None]
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )

    def to_dto(self):
        from supply_modules.procurement.models import PurchaseRequest, PurchaseRequestStatus

        return PurchaseRequest(
            id=self.id,
            request_number=self.request_number,
            batch_id=self.batch_id,
            material_id=self.material_id,
            requested_qty=self.requested_qty,
            status=PurchaseRequestStatus(self.status),
            requester_id=self.requester_id,
            requester_name=self.requester_name,
            requested_at=self.requested_at,
            admin_notes=self.admin_notes,
            reviewed_by_id=self.reviewed_by_id,
            reviewed_at=self.reviewed_at,
            purchase_order_id=self.purchase_order_id,
        )

    def __repr__(self) -> str:
        return f"<PurchaseRequestModel {self.request_number} [{self.status}]>"


# ---------------------------------------------------------------------------
# PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order to one vendor, aggregating approved requests.

    Guarantees:
        - ``po_number`` is unique.
        - ``total_amount`` equals the sum of line totals (maintained by
          ProcurementService on every line change).
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_vendor", "vendor_id"),
        Index("idx_purchase_order_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(30), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(ForeignKey("vendors.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending_approval")
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    quotation_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    approved_by_id: Mapped[UUID | None]
    approved_at: Mapped[datetime | None]

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        "PurchaseOrderLineModel",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLineModel.line_number",
        lazy="selectin",
    )

    def to_dto(self):
        from supply_modules.procurement.models import PurchaseOrder, PurchaseOrderStatus

        line_dtos = tuple(line.to_dto() for line in self.lines)
        return PurchaseOrder(
            id=self.id,
            po_number=self.po_number,
            vendor_id=self.vendor_id,
            status=PurchaseOrderStatus(self.status),
            total_amount=self.total_amount,
            lines=line_dtos,
            request_ids=tuple(
                line.purchase_request_id
                for line in self.lines
                if line.purchase_request_id is not None
            ),
            quotation_ref=self.quotation_ref,
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


# ---------------------------------------------------------------------------
# PurchaseOrderLineModel
# ---------------------------------------------------------------------------


class PurchaseOrderLineModel(TrackedBase):
    """One material line on a purchase order, traced to its originating request."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint("purchase_order_id", "line_number", name="uq_po_line_number"),
        CheckConstraint("quantity > 0", name="ck_po_line_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_po_line_unit_price"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    purchase_request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_requests.id"), nullable=True
    )

    purchase_order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel", back_populates="lines"
    )

    def to_dto(self):
        from supply_modules.procurement.models import PurchaseOrderLine

        return PurchaseOrderLine(
            id=self.id,
            purchase_order_id=self.purchase_order_id,
            line_number=self.line_number,
            material_id=self.material_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_total=self.line_total,
            purchase_request_id=self.purchase_request_id,
        )
