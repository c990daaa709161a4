"""
Procurement Module Service (``supply_modules.procurement.service``).

Responsibility
--------------
Orchestrates the front half of the supply flow: gap analysis for a batch
requirement, the purchase request workflow (including stock reservations)
and aggregation of approved requests into vendor purchase orders.

Architecture position
---------------------
**Modules layer** -- ``ProcurementService`` is the sole public entry point
for procurement operations.  It reads stock through the kernel
``LedgerSelector`` and numbers documents through ``SequenceService``.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary
  (``transaction_boundary``: commit on success, rollback on exception).
* The buy/reserve split of ``submit_request`` is atomic: both requests
  exist after commit or neither does.
* Reservations never double-count stock: a request being edited is
  excluded from the reserved total, an edit releases the batch's earlier
  reservations for the material before re-splitting, and available is
  floored at zero.
* Request and order status changes go through the declared workflows.
* A request is linked to at most one purchase order.

Failure modes
-------------
* ``ValidationError`` subclasses  -> rejected before any mutation.
* ``StateConflictError`` subclasses  -> rejected, session rolled back.
* ``ReferenceNotFoundError``  -> unknown batch, material, vendor, request
  or order.
* ``RoleNotPermittedError``  -> elevated role required.

Audit relevance
---------------
Structured log events are emitted for every mutation and an
``ActivityEvent`` is published after each commit.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.engine import transaction_boundary
from supply_kernel.domain.activity import ActivityAction, ActivityEvent
from supply_kernel.domain.actor import Actor
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import (
    InvalidQuantityError,
    MissingFieldError,
    ReferenceNotFoundError,
    RequestAlreadyLinkedError,
    RoleNotPermittedError,
    StateConflictError,
    ValidationError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.models.reference import Batch, BatchRecipeLine, Material, Vendor
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.activity_publisher import ActivityPublisher
from supply_kernel.services.sequence_service import SequenceService
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.procurement.helpers import compute_gap, line_total, split_request
from supply_modules.procurement.models import (
    GapAnalysis,
    OrderLineEdit,
    PurchaseOrder,
    PurchaseOrderStatus,
    PurchaseRequest,
    PurchaseRequestStatus,
    Reservation,
    SubmitResult,
)
from supply_modules.procurement.orm import (
    PurchaseOrderLineModel,
    PurchaseOrderModel,
    PurchaseRequestModel,
)
from supply_modules.procurement.workflows import (
    DELETABLE_REQUEST_STATES,
    PURCHASE_ORDER_WORKFLOW,
    PURCHASE_REQUEST_WORKFLOW,
)

logger = get_logger("modules.procurement.service")


class ProcurementService:
    """
    Orchestrates gap analysis, purchase requests and purchase orders.

    Contract
    --------
    * Mutating methods take the acting ``Actor`` and return frozen DTOs.
    * Read methods never open a transaction of their own.

    Guarantees
    ----------
    * Session is committed only when the whole operation succeeds.
    * Activity events are published only after commit.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        config: ProcurementConfig | None = None,
        clock: Clock | None = None,
        publisher: ActivityPublisher | None = None,
    ):
        self._session = session
        self._config = config or ProcurementConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._ledger = LedgerSelector(session)
        self._sequences = SequenceService(session)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _get(self, model, entity_type: str, entity_id: UUID):
        instance = self._session.get(model, entity_id)
        if instance is None:
            raise ReferenceNotFoundError(entity_type, str(entity_id))
        return instance

    def _locked_request(self, request_id: UUID) -> PurchaseRequestModel:
        request = self._session.execute(
            select(PurchaseRequestModel)
            .where(PurchaseRequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if request is None:
            raise ReferenceNotFoundError("PurchaseRequest", str(request_id))
        return request

    def _locked_order(self, po_id: UUID) -> PurchaseOrderModel:
        order = self._session.execute(
            select(PurchaseOrderModel)
            .where(PurchaseOrderModel.id == po_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise ReferenceNotFoundError("PurchaseOrder", str(po_id))
        return order

    def _is_elevated(self, actor: Actor) -> bool:
        return actor.has_role_in(self._config.elevated_roles)

    def _require_elevated(self, actor: Actor, action: str) -> None:
        if not self._is_elevated(actor):
            logger.warning(
                "procurement_role_not_permitted",
                extra={"actor_id": str(actor.id), "role": actor.role.value, "action": action},
            )
            raise RoleNotPermittedError(str(actor.id), actor.role.value, action)

    def _event(
        self,
        entity_id: UUID,
        entity_type: str,
        actor: Actor,
        action: ActivityAction,
        details: str,
        **data,
    ) -> ActivityEvent:
        return ActivityEvent(
            entity_id=entity_id,
            entity_type=entity_type,
            actor_id=actor.id,
            actor_name=actor.name,
            action=action,
            details=details,
            timestamp=self._clock.now(),
            data=data,
        )

    def _publish(self, events: Sequence[ActivityEvent]) -> None:
        if self._publisher is not None:
            self._publisher.publish_all(events)

    def _required_qty(self, batch_id: UUID, material_id: UUID) -> Decimal:
        """Recipe requirement for the pair; zero when the material is not on the recipe."""
        required = self._session.execute(
            select(BatchRecipeLine.required_qty).where(
                BatchRecipeLine.batch_id == batch_id,
                BatchRecipeLine.material_id == material_id,
            )
        ).scalar_one_or_none()
        return Decimal(required) if required is not None else Decimal("0")

    def _reservations(
        self, material_id: UUID, exclude_request_id: UUID | None
    ) -> tuple[Reservation, ...]:
        stmt = select(PurchaseRequestModel).where(
            PurchaseRequestModel.material_id == material_id,
            PurchaseRequestModel.status == PurchaseRequestStatus.STOCK_ALLOCATED.value,
        )
        if exclude_request_id is not None:
            stmt = stmt.where(PurchaseRequestModel.id != exclude_request_id)
        rows = self._session.execute(
            stmt.order_by(PurchaseRequestModel.request_number)
        ).scalars()
        return tuple(
            Reservation(request_id=r.id, batch_id=r.batch_id, quantity=r.requested_qty)
            for r in rows
        )

    def _release_reservations(
        self, batch_id: UUID, material_id: UUID
    ) -> list[PurchaseRequestModel]:
        """Lock and delete the batch's STOCK_ALLOCATED requests for the material."""
        rows = self._session.execute(
            select(PurchaseRequestModel)
            .where(
                PurchaseRequestModel.batch_id == batch_id,
                PurchaseRequestModel.material_id == material_id,
                PurchaseRequestModel.status == PurchaseRequestStatus.STOCK_ALLOCATED.value,
            )
            .order_by(PurchaseRequestModel.request_number)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        for row in rows:
            self._session.delete(row)
        self._session.flush()
        return list(rows)

    def _new_request(
        self,
        *,
        batch_id: UUID,
        material_id: UUID,
        quantity: Decimal,
        status: PurchaseRequestStatus,
        actor: Actor,
        notes: str | None = None,
    ) -> PurchaseRequestModel:
        sequence = (
            SequenceService.RESERVATION
            if status is PurchaseRequestStatus.STOCK_ALLOCATED
            else SequenceService.PURCHASE_REQUEST
        )
        request = PurchaseRequestModel(
            request_number=self._sequences.next_number(sequence),
            batch_id=batch_id,
            material_id=material_id,
            requested_qty=quantity,
            status=status.value,
            requester_id=actor.id,
            requester_name=actor.name,
            requested_at=self._clock.now(),
            admin_notes=notes,
            created_by_id=actor.id,
        )
        self._session.add(request)
        return request

    # =========================================================================
    # Gap analysis
    # =========================================================================

    def analyze_gap(
        self,
        batch_id: UUID,
        material_id: UUID,
        *,
        required_qty: Decimal | None = None,
        exclude_request_id: UUID | None = None,
    ) -> GapAnalysis:
        """
        Compare a batch requirement with physical, reserved and available stock.

        ``required_qty`` defaults to the batch recipe line.  The request named
        by ``exclude_request_id`` (the one being edited) does not count as
        reserved.
        """
        self._get(Batch, "Batch", batch_id)
        self._get(Material, "Material", material_id)

        required = (
            Decimal(required_qty)
            if required_qty is not None
            else self._required_qty(batch_id, material_id)
        )
        physical = self._ledger.quantity_on_hand(material_id)
        reservations = self._reservations(material_id, exclude_request_id)
        reserved = sum((r.quantity for r in reservations), Decimal("0"))
        available, deficit = compute_gap(physical, reserved, required)

        logger.debug(
            "procurement_gap_analyzed",
            extra={
                "batch_id": str(batch_id),
                "material_id": str(material_id),
                "required_qty": str(required),
                "physical_stock": str(physical),
                "reserved_qty": str(reserved),
                "available_qty": str(available),
                "deficit_qty": str(deficit),
            },
        )
        return GapAnalysis(
            batch_id=batch_id,
            material_id=material_id,
            required_qty=required,
            physical_stock=physical,
            reserved_qty=reserved,
            available_qty=available,
            deficit_qty=deficit,
            reservations=reservations,
        )

    # =========================================================================
    # Purchase requests
    # =========================================================================

    def submit_request(
        self,
        batch_id: UUID,
        material_id: UUID,
        request_qty: Decimal,
        actor: Actor,
        *,
        required_qty: Decimal | None = None,
        editing_request_id: UUID | None = None,
    ) -> SubmitResult:
        """
        Submit a batch requirement, buying ``request_qty`` and reserving the rest.

        A PENDING request is created (or the edited request updated back to
        PENDING) for the quantity to buy whenever that is positive or nothing
        needs reserving.  A STOCK_ALLOCATED request is created for any
        remainder.  When an edit leaves nothing to buy and a reservation
        covers the requirement, the edited request is superseded and removed.
        An edit first releases the batch's existing reservations for the
        material, so the new split never reserves on top of the old one.
        """
        request_qty = Decimal(request_qty)
        events: list[ActivityEvent] = []

        with LogContext.bind(actor_id=str(actor.id), operation="submit_request"):
            with transaction_boundary(self._session, "procurement.submit_request"):
                self._get(Batch, "Batch", batch_id)
                material = self._get(Material, "Material", material_id)

                required = (
                    Decimal(required_qty)
                    if required_qty is not None
                    else self._required_qty(batch_id, material_id)
                )
                split = split_request(required, request_qty)

                editing = None
                released: list[PurchaseRequestModel] = []
                if editing_request_id is not None:
                    editing = self._locked_request(editing_request_id)
                    PURCHASE_REQUEST_WORKFLOW.transition_for(
                        editing.status, "edit", entity_id=str(editing.id)
                    )
                    # The edit re-splits the whole requirement
                    released = self._release_reservations(editing.batch_id, editing.material_id)
                    for row in released:
                        events.append(self._event(
                            row.id, "PurchaseRequest", actor, ActivityAction.PR_DELETED,
                            f"{row.request_number}: reservation released by edit of "
                            f"{editing.request_number}",
                            released_qty=row.requested_qty,
                        ))

                logger.info(
                    "procurement_request_submit_started",
                    extra={
                        "batch_id": str(batch_id),
                        "material_id": str(material_id),
                        "required_qty": str(required),
                        "to_buy": str(split.to_buy),
                        "to_reserve": str(split.to_reserve),
                        "editing_request_id": str(editing_request_id) if editing_request_id else None,
                    },
                )

                purchase = None
                superseded_id = None
                if split.to_buy > 0 or split.to_reserve == 0:
                    if editing is not None:
                        editing.batch_id = batch_id
                        editing.material_id = material_id
                        editing.requested_qty = split.to_buy
                        editing.status = PurchaseRequestStatus.PENDING.value
                        editing.reviewed_by_id = None
                        editing.reviewed_at = None
                        editing.updated_by_id = actor.id
                        purchase = editing
                        action = ActivityAction.PR_UPDATED
                    else:
                        purchase = self._new_request(
                            batch_id=batch_id,
                            material_id=material_id,
                            quantity=split.to_buy,
                            status=PurchaseRequestStatus.PENDING,
                            actor=actor,
                        )
                        action = ActivityAction.PR_CREATED
                    self._session.flush()
                    events.append(self._event(
                        purchase.id, "PurchaseRequest", actor, action,
                        f"{purchase.request_number}: request {split.to_buy} {material.uom} "
                        f"of {material.name}",
                        quantity=split.to_buy,
                    ))
                elif editing is not None:
                    superseded_id = editing.id
                    events.append(self._event(
                        editing.id, "PurchaseRequest", actor, ActivityAction.PR_SUPERSEDED,
                        f"{editing.request_number}: superseded by stock reservation",
                    ))
                    self._session.delete(editing)

                reservation = None
                if split.to_reserve > 0:
                    reservation = self._new_request(
                        batch_id=batch_id,
                        material_id=material_id,
                        quantity=split.to_reserve,
                        status=PurchaseRequestStatus.STOCK_ALLOCATED,
                        actor=actor,
                        notes=self._config.reservation_note,
                    )
                    self._session.flush()
                    events.append(self._event(
                        reservation.id, "PurchaseRequest", actor, ActivityAction.PR_RESERVED,
                        f"{reservation.request_number}: reserved {split.to_reserve} "
                        f"{material.uom} of {material.name}",
                        quantity=split.to_reserve,
                    ))

                self._session.flush()
                result = SubmitResult(
                    split=split,
                    purchase_request=purchase.to_dto() if purchase is not None else None,
                    reservation=reservation.to_dto() if reservation is not None else None,
                    superseded_request_id=superseded_id,
                    released_reservation_ids=tuple(row.id for row in released),
                )

            logger.info(
                "procurement_request_submitted",
                extra={
                    "purchase_request_id": str(result.purchase_request.id) if result.purchase_request else None,
                    "reservation_id": str(result.reservation.id) if result.reservation else None,
                    "superseded_request_id": str(superseded_id) if superseded_id else None,
                    "released_reservation_count": len(released),
                },
            )

        self._publish(events)
        return result

    def review_request(
        self,
        request_id: UUID,
        approve: bool,
        actor: Actor,
        *,
        notes: str | None = None,
    ) -> PurchaseRequest:
        """Approve or reject a PENDING purchase request."""
        action = "approve" if approve else "reject"

        with LogContext.bind(actor_id=str(actor.id), operation="review_request"):
            with transaction_boundary(self._session, "procurement.review_request"):
                if self._config.review_requires_elevated_role:
                    self._require_elevated(actor, f"{action} purchase requests")

                request = self._locked_request(request_id)
                transition = PURCHASE_REQUEST_WORKFLOW.transition_for(
                    request.status, action, entity_id=str(request.id)
                )
                request.status = transition.to_state
                request.reviewed_by_id = actor.id
                request.reviewed_at = self._clock.now()
                if notes is not None:
                    request.admin_notes = notes
                request.updated_by_id = actor.id
                self._session.flush()
                dto = request.to_dto()

            logger.info(
                "procurement_request_reviewed",
                extra={
                    "purchase_request_id": str(request_id),
                    "request_number": dto.request_number,
                    "status": dto.status.value,
                },
            )

        self._publish([self._event(
            dto.id, "PurchaseRequest", actor,
            ActivityAction.PR_APPROVED if approve else ActivityAction.PR_REJECTED,
            f"{dto.request_number}: {'approved' if approve else 'rejected'}"
            + (f" ({notes})" if notes else ""),
        )])
        return dto

    def delete_request(self, request_id: UUID, actor: Actor) -> None:
        """
        Delete a request that is not APPROVED or ORDERED.

        Deleting a STOCK_ALLOCATED request releases its reservation; the next
        gap analysis sees the stock as available again.
        """
        with LogContext.bind(actor_id=str(actor.id), operation="delete_request"):
            with transaction_boundary(self._session, "procurement.delete_request"):
                request = self._locked_request(request_id)
                if request.status not in DELETABLE_REQUEST_STATES:
                    raise StateConflictError(
                        f"Purchase request {request.request_number} is {request.status}; "
                        "cancel its purchase order first"
                    )
                request_number = request.request_number
                released = (
                    request.requested_qty
                    if request.status == PurchaseRequestStatus.STOCK_ALLOCATED.value
                    else Decimal("0")
                )
                self._session.delete(request)
                self._session.flush()

            logger.info(
                "procurement_request_deleted",
                extra={
                    "purchase_request_id": str(request_id),
                    "request_number": request_number,
                    "released_qty": str(released),
                },
            )

        self._publish([self._event(
            request_id, "PurchaseRequest", actor, ActivityAction.PR_DELETED,
            f"{request_number}: deleted",
            released_qty=released,
        )])

    def get_request(self, request_id: UUID) -> PurchaseRequest:
        return self._get(PurchaseRequestModel, "PurchaseRequest", request_id).to_dto()

    def list_requests(
        self,
        *,
        status: PurchaseRequestStatus | None = None,
        batch_id: UUID | None = None,
        material_id: UUID | None = None,
    ) -> list[PurchaseRequest]:
        stmt = select(PurchaseRequestModel)
        if status is not None:
            stmt = stmt.where(PurchaseRequestModel.status == status.value)
        if batch_id is not None:
            stmt = stmt.where(PurchaseRequestModel.batch_id == batch_id)
        if material_id is not None:
            stmt = stmt.where(PurchaseRequestModel.material_id == material_id)
        rows = self._session.execute(
            stmt.order_by(PurchaseRequestModel.request_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Purchase orders
    # =========================================================================

    def list_orderable(self) -> list[PurchaseRequest]:
        """APPROVED requests with something to buy, not yet linked to any purchase order."""
        rows = self._session.execute(
            select(PurchaseRequestModel)
            .where(
                PurchaseRequestModel.status == PurchaseRequestStatus.APPROVED.value,
                PurchaseRequestModel.purchase_order_id.is_(None),
                PurchaseRequestModel.requested_qty > 0,
            )
            .order_by(PurchaseRequestModel.request_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    def create_purchase_order(
        self,
        request_ids: Sequence[UUID],
        vendor_id: UUID,
        actor: Actor,
        *,
        quotation_ref: str | None = None,
    ) -> PurchaseOrder:
        """
        Build a PENDING_APPROVAL order with one line per approved request.

        Each line defaults to the request's quantity at the material's
        standard cost.  The requests are linked to the order and move to
        ORDERED.
        """
        unique_ids = list(dict.fromkeys(request_ids))
        if not unique_ids:
            raise ValidationError("A purchase order needs at least one purchase request")

        with LogContext.bind(actor_id=str(actor.id), operation="create_purchase_order"):
            with transaction_boundary(self._session, "procurement.create_purchase_order"):
                vendor = self._get(Vendor, "Vendor", vendor_id)

                requests = []
                for request_id in unique_ids:
                    request = self._locked_request(request_id)
                    if request.purchase_order_id is not None:
                        raise RequestAlreadyLinkedError(
                            str(request.id), str(request.purchase_order_id)
                        )
                    PURCHASE_REQUEST_WORKFLOW.transition_for(
                        request.status, "order", entity_id=str(request.id)
                    )
                    if request.requested_qty <= 0:
                        raise InvalidQuantityError(
                            "quantity", request.requested_qty,
                            f"purchase request {request.request_number} has nothing to order",
                        )
                    requests.append(request)

                order = PurchaseOrderModel(
                    po_number=self._sequences.next_number(SequenceService.PURCHASE_ORDER),
                    vendor_id=vendor.id,
                    status=PURCHASE_ORDER_WORKFLOW.initial_state,
                    quotation_ref=quotation_ref or None,
                    created_by_id=actor.id,
                )
                self._session.add(order)
                self._session.flush()

                total = Decimal("0")
                for number, request in enumerate(requests, start=1):
                    material = self._get(Material, "Material", request.material_id)
                    amount = line_total(request.requested_qty, material.standard_cost)
                    order.lines.append(
                        PurchaseOrderLineModel(
                            line_number=number,
                            material_id=request.material_id,
                            quantity=request.requested_qty,
                            unit_price=material.standard_cost,
                            line_total=amount,
                            purchase_request_id=request.id,
                            created_by_id=actor.id,
                        )
                    )
                    total += amount
                    request.purchase_order_id = order.id
                    request.status = PurchaseRequestStatus.ORDERED.value
                    request.updated_by_id = actor.id

                order.total_amount = total
                self._session.flush()
                dto = order.to_dto()

            logger.info(
                "procurement_po_created",
                extra={
                    "po_id": str(dto.id),
                    "po_number": dto.po_number,
                    "vendor_id": str(vendor_id),
                    "line_count": len(dto.lines),
                    "total_amount": str(dto.total_amount),
                },
            )

        self._publish([self._event(
            dto.id, "PurchaseOrder", actor, ActivityAction.PO_CREATED,
            f"{dto.po_number}: {len(dto.lines)} line(s), total {dto.total_amount}",
            total_amount=dto.total_amount,
            request_ids=[str(r) for r in dto.request_ids],
        )])
        return dto

    def update_purchase_order(
        self,
        po_id: UUID,
        actor: Actor,
        *,
        vendor_id: UUID | None = None,
        quotation_ref: str | None = None,
        line_edits: Sequence[OrderLineEdit] = (),
    ) -> PurchaseOrder:
        """
        Edit a PENDING_APPROVAL order: vendor, quotation and line quantity/price.

        Line totals and the order total are recomputed.  Linked purchase
        requests are never changed.
        """
        with LogContext.bind(actor_id=str(actor.id), operation="update_purchase_order"):
            with transaction_boundary(self._session, "procurement.update_purchase_order"):
                order = self._locked_order(po_id)
                PURCHASE_ORDER_WORKFLOW.transition_for(
                    order.status, "update", entity_id=str(order.id)
                )

                if vendor_id is not None:
                    order.vendor_id = self._get(Vendor, "Vendor", vendor_id).id
                if quotation_ref is not None:
                    order.quotation_ref = quotation_ref or None

                lines = {line.line_number: line for line in order.lines}
                for edit in line_edits:
                    line = lines.get(edit.line_number)
                    if line is None:
                        raise ReferenceNotFoundError(
                            "PurchaseOrderLine", f"{order.po_number}#{edit.line_number}"
                        )
                    if edit.quantity is not None:
                        quantity = Decimal(edit.quantity)
                        if quantity <= 0:
                            raise InvalidQuantityError("quantity", quantity, "must be positive")
                        line.quantity = quantity
                    if edit.unit_price is not None:
                        price = Decimal(edit.unit_price)
                        if price < 0:
                            raise InvalidQuantityError("unit_price", price, "must not be negative")
                        line.unit_price = price
                    line.line_total = line_total(line.quantity, line.unit_price)
                    line.updated_by_id = actor.id

                order.total_amount = sum(
                    (line.line_total for line in order.lines), Decimal("0")
                )
                order.updated_by_id = actor.id
                self._session.flush()
                dto = order.to_dto()

            logger.info(
                "procurement_po_updated",
                extra={
                    "po_id": str(dto.id),
                    "po_number": dto.po_number,
                    "line_edit_count": len(line_edits),
                    "total_amount": str(dto.total_amount),
                },
            )

        self._publish([self._event(
            dto.id, "PurchaseOrder", actor, ActivityAction.PO_UPDATED,
            f"{dto.po_number}: updated, total {dto.total_amount}",
            total_amount=dto.total_amount,
        )])
        return dto

    def approve_purchase_order(self, po_id: UUID, actor: Actor) -> PurchaseOrder:
        """Issue a PENDING_APPROVAL order.  Elevated role and quotation required."""
        with LogContext.bind(actor_id=str(actor.id), operation="approve_purchase_order"):
            with transaction_boundary(self._session, "procurement.approve_purchase_order"):
                order = self._locked_order(po_id)
                transition = PURCHASE_ORDER_WORKFLOW.transition_for(
                    order.status, "approve", entity_id=str(order.id)
                )
                if transition.requires_elevated_role:
                    self._require_elevated(actor, "approve purchase orders")
                if self._config.require_quotation_for_approval and not (
                    order.quotation_ref and order.quotation_ref.strip()
                ):
                    raise MissingFieldError("quotation_ref", "approve a purchase order")

                order.status = transition.to_state
                order.approved_by_id = actor.id
                order.approved_at = self._clock.now()
                order.updated_by_id = actor.id
                self._session.flush()
                dto = order.to_dto()

            logger.info(
                "procurement_po_approved",
                extra={"po_id": str(dto.id), "po_number": dto.po_number},
            )

        self._publish([self._event(
            dto.id, "PurchaseOrder", actor, ActivityAction.PO_APPROVED,
            f"{dto.po_number}: approved and issued",
        )])
        return dto

    def delete_purchase_order(self, po_id: UUID, actor: Actor) -> None:
        """
        Delete (cancel) a purchase order.

        Allowed while PENDING_APPROVAL, or for an elevated role otherwise,
        and never once goods have been received or payments recorded.
        Linked requests are unlinked and return to APPROVED.
        """
        # Imported here: receiving and payments depend on procurement.
        from supply_modules.payments.orm import PaymentVoucherModel
        from supply_modules.receiving.orm import GoodsReceiptModel

        with LogContext.bind(actor_id=str(actor.id), operation="delete_purchase_order"):
            with transaction_boundary(self._session, "procurement.delete_purchase_order"):
                order = self._locked_order(po_id)
                if order.status != PurchaseOrderStatus.PENDING_APPROVAL.value:
                    self._require_elevated(actor, f"delete a {order.status} purchase order")

                has_receipts = self._session.execute(
                    select(GoodsReceiptModel.id)
                    .where(GoodsReceiptModel.purchase_order_id == order.id)
                    .limit(1)
                ).first() is not None
                has_payments = self._session.execute(
                    select(PaymentVoucherModel.id)
                    .where(PaymentVoucherModel.purchase_order_id == order.id)
                    .limit(1)
                ).first() is not None
                if has_receipts or has_payments:
                    raise StateConflictError(
                        f"Purchase order {order.po_number} has receipts or payments "
                        "and cannot be deleted"
                    )

                linked = self._session.execute(
                    select(PurchaseRequestModel)
                    .where(PurchaseRequestModel.purchase_order_id == order.id)
                    .with_for_update()
                ).scalars().all()
                for request in linked:
                    transition = PURCHASE_REQUEST_WORKFLOW.transition_for(
                        request.status, "release", entity_id=str(request.id)
                    )
                    request.status = transition.to_state
                    request.purchase_order_id = None
                    request.updated_by_id = actor.id
                self._session.flush()

                po_number = order.po_number
                self._session.delete(order)
                self._session.flush()

            logger.info(
                "procurement_po_deleted",
                extra={
                    "po_id": str(po_id),
                    "po_number": po_number,
                    "released_request_count": len(linked),
                },
            )

        self._publish([self._event(
            po_id, "PurchaseOrder", actor, ActivityAction.PO_DELETED,
            f"{po_number}: deleted, {len(linked)} request(s) orderable again",
        )])

    def get_purchase_order(self, po_id: UUID) -> PurchaseOrder:
        return self._get(PurchaseOrderModel, "PurchaseOrder", po_id).to_dto()

    def list_purchase_orders(
        self, *, status: PurchaseOrderStatus | None = None
    ) -> list[PurchaseOrder]:
        stmt = select(PurchaseOrderModel)
        if status is not None:
            stmt = stmt.where(PurchaseOrderModel.status == status.value)
        rows = self._session.execute(stmt.order_by(PurchaseOrderModel.po_number)).scalars()
        return [row.to_dto() for row in rows]
