"""
Receiving Module Service (``supply_modules.receiving.service``).

Responsibility
--------------
Reconciles deliveries against issued purchase orders: opens receipt
drafts, saves goods receipt notes (posting accepted quantities to the
inventory ledger), lists rejected quantities still owed by vendors and
confirms their replacement.

Architecture position
---------------------
**Modules layer** -- ``ReceivingService`` is the sole public entry point
for receiving.  Ledger writes go through the kernel ``LedgerService``
inside this service's transaction.

Invariants enforced
-------------------
* accepted + rejected = ordered on every saved line.
* GRN header, lines, PROCUREMENT postings and the PO status change commit
  together or not at all.
* A replacement posts at most once per line: the line is locked before
  its ``replacement_received`` flag is checked.

Failure modes
-------------
* ``MissingFieldError``  -> supplier or proof reference missing.
* ``QuantityMismatchError`` / ``InvalidQuantityError``  -> bad line split.
* ``InvalidTransitionError``  -> purchase order is not ISSUED.
* ``ReplacementAlreadyConfirmedError``  -> second confirmation of a line.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.db.engine import transaction_boundary
from supply_kernel.domain.activity import ActivityAction, ActivityEvent
from supply_kernel.domain.actor import Actor
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.dtos import MovementType
from supply_kernel.exceptions import (
    InvalidQuantityError,
    MissingFieldError,
    ReferenceNotFoundError,
    ReplacementAlreadyConfirmedError,
    ValidationError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.activity_publisher import ActivityPublisher
from supply_kernel.services.ledger_service import LedgerService
from supply_kernel.services.sequence_service import SequenceService
from supply_modules.procurement.orm import PurchaseOrderModel
from supply_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW
from supply_modules.receiving.config import ReceivingConfig
from supply_modules.receiving.helpers import check_line
from supply_modules.receiving.models import (
    GoodsReceipt,
    PendingReplacement,
    ReceiptDraft,
    ReceiptDraftLine,
    ReplacementConfirmation,
)
from supply_modules.receiving.orm import GoodsReceiptLineModel, GoodsReceiptModel

logger = get_logger("modules.receiving.service")


class ReceivingService:
    """
    Goods receipt reconciliation and the replacement loop.

    Guarantees
    ----------
    * Session is committed only when the whole operation succeeds.
    * Activity events are published only after commit.
    """

    def __init__(
        self,
        session: Session,
        config: ReceivingConfig | None = None,
        clock: Clock | None = None,
        publisher: ActivityPublisher | None = None,
    ):
        self._session = session
        self._config = config or ReceivingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._ledger = LedgerService(session, clock=self._clock)
        self._sequences = SequenceService(session)

    def _order(self, po_id: UUID, *, lock: bool = False) -> PurchaseOrderModel:
        stmt = select(PurchaseOrderModel).where(PurchaseOrderModel.id == po_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        order = self._session.execute(stmt).scalar_one_or_none()
        if order is None:
            raise ReferenceNotFoundError("PurchaseOrder", str(po_id))
        return order

    def _publish(self, event: ActivityEvent) -> None:
        if self._publisher is not None:
            self._publisher.publish(event)

    # =========================================================================
    # Drafts
    # =========================================================================

    def open_receipt(self, po_id: UUID) -> ReceiptDraft:
        """
        Start a receipt for an ISSUED order.

        Every line starts fully accepted; the operator moves quantity to
        rejected with ``ReceiptDraft.set_rejected``.
        """
        order = self._order(po_id)
        PURCHASE_ORDER_WORKFLOW.transition_for(order.status, "receive", entity_id=str(order.id))

        return ReceiptDraft(
            purchase_order_id=order.id,
            po_number=order.po_number,
            lines=[
                ReceiptDraftLine(
                    line_index=index,
                    purchase_order_line_id=line.id,
                    material_id=line.material_id,
                    po_qty=line.quantity,
                    accepted_qty=line.quantity,
                    rejected_qty=Decimal("0"),
                )
                for index, line in enumerate(order.lines)
            ],
            clamp=self._config.clamp_line_edits,
        )

    # =========================================================================
    # Save
    # =========================================================================

    def _validate_draft(self, draft: ReceiptDraft, order: PurchaseOrderModel) -> None:
        if self._config.require_supplier_ref and not (draft.supplier_ref or "").strip():
            raise MissingFieldError("supplier_ref", "save a goods receipt")
        if self._config.require_proof_ref and not (draft.proof_ref or "").strip():
            raise MissingFieldError("proof_ref", "save a goods receipt")

        po_lines = list(order.lines)
        if len(draft.lines) != len(po_lines):
            raise ValidationError(
                f"Receipt has {len(draft.lines)} line(s) but {order.po_number} "
                f"has {len(po_lines)}"
            )
        for index, (line, po_line) in enumerate(zip(draft.lines, po_lines)):
            if (
                line.line_index != index
                or line.purchase_order_line_id != po_line.id
                or line.material_id != po_line.material_id
                or line.po_qty != po_line.quantity
            ):
                raise ValidationError(
                    f"Receipt line {index} does not match {order.po_number} "
                    f"line {po_line.line_number}"
                )
            check_line(
                index,
                po_line.quantity,
                Decimal(line.accepted_qty),
                Decimal(line.rejected_qty),
            )

    def save_receipt(self, draft: ReceiptDraft, actor: Actor) -> GoodsReceipt:
        """
        Persist a reconciled receipt and post accepted stock.

        Posts one PROCUREMENT entry of +accepted per line with accepted > 0
        and moves the order to RECEIVED, even when some quantity was
        rejected.
        """
        with LogContext.bind(
            actor_id=str(actor.id), operation="save_receipt", document_id=draft.po_number
        ):
            with transaction_boundary(self._session, "receiving.save_receipt"):
                order = self._order(draft.purchase_order_id, lock=True)
                transition = PURCHASE_ORDER_WORKFLOW.transition_for(
                    order.status, "receive", entity_id=str(order.id)
                )
                self._validate_draft(draft, order)

                now = self._clock.now()
                receipt = GoodsReceiptModel(
                    grn_number=self._sequences.next_number(SequenceService.GOODS_RECEIPT),
                    purchase_order_id=order.id,
                    supplier_ref=(draft.supplier_ref or "").strip(),
                    proof_ref=(draft.proof_ref or "").strip(),
                    received_at=now,
                    received_by_id=actor.id,
                    received_by_name=actor.name,
                    created_by_id=actor.id,
                )
                self._session.add(receipt)
                self._session.flush()

                for line in draft.lines:
                    receipt.lines.append(
                        GoodsReceiptLineModel(
                            line_index=line.line_index,
                            purchase_order_line_id=line.purchase_order_line_id,
                            material_id=line.material_id,
                            po_qty=line.po_qty,
                            accepted_qty=Decimal(line.accepted_qty),
                            rejected_qty=Decimal(line.rejected_qty),
                            replacement_received=False,
                            created_by_id=actor.id,
                        )
                    )
                self._session.flush()

                posted = 0
                for line in draft.lines:
                    accepted = Decimal(line.accepted_qty)
                    if accepted > 0:
                        self._ledger.post(
                            line.material_id,
                            accepted,
                            MovementType.PROCUREMENT,
                            actor,
                            order_id=order.id,
                            receipt_id=receipt.id,
                            reason=f"GRN: {receipt.grn_number}",
                        )
                        posted += 1

                order.status = transition.to_state
                order.updated_by_id = actor.id
                self._session.flush()
                dto = receipt.to_dto()

            logger.info(
                "receiving_grn_saved",
                extra={
                    "grn_id": str(dto.id),
                    "grn_number": dto.grn_number,
                    "po_id": str(draft.purchase_order_id),
                    "po_number": draft.po_number,
                    "posted_line_count": posted,
                    "total_accepted": str(draft.total_accepted),
                    "total_rejected": str(draft.total_rejected),
                },
            )

        self._publish(ActivityEvent(
            entity_id=dto.id,
            entity_type="GoodsReceipt",
            actor_id=actor.id,
            actor_name=actor.name,
            action=ActivityAction.GRN_SAVED,
            details=(
                f"{dto.grn_number} for {draft.po_number}: accepted "
                f"{draft.total_accepted}, rejected {draft.total_rejected}"
            ),
            timestamp=self._clock.now(),
            data={"purchase_order_id": str(draft.purchase_order_id)},
        ))
        return dto

    # =========================================================================
    # Replacements
    # =========================================================================

    def pending_replacements(self) -> list[PendingReplacement]:
        """Every saved line with rejected > 0 whose replacement has not arrived."""
        rows = self._session.execute(
            select(GoodsReceiptLineModel, GoodsReceiptModel)
            .join(GoodsReceiptModel, GoodsReceiptLineModel.receipt_id == GoodsReceiptModel.id)
            .where(
                GoodsReceiptLineModel.rejected_qty > 0,
                GoodsReceiptLineModel.replacement_received.is_(False),
            )
            .order_by(GoodsReceiptModel.grn_number, GoodsReceiptLineModel.line_index)
        ).all()
        return [
            PendingReplacement(
                receipt_id=receipt.id,
                grn_number=receipt.grn_number,
                purchase_order_id=receipt.purchase_order_id,
                line_index=line.line_index,
                material_id=line.material_id,
                rejected_qty=line.rejected_qty,
            )
            for line, receipt in rows
        ]

    def confirm_replacement(
        self,
        grn_id: UUID,
        line_index: int,
        actor: Actor,
        qty: Decimal | None = None,
    ) -> ReplacementConfirmation:
        """
        Record that the vendor replaced a line's rejected quantity.

        Replacement is all-or-nothing: ``qty``, when given, must equal the
        rejected quantity.  A second confirmation raises
        ReplacementAlreadyConfirmedError and posts nothing.
        """
        with LogContext.bind(actor_id=str(actor.id), operation="confirm_replacement"):
            with transaction_boundary(self._session, "receiving.confirm_replacement"):
                receipt = self._session.get(GoodsReceiptModel, grn_id)
                if receipt is None:
                    raise ReferenceNotFoundError("GoodsReceipt", str(grn_id))

                line = self._session.execute(
                    select(GoodsReceiptLineModel)
                    .where(
                        GoodsReceiptLineModel.receipt_id == grn_id,
                        GoodsReceiptLineModel.line_index == line_index,
                    )
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()
                if line is None:
                    raise ReferenceNotFoundError(
                        "GoodsReceiptLine", f"{receipt.grn_number}#{line_index}"
                    )
                if line.rejected_qty <= 0:
                    raise ValidationError(
                        f"{receipt.grn_number} line {line_index} has no rejected quantity"
                    )
                if line.replacement_received:
                    logger.warning(
                        "receiving_replacement_already_confirmed",
                        extra={"grn_id": str(grn_id), "line_index": line_index},
                    )
                    raise ReplacementAlreadyConfirmedError(str(grn_id), line_index)
                if qty is not None and Decimal(qty) != line.rejected_qty:
                    raise InvalidQuantityError(
                        "qty", Decimal(qty),
                        f"replacement must cover the full rejected quantity {line.rejected_qty}",
                    )

                quantity = line.rejected_qty
                line.replacement_received = True
                line.replacement_confirmed_at = self._clock.now()
                line.updated_by_id = actor.id
                self._session.flush()

                entry = self._ledger.post(
                    line.material_id,
                    quantity,
                    MovementType.REPLACEMENT,
                    actor,
                    order_id=receipt.purchase_order_id,
                    receipt_id=receipt.id,
                    reason=f"Replacement: {receipt.grn_number}",
                )
                grn_number = receipt.grn_number

            logger.info(
                "receiving_replacement_confirmed",
                extra={
                    "grn_id": str(grn_id),
                    "grn_number": grn_number,
                    "line_index": line_index,
                    "quantity": str(quantity),
                },
            )

        self._publish(ActivityEvent(
            entity_id=grn_id,
            entity_type="GoodsReceipt",
            actor_id=actor.id,
            actor_name=actor.name,
            action=ActivityAction.REPLACEMENT_CONFIRMED,
            details=f"Received replacements for {grn_number} line {line_index}: {quantity}",
            timestamp=self._clock.now(),
            data={"line_index": line_index, "quantity": quantity},
        ))
        return ReplacementConfirmation(
            receipt_id=grn_id,
            line_index=line_index,
            quantity=quantity,
            ledger_entry=entry,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_receipt(self, grn_id: UUID) -> GoodsReceipt:
        receipt = self._session.get(GoodsReceiptModel, grn_id)
        if receipt is None:
            raise ReferenceNotFoundError("GoodsReceipt", str(grn_id))
        return receipt.to_dto()

    def list_receipts(self, *, po_id: UUID | None = None) -> list[GoodsReceipt]:
        stmt = select(GoodsReceiptModel)
        if po_id is not None:
            stmt = stmt.where(GoodsReceiptModel.purchase_order_id == po_id)
        rows = self._session.execute(stmt.order_by(GoodsReceiptModel.grn_number)).scalars()
        return [row.to_dto() for row in rows]
