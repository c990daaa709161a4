"""
Procurement Workflows.

State machines for purchase requests and purchase orders.  Receiving and
payments drive the later purchase order transitions through the same
table.
"""

from supply_kernel.domain.workflow import Guard, Transition, Workflow
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

QUOTATION_ATTACHED = Guard(
    name="quotation_attached",
    description="Purchase order carries a vendor quotation reference",
)

RECEIPT_RECONCILED = Guard(
    name="receipt_reconciled",
    description="Every GRN line satisfies accepted + rejected = ordered",
)

PAYMENT_COVERS_TOTAL = Guard(
    name="payment_covers_total",
    description="Cumulative payments reach the order total",
)


# -----------------------------------------------------------------------------
# Purchase Request Workflow
# -----------------------------------------------------------------------------

PURCHASE_REQUEST_WORKFLOW = Workflow(
    name="purchase_request",
    description="Purchase request lifecycle",
    initial_state="pending",
    states=(
        "pending",
        "approved",
        "rejected",
        "ordered",
        "stock_allocated",
    ),
    transitions=(
        Transition("pending", "pending", action="edit"),
        Transition("rejected", "pending", action="edit"),
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
        Transition("approved", "ordered", action="order"),
        Transition("ordered", "approved", action="release"),
    ),
    terminal_states=("stock_allocated",),
)

# Requests in these states may be removed with delete_request
DELETABLE_REQUEST_STATES = ("pending", "rejected", "stock_allocated")

logger.info(
    "procurement_request_workflow_registered",
    extra={
        "workflow_name": PURCHASE_REQUEST_WORKFLOW.name,
        "state_count": len(PURCHASE_REQUEST_WORKFLOW.states),
        "transition_count": len(PURCHASE_REQUEST_WORKFLOW.transitions),
    },
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle",
    initial_state="pending_approval",
    states=(
        "pending_approval",
        "issued",
        "received",
        "partial_paid",
        "paid",
    ),
    transitions=(
        Transition("pending_approval", "pending_approval", action="update"),
        Transition(
            "pending_approval", "issued", action="approve",
            guard=QUOTATION_ATTACHED, requires_elevated_role=True,
        ),
        Transition(
            "issued", "received", action="receive",
            guard=RECEIPT_RECONCILED, posts_entry=True,
        ),
        Transition("received", "partial_paid", action="pay_partial"),
        Transition("partial_paid", "partial_paid", action="pay_partial"),
        Transition("received", "paid", action="pay_in_full", guard=PAYMENT_COVERS_TOTAL),
        Transition("partial_paid", "paid", action="pay_in_full", guard=PAYMENT_COVERS_TOTAL),
        Transition("paid", "paid", action="pay_in_full", guard=PAYMENT_COVERS_TOTAL),
    ),
)

logger.info(
    "procurement_po_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)
