"""
Procurement Module (``supply_modules.procurement``).

Responsibility
--------------
Front half of the supply flow: gap analysis against stock and
reservations, purchase requests (buy vs. reserve split), request review
and aggregation of approved requests into vendor purchase orders.

Architecture position
---------------------
**Modules layer** -- domain models, workflows, a config schema and the
``ProcurementService`` facade.  Stock reads and document numbering come
from ``supply_kernel``.

Failure modes
-------------
* Typed ``SupplyKernelError`` subclasses; the session is rolled back
  before the error propagates.
"""

from supply_modules.procurement.config import ProcurementConfig
from supply_modules.procurement.models import (
    GapAnalysis,
    OrderLineEdit,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    PurchaseRequest,
    PurchaseRequestStatus,
    RequestSplit,
    Reservation,
    SubmitResult,
)
from supply_modules.procurement.service import ProcurementService
from supply_modules.procurement.workflows import (
    PURCHASE_ORDER_WORKFLOW,
    PURCHASE_REQUEST_WORKFLOW,
)

__all__ = [
    "GapAnalysis",
    "OrderLineEdit",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderStatus",
    "PurchaseRequest",
    "PurchaseRequestStatus",
    "RequestSplit",
    "Reservation",
    "SubmitResult",
    "ProcurementService",
    "ProcurementConfig",
    "PURCHASE_ORDER_WORKFLOW",
    "PURCHASE_REQUEST_WORKFLOW",
]
