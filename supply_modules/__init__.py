"""
Supply Modules.

Orchestration layers over the supply kernel.  Each module contains:
- Domain models (frozen DTOs)
- ORM persistence models
- Workflows (state machines), where the module has a lifecycle
- Configuration schemas
- A service facade owning the transaction of every public operation

Modules:
- Procurement: gap analysis, purchase requests, reservations, purchase orders
- Receiving: goods receipt notes, replacement of rejected quantities
- Payments: payment vouchers and purchase order payment status
- Inventory: opening stock, adjustments, consumption, batch cost rollup
"""

from supply_modules import inventory, payments, procurement, receiving

__all__ = [
    "inventory",
    "payments",
    "procurement",
    "receiving",
]
