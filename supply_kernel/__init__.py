"""
Supply Kernel

The append-only core of the procurement and inventory system:
- Inventory ledger with a rebuildable stock projection
- Locked sequence counters for entries and document numbers
- Immutability enforcement for ledger, receipts and vouchers
- Typed errors, structured logging, injectable clock
- Activity publish/subscribe channel
"""

__version__ = "0.1.0"
