"""Services for the supply kernel (write side)."""

from supply_kernel.services.activity_publisher import ActivityPublisher
from supply_kernel.services.ledger_service import LedgerService
from supply_kernel.services.sequence_service import SequenceService

__all__ = [
    "ActivityPublisher",
    "LedgerService",
    "SequenceService",
]
