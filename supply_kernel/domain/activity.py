"""
Activity events emitted after every committed state change.

The activity log itself is an external collaborator; the core only builds
ActivityEvent values and hands them to the ActivityPublisher.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ActivityAction(Enum):
    """Action names carried on activity events."""
    PR_CREATED = "CREATE_PR"
    PR_UPDATED = "UPDATE_PR"
    PR_RESERVED = "AUTO_RESERVE"
    PR_SUPERSEDED = "SUPERSEDE_PR"
    PR_APPROVED = "APPROVED_PR"
    PR_REJECTED = "REJECTED_PR"
    PR_DELETED = "DELETE_PR"
    PO_CREATED = "CREATE_PO"
    PO_UPDATED = "UPDATE_PO"
    PO_APPROVED = "APPROVE_PO"
    PO_DELETED = "DELETE_PO"
    GRN_SAVED = "CREATE_GRN"
    REPLACEMENT_CONFIRMED = "RECEIVE_REPLACEMENT"
    PAYMENT_RECORDED = "CREATE_PAYMENT"
    STOCK_INITIALISED = "INITIAL_STOCK"
    STOCK_ADJUSTED = "ADJUST_STOCK"
    STOCK_CONSUMED = "CONSUME_STOCK"


@dataclass(frozen=True)
class ActivityEvent:
    """
    One entry for the outbound activity log.

    ``entity_id`` is the affected record; ``details`` is a short human
    readable summary plus any structured values the sink may want.
    """
    entity_id: UUID
    entity_type: str
    actor_id: UUID
    actor_name: str
    action: ActivityAction
    details: str
    timestamp: datetime
    data: dict[str, Any] = field(default_factory=dict)
