"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Quantity on hand is defined as the sum of the inventory ledger.  If a ledger
row could be edited or removed, stock history would silently change and the
projection could no longer be verified.  Payment vouchers and saved goods
receipts are the evidence behind an order's status and get the same rule.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_update event] --> update check --> ImmutabilityViolationError
         |                                              ^
         v                                              |
    [before_delete event] --> delete check ------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                 | Declared in                       | Mutable after insert
-----------------------|-----------------------------------|-------------------------
InventoryLedgerEntry   | supply_kernel.models.ledger       | nothing
GoodsReceipt           | supply_modules.receiving.orm      | audit metadata
GoodsReceiptLine       | supply_modules.receiving.orm      | replacement_received,
                       |                                   | replacement_confirmed_at
PaymentVoucher         | supply_modules.payments.orm       | audit metadata

Models declare themselves with protect() next to their class definition, so
the kernel never has to import module code.  The MaterialStock projection is
NOT protected: it is rebuildable and is updated through an atomic SQL
increment, which bypasses the ORM anyway.

===============================================================================
USAGE
===============================================================================

Called once at startup, after all models are imported:

    from supply_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    from supply_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from dataclasses import dataclass
from typing import Callable

from sqlalchemy import event, inspect

from supply_kernel.exceptions import ImmutabilityViolationError
from supply_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Audit metadata may always change
AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


@dataclass(frozen=True)
class _ProtectedModel:
    model: type
    entity_type: str
    mutable_fields: frozenset[str]
    on_update: Callable
    on_delete: Callable


_PROTECTED: dict[type, _ProtectedModel] = {}


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_columns(target, allowed: frozenset[str]) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.mapper.column_attrs
        if attr.key not in allowed and insp.attrs[attr.key].history.has_changes()
    ]


def protect(model: type, entity_type: str, mutable_fields: frozenset[str] = frozenset()) -> None:
    """
    Declare a model as immutable after insert.

    Column changes outside ``mutable_fields`` and any DELETE raise
    ImmutabilityViolationError once listeners are registered.
    """
    if model in _PROTECTED:
        return

    def on_update(mapper, connection, target):
        changed = _changed_columns(target, mutable_fields)
        if changed:
            _blocked(
                entity_type,
                target.id,
                "UPDATE",
                f"Cannot modify field '{changed[0]}' on {entity_type}",
                field=changed[0],
            )

    def on_delete(mapper, connection, target):
        _blocked(entity_type, target.id, "DELETE", f"{entity_type} records cannot be deleted")

    _PROTECTED[model] = _ProtectedModel(
        model=model,
        entity_type=entity_type,
        mutable_fields=frozenset(mutable_fields),
        on_update=on_update,
        on_delete=on_delete,
    )


def protected_entities() -> tuple[str, ...]:
    """Entity type names currently declared immutable."""
    return tuple(sorted(p.entity_type for p in _PROTECTED.values()))


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    # Kernel models declare themselves on import
    import supply_kernel.models.ledger  # noqa: F401

    for protected in _PROTECTED.values():
        if not event.contains(protected.model, "before_update", protected.on_update):
            event.listen(protected.model, "before_update", protected.on_update)
        if not event.contains(protected.model, "before_delete", protected.on_delete):
            event.listen(protected.model, "before_delete", protected.on_delete)

    logger.debug(
        "immutability_listeners_registered",
        extra={"entities": list(protected_entities())},
    )


def _safe_remove_listener(target, event_name, listener_fn):
    """
    Safely remove an event listener, ignoring if not registered.

    This prevents errors when unregistering listeners that may not have been
    registered (e.g., in test scenarios with custom setup/teardown).
    """
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for protected in _PROTECTED.values():
        _safe_remove_listener(protected.model, "before_update", protected.on_update)
        _safe_remove_listener(protected.model, "before_delete", protected.on_delete)
