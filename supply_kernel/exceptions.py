"""
Typed Exception Hierarchy for the Supply Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (APIs, schedulers, UIs) must react to failures by category, not by
parsing messages.  Every exception here:

  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA (entity ids, states, quantities)

    try:
        receiving.save_receipt(draft, actor)
    except QuantityMismatchError as e:
        api_response(code=e.code, line=e.line_index)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SupplyKernelError (base)
    |
    +-- ValidationError                 rejected before any mutation
    |   +-- MissingFieldError
    |   +-- InvalidQuantityError
    |   +-- QuantityMismatchError
    |
    +-- StateConflictError              no partial mutation
    |   +-- InvalidTransitionError
    |   +-- RequestAlreadyLinkedError
    |   +-- ReplacementAlreadyConfirmedError
    |
    +-- ReferentialError
    |   +-- ReferenceNotFoundError
    |
    +-- AuthorizationError
    |   +-- RoleNotPermittedError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConcurrencyError
        +-- RetryableWriteError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                            | When Raised
--------------|---------------------------------|-------------------------------------
Validation    | MISSING_FIELD                   | Mandatory field or document ref empty
              | INVALID_QUANTITY                | Negative / zero / out-of-range quantity
              | QUANTITY_MISMATCH               | accepted + rejected != ordered
--------------|---------------------------------|-------------------------------------
State         | INVALID_TRANSITION              | Action not allowed from current status
              | REQUEST_ALREADY_LINKED          | PR already belongs to a purchase order
              | REPLACEMENT_ALREADY_CONFIRMED   | GRN line replacement already received
--------------|---------------------------------|-------------------------------------
Reference     | REFERENCE_NOT_FOUND             | Unknown batch/material/vendor/document
--------------|---------------------------------|-------------------------------------
Authorization | ROLE_NOT_PERMITTED              | Elevated role required
--------------|---------------------------------|-------------------------------------
Immutability  | IMMUTABILITY_VIOLATION          | Ledger entry / voucher modified
--------------|---------------------------------|-------------------------------------
Concurrency   | RETRYABLE_WRITE_FAILURE         | Database write failed; caller may retry
"""

from decimal import Decimal


class SupplyKernelError(Exception):
    """
    Base exception for all supply kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SUPPLY_KERNEL_ERROR"


# Validation errors


class ValidationError(SupplyKernelError):
    """Input rejected synchronously before any state mutation."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A mandatory field or document reference is empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str, context: str):
        self.field_name = field_name
        self.context = context
        super().__init__(f"{field_name} is required to {context}")


class InvalidQuantityError(ValidationError):
    """A quantity or amount is outside its permitted range."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field_name: str, value: Decimal, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field_name} {value}: {reason}")


class QuantityMismatchError(ValidationError):
    """Accepted plus rejected quantity does not reconcile to the ordered quantity."""

    code: str = "QUANTITY_MISMATCH"

    def __init__(
        self,
        line_index: int,
        po_qty: Decimal,
        accepted_qty: Decimal,
        rejected_qty: Decimal,
    ):
        self.line_index = line_index
        self.po_qty = po_qty
        self.accepted_qty = accepted_qty
        self.rejected_qty = rejected_qty
        super().__init__(
            f"Line {line_index}: accepted ({accepted_qty}) + rejected "
            f"({rejected_qty}) must equal ordered quantity ({po_qty})"
        )


# State conflict errors


class StateConflictError(SupplyKernelError):
    """Operation conflicts with the current state of an entity."""

    code: str = "STATE_CONFLICT"


class InvalidTransitionError(StateConflictError):
    """The requested action is not allowed from the entity's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, current_state: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in status '{current_state}'"
        )


class RequestAlreadyLinkedError(StateConflictError):
    """A purchase request is already linked to a purchase order."""

    code: str = "REQUEST_ALREADY_LINKED"

    def __init__(self, request_id: str, purchase_order_id: str):
        self.request_id = request_id
        self.purchase_order_id = purchase_order_id
        super().__init__(
            f"Purchase request {request_id} is already linked to "
            f"purchase order {purchase_order_id}"
        )


class ReplacementAlreadyConfirmedError(StateConflictError):
    """The replacement for a rejected GRN line was already received."""

    code: str = "REPLACEMENT_ALREADY_CONFIRMED"

    def __init__(self, receipt_id: str, line_index: int):
        self.receipt_id = receipt_id
        self.line_index = line_index
        super().__init__(
            f"Replacement for goods receipt {receipt_id} line {line_index} "
            "was already confirmed"
        )


# Referential errors


class ReferentialError(SupplyKernelError):
    """A referenced entity does not exist."""

    code: str = "REFERENTIAL_ERROR"


class ReferenceNotFoundError(ReferentialError):
    """Entity with the given id was not found."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Authorization errors


class AuthorizationError(SupplyKernelError):
    """Actor is not permitted to perform the operation."""

    code: str = "AUTHORIZATION_ERROR"


class RoleNotPermittedError(AuthorizationError):
    """The operation requires an elevated role."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, actor_id: str, role: str, action: str):
        self.actor_id = actor_id
        self.role = role
        self.action = action
        super().__init__(f"Role '{role}' of actor {actor_id} may not {action}")


# Immutability errors


class ImmutabilityError(SupplyKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Ledger entries and payment vouchers are immutable after creation; saved
    goods receipt lines only allow the replacement flag to change.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Concurrency errors


class ConcurrencyError(SupplyKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class RetryableWriteError(ConcurrencyError):
    """
    A database write failed and was rolled back.

    The core performs no automatic retry; the caller re-issues the operation.
    """

    code: str = "RETRYABLE_WRITE_FAILURE"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Write failed during {operation}: {detail}")
