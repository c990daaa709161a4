"""
SequenceService -- gap-free counters for ledger entries and document numbers.

Responsibility:
    Hands out the ledger ``seq`` that orders inventory movements and the
    running numbers behind PR-, RES-, PO-, GRN- and PV- document numbers.
    Each sequence is one row in ``sequence_counters``.

Architecture position:
    Kernel > Services.  Used by LedgerService and by every module service
    that numbers a document.  Flush-only.

Invariants enforced:
    - The counter row is read with SELECT ... FOR UPDATE before it is
      incremented, so two transactions never receive the same value.
      Numbers are never derived from MAX(column) + 1.
    - A value belongs to the caller's transaction: if that transaction rolls
      back, the next caller receives the same value again.

Failure modes:
    - Two transactions creating the same counter row at once: the loser's
      IntegrityError is contained in a savepoint and it locks the winner's row.
    - ValueError for a document sequence without a prefix.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.logging_config import get_logger

logger = get_logger("services.sequence")

# Digits after the prefix in a document number
NUMBER_WIDTH = 6


class SequenceCounter(Base):
    """Last value handed out for one named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Allocates sequence values inside the caller's transaction.

    Does NOT commit; the module service owning the operation does.
    """

    LEDGER_ENTRY = "ledger_entry"
    PURCHASE_REQUEST = "purchase_request"
    RESERVATION = "reservation"
    PURCHASE_ORDER = "purchase_order"
    GOODS_RECEIPT = "goods_receipt"
    PAYMENT_VOUCHER = "payment_voucher"

    PREFIXES = {
        PURCHASE_REQUEST: "PR",
        RESERVATION: "RES",
        PURCHASE_ORDER: "PO",
        GOODS_RECEIPT: "GRN",
        PAYMENT_VOUCHER: "PV",
    }

    def __init__(self, session: Session):
        self._session = session

    def _select(self, name: str, *, lock: bool):
        stmt = select(SequenceCounter).where(SequenceCounter.name == name)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.execute(stmt).scalar_one_or_none()

    def _create_counter(self, name: str) -> SequenceCounter:
        """Insert a zeroed counter, or lock the one a concurrent writer just inserted."""
        savepoint = self._session.begin_nested()
        try:
            counter = SequenceCounter(name=name, current_value=0)
            self._session.add(counter)
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
            return self._select(name, lock=True)
        savepoint.commit()
        return counter

    def next_value(self, sequence_name: str) -> int:
        """Lock the counter, increment it and return the new value (first value is 1)."""
        counter = self._select(sequence_name, lock=True) or self._create_counter(sequence_name)
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_number(self, sequence_name: str) -> str:
        """Next document number, e.g. ``GRN-000007``."""
        prefix = self.PREFIXES.get(sequence_name)
        if prefix is None:
            raise ValueError(f"Sequence {sequence_name!r} does not number documents")
        return f"{prefix}-{self.next_value(sequence_name):0{NUMBER_WIDTH}d}"

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None if the sequence was never used."""
        counter = self._select(sequence_name, lock=False)
        return counter.current_value if counter is not None else None
