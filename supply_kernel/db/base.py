"""
Module: supply_kernel.db.base
Responsibility: Declarative base for every table in the system: vendors,
    materials and batches, the inventory ledger and its projection, and the
    procurement, receiving and payment documents in supply_modules.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    it imports nothing from the rest of the package.

Invariants enforced:
    - Ids are uuid4 values stored as 36-character strings, so the same
      schema runs on PostgreSQL and SQLite.
    - Quantities, unit prices and payment amounts are Numeric(38, 9).  Float
      columns are never declared.
    - Every document row records who created it and, once touched, who last
      changed it.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, VARCHAR(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base.

    ``Mapped[Decimal]`` columns become Numeric(38, 9), ``Mapped[datetime]``
    timezone-aware timestamps and ``Mapped[int]`` BigInteger (ledger and
    document sequence numbers).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Base for rows created by an actor.

    ``created_by_id`` is mandatory: master data, ledger entries and
    documents all name the actor who created them.  ``updated_by_id`` is set
    by the service that changes a mutable row (a purchase order price edit,
    a replacement confirmation) and stays NULL until then.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


UUID = PyUUID
