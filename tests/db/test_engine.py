"""
Tests for engine initialisation and the transactional scopes.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select, text

from supply_kernel.db.base import Base
from supply_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
    transaction_boundary,
)
from supply_kernel.exceptions import RetryableWriteError
from supply_kernel.models.reference import Vendor

CREATOR = uuid4()


@pytest.fixture
def module_engine():
    reset_engine()
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    reset_engine()


def _vendor(code: str) -> Vendor:
    return Vendor(vendor_code=code, name=f"Vendor {code}", created_by_id=CREATOR)


class TestModuleEngine:

    def test_uninitialised_access_raises(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()
        with pytest.raises(RuntimeError):
            get_session_factory()
        assert is_postgres() is False

    def test_initialised(self, module_engine):
        assert get_engine() is module_engine
        assert module_engine.dialect.name == "sqlite"
        assert is_postgres() is False
        assert get_session_factory().kw["expire_on_commit"] is False


class TestSessionScope:

    def test_commits_on_exit(self, module_engine):
        with session_scope() as session:
            session.add(_vendor("V-1"))

        with session_scope() as session:
            codes = session.execute(select(Vendor.vendor_code)).scalars().all()
        assert codes == ["V-1"]

    def test_rolls_back_on_error(self, module_engine):
        with pytest.raises(ValueError):
            with session_scope() as session:
                session.add(_vendor("V-2"))
                session.flush()
                raise ValueError("abort")

        with session_scope() as session:
            assert session.execute(select(Vendor)).first() is None


class TestTransactionBoundary:

    def test_commits_and_keeps_session_open(self, module_engine):
        session = get_session()
        with transaction_boundary(session, "test.commit"):
            session.add(_vendor("V-3"))
        assert session.is_active
        assert get_session().execute(select(Vendor.vendor_code)).scalar_one() == "V-3"
        session.close()

    def test_domain_errors_propagate_unchanged(self, module_engine):
        session = get_session()
        with pytest.raises(KeyError):
            with transaction_boundary(session, "test.rollback"):
                session.add(_vendor("V-4"))
                session.flush()
                raise KeyError("boom")
        assert session.execute(select(Vendor)).first() is None
        session.close()

    def test_operational_error_becomes_retryable(self, module_engine):
        session = get_session()
        with pytest.raises(RetryableWriteError) as exc_info:
            with transaction_boundary(session, "test.write"):
                session.execute(text("UPDATE no_such_table SET x = 1"))
        assert exc_info.value.operation == "test.write"
        assert exc_info.value.retryable is True
        session.close()


def test_create_tables_registers_module_tables(module_engine):
    for table in (
        "inventory_ledger_entries",
        "material_stock",
        "sequence_counters",
        "purchase_requests",
        "purchase_orders",
        "goods_receipts",
        "payment_vouchers",
    ):
        assert table in Base.metadata.tables
