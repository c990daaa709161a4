"""
Module: supply_kernel.db.engine
Responsibility: Engines, sessions and the commit/rollback scopes every
    service operation runs in.
Architecture position: Kernel > DB.  Imports db/base.py, exceptions.py and
    logging only.  ``create_tables`` additionally loads the module ORM
    registry so Base.metadata holds the procurement, receiving and payment
    tables.

Invariants enforced:
    - PostgreSQL (READ COMMITTED) is the production backend.  Stock
      projection, counter and document rows are locked explicitly with
      SELECT ... FOR UPDATE by the services.
    - SQLite serves tests and single-user installs.  pysqlite's implicit
      transactions are replaced by an explicit BEGIN so SAVEPOINTs nest, and
      foreign keys are enforced.
    - transaction_boundary(): commit when the block finishes, roll back when
      it raises.

Failure modes:
    - RuntimeError from get_engine()/get_session()/get_session_factory()
      before init_engine_from_url().
    - RetryableWriteError from transaction_boundary() when the database
      reports an OperationalError (lock timeout, deadlock, SQLite "database
      is locked").  Nothing was written; the caller may re-issue.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from supply_kernel.exceptions import RetryableWriteError
from supply_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _install_sqlite_hooks(engine: Engine) -> None:
    """Give pysqlite real BEGIN/SAVEPOINT semantics and enforce foreign keys."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Create an engine configured for the URL's dialect.

    PostgreSQL gets a QueuePool with pre-ping and READ COMMITTED.  An
    in-memory SQLite URL gets a StaticPool so every session shares the one
    connection that holds the schema.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"echo": echo, "connect_args": {"check_same_thread": False}}
        if database_url in IN_MEMORY_SQLITE:
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        _install_sqlite_hooks(engine)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_options.get("pool_size", 20),
        max_overflow=pool_options.get("max_overflow", 10),
        pool_pre_ping=pool_options.get("pool_pre_ping", True),
        pool_timeout=pool_options.get("pool_timeout", 30),
        pool_recycle=pool_options.get("pool_recycle", 1800),
        isolation_level="READ COMMITTED",
    )


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Build the process-wide engine and session factory.

    A second call replaces the first.  Sessions from the factory keep
    attribute values after commit (``expire_on_commit=False``) so services
    can return DTOs built from committed rows.
    """
    global _engine, _SessionFactory

    reset_engine()
    _engine = build_engine(database_url, echo=echo, **pool_options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo, **pool_options},
    )
    return _engine


def _require_initialised() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def get_engine() -> Engine:
    _require_initialised()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-thread sessions."""
    return _require_initialised()


def get_session() -> Session:
    return _require_initialised()()


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


def reset_engine() -> None:
    """Dispose the process-wide engine, if any."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)


# ---------------------------------------------------------------------------
# Transaction scopes
# ---------------------------------------------------------------------------


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    A new session from the process-wide factory, committed and closed on
    exit, rolled back and closed if the block raises.

        with session_scope() as session:
            ReceivingService(session).pending_replacements()
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


@contextmanager
def transaction_boundary(
    session: Session, operation: str
) -> Generator[Session, None, None]:
    """
    Commit-or-rollback scope for one public service operation on a
    caller-owned session.

    Unlike session_scope() the session is not closed on exit.  Database
    OperationalErrors are surfaced as RetryableWriteError after rollback;
    every other exception is re-raised unchanged.
    """
    try:
        yield session
        session.commit()
    except OperationalError as exc:
        session.rollback()
        logger.warning(
            "transaction_write_failed",
            extra={"operation": operation, "error": str(exc.orig)},
        )
        raise RetryableWriteError(operation, str(exc.orig)) from exc
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", extra={"operation": operation})
        raise


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def create_tables(engine: Engine | None = None) -> None:
    """Create every kernel and module table on ``engine`` (default: the process-wide one)."""
    from supply_kernel.db.base import Base
    from supply_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    target = engine if engine is not None else get_engine()
    Base.metadata.create_all(target)
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every known table. Tests only."""
    from supply_kernel.db.base import Base
    from supply_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    target = engine if engine is not None else get_engine()
    Base.metadata.drop_all(target)
