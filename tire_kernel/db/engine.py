"""
Module: tire_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and the transactional scope used by every mutating operation.
Architecture position: Kernel > DB.  May import from db/base.py and
    db/immutability.py.  create_tables/drop_tables import the module ORM
    registry lazily so Base.metadata sees every table.

Invariants enforced:
    - Every lifecycle operation runs inside ``transaction()``: all row
      writes commit together or none do.
    - Store-level failures surface as exactly one typed error:
      StaleDataError -> OptimisticLockError, IntegrityError ->
      ConstraintViolationError, other DBAPI errors -> TransactionFailedError.
    - PostgreSQL runs at READ COMMITTED with explicit row locks
      (``SELECT ... FOR UPDATE``) taken by the services.  SQLite serializes
      writers itself; foreign keys are switched on per connection.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory is called
      before init_engine_from_url().
"""

import atexit
import re
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import QueuePool, StaticPool

from tire_kernel.exceptions import (
    ConstraintViolationError,
    OptimisticLockError,
    TireKernelError,
    TransactionFailedError,
)
from tire_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_STALE_TABLE = re.compile(r"table '([^']+)'")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    enforce_immutability: bool = True,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    PostgreSQL URLs get a pre-pinging QueuePool at READ COMMITTED.  SQLite
    URLs get foreign-key enforcement; the in-memory form uses a StaticPool
    so every session sees the same database.

    Postconditions: module-level engine and session factory are set and
        the ORM immutability listeners are registered (unless
        ``enforce_immutability`` is False).
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        dialect = "sqlite"
        options: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        _engine = create_engine(database_url, echo=echo, **options)
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        dialect = "postgresql"
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    if enforce_immutability:
        from tire_kernel.db.immutability import register_immutability_listeners

        register_immutability_listeners()

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """Session factory for callers that need one session per thread."""
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def transaction(session: Session, operation: str) -> Generator[Session, None, None]:
    """
    Commit-or-rollback boundary owned by module services.

    On normal exit the session is committed.  On any exception the
    session is rolled back and the error re-raised; SQLAlchemy store
    errors are translated into the kernel's Conflict/Storage types so the
    caller sees a single typed failure.

    Usage:
        with transaction(self._session, "install"):
            ...  # reads, validations, writes
    """
    try:
        yield session
        session.commit()
    except TireKernelError as exc:
        session.rollback()
        logger.info(
            "transaction_rolled_back",
            extra={"operation": operation, "error_code": exc.code},
        )
        raise
    except StaleDataError as exc:
        session.rollback()
        match = _STALE_TABLE.search(str(exc))
        logger.warning(
            "transaction_rolled_back",
            extra={"operation": operation, "error_code": OptimisticLockError.code},
        )
        raise OptimisticLockError(match.group(1) if match else "row") from exc
    except IntegrityError as exc:
        session.rollback()
        logger.warning(
            "transaction_rolled_back",
            extra={"operation": operation, "error_code": ConstraintViolationError.code},
            exc_info=True,
        )
        raise ConstraintViolationError(operation, str(exc.orig)) from exc
    except DBAPIError as exc:
        session.rollback()
        logger.error(
            "transaction_rolled_back",
            extra={"operation": operation, "error_code": TransactionFailedError.code},
            exc_info=True,
        )
        raise TransactionFailedError(operation, str(exc.orig)) from exc
    except Exception:
        session.rollback()
        logger.error(
            "transaction_rolled_back",
            extra={"operation": operation},
            exc_info=True,
        )
        raise


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a session that is committed on success and always closed.

    Usage:
        with session_scope() as session:
            TireLifecycleService(session).dispose(...)
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create kernel and module tables.  Engine must be initialized."""
    from tire_kernel.db.base import Base
    from tire_modules._orm_registry import import_all_orm_models

    engine = get_engine()
    import_all_orm_models()
    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from tire_kernel.db.base import Base
    from tire_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test cleanup)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)


def is_postgres() -> bool:
    if _engine is None:
        return False
    return _engine.dialect.name == "postgresql"
