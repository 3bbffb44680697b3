"""
Module: retail_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and session factory
    used by the reference storage adapter, and the ``session_scope``
    transaction helper that callers wrap around store operations.
Architecture position: Kernel > DB. ``create_tables`` imports the sales ORM
    module lazily so its tables are registered on ``Base.metadata``.

Invariants enforced:
    - At most one engine is live; initializing again disposes the old one.
    - ``session_scope`` commits on success and rolls back on any exception.
      Stores only flush, so this is the single commit point.

Failure modes:
    - RuntimeError from ``get_engine`` / ``get_session`` before
      ``init_engine_from_url``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from retail_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Database not initialized. Call init_engine_from_url() first."


def _engine_options(database_url: str, echo: bool, pool_pre_ping: bool) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": pool_pre_ping}
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # One shared connection, otherwise each session gets its own empty database
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Any SQLAlchemy URL works: ``sqlite:///store.db`` for a single counter
    machine, ``sqlite:///:memory:`` for tests, a server database for a
    shared back office. Sessions do not expire on commit, so DTOs built
    from committed rows stay readable.
    """
    global _engine, _session_factory

    reset_engine()
    _engine = create_engine(database_url, **_engine_options(database_url, echo, pool_pre_ping))
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "database_engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session; the caller closes it (or uses ``session_scope``)."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit if the block completes, roll back if it raises.

    Usage:
        with session_scope() as session:
            SalesService(...stores over session...).record_invoice(draft)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("sales_transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the customer, product, invoice and receipt tables if missing."""
    from retail_kernel.db.base import Base

    import retail_modules.sales.orm  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("sales_tables_created", extra={"table_count": len(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
