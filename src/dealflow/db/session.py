"""
Database Session Management

Engines are built explicitly and handed to the DataStore; the process-wide
default factory exists for scripts and the DAG and is created on first use.

Read-only sessions (the concurrent lookups) always roll back, so a lookup
can never leave writes behind.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, exc, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.dealflow.utils.logger import get_logger

logger = get_logger(__name__)

_default_session_factory: Optional[sessionmaker] = None


def _engine_options(url: str, pooled: bool = True) -> dict:
    options = {"pool_pre_ping": True, "echo": settings.database_echo}

    if url.startswith("sqlite"):
        # lookup threads share the connection pool
        options["connect_args"] = {"check_same_thread": False}
        return options

    if pooled:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
        )
    if url.startswith("postgresql") and settings.query_timeout_seconds:
        timeout_ms = int(settings.query_timeout_seconds * 1000)
        options["connect_args"] = {"options": f"-c statement_timeout={timeout_ms}"}
    return options


def build_engine(database_url: Optional[str] = None, **overrides) -> Engine:
    """
    Create an engine for the contract tables.

    PostgreSQL connections get a server-side statement timeout matching
    ``settings.query_timeout_seconds``; SQLite connections enforce foreign
    keys so target rows cascade with their signal.

    Args:
        database_url: SQLAlchemy URL (defaults to settings.database_url)
        **overrides: Extra keyword arguments for create_engine

    Returns:
        Configured engine
    """
    url = database_url or settings.database_url
    options = _engine_options(url, pooled="poolclass" not in overrides)
    options.update(overrides)
    engine = create_engine(url, **options)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(engine, "invalidate")
    def receive_invalidate(dbapi_conn, connection_record, exception):
        logger.warning(
            "database_connection_invalidated",
            exception=str(exception) if exception else None
        )

    logger.info("database_engine_created", dialect=engine.dialect.name)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker:
    """Process-wide session factory on settings.database_url."""
    global _default_session_factory
    if _default_session_factory is None:
        _default_session_factory = build_session_factory(build_engine())
    return _default_session_factory


@contextmanager
def get_db_session(
    session_factory: Optional[sessionmaker] = None,
    read_only: bool = False,
) -> Generator[Session, None, None]:
    """
    Open a session, commit on success and roll back on error.

    Usage:
        with get_db_session(factory) as session:
            session.add(signal)

    Args:
        session_factory: Factory to open the session from (defaults to the process-wide one)
        read_only: Roll back instead of committing

    Yields:
        Database session
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        if read_only:
            session.rollback()
        else:
            session.commit()
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__,
            database_error=isinstance(e, exc.SQLAlchemyError)
        )
        raise
    finally:
        session.close()


def health_check(session_factory: Optional[sessionmaker] = None) -> bool:
    """
    Check that the database answers a trivial query.

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        with get_db_session(session_factory, read_only=True) as session:
            session.execute(text("SELECT 1"))
        return True
    except exc.SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e), error_type=type(e).__name__)
        return False


def create_all_tables(engine: Engine) -> None:
    """
    Create every contract table.

    Migrations (alembic) own production schemas; this is for local
    databases and tests.
    """
    from src.dealflow.db.base import Base, import_all_models

    import_all_models()
    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_created", tables=len(Base.metadata.tables))


def drop_all_tables(engine: Engine) -> None:
    """Drop every contract table. Destroys all data."""
    from src.dealflow.db.base import Base, import_all_models

    import_all_models()
    Base.metadata.drop_all(bind=engine)
    logger.warning("database_tables_dropped", tables=len(Base.metadata.tables))
