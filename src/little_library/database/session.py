"""
Database session management for the Little Library MCP Server.

The ``RecordStore`` is the single persistence capability the services
depend on. It is created once by the server (or by a test fixture) and
passed explicitly to every service constructor; there is no module-level
client.

Each operation runs inside one ``unit_of_work()``: a short-lived session
that commits when the block exits cleanly and rolls back otherwise. Checkout
and return rely on this to apply their two writes as one unit.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import StoreUnavailableError
from .schema import Base

logger = logging.getLogger(__name__)

# Failures that say nothing about the request itself and may succeed on retry
TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


class RecordStore:
    """
    Owns the SQLAlchemy engine and hands out units of work.

    - Lazily creates the engine with SQLite foreign keys enabled
    - Builds sessions with explicit transactions (no autoflush surprises)
    - Translates transient driver failures into StoreUnavailableError
    """

    def __init__(self, database_url: str):
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                options: dict = {"connect_args": {"check_same_thread": False}, "echo": False}
                # An in-memory database only exists on its one connection
                if ":memory:" in self.database_url or self.database_url == "sqlite://":
                    options["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **options)

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    @contextmanager
    def unit_of_work(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for one operation.

        ```python
        with store.unit_of_work() as session:
            CirculationRepository(session, tenant).checkout(...)
        # committed here, or rolled back if the block raised
        ```

        Raises:
            StoreUnavailableError: On connection, lock or pool failures
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except TRANSIENT_ERRORS as e:
            logger.warning("Record store unavailable, rolling back: %s", e)
            session.rollback()
            raise StoreUnavailableError(
                f"Record store unavailable: {getattr(e, 'orig', None) or e}"
            ) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create all tables.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=self.engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except Exception:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


def store_safe_query[T](session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a read and translate transient failures.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Context for the log and the raised error

    Returns:
        Query result

    Raises:
        StoreUnavailableError: If the store could not answer
    """
    try:
        return query_func(session)
    except TRANSIENT_ERRORS as e:
        logger.exception("Query failed: %s", error_msg)
        raise StoreUnavailableError(f"{error_msg}: database unavailable") from e


def violates_index(error: IntegrityError, index_name: str, *columns: str) -> bool:
    """
    Tell whether ``error`` came from the unique index ``index_name``.

    PostgreSQL names the index in its message; SQLite lists the indexed
    columns instead (``UNIQUE constraint failed: children.org_id, ...``).
    """
    message = str(getattr(error, "orig", None) or error)
    if index_name in message:
        return True
    return bool(columns) and f"UNIQUE constraint failed: {', '.join(columns)}" in message
