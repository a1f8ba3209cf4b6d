"""Database connection and session management"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from hypestream.models.db import Base
from hypestream.db_config import DatabaseManager

logger = logging.getLogger(__name__)

def _sqlite_on_connect(dbapi_connection, connection_record):
    # pysqlite's own BEGIN handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN instead
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def _sqlite_on_begin(connection):
    connection.exec_driver_sql("BEGIN")

class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None

    def _get_connection_string(self) -> str:
        """
        Get database connection string from settings.

        Raises:
            ValueError: If required settings are missing
        """
        try:
            return DatabaseManager.initialize_from_env()
        except ValueError as e:
            logger.error(f"Failed to initialize database connection: {e}")
            raise

    def init(self, connection_string: Optional[str] = None, **engine_kwargs) -> None:
        """
        Initialize database connection and create tables.

        Args:
            connection_string: Explicit URL, defaults to the configured one
            engine_kwargs: Passed through to create_engine
        """
        try:
            connection_string = connection_string or self._get_connection_string()
            self._engine = create_engine(connection_string, **engine_kwargs)
            if self._engine.dialect.name == 'sqlite':
                event.listen(self._engine, 'connect', _sqlite_on_connect)
                event.listen(self._engine, 'begin', _sqlite_on_begin)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine)
            logger.info(f"Database initialized successfully ({self._engine.dialect.name})")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @property
    def initialized(self) -> bool:
        return self._SessionLocal is not None

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations"""
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """Get a new database session"""
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._SessionLocal()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None

# Global database instance
db = Database()
