"""
Database connection and session management for EWM Service.
Transactions are explicit so capacity checks and writes commit together.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
from typing import Generator
import logging

from ewm.core.config import config
from ewm.models.event import Base
from ewm.models import request as _request_models  # noqa: F401  registers participation_requests

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager for EWM Service.
    Handles connection pooling and transaction management.
    """

    def __init__(self):
        self.engine = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self):
        """Initialize the database engine and session factory."""
        if self._initialized:
            return

        try:
            db_url = await config.get_database_url()
            db_config = await config.get_database_config()

            self.engine = create_engine(
                db_url,
                poolclass=QueuePool,
                pool_size=db_config["pool_size"],
                max_overflow=db_config["max_overflow"],
                pool_timeout=db_config["pool_timeout"],
                pool_recycle=db_config["pool_recycle"],
                pool_pre_ping=True,
                echo=False
            )

            self.session_factory = sessionmaker(
                bind=self.engine,
                class_=Session,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False
            )

            self._setup_event_listeners()

            self._initialized = True
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    def _setup_event_listeners(self):
        """Set up connection listeners."""

        @event.listens_for(self.engine, "connect")
        def set_isolation(dbapi_connection, connection_record):
            """Counts must see committed rows only."""
            with dbapi_connection.cursor() as cursor:
                cursor.execute("SET default_transaction_isolation TO 'read committed'")
                cursor.execute("SET lock_timeout TO '30s'")

        @event.listens_for(self.engine, "checkout")
        def receive_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Database connection checked out")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic commit.
        Rolls back on exceptions.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    @contextmanager
    def get_transaction_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with explicit transaction control.
        The caller commits; any exception rolls the whole unit back.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create all database tables."""
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    def health_check(self) -> bool:
        """Check database health."""
        if not self._initialized:
            return False

        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close all database connections."""
        if self.engine:
            self.engine.dispose()
        logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()
