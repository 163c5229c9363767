"""
Database connection and session management for Assessment Service.

Services open short-lived sessions. Reads use ``get_session``; multi-step
writes that must commit together use ``get_transaction_session``.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Dict, Any, Generator, Optional
import logging

from assessment_service.core.config import config
from assessment_service.models.assessment import Base

logger = logging.getLogger(__name__)

# Applied to every new PostgreSQL connection
POSTGRES_SESSION_SETTINGS = (
    "SET default_transaction_isolation TO 'read committed'",
    "SET lock_timeout TO '30s'",
    "SET statement_timeout TO '60s'",
)


def engine_options(db_url: str, db_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    SQLite (local runs and tests) shares a single connection across threads;
    server databases get a sized connection pool.
    """
    if db_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }

    return {
        "poolclass": QueuePool,
        "pool_size": db_config["pool_size"],
        "max_overflow": db_config["max_overflow"],
        "pool_timeout": db_config["pool_timeout"],
        "pool_recycle": db_config["pool_recycle"],
        "pool_pre_ping": True,
    }


class DatabaseManager:
    """
    Owns the engine and session factory for the assessment store.
    """

    def __init__(self):
        self.engine: Optional[Engine] = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self):
        """Create the engine from configuration."""
        if self._initialized:
            return

        try:
            db_url = await config.get_database_url()
            db_config = await config.get_database_config()

            self.engine = create_engine(db_url, echo=False, **engine_options(db_url, db_config))
            if self.engine.dialect.name == "postgresql":
                event.listen(self.engine, "connect", self._apply_postgres_settings)

            # Objects stay readable after the session that loaded them closes
            self.session_factory = sessionmaker(
                bind=self.engine,
                class_=Session,
                autoflush=False,
                expire_on_commit=False
            )

            self._initialized = True
            logger.info(f"Database manager initialized ({self.engine.dialect.name})")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    @staticmethod
    def _apply_postgres_settings(dbapi_connection, connection_record):
        with dbapi_connection.cursor() as cursor:
            for statement in POSTGRES_SESSION_SETTINGS:
                cursor.execute(statement)

    def _new_session(self) -> Session:
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")
        return self.session_factory()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Session that commits when the block exits normally.
        Any exception rolls back and propagates.
        """
        session = self._new_session()
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
        Session with an open transaction that the caller commits.

        Leaving the block without committing discards the work.
        """
        session = self._new_session()
        try:
            session.begin()
            yield session
        except Exception as e:
            session.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise
        finally:
            session.close()

    async def create_tables(self):
        """Create any missing tables. Existing tables are left untouched."""
        await self.initialize()
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ensured")

    async def close(self):
        if self.engine:
            self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()
