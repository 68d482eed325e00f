import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool, QueuePool

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./data/regulatory_monitor.db"


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create a SQLAlchemy engine with pool settings appropriate for the backend.

    Args:
        database_url: Database URL. Falls back to DATABASE_URL, then a local SQLite file.
        echo: Whether to log SQL statements. Falls back to DB_ECHO.

    Returns:
        Configured engine
    """
    database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if echo is None:
        echo = os.getenv("DB_ECHO", "false").lower() == "true"

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
        pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
        pool_pre_ping=True,
        echo=echo
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory whose objects stay readable after commit."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        raise


def drop_tables(engine: Engine) -> None:
    """Drop all database tables."""
    try:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped successfully")
    except Exception as e:
        logger.error(f"Failed to drop database tables: {e}")
        raise


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic commit/rollback.

    Args:
        session_factory: Factory producing sessions bound to an engine

    Yields:
        Database session

    Raises:
        Exception: Any exception that occurs during the session
    """
    session = session_factory()
    try:
        yield session
        session.commit()
        logger.debug("Database session committed successfully")
    except Exception as e:
        session.rollback()
        logger.error(f"Database session rolled back due to error: {e}")
        raise
    finally:
        session.close()


def check_connection(session_factory: sessionmaker) -> bool:
    """
    Test database connection.

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with session_scope(session_factory) as db:
            db.execute(text("SELECT 1"))
        logger.info("Database connection test successful")
        return True
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        return False


def init_db(database_url: Optional[str] = None) -> Engine:
    """
    Initialize database with tables.

    Args:
        database_url: Database URL (optional)

    Returns:
        Engine bound to the initialized database

    Raises:
        Exception: If database initialization fails
    """
    database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

    # Ensure data directory exists for SQLite
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        data_dir = os.path.dirname(database_url.replace("sqlite:///", ""))
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    engine = create_db_engine(database_url)
    create_tables(engine)

    if not check_connection(create_session_factory(engine)):
        raise RuntimeError("Database connection test failed after initialization")

    logger.info("Database initialized successfully")
    return engine
