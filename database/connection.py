"""
Database connection and session management.
"""
from contextlib import contextmanager
import logging
from typing import Generator
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from config.settings import settings
from .models import Base

logger = logging.getLogger(__name__)


def _ensure_database_exists():
    """Create the MySQL database if it does not already exist."""
    url = make_url(settings.database_url)
    if not url.drivername.startswith("mysql"):
        return
    db_name = url.database
    logger.info("Ensuring MySQL database %s exists", db_name)
    # Connect to the server without selecting the database
    tmp_engine = create_engine(url.set(database=None), pool_pre_ping=True)
    with tmp_engine.connect() as conn:
        conn.execute(text(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"))
        conn.commit()
    tmp_engine.dispose()


def _engine_options(database_url: str) -> dict:
    """Pool options per backend; in-memory SQLite must share one connection."""
    url = make_url(database_url)
    if url.drivername.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True, "pool_recycle": 3600}


# Ensure the target database exists before creating the main engine
_ensure_database_exists()

# Create engine
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", engine.url.get_backend_name())


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.
    Use as dependency injection in FastAPI.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context():
    """
    Context manager for database session.
    Use for non-FastAPI contexts.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
