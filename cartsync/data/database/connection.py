"""Database connection and session management for the local cart store."""
import logging
import time
from pathlib import Path
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import OperationalError
from cartsync.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create an engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False  # Set to True for SQL query logging
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=False
    )


# Create database engine
engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 1


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.split("sqlite:///", 1)[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def init_db(bind=None) -> None:
    """Create the local storage tables."""
    # Import models so they are registered on Base.metadata
    from cartsync.data.database import storage_model  # noqa: F401

    if bind is None:
        ensure_sqlite_directory(settings.database_url)
        bind = engine
    Base.metadata.create_all(bind=bind)


def get_db_session(session_factory=SessionLocal):
    """
    Get a database session with retry logic.
    Retries up to 3 times on connection failure.
    """
    last_error = None
    
    for attempt in range(MAX_RETRIES):
        try:
            db = session_factory()
            # Test the connection with a simple query
            db.execute(text("SELECT 1"))
            return db
        except OperationalError as e:
            last_error = e
            if attempt < MAX_RETRIES - 1:
                logger.warning(f"[DB] Connection attempt {attempt + 1} failed, retrying in {RETRY_DELAY_SECONDS}s...")
                time.sleep(RETRY_DELAY_SECONDS)
            else:
                logger.error(f"[DB] All {MAX_RETRIES} connection attempts failed")
    
    raise last_error
