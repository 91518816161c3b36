"""Local persistence layer package."""
from .connection import engine, SessionLocal, Base, build_engine, init_db, get_db_session
from .storage_model import StoredValue
from .local_storage import LocalStorage

__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "build_engine",
    "init_db",
    "get_db_session",
    "StoredValue",
    "LocalStorage"
]
