"""Durable key-value store that survives reloads."""
from typing import Optional
from cartsync.data.database.connection import SessionLocal, get_db_session
from cartsync.data.database.storage_model import StoredValue


class LocalStorage:
    """
    String key-value store persisted through SQLAlchemy.

    Mirrors the get/set/remove surface of a browser's local storage so the
    cart store does not depend on the database layer directly.
    """
    
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory
    
    def get_item(self, key: str) -> Optional[str]:
        db = get_db_session(self._session_factory)
        try:
            row = db.get(StoredValue, key)
            return row.value if row else None
        finally:
            db.close()
    
    def set_item(self, key: str, value: str) -> None:
        db = get_db_session(self._session_factory)
        try:
            row = db.get(StoredValue, key)
            if row:
                row.value = value
            else:
                db.add(StoredValue(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
    
    def remove_item(self, key: str) -> None:
        db = get_db_session(self._session_factory)
        try:
            row = db.get(StoredValue, key)
            if row:
                db.delete(row)
                db.commit()
        finally:
            db.close()
