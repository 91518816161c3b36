"""Key-value table backing the local durable store."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func
from cartsync.data.database.connection import Base


class StoredValue(Base):
    """A single persisted key and its serialized value."""
    
    __tablename__ = "local_storage"
    
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<StoredValue(key='{self.key}', size={len(self.value or '')})>"
