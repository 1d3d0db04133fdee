from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from expenser.core.database import Base


class StorageEntry(Base):
    """One key of the per-user key-value store; the value is a JSON document."""

    __tablename__ = "storage_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
