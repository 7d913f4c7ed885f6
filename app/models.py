"""
Database models for the persisted cache tier
SQLAlchemy ORM model mirroring a key/value store
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheRecord(Base):
    """
    One persisted record: an opaque serialized payload under a string key.
    Keys are namespaced by the writer; the table may hold foreign keys too.
    """
    __tablename__ = "cache_records"

    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<CacheRecord(key='{self.key}', updated_at={self.updated_at})>"
