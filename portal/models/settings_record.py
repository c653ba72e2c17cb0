"""
Singleton settings row for the exclusive gate.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, Text
from sqlalchemy.sql import func

from portal.core.database import Base


class SettingsRecord(Base):
    """Gate flag and password hash; exactly one row after initialization."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)
    exclusive_enabled = Column("exclusiveEnabled", Boolean, default=False, server_default="0")
    password_hash = Column("passwordHash", Text, nullable=False)
    updated_at = Column("updatedAt", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
