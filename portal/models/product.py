"""
Product model for the exclusive catalog
"""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from portal.core.database import Base


class Product(Base):
    """Preorder product"""
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, default="")
    price_cents = Column("priceCents", Integer, nullable=True)  # NULL means "not priced"
    created_at = Column("createdAt", DateTime(timezone=True), server_default=func.now())
