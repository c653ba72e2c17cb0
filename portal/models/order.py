"""
Order model for checkout sessions
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from portal.core.database import Base

ORDER_STATUS_PENDING = "pending"


class Order(Base):
    """Order placed through a provider checkout session"""
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    product_id = Column("productId", String(64), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, default=1)
    external_session_id = Column("stripeSessionId", Text, nullable=True)
    status = Column(String(20), default=ORDER_STATUS_PENDING, server_default=ORDER_STATUS_PENDING)
    created_at = Column("createdAt", DateTime(timezone=True), server_default=func.now())

