"""
Records pending orders for minted checkout sessions.
"""
import logging
from uuid import uuid4

from sqlalchemy.orm import sessionmaker

from portal.models.order import ORDER_STATUS_PENDING, Order

logger = logging.getLogger(__name__)


class OrderService:
    """Persists one ``pending`` order per checkout session."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record_pending(self, product_id: str, quantity: int, external_session_id: str) -> str:
        order_id = uuid4().hex
        db = self.session_factory()
        try:
            db.add(Order(
                id=order_id,
                product_id=product_id,
                quantity=quantity,
                external_session_id=external_session_id,
                status=ORDER_STATUS_PENDING,
            ))
            db.commit()
        finally:
            db.close()
        logger.info("Recorded pending order %s for %s (session %s)", order_id, product_id, external_session_id)
        return order_id
