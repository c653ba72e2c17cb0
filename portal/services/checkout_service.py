"""
Checkout proxy: turns a product id into a provider checkout session.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import ProviderUnavailable, ValidationError
from portal.services.config_store import ConfigStore, ProductData
from portal.services.order_service import OrderService
from portal.services.stripe_client import StripeCheckoutClient

logger = logging.getLogger(__name__)

DEFAULT_UNIT_AMOUNT_CENTS = 2000


@dataclass
class CheckoutSession:
    """Provider session handle plus what was charged"""
    session_id: str
    product_id: str
    unit_amount: int
    quantity: int
    order_id: Optional[str] = None


class CheckoutService:
    """Resolves the product, prices it and delegates to the provider."""

    def __init__(
        self,
        store: ConfigStore,
        client: StripeCheckoutClient,
        success_url: str,
        cancel_url: str,
        currency: str = "usd",
        order_service: Optional[OrderService] = None,
    ):
        self.store = store
        self.client = client
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.order_service = order_service

    def resolve_product(self, product_id: str) -> ProductData:
        """Look up ``product_id``; unknown ids fall back to the first catalog entry."""
        products = self.store.read().products
        for product in products:
            if product.id == product_id:
                return product
        if not products:
            raise ValidationError("no products configured", error_code="no_products")
        logger.warning("Unknown product %r; falling back to %s", product_id, products[0].id)
        return products[0]

    @staticmethod
    def unit_amount(product: ProductData) -> int:
        """Stored price in minor units; only a missing price gets the default."""
        if product.price_cents is None:
            return DEFAULT_UNIT_AMOUNT_CENTS
        return product.price_cents

    def create_session(self, product_id: Optional[str], quantity: Optional[int] = None) -> CheckoutSession:
        if not self.client.is_configured():
            raise ProviderUnavailable("stripe_not_configured")
        if not product_id:
            raise ValidationError("missing_productId", error_code="missing_productId")
        quantity = quantity or 1
        if quantity < 1:
            raise ValidationError("quantity must be at least 1", error_code="invalid_quantity")

        product = self.resolve_product(product_id)
        amount = self.unit_amount(product)
        session_id = self.client.create_checkout_session(
            name=product.title,
            unit_amount=amount,
            quantity=quantity,
            currency=self.currency,
            success_url=f"{self.success_url}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=self.cancel_url,
        )

        order_id = None
        if self.order_service is not None:
            try:
                order_id = self.order_service.record_pending(product.id, quantity, session_id)
            except SQLAlchemyError as error:
                logger.error("Checkout session %s created but order was not recorded: %s", session_id, error)

        return CheckoutSession(
            session_id=session_id,
            product_id=product.id,
            unit_amount=amount,
            quantity=quantity,
            order_id=order_id,
        )
