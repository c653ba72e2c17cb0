"""
Stripe Checkout REST client (session creation only)
"""
import logging
from typing import Any, Dict, Optional

import requests

from portal.core.exceptions import ProviderError, ProviderUnavailable

logger = logging.getLogger(__name__)


class StripeCheckoutClient:
    """Mints Checkout Sessions over Stripe's form-encoded REST API.

    No retries; a failed call surfaces straight to the caller.
    """

    SESSIONS_PATH = "/v1/checkout/sessions"

    def __init__(
        self,
        secret_key: Optional[str],
        base_url: str = "https://api.stripe.com",
        timeout_seconds: float = 10.0,
    ):
        self.secret_key = (secret_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def _form(
        self,
        name: str,
        unit_amount: int,
        quantity: int,
        currency: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, Any]:
        return {
            "payment_method_types[0]": "card",
            "mode": "payment",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][product_data][name]": name,
            "line_items[0][price_data][unit_amount]": str(unit_amount),
            "line_items[0][quantity]": str(quantity),
            "success_url": success_url,
            "cancel_url": cancel_url,
        }

    def create_checkout_session(
        self,
        name: str,
        unit_amount: int,
        quantity: int,
        currency: str,
        success_url: str,
        cancel_url: str,
    ) -> str:
        """Create a session and return its id unchanged."""
        if not self.is_configured():
            raise ProviderUnavailable("stripe_not_configured")

        url = f"{self.base_url}{self.SESSIONS_PATH}"
        form = self._form(name, unit_amount, quantity, currency, success_url, cancel_url)
        try:
            response = requests.post(
                url,
                data=form,
                auth=(self.secret_key, ""),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as error:
            logger.error("Stripe request failed: %s", error)
            raise ProviderError(details=str(error)) from error

        body = self._json(response)
        if response.status_code >= 400:
            message = str((body.get("error") or {}).get("message") or f"status={response.status_code}")
            logger.error("Stripe rejected checkout session: %s", message)
            raise ProviderError(details=message)

        session_id = str(body.get("id") or "")
        if not session_id:
            logger.error("Stripe response carried no session id: %s", body)
            raise ProviderError(details="provider response is missing a session id")
        return session_id

    @staticmethod
    def _json(response) -> Dict[str, Any]:
        try:
            body = response.json() if response.content else {}
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
