"""
Password gate for the exclusive catalog.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from portal.core.exceptions import AuthError, FeatureDisabled
from portal.core.security import (
    EXCLUSIVE_CAPABILITY,
    create_access_token,
    decode_access_token,
    verify_password,
)
from portal.services.config_store import ConfigStore, ProductData

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class Credential:
    """Signed access token issued after a successful password check"""
    token: str
    capability: str
    expires_at: datetime


class AuthService:
    """Issues and checks exclusive-access credentials.

    There is a single shared password, so every failure is reported the same
    way. Credentials are not revocable; they stay usable until ``exp``.
    """

    def __init__(
        self,
        store: ConfigStore,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 60,
    ):
        self.store = store
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def authenticate(self, password: Optional[str], now: Optional[datetime] = None) -> Credential:
        """Check ``password`` against the stored hash and issue a credential."""
        if not password:
            raise AuthError("invalid", error_code="invalid")

        snapshot = self.store.read()
        if not verify_password(password, snapshot.password_hash):
            logger.info("Rejected exclusive access attempt")
            raise AuthError("invalid", error_code="invalid")

        token, expires_at = create_access_token(
            self.secret_key,
            algorithm=self.algorithm,
            expires_delta=timedelta(minutes=self.expire_minutes),
            now=now,
        )
        return Credential(token=token, capability=EXCLUSIVE_CAPABILITY, expires_at=expires_at)

    def authorize(self, token: Optional[str]) -> Dict[str, Any]:
        """Verify signature, expiry and capability; the password is not re-checked."""
        if not token:
            raise AuthError("missing token", error_code="missing_token")
        claims = decode_access_token(token, self.secret_key, algorithm=self.algorithm)
        if claims is None or claims.get("access") != EXCLUSIVE_CAPABILITY:
            raise AuthError("invalid token", error_code="invalid_token")
        return claims

    def authorize_header(self, authorization: Optional[str]) -> Dict[str, Any]:
        """Authorize an ``Authorization: Bearer <token>`` header value."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthError("missing token", error_code="missing_token")
        return self.authorize(authorization[len(BEARER_PREFIX):].strip())

    def exclusive_products(self, authorization: Optional[str]) -> List[ProductData]:
        """Catalog for a bearer of a valid credential, when the feature is on."""
        self.authorize_header(authorization)
        snapshot = self.store.read()
        if not snapshot.exclusive_enabled:
            raise FeatureDisabled("exclusive-disabled")
        return snapshot.products
