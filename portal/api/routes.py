"""
API routes for the exclusive drop portal
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from portal.api.schemas import (
    AdminSettingsUpdate,
    AuthRequest,
    AuthResponse,
    CheckoutRequest,
    CheckoutResponse,
    product_payload,
)
from portal.api.security import require_admin_key
from portal.core.exceptions import ValidationError
from portal.core.security import hash_password
from portal.services.auth_service import AuthService
from portal.services.checkout_service import CheckoutService
from portal.services.config_store import ConfigStore, SettingsPatch

logger = logging.getLogger(__name__)

# Create router
api_router = APIRouter()


def get_store(request: Request) -> ConfigStore:
    return request.app.state.services.store


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.services.auth


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.services.checkout


# Access gate
@api_router.post("/auth", response_model=AuthResponse)
def authenticate(payload: AuthRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Exchange the shared password for a one-hour access token"""
    if not payload.password:
        raise ValidationError("missing password", error_code="missing_password")
    credential = auth_service.authenticate(payload.password)
    return {"token": credential.token}


@api_router.get("/exclusive")
def get_exclusive_products(
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exclusive catalog for bearers of a valid token"""
    return {"products": product_payload(auth_service.exclusive_products(authorization))}


# Checkout
@api_router.get("/config")
def get_public_config(request: Request):
    """Public provider configuration for the browser"""
    publishable_key = request.app.state.settings.STRIPE_PUBLISHABLE_KEY
    return {"publicProviderKey": publishable_key, "stripePublishableKey": publishable_key}


@api_router.post("/checkout-session", response_model=CheckoutResponse)
@api_router.post("/create-checkout-session", response_model=CheckoutResponse, include_in_schema=False)
def create_checkout_session(
    payload: CheckoutRequest,
    checkout_service: CheckoutService = Depends(get_checkout_service),
):
    """Mint a provider checkout session for a product"""
    session = checkout_service.create_session(payload.productId, payload.quantity)
    return {"sessionId": session.session_id}


# Admin
@api_router.get("/admin/settings", dependencies=[Depends(require_admin_key)])
def get_admin_settings(store: ConfigStore = Depends(get_store)):
    """Current gate flag and catalog"""
    snapshot = store.read()
    products = product_payload(snapshot.products)
    return {
        "exclusiveEnabled": snapshot.exclusive_enabled,
        "products": products,
        "exclusiveProducts": products,
    }


@api_router.put("/admin/settings", dependencies=[Depends(require_admin_key)])
def update_admin_settings(payload: AdminSettingsUpdate, store: ConfigStore = Depends(get_store)):
    """Update only the supplied settings fields"""
    password_hash = None
    if payload.password:
        try:
            password_hash = hash_password(payload.password)
        except ValueError as error:
            raise ValidationError(str(error), error_code="invalid_password") from error

    products = None
    if payload.products is not None:
        try:
            products = [item.to_product() for item in payload.products]
        except ValueError as error:
            raise ValidationError(str(error), error_code="invalid_product") from error

    patch = SettingsPatch(
        exclusive_enabled=payload.exclusiveEnabled,
        password_hash=password_hash,
        products=products,
    )
    if patch.is_empty():
        return {"ok": True}

    store.write(patch)
    logger.info(
        "Admin settings updated (exclusiveEnabled=%s, password=%s, products=%s)",
        patch.exclusive_enabled,
        "changed" if password_hash else "unchanged",
        len(patch.products) if patch.products is not None else "unchanged",
    )
    return {"ok": True}
