"""
Application factory and startup wiring.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from portal.api.routes import api_router
from portal.core.config import DEFAULT_ADMIN_KEY, DEFAULT_SECRET_KEY, Settings
from portal.core.database import create_db_engine, create_session_factory
from portal.core.exceptions import create_exception_handlers
from portal.services.auth_service import AuthService
from portal.services.checkout_service import CheckoutService
from portal.services.config_store import ConfigStore, JsonConfigStore, SqlConfigStore
from portal.services.migration_runner import MigrationRunner
from portal.services.order_service import OrderService
from portal.services.stripe_client import StripeCheckoutClient

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@dataclass
class PortalServices:
    """Everything the route handlers need, built once per process"""
    store: ConfigStore
    auth: AuthService
    checkout: CheckoutService


def build_services(settings: Settings, store: ConfigStore, order_service: Optional[OrderService] = None) -> PortalServices:
    auth = AuthService(
        store,
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    client = StripeCheckoutClient(
        settings.STRIPE_SECRET_KEY,
        base_url=settings.STRIPE_API_BASE,
        timeout_seconds=settings.STRIPE_TIMEOUT_SECONDS,
    )
    checkout = CheckoutService(
        store,
        client,
        success_url=settings.SUCCESS_URL,
        cancel_url=settings.get_cancel_url(),
        currency=settings.CHECKOUT_CURRENCY,
        order_service=order_service,
    )
    return PortalServices(store=store, auth=auth, checkout=checkout)


def bootstrap(settings: Settings) -> PortalServices:
    """Prepare the configured store; raises FatalInitError if it cannot be made consistent."""
    if settings.CONFIG_BACKEND == "json":
        store = JsonConfigStore(settings.CONFIG_PATH)
        store.initialize(settings.DEFAULT_ACCESS_PASSWORD)
        order_service = None
        if settings.RECORD_ORDERS:
            logger.info("Orders are not recorded with the json config backend")
    else:
        engine = create_db_engine(settings.DATABASE_URL)
        result = MigrationRunner(
            engine,
            legacy_path=Path(settings.LEGACY_CONFIG_PATH) if settings.LEGACY_CONFIG_PATH else None,
            default_password=settings.DEFAULT_ACCESS_PASSWORD,
        ).run()
        logger.info("Store migration finished: %s", result.status)
        session_factory = create_session_factory(engine)
        store = SqlConfigStore(session_factory)
        order_service = OrderService(session_factory) if settings.RECORD_ORDERS else None

    if settings.ADMIN_KEY == DEFAULT_ADMIN_KEY:
        logger.warning("ADMIN_KEY is the default value; anyone who knows it can change portal settings")
    if settings.SECRET_KEY == DEFAULT_SECRET_KEY:
        logger.warning("SECRET_KEY is the default value; access tokens can be forged")
    if not settings.provider_configured():
        logger.warning("STRIPE_SECRET_KEY is not set; checkout sessions will be refused")

    return build_services(settings, store, order_service)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting exclusive drop portal...")
    if getattr(app.state, "services", None) is None:
        app.state.services = bootstrap(app.state.settings)
    logger.info("Portal ready (config backend: %s)", app.state.services.store.backend)
    yield
    logger.info("Portal stopped.")


def create_app(settings: Settings, services: Optional[PortalServices] = None) -> FastAPI:
    """Build the FastAPI app; pass ``services`` to skip startup bootstrapping."""
    app = FastAPI(
        title="Exclusive Drop Portal",
        description="Password-gated preorder catalog with Stripe Checkout hand-off",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    for exc_class, handler in create_exception_handlers(settings.EXPOSE_PROVIDER_ERRORS).items():
        app.add_exception_handler(exc_class, handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        current = app.state.services
        return {
            "status": "healthy" if current is not None else "starting",
            "backend": current.store.backend if current is not None else None,
        }

    # Frontend pages are served from the same origin when present
    static_dir = Path(settings.STATIC_DIR)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        @app.get("/")
        async def root():
            """Root endpoint"""
            return {"message": "Exclusive Drop Portal API", "version": VERSION, "status": "running"}

    return app
