"""Portal error taxonomy and the FastAPI handlers that render it."""

import logging
import traceback
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    """Base exception for all portal errors surfaced to HTTP callers."""

    status_code = 400
    error_code = "error"

    def __init__(self, message: str = "", error_code: Optional[str] = None):
        if error_code:
            self.error_code = error_code
        self.message = message or self.error_code
        super().__init__(self.message)


class ValidationError(PortalError):
    """A required field is missing or malformed."""

    status_code = 400
    error_code = "invalid_request"


class AuthError(PortalError):
    """Bad password, credential or admin key."""

    status_code = 401
    error_code = "unauthorized"


class FeatureDisabled(PortalError):
    """The exclusive catalog is switched off."""

    status_code = 403
    error_code = "exclusive-disabled"


class ProviderUnavailable(PortalError):
    """The payment provider has no credentials configured."""

    status_code = 500
    error_code = "stripe_not_configured"


class ProviderError(PortalError):
    """The payment provider call failed."""

    status_code = 500
    error_code = "stripe_error"

    def __init__(self, message: str = "", details: str = ""):
        super().__init__(message or "payment provider request failed")
        self.details = details


class FatalInitError(Exception):
    """Startup could not produce a consistent store; the process must not serve."""


def create_exception_handlers(expose_provider_errors: bool = False):
    """Build the handler mapping registered on the FastAPI app."""

    async def portal_exception_handler(request: Request, exc: PortalError):
        logger.warning(
            "%s on %s %s: %s (status=%s)",
            type(exc).__name__, request.method, request.url.path, exc.message, exc.status_code
        )
        content = {"error": exc.error_code, "message": exc.message}
        if expose_provider_errors and getattr(exc, "details", ""):
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("Invalid request body on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "message": "Request body failed validation"},
        )

    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s", request.method, request.url.path)
        logger.error("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "An unexpected error occurred"},
        )

    return {
        PortalError: portal_exception_handler,
        RequestValidationError: request_validation_handler,
        Exception: generic_exception_handler,
    }
