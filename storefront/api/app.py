"""
FastAPI application for the storefront admin console.

The console talks to the API under ``/api``. Domain errors raised by the use
cases are rendered by one exception handler as
``{"error": code, "message": ..., "details": {...}}`` with the status code
the error class declares.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
from fastapi_pagination.utils import disable_installed_extensions_check

from storefront import __version__
from storefront.api.dependencies import DependencyContainer, get_container
from storefront.api.routers import (
    auth,
    clients,
    orders,
    payments,
    products,
    system,
)
from storefront.config import Settings, get_settings
from storefront.errors import StorefrontError

# Disable pagination extensions check for cleaner startup
disable_installed_extensions_check()

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging based on environment variables"""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get(
        "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        print(f"Invalid log level: {log_level}, defaulting to INFO")
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=log_format, force=True)

    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


async def storefront_error_handler(
    request: Request, exc: StorefrontError
) -> JSONResponse:
    logger.info(
        "Request failed with domain error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
            "status_code": exc.status_code,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unexpected_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.error(
        "Unhandled error while serving request",
        exc_info=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
        },
    )
    # Generic message to prevent information leakage
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": {},
        },
    )


async def sweep_stale_orders(container: DependencyContainer) -> None:
    """Periodically reject PENDING orders older than the expiry window."""
    settings = container.settings
    max_age = timedelta(hours=settings.order_expiry_hours)
    while True:
        await asyncio.sleep(settings.order_sweep_interval_seconds)
        try:
            await container.order_lifecycle.reject_stale_orders(max_age)
        except StorefrontError as e:
            logger.warning(
                "Stale order sweep failed",
                extra={"error_code": e.code, "error_message": e.message},
            )
        except Exception as e:
            logger.error(
                "Stale order sweep crashed",
                exc_info=True,
                extra={"error_type": type(e).__name__},
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    provider = app.dependency_overrides.get(get_container, get_container)
    container: DependencyContainer = provider()
    await container.bootstrap()

    sweeper = None
    if container.settings.order_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(sweep_stale_orders(container))

    logger.info("Storefront API started", extra={"version": __version__})
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Storefront API",
        description="Order pricing and order/payment lifecycle engine",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(
        StorefrontError, storefront_error_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unexpected_error_handler)

    _ = add_pagination(app)

    app.include_router(system.router, tags=["System"])
    app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(
        products.router, prefix="/api/products", tags=["Products"]
    )
    app.include_router(
        clients.router, prefix="/api/clients", tags=["Clients"]
    )
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
    app.include_router(
        payments.router, prefix="/api/payments", tags=["Payments"]
    )
    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.api.app:app",
        host="0.0.0.0",
        port=8080,
        log_level="info",
    )
