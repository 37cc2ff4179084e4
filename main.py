"""
Foxy Datastore Webhooks: Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime, timezone

from config import settings
from exceptions import INTERNAL_ERROR_MESSAGE
from services.forwarding_service import (
    IDEV_REQUIRED_SETTINGS,
    LUNE_REQUIRED_SETTINGS,
    SHIPTHEORY_REQUIRED_SETTINGS,
)
from services.orderdesk_service import ORDERDESK_REQUIRED_SETTINGS
from services.webflow_service import WEBFLOW_REQUIRED_SETTINGS
from services.wix_service import WIX_REQUIRED_SETTINGS

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


PROVIDER_REQUIRED_SETTINGS = {
    "orderdesk": ORDERDESK_REQUIRED_SETTINGS,
    "webflow": WEBFLOW_REQUIRED_SETTINGS,
    "wix": WIX_REQUIRED_SETTINGS,
    "shiptheory": SHIPTHEORY_REQUIRED_SETTINGS,
    "idevaffiliate": IDEV_REQUIRED_SETTINGS,
    "lune": LUNE_REQUIRED_SETTINGS,
}


def provider_status() -> dict[str, dict]:
    """Configuration state of every webhook, without secret values."""
    return {
        name: {
            "configured": not settings.missing(*required),
            "missing": settings.missing(*required),
        }
        for name, required in PROVIDER_REQUIRED_SETTINGS.items()
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Report which webhooks are configured
    Shutdown: Log
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )

    for name, status in provider_status().items():
        if status["configured"]:
            logger.info("webhook_configured", webhook=name)
        else:
            logger.warning("webhook_not_configured", webhook=name, missing=status["missing"])

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Foxy Datastore Webhooks",
    description="Pre-payment cart validation and transaction forwarding for Foxy.io stores",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and webhook configuration state
    """
    providers = provider_status()

    return {
        "status": "healthy" if any(p["configured"] for p in providers.values()) else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "webhooks": providers
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Foxy Datastore Webhooks",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            name: f"/webhooks/{name}" for name in PROVIDER_REQUIRED_SETTINGS
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and answers in the webhook response shape.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={"ok": False, "details": INTERNAL_ERROR_MESSAGE}
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.webhooks import router as webhooks_router

app.include_router(webhooks_router, prefix="/webhooks", tags=["Webhooks"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
