"""
Foxy webhook routes.

Thin adapters: each route hands the raw request to its integration's
dispatcher and returns `{ok, details}` with the dispatcher's status code.
"""

from typing import Callable
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
import structlog

from config import Settings, get_settings
from models.webhook import WebhookRequest
from services.forwarding_service import (
    build_idevaffiliate_dispatcher,
    build_lune_dispatcher,
    build_shiptheory_dispatcher,
)
from services.orderdesk_service import build_orderdesk_dispatcher
from services.webflow_service import build_webflow_dispatcher
from services.webhook_service import WebhookDispatcher
from services.wix_service import build_wix_dispatcher

logger = structlog.get_logger(__name__)

router = APIRouter()

# Non-POST calls are rejected by the dispatcher, not the router
WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


# ===================
# HELPERS
# ===================

async def to_webhook_request(request: Request) -> WebhookRequest:
    """Framework request to WebhookRequest, body kept byte for byte."""
    raw = await request.body()
    return WebhookRequest(
        http_method=request.method,
        headers=dict(request.headers),
        body=raw.decode("utf-8", errors="replace")
    )


async def dispatch(
    request: Request,
    build: Callable[[Settings], WebhookDispatcher],
    settings: Settings
) -> JSONResponse:
    """Run the dispatcher off the event loop; provider calls block."""
    webhook_request = await to_webhook_request(request)
    response = await run_in_threadpool(build(settings).handle, webhook_request)
    return JSONResponse(status_code=response.status_code, content=response.body())


# ===================
# ROUTES
# ===================

@router.api_route("/orderdesk", methods=WEBHOOK_METHODS)
async def orderdesk_webhook(request: Request, settings: Settings = Depends(get_settings)):
    """Pre-payment validation and stock deduction with OrderDesk."""
    return await dispatch(request, build_orderdesk_dispatcher, settings)


@router.api_route("/webflow", methods=WEBHOOK_METHODS)
async def webflow_webhook(request: Request, settings: Settings = Depends(get_settings)):
    """Pre-payment validation with Webflow CMS."""
    return await dispatch(request, build_webflow_dispatcher, settings)


@router.api_route("/wix", methods=WEBHOOK_METHODS)
async def wix_webhook(request: Request, settings: Settings = Depends(get_settings)):
    """Pre-payment validation with Wix Stores."""
    return await dispatch(request, build_wix_dispatcher, settings)


@router.api_route("/shiptheory", methods=WEBHOOK_METHODS)
async def shiptheory_webhook(request: Request, settings: Settings = Depends(get_settings)):
    return await dispatch(request, build_shiptheory_dispatcher, settings)


@router.api_route("/idevaffiliate", methods=WEBHOOK_METHODS)
async def idevaffiliate_webhook(request: Request, settings: Settings = Depends(get_settings)):
    return await dispatch(request, build_idevaffiliate_dispatcher, settings)


@router.api_route("/lune", methods=WEBHOOK_METHODS)
async def lune_webhook(request: Request, settings: Settings = Depends(get_settings)):
    return await dispatch(request, build_lune_dispatcher, settings)
