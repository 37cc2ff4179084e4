"""
API route modules.
"""

from routes.webhooks import router as webhooks_router

__all__ = [
    "webhooks_router",
]
