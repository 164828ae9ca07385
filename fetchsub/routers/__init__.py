"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .extract import router as extract_router
from .download import router as download_router
from .playlist import router as playlist_router
from .status import router as status_router
from .coins import router as coins_router
from .transactions import router as transactions_router
from .subscriptions import router as subscriptions_router
from .health import router as health_router
from .cache import router as cache_router
from .admin import router as admin_router

__all__ = [
    "extract_router",
    "download_router",
    "playlist_router",
    "status_router",
    "coins_router",
    "transactions_router",
    "subscriptions_router",
    "health_router",
    "cache_router",
    "admin_router",
]
