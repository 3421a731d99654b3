"""Routers package."""

from .analytics import router as analytics_router
from .competitors import router as competitors_router
from .sync import router as sync_router

__all__ = [
    "analytics_router",
    "competitors_router",
    "sync_router",
]
