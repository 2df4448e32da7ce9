"""
API Routes Module
"""
from .health import router as health_router
from .dashboard import router as dashboard_router
from .cows import router as cows_router
from .diagnostics import router as diagnostics_router

__all__ = [
    "health_router",
    "dashboard_router",
    "cows_router",
    "diagnostics_router",
]
