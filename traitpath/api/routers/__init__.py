"""API routers for traitpath."""

from traitpath.api.routers import calculation_router

__all__ = [
    "calculation_router",
]
