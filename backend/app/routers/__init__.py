"""API Routers for the inspection report service."""

from app.routers.inspections import router as inspections_router
from app.routers.reports import router as reports_router

__all__ = [
    "inspections_router",
    "reports_router",
]
