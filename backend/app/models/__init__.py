"""SQLAlchemy models for the inspection report engine."""

from app.models.inspection import Property, Inspection, InspectionPhoto

__all__ = [
    "Property",
    "Inspection",
    "InspectionPhoto",
]
