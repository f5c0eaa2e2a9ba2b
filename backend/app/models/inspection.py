"""Property, Inspection and InspectionPhoto models.

Mappings for the tables the report engine reads and writes. Status and type
columns are plain text in the existing schema; validation happens in the
pydantic records.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import InspectionStatus


class Property(Base):
    """A property under inspection."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    facade_photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inspections: Mapped[list["Inspection"]] = relationship(back_populates="property")


class Inspection(Base):
    """An inspection record (entry or exit visit)."""

    __tablename__ = "inspections"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inspection_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=InspectionStatus.PENDING.value)
    inspection_type: Mapped[str] = mapped_column(String(16), nullable=False)
    general_observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    property: Mapped["Property"] = relationship(back_populates="inspections")
    photos: Mapped[list["InspectionPhoto"]] = relationship(
        back_populates="inspection",
        order_by="InspectionPhoto.created_at",
        cascade="all, delete-orphan",
    )


class InspectionPhoto(Base):
    """A photo of one room with its stored AI analysis."""

    __tablename__ = "inspection_photos"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("inspections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    room: Mapped[str] = mapped_column(Text, nullable=False)
    ai_analysis_result: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    inspection: Mapped["Inspection"] = relationship(back_populates="photos")
