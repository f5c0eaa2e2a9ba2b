"""Inspection schemas: storage records, the report snapshot and request bodies."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from app.models.enums import InspectionStatus, InspectionType
from app.schemas.analysis import AnalysisResult
from app.schemas.base import BaseSchema, coerce_enum

logger = logging.getLogger(__name__)

UNNAMED_ROOM = "Não informado"


def parse_datetime_or_now(value: Any) -> datetime:
    """Dates that cannot be parsed default to now (UTC)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


class PropertyRecord(BaseSchema):
    """Property row (`properties`)."""

    id: UUID
    name: str = ""
    address: str = ""
    type: str = ""
    description: Optional[str] = None
    responsible_name: Optional[str] = None

    @field_validator("name", "address", "type", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class InspectionRecord(BaseSchema):
    """Inspection row (`inspections`)."""

    id: UUID
    property_id: UUID
    inspection_type: InspectionType
    status: InspectionStatus = InspectionStatus.PENDING
    inspection_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    general_observations: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> InspectionStatus:
        return coerce_enum(v, InspectionStatus, InspectionStatus.PENDING)

    @field_validator("inspection_date", "created_at", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> datetime:
        return parse_datetime_or_now(v)


class PhotoRecord(BaseSchema):
    """Photo row (`inspection_photos`); analysis kept as raw JSON."""

    id: UUID
    inspection_id: UUID
    photo_url: str
    room: str = ""
    ai_analysis_result: Optional[Any] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("room", mode="before")
    @classmethod
    def _room(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> datetime:
        return parse_datetime_or_now(v)


class InspectionPhoto(BaseSchema):
    """A photo with its validated analysis."""

    id: UUID
    url: str
    room: str
    analysis: AnalysisResult = Field(default_factory=AnalysisResult)
    uploaded_at: datetime

    @classmethod
    def from_record(cls, record: PhotoRecord) -> "InspectionPhoto":
        room = record.room
        if not room.strip():
            logger.warning(
                f"[REPORT] Photo {record.id} has no room, filed under \"{UNNAMED_ROOM}\"",
                extra={"inspection_id": record.inspection_id, "photo_id": record.id},
            )
            room = UNNAMED_ROOM
        return cls(
            id=record.id,
            url=record.photo_url,
            room=room,
            analysis=AnalysisResult.from_payload(record.ai_analysis_result),
            uploaded_at=record.created_at,
        )


class InspectionSnapshot(BaseSchema):
    """Immutable view of one inspection and its photos, taken at the start of a report."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    inspection: InspectionRecord
    photos: tuple[InspectionPhoto, ...] = ()

    @classmethod
    def from_records(cls, inspection: InspectionRecord, photos: list[PhotoRecord]) -> "InspectionSnapshot":
        ordered = sorted(photos, key=lambda p: p.created_at)
        return cls(
            inspection=inspection,
            photos=tuple(InspectionPhoto.from_record(p) for p in ordered),
        )

    def rooms(self) -> list[str]:
        """Distinct room names in order of first photo."""
        seen: list[str] = []
        for photo in self.photos:
            if photo.room not in seen:
                seen.append(photo.room)
        return seen

    def photos_in_room(self, room: str) -> list[InspectionPhoto]:
        return [p for p in self.photos if p.room == room]

    def first_photo_in_room(self, room: str) -> Optional[InspectionPhoto]:
        return next((p for p in self.photos if p.room == room), None)


class PhotoIngestRequest(BaseSchema):
    """Register an uploaded photo and analyse it."""

    room: str = Field(..., min_length=1, max_length=120)
    object_path: str = Field(..., min_length=1)


class PhotoResponse(BaseSchema):
    id: UUID
    inspection_id: UUID
    photo_url: str
    room: str
    analysis: AnalysisResult
    created_at: datetime

    @classmethod
    def from_record(cls, record: PhotoRecord) -> "PhotoResponse":
        return cls(
            id=record.id,
            inspection_id=record.inspection_id,
            photo_url=record.photo_url,
            room=record.room,
            analysis=AnalysisResult.from_payload(record.ai_analysis_result),
            created_at=record.created_at,
        )
