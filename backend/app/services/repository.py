"""Inspection repository: the storage/database collaborator.

Rows are returned as validated pydantic records so everything downstream
works on plain data. Malformed rows are skipped with a warning instead of
failing the whole request.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.enums import InspectionStatus
from app.models.inspection import Inspection, InspectionPhoto, Property
from app.schemas.inspection import InspectionRecord, PhotoRecord, PropertyRecord

logger = logging.getLogger(__name__)


class InspectionRepository(ABC):
    """Read/write access to properties, inspections and photos."""

    @abstractmethod
    async def get_property(self, property_id: UUID) -> Optional[PropertyRecord]:
        pass

    @abstractmethod
    async def get_inspection(self, inspection_id: UUID) -> Optional[InspectionRecord]:
        pass

    @abstractmethod
    async def list_inspections_for_property(self, property_id: UUID) -> list[InspectionRecord]:
        """Inspections of a property, oldest first."""
        pass

    @abstractmethod
    async def list_photos(self, inspection_id: UUID) -> list[PhotoRecord]:
        """Photos of an inspection in creation order."""
        pass

    @abstractmethod
    async def get_photo(self, photo_id: UUID) -> Optional[PhotoRecord]:
        pass

    @abstractmethod
    async def insert_photo(
        self,
        inspection_id: UUID,
        photo_url: str,
        room: str,
        analysis: dict[str, Any],
    ) -> PhotoRecord:
        pass

    @abstractmethod
    async def update_photo_analysis(self, photo_id: UUID, analysis: dict[str, Any]) -> Optional[PhotoRecord]:
        pass

    @abstractmethod
    async def update_inspection_status(self, inspection_id: UUID, status: InspectionStatus) -> None:
        pass


def _validate(schema, row) -> Optional[Any]:
    try:
        return schema.model_validate(row)
    except ValidationError as e:
        logger.warning(f"[REPOSITORY] Skipping malformed {schema.__name__} {getattr(row, 'id', '?')}: {e.error_count()} errors")
        return None


class SqlInspectionRepository(InspectionRepository):
    """Repository backed by the async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_property(self, property_id: UUID) -> Optional[PropertyRecord]:
        row = await self.db.get(Property, property_id)
        return _validate(PropertyRecord, row) if row else None

    async def get_inspection(self, inspection_id: UUID) -> Optional[InspectionRecord]:
        row = await self.db.get(Inspection, inspection_id)
        return _validate(InspectionRecord, row) if row else None

    async def list_inspections_for_property(self, property_id: UUID) -> list[InspectionRecord]:
        result = await self.db.execute(
            select(Inspection)
            .where(Inspection.property_id == property_id)
            .order_by(Inspection.created_at.asc())
        )
        records = (_validate(InspectionRecord, row) for row in result.scalars().all())
        return [r for r in records if r is not None]

    async def list_photos(self, inspection_id: UUID) -> list[PhotoRecord]:
        result = await self.db.execute(
            select(InspectionPhoto)
            .where(InspectionPhoto.inspection_id == inspection_id)
            .order_by(InspectionPhoto.created_at.asc())
        )
        records = (_validate(PhotoRecord, row) for row in result.scalars().all())
        return [r for r in records if r is not None]

    async def get_photo(self, photo_id: UUID) -> Optional[PhotoRecord]:
        row = await self.db.get(InspectionPhoto, photo_id)
        return _validate(PhotoRecord, row) if row else None

    async def insert_photo(
        self,
        inspection_id: UUID,
        photo_url: str,
        room: str,
        analysis: dict[str, Any],
    ) -> PhotoRecord:
        photo = InspectionPhoto(
            inspection_id=inspection_id,
            photo_url=photo_url,
            room=room,
            ai_analysis_result=analysis,
        )
        self.db.add(photo)
        await self.db.commit()
        await self.db.refresh(photo)
        return PhotoRecord.model_validate(photo)

    async def update_photo_analysis(self, photo_id: UUID, analysis: dict[str, Any]) -> Optional[PhotoRecord]:
        photo = await self.db.get(InspectionPhoto, photo_id)
        if not photo:
            return None
        photo.ai_analysis_result = analysis
        await self.db.commit()
        await self.db.refresh(photo)
        return PhotoRecord.model_validate(photo)

    async def update_inspection_status(self, inspection_id: UUID, status: InspectionStatus) -> None:
        await self.db.execute(
            update(Inspection)
            .where(Inspection.id == inspection_id)
            .values(status=status.value)
        )
        await self.db.commit()


def get_repository(db: AsyncSession = Depends(get_db)) -> InspectionRepository:
    return SqlInspectionRepository(db)
