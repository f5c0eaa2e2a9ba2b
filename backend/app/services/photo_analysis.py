"""
Photo ingest: analyse an uploaded room photo and register it.

Entry photos get a fresh AI analysis. Exit photos are compared against the
latest entry inspection of the same property: a duplicate of the entry image
reuses the entry analysis, anything else goes to the AI together with the
entry room's objects.

A photo is either registered with its analysis or not at all. If anything
fails after the upload, the stored object is deleted before the error
propagates.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends

from app.models.enums import InspectionStatus, InspectionType
from app.schemas.analysis import AnalysisResult
from app.schemas.inspection import InspectionRecord, InspectionSnapshot, PhotoRecord
from app.services.analysis_client import AnalysisClient, AnalysisRequest, get_analysis_client
from app.services.duplicate_guard import derive_conservative_analysis, find_duplicate_entry_photo
from app.services.markers import assign_markers
from app.services.matcher import collect_room_objects
from app.services.repository import InspectionRepository, get_repository
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

UPLOAD_MISSING_MESSAGE = "A foto enviada não foi encontrada no armazenamento. Envie a imagem novamente."


class PhotoUploadMissingError(Exception):
    """The object to register was never uploaded (or is already gone)."""

    def __init__(self, object_path: str):
        super().__init__(UPLOAD_MISSING_MESSAGE)
        self.object_path = object_path
        self.user_message = UPLOAD_MISSING_MESSAGE


class PhotoIngestService:
    """Registers uploaded photos with their analysis."""

    def __init__(
        self,
        repository: InspectionRepository,
        storage: StorageService,
        analysis_client: AnalysisClient,
    ):
        self.repository = repository
        self.storage = storage
        self.analysis_client = analysis_client

    async def latest_entry_snapshot(self, property_id: UUID) -> Optional[InspectionSnapshot]:
        inspections = await self.repository.list_inspections_for_property(property_id)
        entries = [i for i in inspections if i.inspection_type == InspectionType.ENTRY]
        if not entries:
            return None
        entry = max(entries, key=lambda i: i.created_at)
        photos = await self.repository.list_photos(entry.id)
        return InspectionSnapshot.from_records(entry, photos)

    async def analyze(self, inspection: InspectionRecord, room: str, photo_url: str) -> AnalysisResult:
        """Pick the analysis path for one photo. Raises AnalysisServiceError."""
        if inspection.inspection_type != InspectionType.EXIT:
            return await self.analysis_client.analyze(
                AnalysisRequest(image_url=photo_url, room_name=room)
            )

        entry = await self.latest_entry_snapshot(inspection.property_id)
        if entry is None:
            logger.info(
                "[ANALYSIS] Exit photo without an entry inspection, analysing as-is",
                extra={"inspection_id": inspection.id, "room": room},
            )
            return await self.analysis_client.analyze(
                AnalysisRequest(image_url=photo_url, room_name=room, entry_objects=[])
            )

        entry_objects = collect_room_objects(entry.photos_in_room(room))
        duplicate = find_duplicate_entry_photo(list(entry.photos), room, photo_url)
        if duplicate is not None and duplicate.analysis != AnalysisResult():
            logger.info(
                "[GUARD] Deriving exit analysis from entry photo",
                extra={"inspection_id": inspection.id, "photo_id": duplicate.id, "room": room},
            )
            derived = derive_conservative_analysis(duplicate.analysis)
            return derived.model_copy(update={"objects_detected": assign_markers(derived.objects_detected)})

        return await self.analysis_client.analyze(
            AnalysisRequest(
                image_url=photo_url,
                room_name=room,
                entry_objects=entry_objects,
                is_duplicate_image=duplicate is not None,
            )
        )

    async def ingest(self, inspection: InspectionRecord, room: str, object_path: str) -> PhotoRecord:
        if not await self.storage.verify_upload(object_path):
            logger.warning(
                f"[STORAGE] Upload not found: {object_path}",
                extra={"inspection_id": inspection.id, "room": room},
            )
            raise PhotoUploadMissingError(object_path)

        photo_url = self.storage.public_url(object_path)
        try:
            analysis = await self.analyze(inspection, room, photo_url)
            record = await self.repository.insert_photo(
                inspection.id,
                photo_url,
                room,
                analysis.to_payload(),
            )
        except Exception:
            logger.warning(
                f"[ANALYSIS] Photo not registered, discarding upload {object_path}",
                extra={"inspection_id": inspection.id, "room": room},
            )
            await self._discard_quietly(object_path)
            raise

        new_status = inspection.status.advance_to(InspectionStatus.IN_PROGRESS)
        if new_status != inspection.status:
            await self.repository.update_inspection_status(inspection.id, new_status)

        logger.info(
            f"[ANALYSIS] Registered photo {record.id}",
            extra={"inspection_id": inspection.id, "room": room},
        )
        return record

    async def _discard_quietly(self, object_path: str) -> None:
        # Cleanup errors must not mask the ingest error
        try:
            await self.storage.discard(object_path)
        except Exception:
            logger.exception(f"[STORAGE] Cleanup failed for {object_path}")

    async def update_analysis(self, photo_id: UUID, analysis: AnalysisResult) -> Optional[PhotoRecord]:
        """Save a user-edited analysis, filling in markers for new objects."""
        analysis = analysis.model_copy(update={
            "objects_detected": assign_markers(analysis.objects_detected),
        })
        return await self.repository.update_photo_analysis(photo_id, analysis.to_payload())


def get_photo_ingest_service(
    repository: InspectionRepository = Depends(get_repository),
) -> PhotoIngestService:
    return PhotoIngestService(repository, get_storage_service(), get_analysis_client())
