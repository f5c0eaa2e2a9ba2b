"""Inspections router - photo ingest and analysis edits."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.schemas.analysis import AnalysisResult
from app.schemas.inspection import InspectionSnapshot, PhotoIngestRequest, PhotoResponse
from app.services.analysis_client import AnalysisServiceError
from app.services.photo_analysis import PhotoIngestService, PhotoUploadMissingError, get_photo_ingest_service
from app.services.repository import InspectionRepository, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inspections", tags=["inspections"])


@router.get("/{inspection_id}", response_model=InspectionSnapshot)
async def get_inspection(
    inspection_id: UUID,
    repository: InspectionRepository = Depends(get_repository),
):
    """Inspection with its photos in upload order."""
    inspection = await repository.get_inspection(inspection_id)
    if not inspection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vistoria não encontrada.")
    photos = await repository.list_photos(inspection_id)
    return InspectionSnapshot.from_records(inspection, photos)


@router.post("/{inspection_id}/photos", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def add_photo(
    inspection_id: UUID,
    data: PhotoIngestRequest,
    repository: InspectionRepository = Depends(get_repository),
    service: PhotoIngestService = Depends(get_photo_ingest_service),
):
    """
    Analyse an uploaded photo and register it in a room.

    The upload is deleted if the photo cannot be registered.
    """
    inspection = await repository.get_inspection(inspection_id)
    if not inspection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vistoria não encontrada.")

    try:
        record = await service.ingest(inspection, data.room, data.object_path)
    except PhotoUploadMissingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.user_message)
    except AnalysisServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.user_message)
    except SQLAlchemyError as e:
        logger.error(f"[ANALYSIS] Failed to save photo: {e}", extra={"inspection_id": inspection_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Falha ao salvar os dados da foto. Tente novamente.",
        )

    return PhotoResponse.from_record(record)


@router.put("/{inspection_id}/photos/{photo_id}/analysis", response_model=PhotoResponse)
async def update_photo_analysis(
    inspection_id: UUID,
    photo_id: UUID,
    data: AnalysisResult,
    repository: InspectionRepository = Depends(get_repository),
    service: PhotoIngestService = Depends(get_photo_ingest_service),
):
    """Save a reviewed analysis for a photo."""
    photo = await repository.get_photo(photo_id)
    if not photo or photo.inspection_id != inspection_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Foto não encontrada.")

    record = await service.update_analysis(photo_id, data)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Foto não encontrada.")
    return PhotoResponse.from_record(record)
