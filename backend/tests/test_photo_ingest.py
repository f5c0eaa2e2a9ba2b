# backend/tests/test_photo_ingest.py
from __future__ import annotations

import asyncio

import pytest

from app.models.enums import ConsistencyMode, InspectionStatus, ObjectCondition
from app.schemas.analysis import AnalysisResult
from app.services.analysis_client import GENERIC_MESSAGE, AnalysisServiceError
from app.services.duplicate_guard import CONSERVATIVE_PREFIX
from app.services.photo_analysis import PhotoIngestService, PhotoUploadMissingError

from factories import (
    FakeAnalysisClient,
    InMemoryRepository,
    T0,
    analysis,
    inspection_record,
    obj,
    photo_record,
    property_record,
    storage_service,
)


def _service(repo, client=None, *objects):
    return PhotoIngestService(repo, storage_service(*objects), client or FakeAnalysisClient())


def _with_entry(repo, room="Sala", url="https://cdn.test/e/sala_01.jpg", objects=None):
    repo.add_property(property_record())
    entry = repo.add_inspection(inspection_record("entry", status="completed"))
    repo.add_photo(photo_record(entry, room, analysis(objects or [obj("sofá"), obj("tv", "not_found")]), url=url))
    return entry


def test_entry_photo_uses_initial_mode_and_starts_inspection():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    inspection = repo.add_inspection(inspection_record("entry"))
    client = FakeAnalysisClient()

    record = asyncio.run(_service(repo, client, "uploads/a.jpg").ingest(inspection, "Cozinha", "uploads/a.jpg"))

    assert record.photo_url == "https://bucket.test/uploads/a.jpg"
    assert record.room == "Cozinha"
    assert client.requests[0].consistency_mode == ConsistencyMode.INITIAL
    assert client.requests[0].entry_objects is None
    assert repo.inspections[inspection.id].status == InspectionStatus.IN_PROGRESS


def test_exit_duplicate_reuses_entry_analysis_without_ai_call():
    repo = InMemoryRepository()
    _with_entry(repo)
    exit = repo.add_inspection(inspection_record("exit", created_at=T0.replace(month=6)))
    client = FakeAnalysisClient()

    record = asyncio.run(_service(repo, client, "uploads/sala_01.jpg").ingest(exit, "Sala", "uploads/sala_01.jpg"))

    assert client.requests == []
    result = AnalysisResult.from_payload(record.ai_analysis_result)
    assert result.description.startswith(CONSERVATIVE_PREFIX)
    assert [o.item for o in result.objects_detected] == ["sofá", "tv"]
    assert result.objects_detected[1].condition == ObjectCondition.GOOD
    assert all(o.marker_coordinates is not None for o in result.objects_detected)


def test_exit_photo_is_compared_against_entry_room_objects():
    repo = InMemoryRepository()
    _with_entry(repo, room="Quarto", url="https://cdn.test/e/IMG_1.jpg", objects=[obj("cama"), obj("cômoda")])
    exit = repo.add_inspection(inspection_record("exit", created_at=T0.replace(month=6)))
    client = FakeAnalysisClient()

    asyncio.run(_service(repo, client, "uploads/IMG_2.jpg").ingest(exit, "Quarto", "uploads/IMG_2.jpg"))

    request = client.requests[0]
    assert request.consistency_mode == ConsistencyMode.COMPARISON
    assert [o.item for o in request.entry_objects] == ["cama", "cômoda"]
    assert request.is_duplicate_image is False


def test_exit_room_missing_at_entry_sends_empty_entry_objects():
    repo = InMemoryRepository()
    _with_entry(repo)
    exit = repo.add_inspection(inspection_record("exit", created_at=T0.replace(month=6)))
    client = FakeAnalysisClient()

    asyncio.run(_service(repo, client, "uploads/IMG_9.jpg").ingest(exit, "Varanda", "uploads/IMG_9.jpg"))

    assert client.requests[0].entry_objects == []
    assert client.requests[0].consistency_mode == ConsistencyMode.COMPARISON


def test_exit_without_entry_inspection_is_still_analysed():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    exit = repo.add_inspection(inspection_record("exit"))
    client = FakeAnalysisClient()

    asyncio.run(_service(repo, client, "uploads/IMG_9.jpg").ingest(exit, "Sala", "uploads/IMG_9.jpg"))

    assert client.requests[0].entry_objects == []


def test_missing_upload_is_rejected_before_analysis():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    inspection = repo.add_inspection(inspection_record("entry"))
    client = FakeAnalysisClient()
    service = _service(repo, client)

    with pytest.raises(PhotoUploadMissingError):
        asyncio.run(service.ingest(inspection, "Sala", "uploads/never-sent.jpg"))

    assert client.requests == []
    assert repo.photos == {}
    assert service.storage.provider.deleted == []
    assert repo.inspections[inspection.id].status == InspectionStatus.PENDING


def test_analysis_failure_discards_upload_and_registers_nothing():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    inspection = repo.add_inspection(inspection_record("entry"))
    service = _service(repo, FakeAnalysisClient(error=AnalysisServiceError(GENERIC_MESSAGE)), "uploads/a.jpg")

    with pytest.raises(AnalysisServiceError):
        asyncio.run(service.ingest(inspection, "Sala", "uploads/a.jpg"))

    assert repo.photos == {}
    assert service.storage.provider.deleted == ["uploads/a.jpg"]
    assert repo.inspections[inspection.id].status == InspectionStatus.PENDING


def test_insert_failure_discards_upload():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    inspection = repo.add_inspection(inspection_record("entry"))
    repo.fail_insert = True
    service = _service(repo, None, "uploads/a.jpg")

    with pytest.raises(RuntimeError):
        asyncio.run(service.ingest(inspection, "Sala", "uploads/a.jpg"))

    assert service.storage.provider.deleted == ["uploads/a.jpg"]


def test_completed_inspection_is_not_moved_back():
    repo = InMemoryRepository()
    repo.add_property(property_record())
    inspection = repo.add_inspection(inspection_record("entry", status="completed"))

    asyncio.run(_service(repo, None, "uploads/a.jpg").ingest(inspection, "Sala", "uploads/a.jpg"))

    assert repo.inspections[inspection.id].status == InspectionStatus.COMPLETED


def test_update_analysis_fills_markers_for_new_objects():
    repo = InMemoryRepository()
    inspection = repo.add_inspection(inspection_record("entry"))
    photo = repo.add_photo(photo_record(inspection, "Quarto"))

    record = asyncio.run(_service(repo).update_analysis(photo.id, analysis([obj("cama", is_manual=True)])))

    result = AnalysisResult.from_payload(record.ai_analysis_result)
    marker = result.objects_detected[0].marker_coordinates
    assert (marker.x, marker.y) == (50, 60)
    assert result.objects_detected[0].is_manual
