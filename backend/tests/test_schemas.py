# backend/tests/test_schemas.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from app.models.enums import ComparisonBucket, InspectionStatus, IssueSeverity, ObjectCondition, RoomCondition
from app.schemas.analysis import AnalysisResult
from app.schemas.inspection import (
    UNNAMED_ROOM,
    InspectionPhoto,
    InspectionRecord,
    InspectionSnapshot,
    PhotoRecord,
    parse_datetime_or_now,
)
from app.schemas.report import ReportConfig, RoomVisibility

from factories import PROPERTY_ID, T0, analysis, inspection_record, obj, photo_record


def test_analysis_parsing_is_lenient():
    result = AnalysisResult.from_payload({
        "roomCondition": "MAGNIFICENT",
        "confidence": 7,
        "objectsDetected": [
            {"item": "sofá", "condition": "Damaged", "confidence": "0.4"},
            "garbage",
            {"item": None, "condition": None, "markerCoordinates": {"x": 150, "y": "abc"}},
        ],
        "issues": [{"type": "trinca", "severity": "apocalyptic"}],
        "safety": "ok",
        "maintenanceRecommendations": "pintar",
    })

    assert result.room_condition == RoomCondition.GOOD
    assert result.confidence == 1.0
    assert len(result.objects_detected) == 2
    assert result.objects_detected[0].condition == ObjectCondition.DAMAGED
    assert result.objects_detected[0].confidence == 0.4
    assert result.objects_detected[1].item == ""
    marker = result.objects_detected[1].marker_coordinates
    assert (marker.x, marker.y) == (100.0, 50.0)
    assert result.issues[0].severity == IssueSeverity.MEDIUM
    assert result.safety.hazards == []
    assert result.maintenance_recommendations == []


def test_unusable_payloads_become_empty_analysis():
    assert AnalysisResult.from_payload(None) == AnalysisResult()
    assert AnalysisResult.from_payload("texto") == AnalysisResult()
    assert AnalysisResult.from_payload([]) == AnalysisResult()


def test_analysis_payload_uses_camel_case_keys():
    payload = analysis([obj("sofá")]).to_payload()

    assert "objectsDetected" in payload
    assert "isManual" in payload["objectsDetected"][0]
    assert AnalysisResult.from_payload(payload).objects_detected[0].item == "sofá"


def test_inspection_record_coerces_status_and_dates():
    record = InspectionRecord.model_validate({
        "id": uuid.uuid4(),
        "property_id": PROPERTY_ID,
        "inspection_type": "exit",
        "status": "archived",
        "inspection_date": "not a date",
        "created_at": "2026-03-01T12:00:00Z",
    })

    assert record.status == InspectionStatus.PENDING
    assert record.inspection_date.tzinfo is not None
    assert record.created_at == T0


def test_naive_datetimes_are_treated_as_utc():
    parsed = parse_datetime_or_now(datetime(2026, 3, 1, 12, 0))

    assert parsed == T0
    assert parse_datetime_or_now("2026-03-01T09:00:00-03:00") == T0
    assert parse_datetime_or_now(None).tzinfo == timezone.utc


def test_status_moves_forward_only():
    assert InspectionStatus.PENDING.advance_to(InspectionStatus.IN_PROGRESS) == InspectionStatus.IN_PROGRESS
    assert InspectionStatus.COMPLETED.advance_to(InspectionStatus.IN_PROGRESS) == InspectionStatus.COMPLETED


def test_snapshot_orders_photos_and_rooms():
    inspection = inspection_record("entry")
    photos = [
        photo_record(inspection, "Cozinha", minutes=5),
        photo_record(inspection, "Sala", minutes=1),
        photo_record(inspection, "  ", minutes=2),
        photo_record(inspection, "Cozinha", minutes=3),
    ]

    snap = InspectionSnapshot.from_records(inspection, photos)

    assert snap.rooms() == ["Sala", UNNAMED_ROOM, "Cozinha"]
    assert snap.first_photo_in_room(UNNAMED_ROOM).uploaded_at.minute == 2
    assert [p.uploaded_at.minute for p in snap.photos_in_room("Cozinha")] == [3, 5]
    assert snap.first_photo_in_room("Banheiro") is None


def test_photo_record_tolerates_missing_room():
    record = PhotoRecord(
        id=uuid.uuid4(),
        inspection_id=uuid.uuid4(),
        photo_url="https://cdn.test/a.jpg",
        room=None,
        ai_analysis_result="{broken",
    )

    assert record.room == ""
    assert InspectionPhoto.from_record(record).room == UNNAMED_ROOM
    assert AnalysisResult.from_payload(record.ai_analysis_result) == AnalysisResult()


def test_report_config_defaults_to_showing_everything():
    config = ReportConfig(rooms={"Sala": RoomVisibility(unchanged_items=False)})

    assert config.for_room("Cozinha").shows(ComparisonBucket.UNCHANGED)
    assert not config.for_room("Sala").shows(ComparisonBucket.UNCHANGED)
    assert config.for_room("Sala").shows(ComparisonBucket.MISSING)
