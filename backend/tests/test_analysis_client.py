# backend/tests/test_analysis_client.py
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from app.services.analysis_client import (
    CONNECTION_MESSAGE,
    EXIT_DUPLICATE_INSTRUCTIONS,
    GENERIC_MESSAGE,
    TIMEOUT_MESSAGE,
    UNAVAILABLE_MESSAGE,
    AnalysisClient,
    AnalysisRequest,
    AnalysisServiceError,
    image_seed,
    normalize_analysis,
)

from factories import obj

PAYLOAD = {
    "environmentType": "sala",
    "description": "Sala ampla",
    "roomCondition": "good",
    "confidence": 0.9,
    "objectsDetected": [
        {"item": "sofá", "color": "cinza", "material": "tecido", "condition": "good", "confidence": 0.9, "isManual": True},
        {"item": "quadro", "condition": "worn", "markerCoordinates": {"x": 10, "y": 20}},
    ],
    "issues": [{"type": "mancha", "severity": "low", "description": "parede", "location": "norte"}],
    "finishes": [{"element": "piso", "material": "madeira", "color": "bege", "condition": "good"}],
    "safety": {"locks": "ok", "electrical": "ok", "hazards": []},
    "maintenanceRecommendations": ["pintar"],
}


def _client(handler):
    return AnalysisClient(
        base_url="https://analysis.test/analyze",
        api_key="secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_image_seed_is_java_string_hash():
    assert image_seed("") == 0
    assert image_seed("a") == 97
    assert image_seed("hello") == 99162322
    assert image_seed("https://cdn.test/a/very/long/path/IMG_0001.jpg") >= 0
    assert image_seed("x" * 50) == image_seed("x" * 50)


def test_entry_request_body():
    body = AnalysisRequest(image_url="https://cdn.test/a.jpg", room_name="Sala").to_body()

    assert body["imageUrl"] == "https://cdn.test/a.jpg"
    assert body["roomName"] == "Sala"
    assert body["entryObjects"] is None
    assert body["consistencyMode"] == "initial"
    assert body["isDuplicateImage"] is False
    assert body["imageSeed"] == image_seed("https://cdn.test/a.jpg")


def test_exit_request_sends_entry_objects_and_duplicate_wording():
    request = AnalysisRequest(
        image_url="https://cdn.test/a.jpg",
        room_name="Sala",
        entry_objects=[obj("sofá")],
        is_duplicate_image=True,
    )

    body = request.to_body()

    assert body["consistencyMode"] == "comparison"
    assert body["entryObjects"][0]["item"] == "sofá"
    assert "isManual" in body["entryObjects"][0]
    assert body["analysisInstructions"] == EXIT_DUPLICATE_INSTRUCTIONS


def test_analyze_posts_and_normalises():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=PAYLOAD)

    result = asyncio.run(_client(handler).analyze(AnalysisRequest(image_url="https://cdn.test/a.jpg", room_name="Sala")))

    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["roomName"] == "Sala"
    assert [o.item for o in result.objects_detected] == ["sofá", "quadro"]
    assert all(o.id for o in result.objects_detected)
    assert not result.objects_detected[0].is_manual
    assert result.objects_detected[0].marker_coordinates is not None
    assert (result.objects_detected[1].marker_coordinates.x, result.objects_detected[1].marker_coordinates.y) == (10, 20)
    assert result.issues[0].id and result.finishes[0].id


def test_normalise_assigns_fresh_ids():
    first = normalize_analysis(PAYLOAD)
    second = normalize_analysis(PAYLOAD)

    assert first.objects_detected[0].id != second.objects_detected[0].id


@pytest.mark.parametrize(
    "handler, message",
    [
        (lambda request: httpx.Response(500, json={"error": "boom"}), UNAVAILABLE_MESSAGE),
        (lambda request: httpx.Response(200, json=["not", "an", "object"]), GENERIC_MESSAGE),
        (lambda request: httpx.Response(200, content=b"<html>"), GENERIC_MESSAGE),
    ],
)
def test_failures_surface_plain_language_messages(handler, message):
    with pytest.raises(AnalysisServiceError) as excinfo:
        asyncio.run(_client(handler).analyze(AnalysisRequest(image_url="https://cdn.test/a.jpg", room_name="Sala")))

    assert excinfo.value.user_message == message


def test_timeout_message():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(AnalysisServiceError) as excinfo:
        asyncio.run(_client(handler).analyze(AnalysisRequest(image_url="https://cdn.test/a.jpg", room_name="Sala")))

    assert excinfo.value.user_message == TIMEOUT_MESSAGE


def test_connection_message():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(AnalysisServiceError) as excinfo:
        asyncio.run(_client(handler).analyze(AnalysisRequest(image_url="https://cdn.test/a.jpg", room_name="Sala")))

    assert excinfo.value.user_message == CONNECTION_MESSAGE
    assert isinstance(excinfo.value.cause, httpx.ConnectError)
