"""Duplicate-image guard.

Detects when the exit photo for a room looks like the very image used at entry
and derives a conservative exit analysis from the entry one instead of letting
a fresh AI pass invent differences. The check is a cheap heuristic on file
names, not a content hash.
"""

import logging
from typing import Optional

from app.models.enums import ObjectCondition
from app.schemas.analysis import AnalysisResult, new_id
from app.schemas.inspection import InspectionPhoto

logger = logging.getLogger(__name__)

DUPLICATE_ROOM_KEYWORDS = ("sala", "cozinha")
DERIVED_CONFIDENCE_CAP = 0.95
CONSERVATIVE_PREFIX = "Análise conservativa aplicada - mesma imagem da entrada."


def photo_filename(url: str) -> str:
    """Last path segment of a URL with query string and fragment removed."""
    path = (url or "").split("?", 1)[0].split("#", 1)[0]
    return path.rsplit("/", 1)[-1]


def is_duplicate_image(entry_url: str, exit_url: str) -> bool:
    entry_name = photo_filename(entry_url)
    exit_name = photo_filename(exit_url)
    if not entry_name or not exit_name:
        return False
    if entry_name == exit_name:
        return True
    entry_lower, exit_lower = entry_name.lower(), exit_name.lower()
    return any(k in entry_lower and k in exit_lower for k in DUPLICATE_ROOM_KEYWORDS)


def find_duplicate_entry_photo(
    entry_photos: list[InspectionPhoto],
    room: str,
    exit_url: str,
) -> Optional[InspectionPhoto]:
    """The room's first entry photo if the exit upload looks like the same image."""
    entry_photo = next((p for p in entry_photos if p.room == room), None)
    if entry_photo is None:
        return None
    if is_duplicate_image(entry_photo.url, exit_url):
        logger.info(
            f"[GUARD] Potential duplicate image: {entry_photo.url} -> {exit_url}",
            extra={"room": room},
        )
        return entry_photo
    return None


def derive_conservative_analysis(entry_analysis: AnalysisResult) -> AnalysisResult:
    """Clone an entry analysis as the exit analysis of the same image.

    Every id is regenerated, `not_found` becomes `good`, `is_manual` is cleared
    and confidence is capped.
    """
    objects = [
        obj.model_copy(update={
            "id": new_id(),
            "condition": ObjectCondition.GOOD if obj.condition == ObjectCondition.NOT_FOUND else obj.condition,
            "is_manual": False,
        })
        for obj in entry_analysis.objects_detected
    ]
    issues = [
        issue.model_copy(update={"id": new_id(), "is_manual": False})
        for issue in entry_analysis.issues
    ]
    finishes = [
        finish.model_copy(update={"id": new_id(), "is_manual": False})
        for finish in entry_analysis.finishes
    ]
    return entry_analysis.model_copy(
        update={
            "objects_detected": objects,
            "issues": issues,
            "finishes": finishes,
            "description": f"{CONSERVATIVE_PREFIX} {entry_analysis.description}".strip(),
            "confidence": min(entry_analysis.confidence, DERIVED_CONFIDENCE_CAP),
        },
        deep=True,
    )
