"""Object matcher: pairs entry and exit objects of one room and buckets the result.

Matching is greedy and order-sensitive. Exit objects are walked in detection
order and each takes the FIRST still-unpaired entry object whose normalised
name is identical. Names come from a constrained AI vocabulary, so exact
equality is used on purpose; duplicate names in one room pair in detection order.

An exit object marked `not_found` never consumes a match and is never `new`.
It does not force anything into `missing` either: an entry object only ends up
missing when no other exit object claimed it.
"""

import logging
from typing import Iterable, Optional

from app.models.enums import ComparisonBucket, ObjectCondition
from app.schemas.analysis import DetectedObject
from app.schemas.inspection import InspectionPhoto, InspectionSnapshot
from app.schemas.report import ComparisonItem, RoomComparison

logger = logging.getLogger(__name__)


def normalize_item(name: str) -> str:
    return (name or "").strip().casefold()


def collect_room_objects(photos: Iterable[InspectionPhoto]) -> list[DetectedObject]:
    """Flatten a room's objects, tagging each with the photo it was detected in."""
    objects: list[DetectedObject] = []
    for photo in photos:
        for obj in photo.analysis.objects_detected:
            objects.append(obj.model_copy(update={"photo_url": photo.url}))
    return objects


def match_objects(
    room: str,
    entry_objects: list[DetectedObject],
    exit_objects: list[DetectedObject],
    entry_room_photo_url: Optional[str] = None,
    exit_room_photo_url: Optional[str] = None,
) -> RoomComparison:
    """Classify one room's objects into changed / unchanged / new / missing. Never raises."""
    missing_pool = list(entry_objects)
    paired: list[tuple[DetectedObject, DetectedObject]] = []
    new_items: list[ComparisonItem] = []

    for exit_obj in exit_objects:
        if exit_obj.condition == ObjectCondition.NOT_FOUND:
            continue

        key = normalize_item(exit_obj.item)
        match_index = next(
            (i for i, entry_obj in enumerate(missing_pool) if normalize_item(entry_obj.item) == key),
            None,
        )

        if match_index is not None:
            paired.append((missing_pool.pop(match_index), exit_obj))
        else:
            new_items.append(ComparisonItem(
                bucket=ComparisonBucket.NEW,
                exit=exit_obj,
                entry_photo_url=entry_room_photo_url,
                exit_photo_url=exit_obj.photo_url or exit_room_photo_url,
            ))

    changed: list[ComparisonItem] = []
    unchanged: list[ComparisonItem] = []
    for entry_obj, exit_obj in paired:
        is_changed = entry_obj.condition != exit_obj.condition
        item = ComparisonItem(
            bucket=ComparisonBucket.CHANGED if is_changed else ComparisonBucket.UNCHANGED,
            entry=entry_obj,
            exit=exit_obj,
            entry_photo_url=entry_obj.photo_url or entry_room_photo_url,
            exit_photo_url=exit_obj.photo_url or exit_room_photo_url,
        )
        (changed if is_changed else unchanged).append(item)

    missing = [
        ComparisonItem(
            bucket=ComparisonBucket.MISSING,
            entry=entry_obj,
            entry_photo_url=entry_obj.photo_url or entry_room_photo_url,
            exit_photo_url=exit_room_photo_url,
        )
        for entry_obj in missing_pool
    ]

    return RoomComparison(
        room=room,
        changed=changed,
        unchanged=unchanged,
        new=new_items,
        missing=missing,
        entry_photo_url=entry_room_photo_url,
        exit_photo_url=exit_room_photo_url,
    )


def comparison_rooms(entry: InspectionSnapshot, exit: InspectionSnapshot) -> list[str]:
    """Union of rooms: entry order first, then rooms only seen at exit."""
    rooms = entry.rooms()
    rooms.extend(r for r in exit.rooms() if r not in rooms)
    return rooms


def compare_room(room: str, entry: InspectionSnapshot, exit: InspectionSnapshot) -> RoomComparison:
    entry_photos = entry.photos_in_room(room)
    exit_photos = exit.photos_in_room(room)
    return match_objects(
        room,
        collect_room_objects(entry_photos),
        collect_room_objects(exit_photos),
        entry_room_photo_url=entry_photos[0].url if entry_photos else None,
        exit_room_photo_url=exit_photos[0].url if exit_photos else None,
    )


def compare_inspections(entry: InspectionSnapshot, exit: InspectionSnapshot) -> list[RoomComparison]:
    comparisons = [compare_room(room, entry, exit) for room in comparison_rooms(entry, exit)]
    logger.debug(
        f"[MATCHER] Compared {len(comparisons)} rooms",
        extra={"inspection_id": exit.inspection.id},
    )
    return comparisons
