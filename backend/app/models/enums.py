"""Enumeration types for the inspection domain model."""

from enum import Enum


class PropertyType(str, Enum):
    """Type of property."""
    APARTMENT = "apartment"
    HOUSE = "house"
    COMMERCIAL_ROOM = "commercial_room"
    OFFICE = "office"
    STORE = "store"
    WAREHOUSE = "warehouse"
    LAND = "land"


class InspectionType(str, Enum):
    """Type of inspection."""
    ENTRY = "entry"  # Move-in visit
    EXIT = "exit"    # Move-out visit


class InspectionStatus(str, Enum):
    """Status of an inspection. Moves forward only."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def advance_to(self, target: "InspectionStatus") -> "InspectionStatus":
        """Return the later of the two statuses."""
        return target if target.rank > self.rank else self


_STATUS_ORDER = [InspectionStatus.PENDING, InspectionStatus.IN_PROGRESS, InspectionStatus.COMPLETED]


class ObjectCondition(str, Enum):
    """Condition of a detected object or finish."""
    NEW = "new"
    GOOD = "good"
    WORN = "worn"
    DAMAGED = "damaged"
    NOT_FOUND = "not_found"  # Asserts absence in the photo


class RoomCondition(str, Enum):
    """Overall condition of a room."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class IssueSeverity(str, Enum):
    """Severity of a detected issue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComparisonBucket(str, Enum):
    """Classification of an object when comparing entry vs. exit."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    NEW = "new"
    MISSING = "missing"


class ReportMode(str, Enum):
    SINGLE = "single"
    COMPARISON = "comparison"


class RegionKind(str, Enum):
    """Atomic visual units the paginator must not split."""
    ROOM_SECTION = "room_section"
    ROOM_CONTAINER = "room_container"  # Heading + first block
    PHOTO_BLOCK = "photo_block"
    BUCKET_CONTAINER = "bucket_container"  # Bucket heading + first row
    ITEM_ROW = "item_row"
    HEADER = "header"
    SUMMARY = "summary"


class ConsistencyMode(str, Enum):
    """How the AI collaborator should treat a request."""
    INITIAL = "initial"
    COMPARISON = "comparison"
