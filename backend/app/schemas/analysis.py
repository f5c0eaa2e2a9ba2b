"""AI analysis schemas.

The analysis JSON is produced by an external model and stored as-is, so every
field is validated leniently: unknown enum strings fall back to conservative
defaults, confidences are clamped and malformed list entries are dropped.
"""

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.models.enums import IssueSeverity, ObjectCondition, RoomCondition
from app.schemas.base import CamelSchema, clamp_unit, coerce_enum

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _records(value: Any) -> list:
    """Keep only dict-like entries of a list field."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, (dict, BaseModel))]


class MarkerCoordinates(CamelSchema):
    """On-image position in percent, top-left origin."""

    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def _clamp_percent(cls, v: Any) -> float:
        try:
            number = float(v)
        except (TypeError, ValueError):
            return 50.0
        return min(max(number, 0.0), 100.0)


class DetectedObject(CamelSchema):
    """An object found in a photo. Matching identity is the normalised `item`."""

    id: str = Field(default_factory=new_id)
    item: str = ""
    color: str = ""
    material: str = ""
    condition: ObjectCondition = ObjectCondition.GOOD
    confidence: float = 0.0
    is_manual: bool = False
    marker_coordinates: Optional[MarkerCoordinates] = None
    photo_url: Optional[str] = None

    @field_validator("id", "item", "color", "material", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v: Any) -> ObjectCondition:
        return coerce_enum(v, ObjectCondition, ObjectCondition.GOOD)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float:
        return clamp_unit(v)

    @field_validator("is_manual", mode="before")
    @classmethod
    def _manual(cls, v: Any) -> bool:
        return bool(v)

    @field_validator("marker_coordinates", mode="before")
    @classmethod
    def _marker(cls, v: Any) -> Any:
        if isinstance(v, dict) and "x" in v and "y" in v:
            return v
        if isinstance(v, MarkerCoordinates):
            return v
        return None


class DetectedIssue(CamelSchema):
    id: str = Field(default_factory=new_id)
    type: str = ""
    severity: IssueSeverity = IssueSeverity.MEDIUM
    description: str = ""
    location: str = ""
    confidence: float = 0.0
    is_manual: bool = False

    @field_validator("id", "type", "description", "location", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, v: Any) -> IssueSeverity:
        return coerce_enum(v, IssueSeverity, IssueSeverity.MEDIUM)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float:
        return clamp_unit(v)

    @field_validator("is_manual", mode="before")
    @classmethod
    def _manual(cls, v: Any) -> bool:
        return bool(v)


class Finish(CamelSchema):
    """A surface finish (piso, parede, teto, esquadria, bancada...)."""

    id: str = Field(default_factory=new_id)
    element: str = ""
    material: str = ""
    color: str = ""
    condition: ObjectCondition = ObjectCondition.GOOD
    is_manual: bool = False

    @field_validator("id", "element", "material", "color", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v: Any) -> ObjectCondition:
        return coerce_enum(v, ObjectCondition, ObjectCondition.GOOD)

    @field_validator("is_manual", mode="before")
    @classmethod
    def _manual(cls, v: Any) -> bool:
        return bool(v)


class Safety(CamelSchema):
    locks: str = ""
    electrical: str = ""
    hazards: list[str] = Field(default_factory=list)

    @field_validator("locks", "electrical", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("hazards", mode="before")
    @classmethod
    def _hazards(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(h) for h in v if h]


class AnalysisResult(CamelSchema):
    """Structured output attached to one photo."""

    environment_type: str = ""
    description: str = ""
    room_condition: RoomCondition = RoomCondition.GOOD
    confidence: float = 0.0
    objects_detected: list[DetectedObject] = Field(default_factory=list)
    issues: list[DetectedIssue] = Field(default_factory=list)
    finishes: list[Finish] = Field(default_factory=list)
    safety: Safety = Field(default_factory=Safety)
    maintenance_recommendations: list[str] = Field(default_factory=list)

    @field_validator("environment_type", "description", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("room_condition", mode="before")
    @classmethod
    def _room_condition(cls, v: Any) -> RoomCondition:
        return coerce_enum(v, RoomCondition, RoomCondition.GOOD)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> float:
        return clamp_unit(v)

    @field_validator("objects_detected", "issues", "finishes", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> list:
        return _records(v)

    @field_validator("safety", mode="before")
    @classmethod
    def _safety(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Safety)) else {}

    @field_validator("maintenance_recommendations", mode="before")
    @classmethod
    def _recommendations(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(r) for r in v if r]

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalysisResult":
        """Parse stored/remote JSON, returning an empty result for anything unusable."""
        if isinstance(payload, AnalysisResult):
            return payload
        if not isinstance(payload, dict):
            return cls()
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"[ANALYSIS] Discarding malformed analysis payload: {e.error_count()} errors")
            return cls()

    def to_payload(self) -> dict:
        """JSON form as stored in `ai_analysis_result`."""
        return self.model_dump(mode="json", by_alias=True)
