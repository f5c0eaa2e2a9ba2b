"""Report schemas: visibility config, comparison buckets and the document tree."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.enums import ComparisonBucket, ReportMode
from app.schemas.analysis import AnalysisResult, DetectedObject
from app.schemas.base import BaseSchema


# --- Configuration ---

class RoomVisibility(BaseSchema):
    """Which comparison buckets are shown for a room."""

    changed_items: bool = True
    new_items: bool = True
    missing_items: bool = True
    unchanged_items: bool = True

    def shows(self, bucket: ComparisonBucket) -> bool:
        return {
            ComparisonBucket.CHANGED: self.changed_items,
            ComparisonBucket.NEW: self.new_items,
            ComparisonBucket.MISSING: self.missing_items,
            ComparisonBucket.UNCHANGED: self.unchanged_items,
        }[bucket]


class ReportConfig(BaseSchema):
    """Per-room, per-bucket visibility. Rooms not listed show every bucket."""

    summary: bool = True
    rooms: dict[str, RoomVisibility] = Field(default_factory=dict)

    def for_room(self, room: str) -> RoomVisibility:
        return self.rooms.get(room) or RoomVisibility()


class ReportBranding(BaseSchema):
    company_name: Optional[str] = None
    inspector_name: Optional[str] = None
    company_logo_url: Optional[str] = None


class ComparisonReportRequest(BaseSchema):
    config: ReportConfig = Field(default_factory=ReportConfig)
    branding: Optional[ReportBranding] = None


# --- Comparison ---

class ComparisonItem(BaseSchema):
    """One classified object. Both photo URLs are kept so either side can be shown."""

    bucket: ComparisonBucket
    entry: Optional[DetectedObject] = None
    exit: Optional[DetectedObject] = None
    entry_photo_url: Optional[str] = None
    exit_photo_url: Optional[str] = None


class RoomComparison(BaseSchema):
    room: str
    changed: list[ComparisonItem] = Field(default_factory=list)
    unchanged: list[ComparisonItem] = Field(default_factory=list)
    new: list[ComparisonItem] = Field(default_factory=list)
    missing: list[ComparisonItem] = Field(default_factory=list)
    entry_photo_url: Optional[str] = None
    exit_photo_url: Optional[str] = None

    def bucket(self, bucket: ComparisonBucket) -> list[ComparisonItem]:
        return {
            ComparisonBucket.CHANGED: self.changed,
            ComparisonBucket.UNCHANGED: self.unchanged,
            ComparisonBucket.NEW: self.new,
            ComparisonBucket.MISSING: self.missing,
        }[bucket]

    @property
    def total_items(self) -> int:
        return len(self.changed) + len(self.unchanged) + len(self.new) + len(self.missing)


# --- Document tree ---

class LabeledDate(BaseSchema):
    label: str
    value: datetime


class ReportHeader(BaseSchema):
    title: str
    property_name: str
    property_address: str = ""
    property_type_label: Optional[str] = None
    company_name: Optional[str] = None
    inspector_name: Optional[str] = None
    company_logo_url: Optional[str] = None
    dates: list[LabeledDate] = Field(default_factory=list)
    general_observations: Optional[str] = None
    legal_boilerplate: str = ""


class SummaryBlock(BaseSchema):
    total_rooms: int = 0
    total_photos: int = 0
    # Single-report mode
    total_issues: Optional[int] = None
    # Comparison mode
    total_changed: Optional[int] = None
    total_new: Optional[int] = None
    total_missing: Optional[int] = None


class PhotoAnalysisBlock(BaseSchema):
    """A photo and its full analysis; never split across pages."""

    photo_url: str
    room: str
    analysis: AnalysisResult


class PhotoPair(BaseSchema):
    entry_photo_url: Optional[str] = None
    exit_photo_url: Optional[str] = None


class BucketBlock(BaseSchema):
    bucket: ComparisonBucket
    title: str
    count: int
    items: list[ComparisonItem] = Field(default_factory=list)
    count_only: bool = False


class RoomSection(BaseSchema):
    room: str
    title: str
    photo_blocks: list[PhotoAnalysisBlock] = Field(default_factory=list)
    photo_pair: Optional[PhotoPair] = None
    bucket_blocks: list[BucketBlock] = Field(default_factory=list)


class ReportDocument(BaseSchema):
    mode: ReportMode
    header: ReportHeader
    summary: Optional[SummaryBlock] = None
    rooms: list[RoomSection] = Field(default_factory=list)
    generated_at: datetime

    def photo_urls(self) -> list[str]:
        """Every image the renderer will need, de-duplicated in document order."""
        urls: list[str] = []

        def add(url: Optional[str]) -> None:
            if url and url not in urls:
                urls.append(url)

        add(self.header.company_logo_url)
        for room in self.rooms:
            for block in room.photo_blocks:
                add(block.photo_url)
            if room.photo_pair:
                add(room.photo_pair.entry_photo_url)
                add(room.photo_pair.exit_photo_url)
            for bucket in room.bucket_blocks:
                for item in bucket.items:
                    add(item.entry_photo_url)
                    add(item.exit_photo_url)
        return urls
