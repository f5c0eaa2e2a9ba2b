"""
Report renderer.

`measure()` lays the document tree out at a fixed raster width and returns a
LayoutPlan: positioned blocks, each a list of paint operations, plus the
protected regions the paginator must keep whole. `render()` paints a plan
onto a white Pillow canvas. Measuring never touches pixels, so layout can be
tested without images.
"""

import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import httpx
from PIL import Image, ImageDraw, ImageFont, ImageOps

from app.core.config import get_settings
from app.models.enums import ComparisonBucket, RegionKind, ReportMode
from app.schemas.analysis import AnalysisResult
from app.schemas.report import BucketBlock, ComparisonItem, ReportDocument, ReportHeader, RoomSection, SummaryBlock
from app.services.markers import assign_markers
from app.services.paginator import ProtectedRegion
from app.services.report_assembler import (
    format_condition_change,
    format_object_description,
    format_optional_field,
    is_field_valid,
    translate_object_condition,
    translate_room_condition,
    translate_severity,
)

logger = logging.getLogger(__name__)

MARGIN = 48
GAP = 24
ROOM_GAP = 56
LINE_SPACING = 6
PHOTO_HEIGHT = 460
PAIR_PHOTO_HEIGHT = 340
LOGO_BOX = (180, 90)
SUMMARY_TILE_HEIGHT = 120
MARKER_RADIUS = 14

FONT_SIZES = {
    "title": 34,
    "heading": 26,
    "subheading": 21,
    "body": 17,
    "small": 14,
}

TEXT_COLOR = "#1f2937"
MUTED_COLOR = "#4b5563"
LIGHT_COLOR = "#6b7280"
RULE_COLOR = "#e5e7eb"
PLACEHOLDER_FILL = "#e2e8f0"
PHOTO_BACKGROUND = "#f3f4f6"
MARKER_FILL = "#dc2626"

BUCKET_COLORS = {
    ComparisonBucket.MISSING: "#ef4444",
    ComparisonBucket.NEW: "#22c55e",
    ComparisonBucket.CHANGED: "#eab308",
    ComparisonBucket.UNCHANGED: "#3b82f6",
}

PLACEHOLDER_TEXT = "Sem foto"
UNCHANGED_NOTE = "Nenhum problema encontrado nestes itens."


# --- Paint operations (coordinates relative to the block top) ---

@dataclass(frozen=True)
class TextOp:
    x: int
    y: int
    text: str
    font: str = "body"
    fill: str = TEXT_COLOR


@dataclass(frozen=True)
class RectOp:
    x: int
    y: int
    width: int
    height: int
    fill: Optional[str] = None
    outline: Optional[str] = None


@dataclass(frozen=True)
class Marker:
    number: int
    x: float  # percent
    y: float  # percent


@dataclass(frozen=True)
class PhotoOp:
    x: int
    y: int
    width: int
    height: int
    url: Optional[str]
    markers: tuple[Marker, ...] = ()


PaintOp = Union[TextOp, RectOp, PhotoOp]


@dataclass
class LayoutBlock:
    kind: str
    top: int
    height: int
    ops: list[PaintOp] = field(default_factory=list)

    @property
    def bottom(self) -> int:
        return self.top + self.height


@dataclass
class LayoutPlan:
    width: int
    height: int
    blocks: list[LayoutBlock] = field(default_factory=list)
    regions: list[ProtectedRegion] = field(default_factory=list)


@dataclass
class RenderedReport:
    image: Image.Image
    plan: LayoutPlan


# --- Fonts and text ---

def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.ImageFont:
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError as e:
            logger.warning(f"[REPORT] Could not load font {font_path}: {e}")
    return ImageFont.load_default(size=size)


def line_height(font) -> int:
    return font.getbbox("ÁGjy")[3] + LINE_SPACING


def wrap_text(text: str, font, width: int) -> list[str]:
    """Greedy word wrap on measured text width. Explicit newlines are kept."""
    lines: list[str] = []
    for paragraph in (text or "").split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        line = ""
        for word in words:
            candidate = f"{line} {word}" if line else word
            if font.getlength(candidate) <= width:
                line = candidate
                continue
            if line:
                lines.append(line)
            while len(word) > 1 and font.getlength(word) > width:
                cut = len(word) - 1
                while cut > 1 and font.getlength(word[:cut]) > width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            line = word
        lines.append(line)
    return lines


class _BlockWriter:
    """Accumulates paint operations for one block, tracking its height."""

    def __init__(self, renderer: "ReportRenderer", x: int, width: int):
        self.renderer = renderer
        self.x = x
        self.width = width
        self.y = 0
        self.ops: list[PaintOp] = []

    def text(self, text: str, font: str = "body", fill: str = TEXT_COLOR, indent: int = 0) -> None:
        face = self.renderer.fonts[font]
        for line in wrap_text(text, face, self.width - indent):
            self.ops.append(TextOp(self.x + indent, self.y, line, font, fill))
            self.y += line_height(face)

    def space(self, amount: int = GAP // 2) -> None:
        self.y += amount

    def rule(self, color: str = RULE_COLOR) -> None:
        self.ops.append(RectOp(self.x, self.y, self.width, 2, fill=color))
        self.y += 2

    def add(self, op: PaintOp, height: int) -> None:
        self.ops.append(op)
        self.y += height


class ReportRenderer:
    """Lays out and rasterises report documents."""

    def __init__(self, width: Optional[int] = None, font_path: Optional[str] = None):
        settings = get_settings()
        self.width = width or settings.report_raster_width_px
        font_path = font_path if font_path is not None else settings.report_font_path
        self.fonts = {name: load_font(size, font_path) for name, size in FONT_SIZES.items()}

    @property
    def content_width(self) -> int:
        return self.width - 2 * MARGIN

    def _writer(self) -> _BlockWriter:
        return _BlockWriter(self, MARGIN, self.content_width)

    # --- Measurement ---

    def measure(self, document: ReportDocument) -> LayoutPlan:
        plan = LayoutPlan(width=self.width, height=0)
        y = MARGIN

        def place(kind: str, writer: _BlockWriter) -> LayoutBlock:
            nonlocal y
            block = LayoutBlock(kind=kind, top=y, height=writer.y, ops=writer.ops)
            plan.blocks.append(block)
            y = block.bottom + GAP
            return block

        header = place("header", self._header(document.header))
        plan.regions.append(ProtectedRegion(header.top, header.bottom, RegionKind.HEADER))

        if document.summary is not None:
            summary = place("summary", self._summary(document.summary, document.mode))
            plan.regions.append(ProtectedRegion(summary.top, summary.bottom, RegionKind.SUMMARY))

        for section in document.rooms:
            y += ROOM_GAP - GAP
            heading = place("room_heading", self._room_heading(section))
            content: list[LayoutBlock] = []

            if document.mode == ReportMode.SINGLE:
                for photo_block in section.photo_blocks:
                    block = place("photo_block", self._photo_block(photo_block.photo_url, photo_block.analysis))
                    plan.regions.append(ProtectedRegion(block.top, block.bottom, RegionKind.PHOTO_BLOCK, section.room))
                    content.append(block)
            else:
                if section.photo_pair is not None:
                    block = place("photo_pair", self._photo_pair(section))
                    plan.regions.append(ProtectedRegion(block.top, block.bottom, RegionKind.PHOTO_BLOCK, section.room))
                    content.append(block)
                for bucket_block in section.bucket_blocks:
                    content.extend(self._place_bucket(bucket_block, section.room, place, plan))

            last = content[-1] if content else heading
            first = content[0] if content else heading
            plan.regions.append(ProtectedRegion(heading.top, last.bottom, RegionKind.ROOM_SECTION, section.room))
            plan.regions.append(ProtectedRegion(heading.top, first.bottom, RegionKind.ROOM_CONTAINER, section.room))

        plan.height = y - GAP + MARGIN
        return plan

    def _place_bucket(self, bucket_block: BucketBlock, room: str, place, plan: LayoutPlan) -> list[LayoutBlock]:
        heading = place("bucket_heading", self._bucket_heading(bucket_block))
        blocks = [heading]
        for item in bucket_block.items:
            row = place("item_row", self._item_row(item))
            plan.regions.append(ProtectedRegion(row.top, row.bottom, RegionKind.ITEM_ROW, room))
            blocks.append(row)
        end = blocks[1].bottom if len(blocks) > 1 else heading.bottom
        plan.regions.append(ProtectedRegion(heading.top, end, RegionKind.BUCKET_CONTAINER, room))
        return blocks

    def _header(self, header: ReportHeader) -> _BlockWriter:
        w = self._writer()
        if header.company_logo_url:
            logo_w, logo_h = LOGO_BOX
            w.ops.append(PhotoOp(MARGIN + self.content_width - logo_w, 0, logo_w, logo_h, header.company_logo_url))
            w.width = self.content_width - logo_w - GAP
        w.text(header.title, "title")
        w.text(header.property_name, "subheading", MUTED_COLOR)
        if header.company_name:
            w.text(header.company_name, "body", LIGHT_COLOR)
        if header.company_logo_url:
            w.width = self.content_width
            w.y = max(w.y, LOGO_BOX[1])
        w.space(GAP)

        w.text(f"Vistoriador: {format_optional_field(header.inspector_name)}")
        if header.property_type_label:
            w.text(f"Tipo do Imóvel: {header.property_type_label}")
        w.text(f"Endereço: {format_optional_field(header.property_address)}")
        for labeled in header.dates:
            w.text(f"{labeled.label}: {labeled.value.strftime('%d/%m/%Y')}")

        if header.general_observations:
            w.space(GAP)
            w.rule()
            w.space()
            w.text("Observações Gerais", "subheading")
            w.text(header.general_observations, "body", MUTED_COLOR)

        w.space(GAP)
        w.rule()
        w.space()
        w.text("Apontamentos da Vistoria", "subheading")
        w.text(header.legal_boilerplate, "small", MUTED_COLOR)
        return w

    def _summary(self, summary: SummaryBlock, mode: ReportMode) -> _BlockWriter:
        w = self._writer()
        if mode == ReportMode.SINGLE:
            w.text("Resumo da Vistoria", "heading")
            tiles = [
                ("Ambientes", summary.total_rooms),
                ("Fotos", summary.total_photos),
                ("Problemas Identificados", summary.total_issues or 0),
            ]
            colors = ["#3b82f6", "#6b7280", "#ef4444"]
        else:
            w.text("Resumo das Diferenças", "heading")
            tiles = [
                ("Itens com Condição Alterada", summary.total_changed or 0),
                ("Itens Novos na Saída", summary.total_new or 0),
                ("Itens Faltando na Saída", summary.total_missing or 0),
            ]
            colors = [BUCKET_COLORS[b] for b in (ComparisonBucket.CHANGED, ComparisonBucket.NEW, ComparisonBucket.MISSING)]
        w.space()

        tile_w = (self.content_width - 2 * GAP) // 3
        top = w.y
        for i, ((label, count), color) in enumerate(zip(tiles, colors)):
            x = MARGIN + i * (tile_w + GAP)
            w.ops.append(RectOp(x, top, tile_w, SUMMARY_TILE_HEIGHT, outline=color))
            w.ops.append(TextOp(x + 16, top + 14, str(count), "title", color))
            for j, line in enumerate(wrap_text(label, self.fonts["small"], tile_w - 32)[:2]):
                w.ops.append(TextOp(x + 16, top + 62 + j * line_height(self.fonts["small"]), line, "small", MUTED_COLOR))
        w.y = top + SUMMARY_TILE_HEIGHT

        if mode == ReportMode.COMPARISON:
            w.space()
            w.text(f"{summary.total_rooms} ambientes comparados, {summary.total_photos} fotos", "small", LIGHT_COLOR)
        return w

    def _room_heading(self, section: RoomSection) -> _BlockWriter:
        w = self._writer()
        w.text(section.title, "heading")
        w.space(8)
        w.rule()
        return w

    def _photo_block(self, photo_url: str, analysis: AnalysisResult) -> _BlockWriter:
        w = self._writer()
        objects = assign_markers(analysis.objects_detected)
        markers = tuple(
            Marker(i, o.marker_coordinates.x, o.marker_coordinates.y)
            for i, o in enumerate(objects, 1)
        )
        w.add(PhotoOp(MARGIN, 0, self.content_width, PHOTO_HEIGHT, photo_url, markers), PHOTO_HEIGHT)
        w.space()

        w.text(f"Condição do ambiente: {translate_room_condition(analysis.room_condition)}", "body", MUTED_COLOR)
        if analysis.description:
            w.space(8)
            w.text("Descrição do Ambiente", "subheading")
            w.text(analysis.description, "body", MUTED_COLOR)

        if objects:
            w.space(8)
            w.text("Objetos Identificados", "subheading")
            for i, obj in enumerate(objects, 1):
                w.text(f"{i}. {format_object_description(obj)}: {translate_object_condition(obj.condition)}")

        if analysis.issues:
            w.space(8)
            w.text("Problemas Identificados", "subheading")
            for issue in analysis.issues:
                w.text(f"{issue.type} ({translate_severity(issue.severity)})")
                if issue.description:
                    w.text(issue.description, "small", MUTED_COLOR, indent=16)
                if issue.location:
                    w.text(f"Local: {issue.location}", "small", LIGHT_COLOR, indent=16)

        if analysis.finishes:
            w.space(8)
            w.text("Acabamentos", "subheading")
            for finish in analysis.finishes:
                details = ", ".join(d for d in (finish.material, finish.color) if is_field_valid(d))
                label = f"{finish.element}: {details}" if details else finish.element
                w.text(f"{label} ({translate_object_condition(finish.condition)})")

        safety = analysis.safety
        if safety.locks or safety.electrical or safety.hazards:
            w.space(8)
            w.text("Segurança", "subheading")
            if safety.locks:
                w.text(f"Fechaduras: {safety.locks}")
            if safety.electrical:
                w.text(f"Elétrica: {safety.electrical}")
            if safety.hazards:
                w.text(f"Riscos: {', '.join(safety.hazards)}")

        if analysis.maintenance_recommendations:
            w.space(8)
            w.text("Recomendações de Manutenção", "subheading")
            for recommendation in analysis.maintenance_recommendations:
                w.text(f"• {recommendation}")
        return w

    def _photo_pair(self, section: RoomSection) -> _BlockWriter:
        w = self._writer()
        pair = section.photo_pair
        half = (self.content_width - GAP) // 2
        label_font = self.fonts["subheading"]
        for i, (label, url) in enumerate((("Entrada", pair.entry_photo_url), ("Saída", pair.exit_photo_url))):
            x = MARGIN + i * (half + GAP)
            text_x = x + int((half - label_font.getlength(label)) / 2)
            w.ops.append(TextOp(text_x, 0, label, "subheading"))
            w.ops.append(PhotoOp(x, line_height(label_font) + 8, half, PAIR_PHOTO_HEIGHT, url))
        w.y = line_height(label_font) + 8 + PAIR_PHOTO_HEIGHT
        return w

    def _bucket_heading(self, bucket_block: BucketBlock) -> _BlockWriter:
        w = self._writer()
        color = BUCKET_COLORS[bucket_block.bucket]
        start = w.y
        w.x, w.width = MARGIN + 18, self.content_width - 18
        w.space(8)
        w.text(f"{bucket_block.title} ({bucket_block.count})", "subheading", color)
        if bucket_block.count_only:
            w.text(UNCHANGED_NOTE, "small", MUTED_COLOR)
        w.space(4)
        w.ops.insert(0, RectOp(MARGIN, start, 6, w.y - start, fill=color))
        return w

    def _item_row(self, item: ComparisonItem) -> _BlockWriter:
        w = self._writer()
        w.x, w.width = MARGIN + 18, self.content_width - 18
        if item.bucket in (ComparisonBucket.CHANGED, ComparisonBucket.UNCHANGED) and item.entry and item.exit:
            text = f"{format_object_description(item.entry)}: {format_condition_change(item.entry, item.exit)}"
        else:
            obj = item.entry if item.bucket == ComparisonBucket.MISSING else item.exit
            text = format_object_description(obj) if obj else ""
        w.text(f"• {text}")
        return w

    # --- Rasterisation ---

    def render(self, document: ReportDocument, photos: dict[str, Image.Image]) -> RenderedReport:
        plan = self.measure(document)
        return RenderedReport(image=self.render_plan(plan, photos), plan=plan)

    def render_plan(self, plan: LayoutPlan, photos: dict[str, Image.Image]) -> Image.Image:
        canvas = Image.new("RGB", (plan.width, max(plan.height, 1)), "white")
        draw = ImageDraw.Draw(canvas)
        for block in plan.blocks:
            for op in block.ops:
                if isinstance(op, TextOp):
                    draw.text((op.x, block.top + op.y), op.text, font=self.fonts[op.font], fill=op.fill)
                elif isinstance(op, RectOp):
                    draw.rectangle(
                        (op.x, block.top + op.y, op.x + op.width - 1, block.top + op.y + op.height - 1),
                        fill=op.fill,
                        outline=op.outline,
                        width=2 if op.outline else 0,
                    )
                elif isinstance(op, PhotoOp):
                    self._paint_photo(canvas, draw, op, block.top, photos.get(op.url) if op.url else None)
        return canvas

    def _paint_photo(self, canvas, draw, op: PhotoOp, block_top: int, image: Optional[Image.Image]) -> None:
        box = (op.x, block_top + op.y, op.x + op.width - 1, block_top + op.y + op.height - 1)
        if image is None:
            draw.rectangle(box, fill=PLACEHOLDER_FILL)
            font = self.fonts["subheading"]
            text_w = font.getlength(PLACEHOLDER_TEXT)
            text_h = font.getbbox(PLACEHOLDER_TEXT)[3]
            draw.text(
                (op.x + (op.width - text_w) / 2, block_top + op.y + (op.height - text_h) / 2),
                PLACEHOLDER_TEXT,
                font=font,
                fill=LIGHT_COLOR,
            )
            return

        draw.rectangle(box, fill=PHOTO_BACKGROUND)
        fitted = ImageOps.contain(image, (op.width, op.height))
        left = op.x + (op.width - fitted.width) // 2
        top = block_top + op.y + (op.height - fitted.height) // 2
        canvas.paste(fitted, (left, top))

        font = self.fonts["small"]
        for marker in op.markers:
            cx = left + marker.x / 100 * fitted.width
            cy = top + marker.y / 100 * fitted.height
            draw.ellipse(
                (cx - MARKER_RADIUS, cy - MARKER_RADIUS, cx + MARKER_RADIUS, cy + MARKER_RADIUS),
                fill=MARKER_FILL,
                outline="white",
                width=2,
            )
            label = str(marker.number)
            bbox = font.getbbox(label)
            draw.text(
                (cx - font.getlength(label) / 2, cy - (bbox[1] + bbox[3]) / 2),
                label,
                font=font,
                fill="white",
            )


class PhotoFetcher:
    """Downloads report photos; anything that cannot be loaded is left out."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout or get_settings().photo_fetch_timeout_seconds
        self._transport = transport

    async def fetch_all(self, urls: list[str]) -> dict[str, Image.Image]:
        if not urls:
            return {}
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            images = await asyncio.gather(*(self._fetch(client, url) for url in urls))
        return {url: image for url, image in zip(urls, images) if image is not None}

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> Optional[Image.Image]:
        try:
            response = await client.get(url)
            response.raise_for_status()
            image = Image.open(io.BytesIO(response.content))
            image = ImageOps.exif_transpose(image)
            return image.convert("RGB")
        except (httpx.HTTPError, OSError) as e:
            logger.warning(f"[REPORT] Photo unavailable, using placeholder: {url} ({e})")
            return None
