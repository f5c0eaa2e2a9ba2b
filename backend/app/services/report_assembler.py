"""
Report assembler.

Turns one inspection (single report) or an entry/exit pair (comparison report)
into the document tree the renderer lays out. Labels are in Brazilian
Portuguese. Summary counts are aggregated from the same per-room results the
sections are built from.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.models.enums import ComparisonBucket, InspectionType, PropertyType, ReportMode
from app.schemas.analysis import DetectedObject
from app.schemas.inspection import InspectionSnapshot, PropertyRecord
from app.schemas.report import (
    BucketBlock,
    LabeledDate,
    PhotoAnalysisBlock,
    PhotoPair,
    ReportBranding,
    ReportConfig,
    ReportDocument,
    ReportHeader,
    RoomComparison,
    RoomSection,
    SummaryBlock,
)
from app.services.matcher import compare_inspections

logger = logging.getLogger(__name__)


class ReportInputError(ValueError):
    """The inspections given cannot produce the requested report."""


class ReportNotFoundError(ReportInputError):
    """A referenced property or inspection does not exist."""


NOT_INFORMED = "Não informado"

LEGAL_BOILERPLATE = (
    "O presente relatório tem como objetivo registrar o estado de conservação e "
    "funcionamento do imóvel na data da vistoria, em conformidade com a Lei nº 8.245/91 "
    "(Lei do Inquilinato).\n"
    "A vistoria foi realizada por observação visual, avaliando aspectos estéticos, "
    "acabamentos e funcionamento aparente do imóvel.\n"
    "Não são contemplados neste relatório: análises estruturais, fundações, solidez da "
    "construção ou eventuais vícios ocultos que não sejam perceptíveis no momento da vistoria."
)

PROPERTY_TYPE_LABELS = {
    PropertyType.APARTMENT: "Apartamento",
    PropertyType.HOUSE: "Casa",
    PropertyType.COMMERCIAL_ROOM: "Sala Comercial",
    PropertyType.OFFICE: "Escritório",
    PropertyType.STORE: "Loja",
    PropertyType.WAREHOUSE: "Galpão",
    PropertyType.LAND: "Terreno",
}

INSPECTION_TYPE_LABELS = {
    InspectionType.ENTRY: "Entrada",
    InspectionType.EXIT: "Saída",
}

OBJECT_CONDITION_LABELS = {
    "new": "Novo",
    "good": "Bom",
    "worn": "Desgastado",
    "damaged": "Danificado",
    "not_found": "Não encontrada",
}

ROOM_CONDITION_LABELS = {
    "excellent": "Excelente",
    "good": "Bom",
    "fair": "Regular",
    "poor": "Ruim",
}

SEVERITY_LABELS = {
    "low": "Baixa",
    "medium": "Média",
    "high": "Alta",
    "critical": "Crítica",
}

# Section order inside a comparison room
BUCKET_ORDER = (
    ComparisonBucket.MISSING,
    ComparisonBucket.NEW,
    ComparisonBucket.CHANGED,
    ComparisonBucket.UNCHANGED,
)

BUCKET_TITLES = {
    ComparisonBucket.MISSING: "Itens Faltando na Saída",
    ComparisonBucket.NEW: "Itens Novos na Saída",
    ComparisonBucket.CHANGED: "Itens com Condição Alterada",
    ComparisonBucket.UNCHANGED: "Itens Sem Alterações",
}

SINGLE_REPORT_TITLE = "Relatório de Vistoria - {label}"
COMPARISON_REPORT_TITLE = "Relatório Comparativo de Vistorias"


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str) or ""


def translate_object_condition(condition) -> str:
    value = _value(condition)
    return OBJECT_CONDITION_LABELS.get(value, value)


def translate_room_condition(condition) -> str:
    value = _value(condition)
    return ROOM_CONDITION_LABELS.get(value, value)


def translate_severity(severity) -> str:
    value = _value(severity)
    return SEVERITY_LABELS.get(value, value)


def property_type_label(property_type: str) -> str:
    """Translated label; unknown types are shown as stored."""
    try:
        return PROPERTY_TYPE_LABELS[PropertyType(property_type.strip().lower())]
    except ValueError:
        return property_type


def is_field_valid(field: Optional[str]) -> bool:
    if not field or not field.strip():
        return False
    return field.strip().lower() not in ("not_found", "n/a")


def format_optional_field(field: Optional[str]) -> str:
    return field if is_field_valid(field) else NOT_INFORMED


def format_object_description(obj: DetectedObject) -> str:
    """`item (material, color)`, leaving out details that carry no information."""
    details = [d for d in (obj.material, obj.color) if is_field_valid(d)]
    if details:
        return f"{obj.item} ({', '.join(details)})"
    return obj.item


def format_condition_change(entry: DetectedObject, exit: DetectedObject) -> str:
    return f"de {translate_object_condition(entry.condition)} para {translate_object_condition(exit.condition)}"


def _header(
    title: str,
    property: PropertyRecord,
    branding: ReportBranding,
    dates: list[LabeledDate],
    general_observations: Optional[str] = None,
) -> ReportHeader:
    return ReportHeader(
        title=title,
        property_name=property.name,
        property_address=property.address,
        property_type_label=property_type_label(property.type) if property.type else None,
        company_name=branding.company_name,
        inspector_name=branding.inspector_name,
        company_logo_url=branding.company_logo_url,
        dates=dates,
        general_observations=general_observations or None,
        legal_boilerplate=LEGAL_BOILERPLATE,
    )


# --- Single report ---

def assemble_single_report(
    snapshot: InspectionSnapshot,
    property: PropertyRecord,
    branding: Optional[ReportBranding] = None,
    generated_at: Optional[datetime] = None,
) -> ReportDocument:
    """One section per room, one block per photo with its full analysis."""
    inspection = snapshot.inspection
    label = INSPECTION_TYPE_LABELS[inspection.inspection_type]

    rooms = [
        RoomSection(
            room=room,
            title=f"Análise do Ambiente: {room}",
            photo_blocks=[
                PhotoAnalysisBlock(photo_url=photo.url, room=room, analysis=photo.analysis)
                for photo in snapshot.photos_in_room(room)
            ],
        )
        for room in snapshot.rooms()
    ]

    blocks = [block for section in rooms for block in section.photo_blocks]
    summary = SummaryBlock(
        total_rooms=len(rooms),
        total_photos=len(blocks),
        total_issues=sum(len(block.analysis.issues) for block in blocks),
    )

    header = _header(
        SINGLE_REPORT_TITLE.format(label=label),
        property,
        branding or ReportBranding(),
        [LabeledDate(label="Data da Vistoria", value=inspection.inspection_date)],
        inspection.general_observations,
    )

    logger.info(
        f"[REPORT] Single report: {summary.total_rooms} rooms, {summary.total_photos} photos",
        extra={"inspection_id": inspection.id},
    )
    return ReportDocument(
        mode=ReportMode.SINGLE,
        header=header,
        summary=summary,
        rooms=rooms,
        generated_at=generated_at or datetime.now(timezone.utc),
    )


# --- Comparison report ---

def _bucket_blocks(comparison: RoomComparison, config: ReportConfig) -> list[BucketBlock]:
    visibility = config.for_room(comparison.room)
    blocks = []
    for bucket in BUCKET_ORDER:
        items = comparison.bucket(bucket)
        if not items or not visibility.shows(bucket):
            continue
        count_only = bucket == ComparisonBucket.UNCHANGED
        blocks.append(BucketBlock(
            bucket=bucket,
            title=BUCKET_TITLES[bucket],
            count=len(items),
            items=[] if count_only else items,
            count_only=count_only,
        ))
    return blocks


def summarize_comparison(
    comparisons: list[RoomComparison],
    entry: InspectionSnapshot,
    exit: InspectionSnapshot,
) -> SummaryBlock:
    rooms = [c.room for c in comparisons]
    return SummaryBlock(
        total_rooms=len(comparisons),
        total_photos=sum(len(entry.photos_in_room(r)) + len(exit.photos_in_room(r)) for r in rooms),
        total_changed=sum(len(c.changed) for c in comparisons),
        total_new=sum(len(c.new) for c in comparisons),
        total_missing=sum(len(c.missing) for c in comparisons),
    )


def assemble_comparison_report(
    entry: InspectionSnapshot,
    exit: InspectionSnapshot,
    property: PropertyRecord,
    config: Optional[ReportConfig] = None,
    branding: Optional[ReportBranding] = None,
    generated_at: Optional[datetime] = None,
) -> ReportDocument:
    """Side-by-side entry/exit report. Rooms with nothing visible are left out."""
    if entry.inspection.inspection_type != InspectionType.ENTRY:
        raise ReportInputError("A primeira vistoria do comparativo precisa ser de entrada.")
    if exit.inspection.inspection_type != InspectionType.EXIT:
        raise ReportInputError("A segunda vistoria do comparativo precisa ser de saída.")
    if entry.inspection.property_id != exit.inspection.property_id:
        raise ReportInputError("As vistorias de entrada e saída precisam ser do mesmo imóvel.")

    config = config or ReportConfig()
    comparisons = compare_inspections(entry, exit)

    rooms = []
    for comparison in comparisons:
        bucket_blocks = _bucket_blocks(comparison, config)
        if not bucket_blocks:
            continue
        rooms.append(RoomSection(
            room=comparison.room,
            title=f"Comparativo: {comparison.room}",
            photo_pair=PhotoPair(
                entry_photo_url=comparison.entry_photo_url,
                exit_photo_url=comparison.exit_photo_url,
            ),
            bucket_blocks=bucket_blocks,
        ))

    header = _header(
        COMPARISON_REPORT_TITLE,
        property,
        branding or ReportBranding(),
        [
            LabeledDate(label="Data da Entrada", value=entry.inspection.inspection_date),
            LabeledDate(label="Data da Saída", value=exit.inspection.inspection_date),
        ],
    )

    summary = summarize_comparison(comparisons, entry, exit)
    logger.info(
        f"[REPORT] Comparison report: {summary.total_changed} changed, {summary.total_new} new, "
        f"{summary.total_missing} missing in {summary.total_rooms} rooms ({len(rooms)} shown)",
        extra={"property_id": property.id},
    )
    return ReportDocument(
        mode=ReportMode.COMPARISON,
        header=header,
        summary=summary if config.summary else None,
        rooms=rooms,
        generated_at=generated_at or datetime.now(timezone.utc),
    )
