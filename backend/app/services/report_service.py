"""
Report service: loads inspection snapshots and produces report documents and PDFs.

Each report works on snapshots taken when the request starts, so later edits
to an analysis never leak into a render in flight.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.models.enums import InspectionStatus, InspectionType
from app.schemas.inspection import InspectionRecord, InspectionSnapshot, PropertyRecord
from app.schemas.report import ReportBranding, ReportConfig, ReportDocument
from app.services.paginator import compute_page_breaks, slice_raster
from app.services.pdf_generator import PDFGenerator
from app.services.report_assembler import (
    ReportNotFoundError,
    assemble_comparison_report,
    assemble_single_report,
)
from app.services.report_renderer import PhotoFetcher, ReportRenderer
from app.services.repository import InspectionRepository, get_repository

logger = logging.getLogger(__name__)


class ReportService:
    """Builds single and comparison reports."""

    def __init__(
        self,
        repository: InspectionRepository,
        renderer: Optional[ReportRenderer] = None,
        fetcher: Optional[PhotoFetcher] = None,
        pdf: Optional[PDFGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.renderer = renderer or ReportRenderer()
        self.fetcher = fetcher or PhotoFetcher()
        self.pdf = pdf or PDFGenerator()

    # --- Loading ---

    async def get_inspection(self, inspection_id: UUID) -> InspectionRecord:
        inspection = await self.repository.get_inspection(inspection_id)
        if inspection is None:
            raise ReportNotFoundError("Vistoria não encontrada.")
        return inspection

    async def load_snapshot(self, inspection: InspectionRecord) -> InspectionSnapshot:
        photos = await self.repository.list_photos(inspection.id)
        return InspectionSnapshot.from_records(inspection, photos)

    async def get_property(self, property_id: UUID) -> PropertyRecord:
        property = await self.repository.get_property(property_id)
        if property is None:
            raise ReportNotFoundError("Imóvel não encontrado.")
        return property

    def resolve_branding(self, override: Optional[ReportBranding] = None) -> ReportBranding:
        """Configured branding with any field set on the request taking precedence."""
        branding = ReportBranding(
            company_name=self.settings.company_name,
            inspector_name=self.settings.inspector_name,
            company_logo_url=self.settings.company_logo_url,
        )
        if override is None:
            return branding
        return branding.model_copy(update=override.model_dump(exclude_none=True))

    # --- Documents ---

    async def build_single_report(
        self,
        inspection_id: UUID,
        branding: Optional[ReportBranding] = None,
    ) -> ReportDocument:
        inspection = await self.get_inspection(inspection_id)
        snapshot = await self.load_snapshot(inspection)
        property = await self.get_property(inspection.property_id)

        return assemble_single_report(snapshot, property, self.resolve_branding(branding))

    async def mark_completed(self, inspection_id: UUID) -> None:
        """Called once the report has been delivered. Never moves a status back."""
        inspection = await self.get_inspection(inspection_id)
        completed = inspection.status.advance_to(InspectionStatus.COMPLETED)
        if completed != inspection.status:
            await self.repository.update_inspection_status(inspection.id, completed)
            logger.info("[REPORT] Inspection marked completed", extra={"inspection_id": inspection.id})

    async def find_comparison_pair(self, property_id: UUID) -> tuple[InspectionRecord, InspectionRecord]:
        """Most recently created entry and exit inspections of a property."""
        inspections = await self.repository.list_inspections_for_property(property_id)
        entries = [i for i in inspections if i.inspection_type == InspectionType.ENTRY]
        exits = [i for i in inspections if i.inspection_type == InspectionType.EXIT]
        if not entries or not exits:
            raise ReportNotFoundError(
                "É necessário ter uma vistoria de entrada e uma de saída para gerar o comparativo."
            )
        return max(entries, key=lambda i: i.created_at), max(exits, key=lambda i: i.created_at)

    async def build_comparison_report(
        self,
        property_id: UUID,
        config: Optional[ReportConfig] = None,
        branding: Optional[ReportBranding] = None,
    ) -> ReportDocument:
        property = await self.get_property(property_id)
        entry, exit = await self.find_comparison_pair(property_id)
        entry_snapshot = await self.load_snapshot(entry)
        exit_snapshot = await self.load_snapshot(exit)
        return assemble_comparison_report(
            entry_snapshot,
            exit_snapshot,
            property,
            config or ReportConfig(),
            self.resolve_branding(branding),
        )

    # --- PDF ---

    def compose_pdf(self, document: ReportDocument, photos: dict) -> bytes:
        rendered = self.renderer.render(document, photos)
        slices = compute_page_breaks(
            rendered.plan.height,
            rendered.plan.regions,
            self.pdf.page_height_px(self.renderer.width),
            self.settings.pagination_max_iterations,
        )
        logger.info(f"[REPORT] {rendered.plan.height}px report paginated into {len(slices)} pages")
        return self.pdf.generate(slice_raster(rendered.image, slices), title=document.header.title)

    async def render_pdf(self, document: ReportDocument) -> bytes:
        photos = await self.fetcher.fetch_all(document.photo_urls())
        return await asyncio.to_thread(self.compose_pdf, document, photos)


def get_report_service(repository: InspectionRepository = Depends(get_repository)) -> ReportService:
    return ReportService(repository)
