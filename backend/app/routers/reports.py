"""Reports router - single inspection and entry/exit comparison reports."""

import io
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from app.schemas.report import ComparisonReportRequest, ReportDocument
from app.services.report_assembler import ReportInputError, ReportNotFoundError
from app.services.report_service import ReportService, get_report_service

router = APIRouter(prefix="/reports", tags=["reports"])


def _input_error(e: ReportInputError) -> HTTPException:
    if isinstance(e, ReportNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _pdf_response(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    headers = {
        "Content-Disposition": f'inline; filename="{filename}"',
        "Content-Length": str(len(pdf_bytes)),
    }
    return StreamingResponse(io.BytesIO(pdf_bytes), media_type="application/pdf", headers=headers)


@router.get("/inspections/{inspection_id}", response_model=ReportDocument)
async def get_inspection_report(
    inspection_id: UUID,
    service: ReportService = Depends(get_report_service),
):
    """Single inspection report. Generating it marks the inspection completed."""
    try:
        document = await service.build_single_report(inspection_id)
    except ReportInputError as e:
        raise _input_error(e)

    await service.mark_completed(inspection_id)
    return document


@router.get("/inspections/{inspection_id}/pdf")
async def get_inspection_report_pdf(
    inspection_id: UUID,
    service: ReportService = Depends(get_report_service),
):
    """Single inspection report as a paginated PDF."""
    try:
        document = await service.build_single_report(inspection_id)
    except ReportInputError as e:
        raise _input_error(e)

    pdf_bytes = await service.render_pdf(document)
    await service.mark_completed(inspection_id)
    return _pdf_response(pdf_bytes, f"vistoria_{inspection_id}.pdf")


@router.post("/properties/{property_id}/comparison", response_model=ReportDocument)
async def create_comparison_report(
    property_id: UUID,
    data: ComparisonReportRequest,
    service: ReportService = Depends(get_report_service),
):
    """Compare the latest entry and exit inspections of a property."""
    try:
        return await service.build_comparison_report(property_id, data.config, data.branding)
    except ReportInputError as e:
        raise _input_error(e)


@router.post("/properties/{property_id}/comparison/pdf")
async def create_comparison_report_pdf(
    property_id: UUID,
    data: ComparisonReportRequest,
    service: ReportService = Depends(get_report_service),
):
    try:
        document = await service.build_comparison_report(property_id, data.config, data.branding)
    except ReportInputError as e:
        raise _input_error(e)

    pdf_bytes = await service.render_pdf(document)
    return _pdf_response(pdf_bytes, f"comparativo_{property_id}.pdf")
