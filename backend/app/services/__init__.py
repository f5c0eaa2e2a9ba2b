"""Services for the inspection report engine."""

from app.services.storage import StorageService, get_storage_service
from app.services.analysis_client import AnalysisClient, AnalysisServiceError, get_analysis_client
from app.services.photo_analysis import PhotoIngestService
from app.services.report_service import ReportService
from app.services.pdf_generator import PDFGenerator

__all__ = [
    "StorageService",
    "get_storage_service",
    "AnalysisClient",
    "AnalysisServiceError",
    "get_analysis_client",
    "PhotoIngestService",
    "ReportService",
    "PDFGenerator",
]
