"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, Enum):
    GCS = "gcs"
    S3 = "s3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Vistoria Reports"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    allowed_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/vistoria"

    # Storage
    storage_provider: StorageProvider = StorageProvider.GCS
    storage_public_base_url: Optional[str] = None

    # GCS Config
    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    # S3 Config
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # AI analysis collaborator
    analysis_service_url: str = "http://localhost:54321/functions/v1/analyze-image"
    analysis_api_key: Optional[str] = None
    analysis_timeout_seconds: float = 60.0

    # Report rendering
    report_raster_width_px: int = 1240
    report_page_margin_pt: float = 28.0  # ~1cm
    pagination_max_iterations: int = 1000
    report_font_path: Optional[str] = None
    photo_fetch_timeout_seconds: float = 15.0

    # Default branding (used when the request carries none)
    company_name: Optional[str] = None
    inspector_name: Optional[str] = None
    company_logo_url: Optional[str] = None

    @property
    def bucket_name(self) -> str:
        """Get the appropriate bucket name based on storage provider."""
        if self.storage_provider == StorageProvider.GCS:
            if not self.gcs_bucket_name:
                raise ValueError("GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs")
            return self.gcs_bucket_name
        else:
            if not self.s3_bucket_name:
                raise ValueError("S3_BUCKET_NAME required when STORAGE_PROVIDER=s3")
            return self.s3_bucket_name


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
