"""
Runtime Environment Validation Module

Validates the environment at application startup. If validation fails,
the application refuses to start (hard fail).
"""

import os
import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductionSettings(BaseSettings):
    """
    Strict validation schema for environment variables.

    All required fields MUST be present and valid, or the application will not start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # CRITICAL: Database Configuration
    # ========================================================================
    database_url: str  # REQUIRED: PostgreSQL connection string

    # ========================================================================
    # CRITICAL: Storage Provider
    # ========================================================================
    storage_provider: str  # REQUIRED: "gcs" or "s3"

    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    s3_bucket_name: Optional[str] = None

    # ========================================================================
    # CRITICAL: AI analysis collaborator
    # ========================================================================
    analysis_service_url: str  # REQUIRED

    # ========================================================================
    # Application Configuration
    # ========================================================================
    app_name: str = "Vistoria Reports"
    debug: bool = False
    allowed_origins: str  # REQUIRED: Comma-separated list of allowed origins

    # ========================================================================
    # Optional: Report rendering
    # ========================================================================
    report_font_path: Optional[str] = None


def validate_environment() -> ProductionSettings:
    """
    Validate all required environment variables at startup.

    Raises:
        SystemExit: If validation fails (exit code 1)
    """

    try:
        settings = ProductionSettings()

        # 1. CORS: Ensure wildcard is not used in production
        if not settings.debug:
            origins = [o.strip() for o in settings.allowed_origins.split(",")]
            if "*" in origins:
                print(
                    "❌ FATAL: Wildcard CORS origin (*) detected in production mode.",
                    file=sys.stderr
                )
                print(
                    "   Set ALLOWED_ORIGINS to specific domains (comma-separated).",
                    file=sys.stderr
                )
                sys.exit(1)

        # 2. Storage Provider: Validate provider-specific configuration
        if settings.storage_provider == "gcs":
            if not settings.gcs_bucket_name:
                print(
                    "❌ FATAL: GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs",
                    file=sys.stderr
                )
                sys.exit(1)
        elif settings.storage_provider == "s3":
            if not settings.s3_bucket_name or not settings.aws_access_key_id or not settings.aws_secret_access_key:
                print(
                    "❌ FATAL: S3_BUCKET_NAME, AWS_ACCESS_KEY_ID, and AWS_SECRET_ACCESS_KEY required when STORAGE_PROVIDER=s3",
                    file=sys.stderr
                )
                sys.exit(1)
        else:
            print(
                f"❌ FATAL: Invalid STORAGE_PROVIDER '{settings.storage_provider}'. Must be 'gcs' or 's3'.",
                file=sys.stderr
            )
            sys.exit(1)

        # 3. Report font: must exist when configured
        if settings.report_font_path and not os.path.exists(settings.report_font_path):
            print(
                f"❌ FATAL: Report font file not found: {settings.report_font_path}",
                file=sys.stderr
            )
            sys.exit(1)

        # 4. Database URL: Basic format validation
        if not settings.database_url.startswith("postgresql"):
            print(
                "❌ FATAL: DATABASE_URL must be a PostgreSQL connection string (postgresql+asyncpg://)",
                file=sys.stderr
            )
            sys.exit(1)

        print("✅ Environment validation passed")
        print(f"   App: {settings.app_name}")
        print(f"   Debug: {settings.debug}")
        print(f"   Storage: {settings.storage_provider}")
        print(f"   Analysis: {settings.analysis_service_url}")

        return settings

    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"   • {field}: {msg}", file=sys.stderr)

        print("\nThe application cannot start with invalid configuration.", file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    validate_environment()
    print("\n✅ All environment variables are valid!")
