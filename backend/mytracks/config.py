"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from pathlib import Path
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator, ConfigDict

# Project root: mytracks/ (repository checkout)
PROJECT_ROOT = Path(__file__).parent.parent.parent
# Default data directory: mytracks/data/
DATA_DIR = PROJECT_ROOT / "data"


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///./mytracks.db",
        description="Database connection URL"
    )

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === GPX Archive ===
    gpx_archive_path: str = Field(
        default=str(DATA_DIR / "gpx_files.tar.gz"),
        validation_alias=AliasChoices("gpx_archive_path", "gpx_path"),
        description="gzip-compressed tar archive with .gpx files"
    )
    gpx_archive_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gpx_archive_url", "gpx_s3_url"),
        description="Where to download the archive from when it is missing"
    )
    archive_download_timeout: float = Field(default=600.0)

    # === Ingestion ===
    ingest_on_startup: bool = Field(default=True)
    backfill_on_startup: bool = Field(default=True)
    elevation_method: Literal["segmented", "delta"] = Field(
        default="segmented",
        description="Elevation gain/loss algorithm used at ingestion"
    )
    ingest_log_every: int = Field(default=100, gt=0)
    backfill_batch_size: int = Field(default=500, gt=0)
    backfill_log_every: int = Field(default=10, gt=0)

    # === Queries ===
    query_default_limit: int = Field(default=1000, gt=0)
    query_max_limit: int = Field(default=1000, gt=0)
    bounds_default_limit: int = Field(default=100, gt=0)
    coordinates_max_ids: int = Field(default=50, gt=0)

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
