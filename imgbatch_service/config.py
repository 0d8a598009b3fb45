"""
Configuration loader for the image batch service.

Environment variables are centralized here to keep the rest of the code
focused on batch processing and to make operational tuning clear.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Transform
    target_width: int = Field(500, description="Output width in pixels")
    jpeg_quality: int = Field(60, description="JPEG quality factor 1-100")

    # Storage areas
    images_dir: Path = Field(Path("compressed_images"))
    processed_dir: Path = Field(Path("processed_files"))
    uploads_dir: Path = Field(Path("uploads"))

    # Fetching
    connect_timeout_seconds: float = Field(5.0)
    request_timeout_seconds: float = Field(30.0)

    # Concurrency
    transform_workers: int = Field(4)
    max_concurrent_images: int = Field(0, description="0 disables the gate")

    # Input table columns (matched after trimming header whitespace)
    sequence_column: str = Field("S.No")
    product_column: str = Field("Product Name")
    images_column: str = Field("Input Image Urls")

    log_level: str = Field("INFO")

    @field_validator("target_width", "transform_workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("jpeg_quality")
    @classmethod
    def validate_quality(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("JPEG_QUALITY must be between 1 and 100")
        return v

    @field_validator("max_concurrent_images")
    @classmethod
    def validate_gate(cls, v: int) -> int:
        if v < 0:
            raise ValueError("MAX_CONCURRENT_IMAGES cannot be negative")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()


def ensure_directories(settings: Settings) -> None:
    """Create the upload, image and table storage areas if missing."""
    for directory in (settings.uploads_dir, settings.images_dir, settings.processed_dir):
        directory.mkdir(parents=True, exist_ok=True)
