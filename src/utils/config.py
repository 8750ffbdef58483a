"""Configuration management for the bank document extraction system.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, field extraction, and storage settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for page normalization and MICR band cropping."""

    auto_rotate: bool = True
    target_width: int = 1200
    page_contrast: float = Field(default=0.6, ge=0.55, le=0.7)
    micr_contrast: float = Field(default=0.7, ge=0.0, lt=1.0)
    micr_band_ratio: float = 0.14
    micr_min_height: int = 40


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR and PDF rasterization."""

    tesseract_cmd: str | None = None
    poppler_path: str | None = None
    default_lang: str = "eng"
    page_psm: int = 6
    micr_psms: list[int] = Field(default_factory=lambda: [7, 6])
    micr_whitelist: str = "0123456789"
    pdf_dpi: int = Field(default=200, ge=200, le=300)
    rasterize_timeout: int | None = 120
    max_pages: int | None = 1


class PatternConfig(BaseModel):
    """A user-supplied field pattern appended to the built-in table."""

    field: str
    pattern: str
    priority: int = 100
    ignore_case: bool = True
    group: int = 0


class ExtractionConfig(BaseModel):
    """Configuration for text-layer acceptance and field synthesis."""

    min_text_length: int = 20
    extra_patterns: list[PatternConfig] = Field(default_factory=list)


class StorageConfig(BaseModel):
    """Configuration for the record store and scratch directories."""

    database_url: str = "sqlite:///bankdata.db"
    upload_dir: str = "uploads"
    work_dir: str = "ocr_work"
    keep_artifacts: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
