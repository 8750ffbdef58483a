"""Shared test fixtures for the extraction test suite."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from src.utils.config import AppConfig, StorageConfig


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.full((200, 300), 200, dtype=np.uint8)
    image[50:150, 50:250] = 30
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic BGR test image."""
    image = np.full((200, 300, 3), 220, dtype=np.uint8)
    image[50:150, 50:250] = (40, 40, 40)
    return image


@pytest.fixture
def image_file(tmp_path: Path, sample_color_image: np.ndarray) -> Path:
    """Write the color test image to a PNG file."""
    path = tmp_path / "page-0001.png"
    cv2.imwrite(str(path), sample_color_image)
    return path


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Default configuration with storage confined to ``tmp_path``."""
    return AppConfig(
        storage=StorageConfig(
            database_url=f"sqlite:///{tmp_path / 'records.db'}",
            upload_dir=str(tmp_path / "uploads"),
            work_dir=str(tmp_path / "work"),
        )
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
