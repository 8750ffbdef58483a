"""Tests for page normalization and MICR band cropping."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from src.preprocessing.contrast import (
    boost_contrast,
    calculate_contrast,
    enhance,
    normalize_range,
    to_gray,
)
from src.preprocessing.image_io import derive_path, load_image, save_image
from src.preprocessing.micr_region import MicrRegionExtractor, micr_band_height
from src.preprocessing.orientation import auto_rotate, downscale, needs_rotation
from src.preprocessing.pipeline import ImageNormalizer
from src.utils.config import PreprocessingConfig


def _write(path: Path, height: int, width: int) -> Path:
    """Write a synthetic BGR page of the given size."""
    image = np.full((height, width, 3), 210, dtype=np.uint8)
    image[height // 4 : height // 2, width // 4 : width // 2] = (20, 20, 20)
    cv2.imwrite(str(path), image)
    return path


class TestContrast:
    """Tests for greyscale, normalization, and contrast boost."""

    def test_to_gray_color(self, sample_color_image: np.ndarray) -> None:
        assert to_gray(sample_color_image).shape == (200, 300)

    def test_to_gray_passthrough(self, sample_image: np.ndarray) -> None:
        assert to_gray(sample_image) is sample_image

    def test_normalize_range_stretches(self, sample_image: np.ndarray) -> None:
        result = normalize_range(sample_image)
        assert result.min() == 0
        assert result.max() == 255

    def test_normalize_range_flat_image(self) -> None:
        flat = np.full((10, 10), 90, dtype=np.uint8)
        assert np.array_equal(normalize_range(flat), flat)

    def test_boost_contrast_zero_is_identity(self, sample_image: np.ndarray) -> None:
        assert np.array_equal(boost_contrast(sample_image, 0.0), sample_image)

    def test_boost_contrast_pushes_to_extremes(self) -> None:
        image = np.array([[30, 127, 200]], dtype=np.uint8)
        result = boost_contrast(image, 0.6)
        assert result.tolist() == [[0, 127, 255]]

    def test_boost_contrast_rejects_out_of_range(self, sample_image) -> None:
        with pytest.raises(ValueError):
            boost_contrast(sample_image, 1.0)

    def test_enhance_outputs_grayscale(self, sample_color_image) -> None:
        result = enhance(sample_color_image, 0.6)
        assert result.ndim == 2
        assert result.dtype == np.uint8
        assert calculate_contrast(result) >= calculate_contrast(sample_color_image)


class TestOrientation:
    """Tests for auto-rotation and downscaling."""

    def test_needs_rotation(self) -> None:
        assert needs_rotation(np.zeros((300, 200), dtype=np.uint8))
        assert not needs_rotation(np.zeros((200, 300), dtype=np.uint8))

    def test_auto_rotate_portrait(self) -> None:
        result = auto_rotate(np.zeros((300, 200, 3), dtype=np.uint8))
        assert result.shape == (200, 300, 3)

    def test_auto_rotate_landscape_untouched(self, sample_image) -> None:
        assert auto_rotate(sample_image) is sample_image

    def test_downscale_proportional(self) -> None:
        result = downscale(np.zeros((1000, 2400), dtype=np.uint8), 1200)
        assert result.shape == (500, 1200)

    def test_downscale_never_upscales(self, sample_image) -> None:
        assert downscale(sample_image, 1200) is sample_image


class TestImageIO:
    """Tests for safe loading and derived paths."""

    def test_derive_path(self) -> None:
        assert derive_path(Path("/w/page-0001.png"), "_prep") == Path(
            "/w/page-0001_prep.png"
        )

    def test_load_valid(self, image_file: Path) -> None:
        outcome = load_image(image_file)
        assert not outcome.degraded
        assert outcome.value.shape == (200, 300, 3)

    def test_load_missing(self, tmp_path: Path) -> None:
        outcome = load_image(tmp_path / "nope.png")
        assert outcome.value is None
        assert outcome.degraded

    def test_load_zero_byte(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.png"
        empty.write_bytes(b"")
        assert load_image(empty).value is None

    def test_load_corrupt(self, tmp_path: Path) -> None:
        corrupt = tmp_path / "corrupt.png"
        corrupt.write_bytes(b"not an image at all")
        outcome = load_image(corrupt)
        assert outcome.value is None
        assert "cannot decode" in outcome.reason

    def test_save_image(self, tmp_path: Path, sample_image) -> None:
        out = save_image(sample_image, tmp_path / "out.png")
        assert out.exists()


class TestImageNormalizer:
    """Tests for the file-based normalizer."""

    def setup_method(self) -> None:
        self.normalizer = ImageNormalizer(PreprocessingConfig())

    def test_rotate_writes_new_file(self, tmp_path: Path) -> None:
        page = _write(tmp_path / "page.png", 300, 200)
        outcome = self.normalizer.rotate(page)
        assert outcome.value == tmp_path / "page_rot.png"
        assert cv2.imread(str(outcome.value)).shape[:2] == (200, 300)
        assert cv2.imread(str(page)).shape[:2] == (300, 200)

    def test_downscale_wide_page(self, tmp_path: Path) -> None:
        page = _write(tmp_path / "page.png", 1000, 2400)
        outcome = self.normalizer.downscale(page)
        assert outcome.value == tmp_path / "page_down.png"
        assert cv2.imread(str(outcome.value)).shape[:2] == (500, 1200)

    def test_narrow_page_keeps_path(self, image_file: Path) -> None:
        geometry = self.normalizer.correct_geometry(image_file)
        assert geometry.value == image_file
        assert not geometry.degraded

    def test_rotation_disabled(self, tmp_path: Path) -> None:
        normalizer = ImageNormalizer(PreprocessingConfig(auto_rotate=False))
        page = _write(tmp_path / "page.png", 300, 200)
        assert normalizer.correct_geometry(page).value == page

    def test_normalize_full_chain(self, tmp_path: Path) -> None:
        page = _write(tmp_path / "page.png", 3000, 1500)
        outcome = self.normalizer.normalize(page)
        assert outcome.value == tmp_path / "page_rot_down_prep.png"
        prepared = cv2.imread(str(outcome.value), cv2.IMREAD_UNCHANGED)
        assert prepared.ndim == 2
        assert prepared.shape == (600, 1200)

    def test_normalize_unloadable_returns_none(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.png"
        empty.write_bytes(b"")
        outcome = self.normalizer.normalize(empty)
        assert outcome.value is None
        assert outcome.degraded

    def test_geometry_unloadable_returns_input(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.png"
        outcome = self.normalizer.correct_geometry(missing)
        assert outcome.value == missing
        assert outcome.degraded


class TestMicrRegion:
    """Tests for MICR band cropping."""

    def test_band_height_ratio(self) -> None:
        assert micr_band_height(1000, 0.14, 40) == 140

    def test_band_height_minimum(self) -> None:
        assert micr_band_height(200, 0.14, 40) == 40

    def test_band_height_clamped_to_image(self) -> None:
        assert micr_band_height(30, 0.14, 40) == 30

    def test_crop_bottom_band(self, tmp_path: Path) -> None:
        page = _write(tmp_path / "page.png", 600, 1200)
        outcome = MicrRegionExtractor(PreprocessingConfig()).crop(page)
        assert outcome.value == tmp_path / "page_micr.png"
        band = cv2.imread(str(outcome.value), cv2.IMREAD_UNCHANGED)
        assert band.shape == (84, 1200)
        assert cv2.imread(str(page)).shape[:2] == (600, 1200)

    def test_crop_unloadable_returns_input(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.png"
        outcome = MicrRegionExtractor(PreprocessingConfig()).crop(missing)
        assert outcome.value == missing
        assert outcome.degraded
