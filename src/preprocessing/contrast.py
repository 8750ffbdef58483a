"""Greyscale conversion, range normalization, and contrast boosting.

Photometric correction applied before OCR. The contrast boost uses a
fixed amount rather than adaptive thresholding, so results are
predictable across scans.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (BGR or grayscale).

    Returns:
        Grayscale image.
    """
    if len(image.shape) == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def normalize_range(image: np.ndarray) -> np.ndarray:
    """Stretch pixel intensities to span the full 0-255 range.

    Flat images (a single intensity) are returned unchanged.

    Args:
        image: Grayscale image.

    Returns:
        Normalized uint8 image.
    """
    low = int(image.min())
    high = int(image.max())
    if high == low:
        return image
    stretched = (image.astype(np.float32) - low) * (255.0 / (high - low))
    return np.clip(stretched, 0, 255).astype(np.uint8)


def boost_contrast(image: np.ndarray, amount: float) -> np.ndarray:
    """Scale intensities away from mid-grey by a fixed amount.

    The factor is ``(1 + amount) / (1 - amount)``, so 0 leaves the image
    unchanged and values towards 1 push pixels to black or white.

    Args:
        image: Grayscale image.
        amount: Contrast delta in the open interval (-1, 1).

    Returns:
        Contrast-adjusted uint8 image.

    Raises:
        ValueError: If ``amount`` is outside (-1, 1).
    """
    if not -1.0 < amount < 1.0:
        raise ValueError(f"Contrast amount must be in (-1, 1), got {amount}")

    factor = (1.0 + amount) / (1.0 - amount)
    adjusted = np.floor(factor * (image.astype(np.float32) - 127.0) + 127.0)
    logger.debug("Applied contrast boost %.2f (factor %.2f)", amount, factor)
    return np.clip(adjusted, 0, 255).astype(np.uint8)


def enhance(image: np.ndarray, amount: float) -> np.ndarray:
    """Greyscale, normalize, then boost contrast."""
    return boost_contrast(normalize_range(to_gray(image)), amount)


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate image contrast as the standard deviation of pixel intensities.

    Args:
        image: Input image (BGR or grayscale).

    Returns:
        Contrast score (higher means more contrast).
    """
    return float(to_gray(image).std())
