"""Geometric correction for scanned pages.

Rotates portrait scans of landscape documents and caps page width
to bound OCR cost. This is a heuristic fix for sideways checks, not
a general deskew.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def needs_rotation(image: np.ndarray) -> bool:
    """Return True when the image is taller than it is wide."""
    h, w = image.shape[:2]
    return h > w


def auto_rotate(image: np.ndarray) -> np.ndarray:
    """Rotate a portrait image by 90 degrees so it lies landscape.

    Args:
        image: Input image as a numpy array (BGR or grayscale).

    Returns:
        Rotated image, or the input itself when already landscape.
    """
    if not needs_rotation(image):
        return image

    result = cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    logger.info(
        "Rotated portrait page %dx%d -> %dx%d",
        image.shape[1],
        image.shape[0],
        result.shape[1],
        result.shape[0],
    )
    return result


def downscale(image: np.ndarray, target_width: int) -> np.ndarray:
    """Shrink an image proportionally to a maximum width.

    Never upscales.

    Args:
        image: Input image as a numpy array.
        target_width: Maximum allowed width in pixels.

    Returns:
        Resized image, or the input itself when already narrow enough.
    """
    h, w = image.shape[:2]
    if w <= target_width:
        return image

    new_height = max(1, round(h * target_width / w))
    result = cv2.resize(
        image, (target_width, new_height), interpolation=cv2.INTER_AREA
    )
    logger.debug("Downscaled %dx%d -> %dx%d", w, h, target_width, new_height)
    return result
