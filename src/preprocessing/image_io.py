"""Safe image loading and derived-file writing.

Every preprocessing step reads its input through :func:`load_image`,
which degrades instead of raising for missing, empty, or corrupt
files, and writes its output to a new file next to the input so the
intermediate artifacts of a run stay inspectable.
"""

from pathlib import Path

import cv2
import numpy as np

from src.errors import ImageLoadError
from src.utils.logger import get_logger
from src.utils.outcome import StepOutcome

logger = get_logger(__name__)


def derive_path(path: Path, suffix: str) -> Path:
    """Build the output path for a step, e.g. ``page-1.png`` -> ``page-1_prep.png``."""
    return path.with_name(f"{path.stem}{suffix}.png")


def load_image(path: Path) -> StepOutcome[np.ndarray | None]:
    """Load an image as a BGR array.

    Args:
        path: Image file path.

    Returns:
        The decoded image, or a degraded outcome holding ``None`` when
        the file is missing, zero bytes, or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file() or path.stat().st_size == 0:
        return StepOutcome.fail(None, str(ImageLoadError(f"missing or empty: {path}")))

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        return StepOutcome.fail(None, str(ImageLoadError(f"cannot decode: {path}")))

    return StepOutcome.ok(image)


def save_image(image: np.ndarray, path: Path) -> Path:
    """Write an image to disk.

    Raises:
        ImageLoadError: If OpenCV cannot encode or write the file.
    """
    try:
        written = cv2.imwrite(str(path), image)
    except cv2.error as exc:
        raise ImageLoadError(f"cannot write {path}: {exc}") from exc
    if not written:
        raise ImageLoadError(f"cannot write {path}")
    logger.debug("Wrote %s (%dx%d)", path.name, image.shape[1], image.shape[0])
    return path
