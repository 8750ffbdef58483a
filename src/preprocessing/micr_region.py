"""MICR band isolation for check images.

The magnetic-ink line sits along the bottom edge of a check. The band
is cropped at full width and given a stronger contrast boost than body
text, since MICR ink prints with high contrast.
"""

import math
from pathlib import Path

from src.errors import ImageLoadError
from src.utils.config import PreprocessingConfig
from src.utils.logger import get_logger
from src.utils.outcome import StepOutcome

from .contrast import enhance
from .image_io import derive_path, load_image, save_image

logger = get_logger(__name__)


def micr_band_height(image_height: int, ratio: float, min_height: int) -> int:
    """Height of the bottom band: ``max(min_height, floor(ratio * h))``.

    Clamped to the image height for images shorter than ``min_height``.
    """
    return min(image_height, max(min_height, math.floor(ratio * image_height)))


class MicrRegionExtractor:
    """Crops and enhances the MICR band of a page image.

    Args:
        config: Preprocessing configuration with band ratio, minimum
            height, and MICR contrast amount.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def crop(self, path: Path) -> StepOutcome[Path]:
        """Write the enhanced bottom band to ``<stem>_micr.png``.

        Args:
            path: Page image file. Left untouched.

        Returns:
            Path of the band image, or a degraded outcome holding the
            input path when the page cannot be loaded or written.
        """
        loaded = load_image(path)
        if loaded.value is None:
            logger.warning("Skipping MICR crop: %s", loaded.reason)
            return StepOutcome.fail(path, loaded.reason)

        image = loaded.value
        height = image.shape[0]
        band_height = micr_band_height(
            height, self.config.micr_band_ratio, self.config.micr_min_height
        )
        band = enhance(image[height - band_height :, :], self.config.micr_contrast)

        try:
            out = save_image(band, derive_path(Path(path), "_micr"))
        except ImageLoadError as exc:
            return StepOutcome.fail(path, str(exc))

        logger.debug("Cropped MICR band of %d px from %d px page", band_height, height)
        return StepOutcome.ok(out)
