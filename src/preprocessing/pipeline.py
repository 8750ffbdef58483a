"""File-based page normalization for document OCR.

Orchestrates auto-rotation, downscaling, and greyscale/contrast
enhancement. Each step reads a file and writes a new one with a
derived suffix; a step whose input cannot be loaded is skipped
rather than failing the page.
"""

from pathlib import Path

import numpy as np

from src.errors import ImageLoadError
from src.utils.config import PreprocessingConfig
from src.utils.logger import get_logger
from src.utils.outcome import StepOutcome

from .contrast import calculate_contrast, enhance
from .image_io import derive_path, load_image, save_image
from .orientation import auto_rotate, downscale, needs_rotation

logger = get_logger(__name__)


class ImageNormalizer:
    """Best-effort geometric and photometric correction of page images.

    Args:
        config: Preprocessing configuration controlling the steps.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def rotate(self, path: Path) -> StepOutcome[Path]:
        """Rotate a portrait page to landscape, writing ``<stem>_rot.png``."""
        loaded = load_image(path)
        if loaded.value is None:
            return StepOutcome.fail(path, loaded.reason)
        if not needs_rotation(loaded.value):
            return StepOutcome.ok(path)
        return self._write(auto_rotate(loaded.value), path, "_rot")

    def downscale(self, path: Path) -> StepOutcome[Path]:
        """Cap page width at the configured target, writing ``<stem>_down.png``."""
        loaded = load_image(path)
        if loaded.value is None:
            return StepOutcome.fail(path, loaded.reason)
        if loaded.value.shape[1] <= self.config.target_width:
            return StepOutcome.ok(path)
        return self._write(
            downscale(loaded.value, self.config.target_width), path, "_down"
        )

    def correct_geometry(self, path: Path) -> StepOutcome[Path]:
        """Run rotation then downscaling.

        Returns:
            Path of the corrected page (the input path when nothing
            changed or a step was skipped).
        """
        reasons: list[str] = []
        current = Path(path)

        if self.config.auto_rotate:
            step = self.rotate(current)
            current = step.value
            if step.degraded:
                reasons.append(step.reason)

        step = self.downscale(current)
        current = step.value
        if step.degraded:
            reasons.append(step.reason)

        if reasons:
            return StepOutcome.fail(current, "; ".join(reasons))
        return StepOutcome.ok(current)

    def enhance(self, path: Path) -> StepOutcome[Path | None]:
        """Greyscale, normalize, and contrast-boost a page.

        Returns:
            Path of ``<stem>_prep.png``, or a degraded outcome holding
            ``None`` when the page cannot be loaded.
        """
        loaded = load_image(path)
        if loaded.value is None:
            logger.warning("Skipping enhancement: %s", loaded.reason)
            return StepOutcome.fail(None, loaded.reason)

        result = enhance(loaded.value, self.config.page_contrast)
        logger.debug(
            "Page contrast %.1f -> %.1f",
            calculate_contrast(loaded.value),
            calculate_contrast(result),
        )
        written = self._write(result, path, "_prep")
        if written.degraded:
            return StepOutcome.fail(None, written.reason)
        return written

    def normalize(self, path: Path) -> StepOutcome[Path | None]:
        """Run the full correction chain on a page image.

        Args:
            path: Page image file.

        Returns:
            Path of the enhanced page, or ``None`` when it cannot be
            produced. Degradation reasons of every step are joined.
        """
        geometry = self.correct_geometry(path)
        enhanced = self.enhance(geometry.value)

        reasons = [r for r in (geometry.reason, enhanced.reason) if r]
        if reasons:
            return StepOutcome.fail(enhanced.value, "; ".join(reasons))
        return enhanced

    @staticmethod
    def _write(image: np.ndarray, source: Path, suffix: str) -> StepOutcome[Path]:
        try:
            return StepOutcome.ok(save_image(image, derive_path(source, suffix)))
        except ImageLoadError as exc:
            return StepOutcome.fail(source, str(exc))
