"""Tesseract OCR wrapper for page text and MICR digit recognition.

Each recognition attempt is independent: an engine failure degrades
that attempt to empty text instead of aborting the page. MICR bands
are read under several page segmentation modes and the outputs are
concatenated, letting the parser pick whichever pass matched.
"""

from dataclasses import dataclass
from pathlib import Path

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.errors import RecognitionError
from src.utils.logger import get_logger
from src.utils.outcome import StepOutcome

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecognitionMode:
    """Page segmentation mode plus optional character whitelist."""

    psm: int
    whitelist: str | None = None

    @property
    def tesseract_config(self) -> str:
        config = f"--psm {self.psm}"
        if self.whitelist:
            config += f" -c tessedit_char_whitelist={self.whitelist}"
        return config

    def __str__(self) -> str:
        return f"psm{self.psm}" + ("+whitelist" if self.whitelist else "")


@dataclass
class RecognitionResult:
    """Raw text recognized from one image under one mode."""

    text: str
    mode: RecognitionMode


class TextRecognizer:
    """Wrapper around Tesseract OCR for check and statement images.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: OCR language code.
        page_psm: Segmentation mode for full-page passes.
        micr_psms: Segmentation modes tried, in order, on MICR bands.
        micr_whitelist: Characters Tesseract may emit on MICR bands.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        page_psm: int = 6,
        micr_psms: list[int] | None = None,
        micr_whitelist: str = "0123456789",
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.page_mode = RecognitionMode(psm=page_psm)
        self.micr_modes = [
            RecognitionMode(psm=psm, whitelist=micr_whitelist)
            for psm in (micr_psms if micr_psms is not None else [7, 6])
        ]

    def _run(self, image_path: Path, mode: RecognitionMode) -> str:
        try:
            with Image.open(image_path) as image:
                return pytesseract.image_to_string(
                    image, lang=self.default_lang, config=mode.tesseract_config
                )
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            UnidentifiedImageError,
            OSError,
        ) as exc:
            raise RecognitionError(f"{mode} on {Path(image_path).name}: {exc}") from exc

    def recognize(
        self, image_path: Path, mode: RecognitionMode
    ) -> StepOutcome[RecognitionResult]:
        """Run a single recognition attempt.

        Args:
            image_path: Image file to read.
            mode: Segmentation mode and whitelist.

        Returns:
            The recognized text, or a degraded outcome with empty text
            when the engine fails.
        """
        try:
            text = self._run(image_path, mode)
        except RecognitionError as exc:
            logger.warning("Recognition failed: %s", exc)
            return StepOutcome.fail(RecognitionResult(text="", mode=mode), str(exc))

        logger.debug("%s recognized %d chars", mode, len(text.strip()))
        return StepOutcome.ok(RecognitionResult(text=text, mode=mode))

    def recognize_page(self, image_path: Path) -> StepOutcome[RecognitionResult]:
        """Single unconstrained pass over a full page."""
        return self.recognize(image_path, self.page_mode)

    def recognize_micr(self, image_path: Path) -> StepOutcome[str]:
        """Read a MICR band under every configured mode.

        Args:
            image_path: Cropped MICR band image.

        Returns:
            The outputs of all passes joined by spaces. Degraded when
            any pass failed; failed passes contribute nothing.
        """
        texts: list[str] = []
        reasons: list[str] = []
        for mode in self.micr_modes:
            outcome = self.recognize(image_path, mode)
            texts.append(outcome.value.text.strip())
            if outcome.degraded:
                reasons.append(outcome.reason)

        combined = " ".join(t for t in texts if t)
        if reasons:
            return StepOutcome.fail(combined, "; ".join(reasons))
        return StepOutcome.ok(combined)
