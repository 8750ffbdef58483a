"""Extraction pipeline orchestrator.

Runs one uploaded document through the pipeline: embedded text layer
first, OCR fallback when the layer is too short, then field synthesis.
Only a missing upload or a failed rasterization abort a run; every
other step failure is recorded as a degradation and the run goes on.
"""

import shutil
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from src.errors import ExtractionError, UploadMissing
from src.extraction.field_synthesizer import FieldSynthesizer
from src.extraction.micr_parser import MicrFields, parse_micr
from src.extraction.record import ExtractedRecord
from src.preprocessing.micr_region import MicrRegionExtractor
from src.preprocessing.pipeline import ImageNormalizer
from src.utils.config import AppConfig
from src.utils.logger import get_logger, get_run_logger
from src.utils.outcome import StepOutcome

from .pdf_handler import PopplerRasterizer, Rasterizer, page_filename
from .run_context import RunContext
from .tesseract_engine import TextRecognizer
from .text_layer import read_text_layer

logger = get_logger(__name__)

# PDF readers accept the header anywhere in the first KiB.
_PDF_HEADER_WINDOW = 1024


class PipelineState(StrEnum):
    """States of one extraction run."""

    RECEIVED = "received"
    DIRECT_TEXT_ATTEMPTED = "direct_text_attempted"
    SUFFICIENT = "sufficient"
    OCR_REQUIRED = "ocr_required"
    OCR_RUNNING = "ocr_running"
    FIELDS_SYNTHESIZED = "fields_synthesized"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


class MediaType(StrEnum):
    """Document kinds the pipeline accepts."""

    PDF = "pdf"
    IMAGE = "image"


@dataclass(frozen=True)
class Document:
    """An uploaded file and its detected media type."""

    path: Path
    media_type: MediaType
    filename: str

    @classmethod
    def from_path(cls, path: Path, filename: str | None = None) -> "Document":
        """Inspect a file and detect whether it is a PDF or an image.

        Raises:
            UploadMissing: If the file does not exist or is empty.
        """
        path = Path(path)
        if not path.is_file() or path.stat().st_size == 0:
            raise UploadMissing(f"File missing or empty: {filename or path.name}")

        with open(path, "rb") as f:
            header = f.read(_PDF_HEADER_WINDOW)
        media_type = MediaType.PDF if b"%PDF-" in header else MediaType.IMAGE
        return cls(path=path, media_type=media_type, filename=filename or path.name)


@dataclass
class ExtractionResult:
    """The record of one run plus how it was produced."""

    run_id: str
    record: ExtractedRecord = field(default_factory=ExtractedRecord)
    micr: MicrFields = field(default_factory=MicrFields)
    ocr_used: bool = False
    page_count: int = 0
    states: list[PipelineState] = field(default_factory=list)
    degradations: list[str] = field(default_factory=list)

    @property
    def state(self) -> PipelineState | None:
        return self.states[-1] if self.states else None

    def transition(self, state: PipelineState) -> None:
        logger.debug("Run %s: %s -> %s", self.run_id, self.state, state)
        self.states.append(state)


class DocumentProcessor:
    """Sequences text-layer reading, OCR fallback, and field synthesis.

    Collaborators default to the concrete implementations configured by
    ``config`` and can be injected for testing.

    Args:
        config: Application configuration object.
        rasterizer: PDF page renderer.
        recognizer: OCR engine wrapper.
    """

    def __init__(
        self,
        config: AppConfig,
        rasterizer: Rasterizer | None = None,
        recognizer: TextRecognizer | None = None,
    ) -> None:
        self.config = config
        self.min_text_length = config.extraction.min_text_length
        self.rasterizer = rasterizer or PopplerRasterizer(
            dpi=config.ocr.pdf_dpi,
            max_pages=config.ocr.max_pages,
            timeout=config.ocr.rasterize_timeout,
            poppler_path=config.ocr.poppler_path,
        )
        self.recognizer = recognizer or TextRecognizer(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            page_psm=config.ocr.page_psm,
            micr_psms=config.ocr.micr_psms,
            micr_whitelist=config.ocr.micr_whitelist,
        )
        self.normalizer = ImageNormalizer(config.preprocessing)
        self.region_extractor = MicrRegionExtractor(config.preprocessing)
        self.synthesizer = FieldSynthesizer(
            extra_patterns=config.extraction.extra_patterns
        )

    def extract(self, document: Document, context: RunContext) -> ExtractionResult:
        """Produce an extracted record for one document.

        Args:
            document: The uploaded document.
            context: Run identifier and scratch directory.

        Returns:
            Extraction result in state ``FIELDS_SYNTHESIZED``.

        Raises:
            UploadMissing: If the document file is missing or empty.
            RasterizationError: If the PDF cannot be rendered.
        """
        log = get_run_logger(__name__, context.run_id)
        result = ExtractionResult(run_id=context.run_id)
        result.transition(PipelineState.RECEIVED)
        log.info("Processing %s (%s)", document.filename, document.media_type)

        try:
            if not document.path.is_file() or document.path.stat().st_size == 0:
                raise UploadMissing(f"File missing or empty: {document.filename}")

            text = self._read_text_layer(document, result)
            result.transition(PipelineState.DIRECT_TEXT_ATTEMPTED)

            micr = MicrFields()
            if len(text) >= self.min_text_length:
                result.transition(PipelineState.SUFFICIENT)
                log.info("Text layer sufficient (%d chars), skipping OCR", len(text))
            else:
                result.transition(PipelineState.OCR_REQUIRED)
                log.info("Text layer too short (%d chars), running OCR", len(text))
                result.transition(PipelineState.OCR_RUNNING)
                text, micr = self._run_ocr(document, context, result)
                result.ocr_used = True
        except ExtractionError as exc:
            result.transition(PipelineState.FAILED)
            log.error("Extraction failed: %s", exc)
            raise

        result.micr = micr
        result.record = self.synthesizer.synthesize(text, micr)
        result.transition(PipelineState.FIELDS_SYNTHESIZED)

        for reason in result.degradations:
            log.warning("Degraded: %s", reason)
        log.info(
            "Finished %s: ocr=%s pages=%d degradations=%d",
            document.filename,
            result.ocr_used,
            result.page_count,
            len(result.degradations),
        )
        return result

    def _read_text_layer(self, document: Document, result: ExtractionResult) -> str:
        if document.media_type != MediaType.PDF:
            return ""
        return self._track(read_text_layer(document.path), result).strip()

    def _run_ocr(
        self, document: Document, context: RunContext, result: ExtractionResult
    ) -> tuple[str, MicrFields]:
        """Rasterize (PDF) or stage (image) the pages, then OCR each."""
        context.pages_dir.mkdir(parents=True, exist_ok=True)
        if document.media_type == MediaType.PDF:
            pages = self.rasterizer.rasterize(document.path, context.pages_dir)
        else:
            staged = context.pages_dir / page_filename(1)
            staged = staged.with_suffix(document.path.suffix or ".png")
            shutil.copyfile(document.path, staged)
            pages = [staged]
        result.page_count = len(pages)

        texts: list[str] = []
        micr_results: list[MicrFields] = []
        for page in pages:
            page_text, page_micr = self._process_page(page, result)
            if page_text:
                texts.append(page_text)
            micr_results.append(page_micr)

        return "\n".join(texts).strip(), MicrFields.combine(micr_results)

    def _process_page(
        self, page: Path, result: ExtractionResult
    ) -> tuple[str, MicrFields]:
        """Normalize a page, read its body text, and parse its MICR band."""
        geometry = self._track(self.normalizer.correct_geometry(page), result)

        text = ""
        prepared = self._track(self.normalizer.enhance(geometry), result)
        if prepared is not None:
            text = self._track(self.recognizer.recognize_page(prepared), result).text.strip()

        band = self._track(self.region_extractor.crop(geometry), result)
        micr_text = self._track(self.recognizer.recognize_micr(band), result)
        return text, parse_micr(micr_text)

    @staticmethod
    def _track(outcome: StepOutcome, result: ExtractionResult):
        if outcome.degraded:
            result.degradations.append(outcome.reason)
        return outcome.value
