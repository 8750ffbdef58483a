"""Extraction service shared by the HTTP API and the CLI.

Wraps one pipeline run with its surroundings: document detection, the
per-run scratch directory, persistence of the finished record, and the
response contract returned to callers.
"""

import time
from pathlib import Path

from src.api.schemas import ExtractionResponse, MicrResponse, RecordFields
from src.errors import ExtractionError, PersistenceError
from src.ocr.document_processor import (
    Document,
    DocumentProcessor,
    ExtractionResult,
    PipelineState,
)
from src.ocr.run_context import RunContext
from src.storage.repository import RecordRepository
from src.utils.config import AppConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ExtractionService:
    """Runs the pipeline for an uploaded file and stores the result.

    Persistence failure does not discard a finished extraction: the
    response reports ``success=False`` with the error, and still carries
    the extracted fields, raw text, and MICR data.

    Args:
        config: Application configuration.
        processor: Pipeline orchestrator. Built from ``config`` if omitted.
        repository: Record store. Built from ``config`` if omitted.
    """

    def __init__(
        self,
        config: AppConfig,
        processor: DocumentProcessor | None = None,
        repository: RecordRepository | None = None,
    ) -> None:
        self.config = config
        self.processor = processor or DocumentProcessor(config)
        self.repository = repository or RecordRepository(config.storage.database_url)
        self.work_root = Path(config.storage.work_dir)

    def process(self, path: Path, filename: str | None = None) -> ExtractionResponse:
        """Extract, persist, and report on one document.

        Args:
            path: Location of the uploaded file.
            filename: Original upload name, for logs.

        Returns:
            The response contract. Fatal failures yield ``success=False``
            with no fields and nothing persisted.
        """
        start_time = time.time()
        try:
            document = Document.from_path(path, filename)
        except ExtractionError as exc:
            logger.warning("Rejected upload: %s", exc)
            return self._failure(exc, start_time)

        context = RunContext.create(self.work_root)
        try:
            result = self.processor.extract(document, context)
        except ExtractionError as exc:
            return self._failure(exc, start_time, [PipelineState.FAILED])
        finally:
            if not self.config.storage.keep_artifacts:
                context.cleanup()

        response = self._build_response(result)
        try:
            response.id = self.repository.add(result.record)
            result.transition(PipelineState.PERSISTED)
            result.transition(PipelineState.DONE)
        except PersistenceError as exc:
            logger.error("Run %s extracted but not stored: %s", result.run_id, exc)
            result.transition(PipelineState.FAILED)
            response.success = False
            response.error = str(exc)
            response.error_kind = exc.kind

        response.states = [str(s) for s in result.states]
        response.processing_time_ms = (time.time() - start_time) * 1000
        return response

    @staticmethod
    def _build_response(result: ExtractionResult) -> ExtractionResponse:
        return ExtractionResponse(
            success=True,
            fields=RecordFields.from_record(result.record),
            raw_text=result.record.raw_text,
            micr=MicrResponse.from_micr(result.micr),
            ocr_used=result.ocr_used,
            page_count=result.page_count,
            degradations=list(result.degradations),
        )

    @staticmethod
    def _failure(
        exc: ExtractionError,
        start_time: float,
        states: list[PipelineState] | None = None,
    ) -> ExtractionResponse:
        return ExtractionResponse(
            success=False,
            error=str(exc),
            error_kind=exc.kind,
            states=[str(s) for s in states or []],
            processing_time_ms=(time.time() - start_time) * 1000,
        )
