"""Tests for the extraction pipeline orchestrator."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from src.errors import RasterizationError, UploadMissing
from src.ocr.document_processor import (
    Document,
    DocumentProcessor,
    MediaType,
    PipelineState,
)
from src.ocr.pdf_handler import page_filename
from src.ocr.run_context import RunContext
from src.ocr.tesseract_engine import RecognitionMode, RecognitionResult
from src.utils.config import AppConfig
from src.utils.outcome import StepOutcome

LONG_TEXT = "MR JOHN SMITH... Acct 123456789012 IFSC ABCD0123456"


class FakeRasterizer:
    """Writes synthetic landscape pages instead of calling poppler."""

    def __init__(self, pages: int = 1) -> None:
        self.pages = pages
        self.calls: list[Path] = []

    def rasterize(self, pdf_path: Path, output_dir: Path) -> list[Path]:
        self.calls.append(pdf_path)
        output_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for index in range(1, self.pages + 1):
            image = np.full((600, 1200, 3), 230, dtype=np.uint8)
            image[500:560, 100:1100] = (10, 10, 10)
            path = output_dir / page_filename(index)
            cv2.imwrite(str(path), image)
            paths.append(path)
        return paths


class FailingRasterizer:
    def rasterize(self, pdf_path: Path, output_dir: Path) -> list[Path]:
        raise RasterizationError("PDF conversion failed: pdftoppm crashed")


def _recognizer(page_text: str = "", micr_text: str = "") -> MagicMock:
    recognizer = MagicMock()
    recognizer.recognize_page.return_value = StepOutcome.ok(
        RecognitionResult(text=page_text, mode=RecognitionMode(psm=6))
    )
    recognizer.recognize_micr.return_value = StepOutcome.ok(micr_text)
    return recognizer


@pytest.fixture
def pdf_file(tmp_path: Path) -> Path:
    path = tmp_path / "check.pdf"
    path.write_bytes(b"%PDF-1.4 scanned check")
    return path


@pytest.fixture
def context(tmp_path: Path) -> RunContext:
    return RunContext.create(tmp_path / "work")


class TestDocument:
    """Tests for upload inspection."""

    def test_detects_pdf(self, pdf_file: Path) -> None:
        document = Document.from_path(pdf_file, "upload.pdf")
        assert document.media_type == MediaType.PDF
        assert document.filename == "upload.pdf"

    def test_detects_pdf_after_leading_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "prefixed.pdf"
        path.write_bytes(b"\r\n" + b"\x00" * 200 + b"%PDF-1.7\n1 0 obj")
        assert Document.from_path(path).media_type == MediaType.PDF

    def test_detects_image(self, image_file: Path) -> None:
        document = Document.from_path(image_file)
        assert document.media_type == MediaType.IMAGE
        assert document.filename == "page-0001.png"

    def test_zero_byte_rejected(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.pdf"
        empty.write_bytes(b"")
        with pytest.raises(UploadMissing):
            Document.from_path(empty)

    def test_missing_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(UploadMissing):
            Document.from_path(tmp_path / "none.pdf")


class TestDocumentProcessor:
    """Tests for the DocumentProcessor class with faked engines."""

    @patch("src.ocr.document_processor.read_text_layer")
    def test_sufficient_text_skips_ocr(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok(LONG_TEXT)
        rasterizer = FakeRasterizer()
        recognizer = _recognizer()
        processor = DocumentProcessor(app_config, rasterizer, recognizer)

        result = processor.extract(Document.from_path(pdf_file), context)

        assert rasterizer.calls == []
        recognizer.recognize_page.assert_not_called()
        assert result.ocr_used is False
        assert result.states == [
            PipelineState.RECEIVED,
            PipelineState.DIRECT_TEXT_ATTEMPTED,
            PipelineState.SUFFICIENT,
            PipelineState.FIELDS_SYNTHESIZED,
        ]
        assert result.record.account_name == "MR JOHN SMITH"
        assert result.record.account_number == "123456789012"
        assert result.record.ifsc == "ABCD0123456"

    @patch("src.ocr.document_processor.read_text_layer")
    def test_short_text_runs_ocr(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok("")
        rasterizer = FakeRasterizer()
        recognizer = _recognizer(
            page_text="CalPrivate Bank\nLa Jolla",
            micr_text="021000021 1234567890 0456",
        )
        processor = DocumentProcessor(app_config, rasterizer, recognizer)

        result = processor.extract(Document.from_path(pdf_file), context)

        assert rasterizer.calls == [pdf_file]
        assert result.ocr_used is True
        assert result.page_count == 1
        assert PipelineState.OCR_REQUIRED in result.states
        assert PipelineState.OCR_RUNNING in result.states
        assert result.state == PipelineState.FIELDS_SYNTHESIZED
        assert result.record.bank_name == "CALPRIVATE BANK"
        assert result.record.branch == "LA JOLLA"
        assert result.record.routing_number == "021000021"
        assert result.record.account_number == "1234567890"
        assert result.record.check_number == "0456"
        assert result.micr.routing_valid is True
        assert all(v is not None for v in result.record.fields().values())

    @patch("src.ocr.document_processor.read_text_layer")
    def test_printed_micr_line_in_page_text(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok("")
        recognizer = _recognizer(
            page_text="CalPrivate Bank\nPAY TO THE ORDER OF\n021000021 1234567890 0456",
            micr_text="021000021 1234567890 0456",
        )
        processor = DocumentProcessor(app_config, FakeRasterizer(), recognizer)

        result = processor.extract(Document.from_path(pdf_file), context)

        assert result.record.routing_number == "021000021"
        assert result.record.account_number == "1234567890"
        assert result.record.check_number == "0456"

    @patch("src.ocr.document_processor.read_text_layer")
    def test_micr_band_cropped_from_page(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok("")
        recognizer = _recognizer()
        processor = DocumentProcessor(app_config, FakeRasterizer(), recognizer)

        processor.extract(Document.from_path(pdf_file), context)

        band = recognizer.recognize_micr.call_args.args[0]
        assert band.name == "page-0001_micr.png"
        assert cv2.imread(str(band)).shape[:2] == (84, 1200)

    @patch("src.ocr.document_processor.read_text_layer")
    def test_multi_page_text_joined(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok("")
        recognizer = _recognizer(page_text="HDFC BANK")
        processor = DocumentProcessor(app_config, FakeRasterizer(pages=2), recognizer)

        result = processor.extract(Document.from_path(pdf_file), context)

        assert result.page_count == 2
        assert result.record.raw_text == "HDFC BANK\nHDFC BANK"

    def test_image_skips_rasterizer(
        self, app_config: AppConfig, image_file: Path, context: RunContext
    ) -> None:
        rasterizer = FakeRasterizer()
        recognizer = _recognizer(page_text="Account No: 55556666")
        processor = DocumentProcessor(app_config, rasterizer, recognizer)

        result = processor.extract(Document.from_path(image_file), context)

        assert rasterizer.calls == []
        assert result.ocr_used is True
        assert result.page_count == 1
        assert result.record.account_number == "55556666"
        assert (context.pages_dir / "page-0001.png").exists()

    @patch("src.ocr.document_processor.read_text_layer")
    def test_degradations_recorded(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.fail("", "text layer unreadable: bad")
        recognizer = _recognizer()
        recognizer.recognize_micr.return_value = StepOutcome.fail(
            "", "psm7+whitelist: tesseract missing"
        )
        processor = DocumentProcessor(app_config, FakeRasterizer(), recognizer)

        result = processor.extract(Document.from_path(pdf_file), context)

        assert result.state == PipelineState.FIELDS_SYNTHESIZED
        assert "text layer unreadable: bad" in result.degradations
        assert "psm7+whitelist: tesseract missing" in result.degradations

    @patch("src.ocr.document_processor.read_text_layer")
    def test_rasterization_failure_is_fatal(
        self,
        mock_text: MagicMock,
        app_config: AppConfig,
        pdf_file: Path,
        context: RunContext,
    ) -> None:
        mock_text.return_value = StepOutcome.ok("")
        processor = DocumentProcessor(app_config, FailingRasterizer(), _recognizer())

        with pytest.raises(RasterizationError):
            processor.extract(Document.from_path(pdf_file), context)

    def test_emptied_upload_is_fatal(
        self, app_config: AppConfig, tmp_path: Path, context: RunContext
    ) -> None:
        empty = tmp_path / "gone.pdf"
        empty.write_bytes(b"")
        document = Document(path=empty, media_type=MediaType.PDF, filename="gone.pdf")
        processor = DocumentProcessor(app_config, FakeRasterizer(), _recognizer())

        with pytest.raises(UploadMissing):
            processor.extract(document, context)
