"""Embedded text extraction for digitally generated PDFs.

Reads the PDF text layer with pdfplumber. Scanned PDFs usually have no
usable layer, in which case the caller falls back to OCR.
"""

from pathlib import Path

import pdfplumber

from src.utils.logger import get_logger
from src.utils.outcome import StepOutcome

logger = get_logger(__name__)


def read_text_layer(pdf_path: Path) -> StepOutcome[str]:
    """Extract the embedded text of every page of a PDF.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        Page texts joined by newlines (possibly empty), or a degraded
        outcome with empty text when the file cannot be parsed.
    """
    try:
        with pdfplumber.open(str(pdf_path)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as exc:
        logger.warning("Could not read text layer of %s: %s", pdf_path, exc)
        return StepOutcome.fail("", f"text layer unreadable: {exc}")

    text = "\n".join(pages).strip()
    logger.info("Text layer of %s: %d pages, %d chars", pdf_path, len(pages), len(text))
    return StepOutcome.ok(text)
