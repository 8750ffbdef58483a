"""PDF to page-image conversion for the OCR fallback path.

Rasterization is exposed through the :class:`Rasterizer` protocol so the
concrete converter can be swapped, and faked in tests. The default
implementation drives poppler's ``pdftoppm`` through pdf2image.
"""

from pathlib import Path
from typing import Protocol

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from src.errors import RasterizationError
from src.utils.logger import get_logger

logger = get_logger(__name__)

PAGE_PREFIX = "page-"


def page_filename(index: int) -> str:
    """Zero-padded page file name, so lexical order equals page order."""
    return f"{PAGE_PREFIX}{index:04d}.png"


class Rasterizer(Protocol):
    """Converts a PDF into ordered page image files."""

    def rasterize(self, pdf_path: Path, output_dir: Path) -> list[Path]:
        """Render each page of ``pdf_path`` into ``output_dir``.

        Returns:
            Page image paths in page order.

        Raises:
            RasterizationError: If conversion fails or yields no pages.
        """
        ...


class PopplerRasterizer:
    """Rasterizer backed by pdf2image and poppler.

    Args:
        dpi: Rendering resolution. Higher values give better OCR
            results at the cost of time and memory.
        max_pages: Render at most this many leading pages. ``None``
            renders the whole document.
        timeout: Seconds before the converter process is abandoned.
        poppler_path: Directory holding the poppler binaries, if they
            are not on ``PATH``.
    """

    def __init__(
        self,
        dpi: int = 200,
        max_pages: int | None = None,
        timeout: int | None = None,
        poppler_path: str | None = None,
    ) -> None:
        self.dpi = dpi
        self.max_pages = max_pages
        self.timeout = timeout
        self.poppler_path = poppler_path

    def rasterize(self, pdf_path: Path, output_dir: Path) -> list[Path]:
        """Convert a PDF into ``page-NNNN.png`` files.

        Args:
            pdf_path: Path to the PDF file.
            output_dir: Directory the page images are written into.

        Returns:
            Page image paths sorted in page order.

        Raises:
            RasterizationError: If the converter fails, times out, or
                produces zero images.
        """
        pdf_path = Path(pdf_path)
        if not pdf_path.is_file():
            raise RasterizationError(f"PDF file not found: {pdf_path}")

        output_dir.mkdir(parents=True, exist_ok=True)
        try:
            rendered = convert_from_path(
                str(pdf_path),
                dpi=self.dpi,
                output_folder=str(output_dir),
                output_file="raw",
                fmt="png",
                paths_only=True,
                last_page=self.max_pages,
                timeout=self.timeout,
                poppler_path=self.poppler_path,
            )
        except (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFPopplerTimeoutError,
            PDFSyntaxError,
            OSError,
        ) as exc:
            raise RasterizationError(f"PDF conversion failed: {exc}") from exc

        if not rendered:
            raise RasterizationError(f"No images generated from {pdf_path.name}")

        pages: list[Path] = []
        for index, raw in enumerate(sorted(rendered), start=1):
            target = output_dir / page_filename(index)
            Path(raw).replace(target)
            pages.append(target)

        logger.info(
            "Rasterized %s to %d images at %d DPI", pdf_path.name, len(pages), self.dpi
        )
        return pages
