"""Command-line interface for batch check extraction and CSV export.

Provides subcommands for processing a folder of checks or statements
into a CSV of banking fields, and for extracting a single document to
JSON.
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from src.api.schemas import ExtractionResponse
from src.service import ExtractionService
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.pdf")
_META_COLUMNS = [
    "filename",
    "status",
    "id",
    "ocrUsed",
    "pageCount",
    "processingTimeMs",
    "error",
]
_FIELD_COLUMNS = [
    "accountName",
    "accountNumber",
    "routingNumber",
    "checkNumber",
    "ifsc",
    "bankName",
    "branch",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _to_row(filename: str, response: ExtractionResponse) -> dict[str, object]:
    """Flatten an extraction response into one CSV row."""
    row: dict[str, object] = {
        "filename": filename,
        "status": "success" if response.success else "failed",
        "id": response.id,
        "ocrUsed": response.ocr_used,
        "pageCount": response.page_count,
        "processingTimeMs": round(response.processing_time_ms, 1),
        "error": response.error,
    }
    if response.fields is not None:
        fields = response.fields.model_dump(by_alias=True)
        row.update({name: fields[name] for name in _FIELD_COLUMNS})
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    service: ExtractionService | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        service: Extraction service. Built from the default config if omitted.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    service = service or ExtractionService(load_config())
    logger.info("Found %d documents to process", len(files))

    rows: list[dict[str, object]] = []
    successful = 0
    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")
        try:
            response = service.process(file_path, file_path.name)
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            rows.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            continue

        if response.success:
            successful += 1
        else:
            logger.error("Failed to process %s: %s", file_path.name, response.error)
        rows.append(_to_row(file_path.name, response))

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "successful": successful,
        "failed": len(files) - successful,
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction rows to a CSV file.

    Args:
        rows: List of flattened result rows.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=_META_COLUMNS + _FIELD_COLUMNS, extrasaction="ignore"
        )
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path, service: ExtractionService | None = None
) -> dict[str, object]:
    """Process a single document and return the response contract.

    Args:
        file_path: Path to the document file.
        service: Extraction service. Built from the default config if omitted.

    Returns:
        The extraction response as a camelCase dictionary.
    """
    service = service or ExtractionService(load_config())
    response = service.process(file_path, file_path.name)
    return response.model_dump(by_alias=True)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Bank Check Extraction Batch Processor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir, args.output, ExtractionService(config), args.verbose
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file, ExtractionService(config))
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)


if __name__ == "__main__":
    main()
