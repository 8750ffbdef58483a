"""Exception taxonomy for the extraction pipeline.

Only ``UploadMissing`` and ``RasterizationError`` abort a run. The other
kinds are raised inside individual steps and turned into degraded
outcomes before they reach the orchestrator.
"""


class ExtractionError(Exception):
    """Base class for all extraction failures."""

    kind = "extraction_error"


class UploadMissing(ExtractionError):
    """No file was received, or the received file is empty."""

    kind = "upload_missing"


class RasterizationError(ExtractionError):
    """The PDF converter failed or produced no page images."""

    kind = "rasterization_error"


class ImageLoadError(ExtractionError):
    """An image file is missing, empty, or cannot be decoded."""

    kind = "image_load_error"


class RecognitionError(ExtractionError):
    """The OCR engine failed on a single recognition attempt."""

    kind = "recognition_error"


class PersistenceError(ExtractionError):
    """Writing to or reading from the record store failed."""

    kind = "persistence_error"
