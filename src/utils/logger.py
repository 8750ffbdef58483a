"""Centralized logging setup for the extraction service.

Configures a single stdout handler for the root logger and offers
run-scoped adapters so concurrent pipeline runs can be told apart
in the log stream.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RunLoggerAdapter(logging.LoggerAdapter):
    """Prefix every message with the pipeline run identifier."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[run {self.extra['run_id']}] {msg}", kwargs


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Calling this more than once is a no-op once a handler is installed.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


def get_run_logger(name: str, run_id: str) -> RunLoggerAdapter:
    """Get a logger that tags messages with a pipeline run id.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
        run_id: Identifier of the extraction run.

    Returns:
        Logger adapter bound to the run.
    """
    return RunLoggerAdapter(logging.getLogger(name), {"run_id": run_id})
