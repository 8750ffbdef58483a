"""Per-run scratch space for the extraction pipeline.

Every run gets its own identifier and working directory, so concurrent
requests never share rasterized pages or intermediate images.
"""

import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Identifier and isolated scratch directory of one pipeline run."""

    run_id: str
    scratch_dir: Path

    @classmethod
    def create(cls, work_root: Path) -> "RunContext":
        """Allocate a fresh run id and its scratch directory under ``work_root``."""
        run_id = uuid.uuid4().hex
        scratch = Path(work_root) / run_id
        scratch.mkdir(parents=True, exist_ok=False)
        return cls(run_id=run_id, scratch_dir=scratch)

    @property
    def pages_dir(self) -> Path:
        return self.scratch_dir / "pages"

    def cleanup(self) -> None:
        """Delete the scratch directory and everything in it."""
        shutil.rmtree(self.scratch_dir, ignore_errors=True)
        logger.debug("Removed scratch directory %s", self.scratch_dir)
