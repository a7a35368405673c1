"""Scoped scratch directory for one fixer run."""

import logging
import shutil
import tempfile
from pathlib import Path

from .errors import EnvironmentConflictError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "vcf_refalt_fixer_"


class Workspace:
    """Scratch directory that is always removed when the run ends.

    By default a uniquely named directory is created under ``parent``
    (the system temp dir when None). An explicit ``path`` must not exist
    yet, so stale intermediate files are never mixed with a fresh run.
    """

    def __init__(self, path: Path | str | None = None, parent: Path | str | None = None):
        self._requested = Path(path) if path is not None else None
        self._parent = Path(parent) if parent is not None else None
        self.path: Path | None = None

    def create(self) -> Path:
        if self._requested is not None:
            if self._requested.exists():
                raise EnvironmentConflictError(
                    f"The directory '{self._requested}' already exists! "
                    "Delete that directory and try again."
                )
            self._requested.mkdir(parents=True)
            self.path = self._requested
        else:
            self.path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self._parent))
        logger.debug("Created workspace %s", self.path)
        return self.path

    def cleanup(self) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path)
            logger.debug("Removed workspace %s", self.path)
        self.path = None

    def __enter__(self) -> Path:
        return self.create()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
