"""
Workspace - Temporary artifact management for annotation runs.

This module provides the Workspace class that hands out temporary file
paths for pipeline artifacts and removes them again. Names combine the
process id with a random token, so concurrent runs sharing a temporary
directory never collide.
"""

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class Workspace:
    """Owns the temporary artifacts of a single pipeline run.

    Attributes
    ----------
    temp_dir : Path
        Directory that receives the artifacts
    run_id : str
        Identifier embedded in every artifact name of this run
    """

    def __init__(self, temp_dir: Optional[Path] = None):
        """Initialize workspace.

        Parameters
        ----------
        temp_dir : Path, optional
            Directory for temporary artifacts (default: system temp dir)
        """
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.run_id = f"{os.getpid()}-{uuid.uuid4().hex[:12]}"
        self._artifacts: List[Path] = []

        logger.debug(f"Workspace initialized: temp_dir={self.temp_dir}, run_id={self.run_id}")

    def new_artifact(self, suffix: str) -> Path:
        """Reserve a fresh artifact path and track it for cleanup.

        Parameters
        ----------
        suffix : str
            Descriptive suffix, e.g. ".liftoverInputFile"

        Returns
        -------
        Path
            Path that does not exist yet
        """
        path = self.temp_dir / f"{self.run_id}-{uuid.uuid4().hex[:8]}{suffix}"
        self._artifacts.append(path)
        return path

    def discard(self, path: Path) -> None:
        """Delete one artifact if it exists and stop tracking it."""
        path = Path(path)
        if path.exists():
            path.unlink()
            logger.debug(f"Removed temporary artifact: {path}")
        if path in self._artifacts:
            self._artifacts.remove(path)

    @property
    def artifacts(self) -> List[Path]:
        """Artifacts that have been handed out and not discarded yet."""
        return list(self._artifacts)

    def cleanup(self) -> None:
        """Best-effort removal of every artifact still tracked."""
        for path in list(self._artifacts):
            try:
                self.discard(path)
            except OSError as e:
                logger.warning(f"Could not remove temporary artifact {path}: {e}")

    def __repr__(self) -> str:
        """Return string representation of the workspace."""
        return f"Workspace(temp_dir='{self.temp_dir}', run_id='{self.run_id}')"

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic cleanup."""
        self.cleanup()
