"""Artifact writer: persists captured screenshots and diff images for a run."""

from __future__ import annotations

import logging
from pathlib import Path

from clone_verify.comparison.loader import save_frame
from clone_verify.models.frame import ImageFrame
from clone_verify.models.result import CaseArtifacts, make_case_id
from clone_verify.url_utils import safe_filename

logger = logging.getLogger(__name__)


class ArtifactWriter:
    """Writes per-case images under ``run_dir`` with deterministic names.

    Two runs over the same configuration produce the same file names, so
    their artifact directories can be diffed against each other.
    """

    def __init__(self, run_dir: Path):
        self.run_dir = run_dir
        self.screenshots_dir = run_dir / "screenshots"
        self.diffs_dir = run_dir / "diffs"

    def prepare(self) -> None:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.diffs_dir.mkdir(parents=True, exist_ok=True)

    def stem(self, page_name: str, viewport_name: str) -> str:
        return safe_filename(make_case_id(page_name, viewport_name))

    def write_case(
        self,
        page_name: str,
        viewport_name: str,
        reference: ImageFrame | None = None,
        candidate: ImageFrame | None = None,
        diff_image: ImageFrame | None = None,
    ) -> CaseArtifacts:
        """Save whichever images are available and return their paths."""
        stem = self.stem(page_name, viewport_name)
        return CaseArtifacts(
            reference_path=self._save(reference, self.screenshots_dir / f"{stem}-reference.png"),
            candidate_path=self._save(candidate, self.screenshots_dir / f"{stem}-candidate.png"),
            diff_path=self._save(diff_image, self.diffs_dir / f"{stem}-diff.png"),
        )

    def _save(self, frame: ImageFrame | None, path: Path) -> str | None:
        if frame is None or frame.pixel_count == 0:
            return None
        try:
            save_frame(frame, path)
            return str(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not write artifact %s: %s", path, e)
            return None
