"""Bring two frames of possibly different size onto a common comparable region."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from clone_verify.errors import NoOverlapError
from clone_verify.models.frame import ImageFrame
from clone_verify.models.result import Dimensions


@dataclass(frozen=True)
class ReconciledPair:
    """Equally sized, top-left aligned views of both frames."""

    reference: np.ndarray
    candidate: np.ndarray
    width: int
    height: int
    reference_dimensions: Dimensions
    candidate_dimensions: Dimensions

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


def reconcile(reference: ImageFrame, candidate: ImageFrame) -> ReconciledPair:
    """Crop both frames to their top-left intersection.

    No scaling is applied. Page content is top-anchored, so (0, 0) is the
    comparison origin.

    Raises:
        NoOverlapError: the intersection is empty.
    """
    width = min(reference.width, candidate.width)
    height = min(reference.height, candidate.height)
    if width == 0 or height == 0:
        raise NoOverlapError(
            f"No overlapping region between {reference.width}x{reference.height} "
            f"and {candidate.width}x{candidate.height}"
        )

    return ReconciledPair(
        reference=reference.as_array()[:height, :width],
        candidate=candidate.as_array()[:height, :width],
        width=width,
        height=height,
        reference_dimensions=Dimensions(width=reference.width, height=reference.height),
        candidate_dimensions=Dimensions(width=candidate.width, height=candidate.height),
    )
