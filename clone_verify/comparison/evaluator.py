"""Case evaluator: turns one reference/candidate pair into a CaseOutcome."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from clone_verify.comparison.differencer import diff_frames
from clone_verify.comparison.loader import load_frame
from clone_verify.comparison.reconciler import reconcile
from clone_verify.models.config import ComparisonPolicy, DiffOptions, PageSpec, ViewportConfig
from clone_verify.models.frame import ImageFrame
from clone_verify.models.result import CaseOutcome, ComparisonResult, ErrorOutcome

logger = logging.getLogger(__name__)


def height_delta_percentage(reference_height: int, candidate_height: int) -> float:
    """Relative height difference of the original (uncropped) frames, 0-100."""
    tallest = max(reference_height, candidate_height)
    if tallest == 0:
        return 0.0
    return 100.0 * abs(reference_height - candidate_height) / tallest


def compare_frames(
    reference: ImageFrame,
    candidate: ImageFrame,
    policy: ComparisonPolicy,
    tolerance: float = 0.1,
    diff_options: DiffOptions | None = None,
) -> ComparisonResult:
    """Reconcile, diff and score two frames. Raises on any failure."""
    pair = reconcile(reference, candidate)
    diff = diff_frames(pair.reference, pair.candidate, tolerance, diff_options)
    total = pair.pixel_count
    return ComparisonResult(
        pixel_difference_count=diff.pixel_difference_count,
        total_compared_pixels=total,
        diff_percentage=100.0 * diff.pixel_difference_count / total,
        reference_dimensions=pair.reference_dimensions,
        candidate_dimensions=pair.candidate_dimensions,
        height_delta_percentage=height_delta_percentage(reference.height, candidate.height),
        max_diff_percent=policy.max_diff_percent,
        max_height_delta_percent=policy.max_height_delta_percent,
        diff_image=diff.diff_image,
    )


def error_outcome(page_name: str, viewport_name: str, exc: BaseException | str,
                  duration: float = 0.0, error_type: str | None = None) -> CaseOutcome:
    if isinstance(exc, str):
        error = ErrorOutcome(message=exc, error_type=error_type or "Error")
    else:
        error = ErrorOutcome(message=str(exc) or type(exc).__name__,
                             error_type=error_type or type(exc).__name__)
    return CaseOutcome(
        page_name=page_name, viewport_name=viewport_name,
        error=error, duration_seconds=round(duration, 3),
    )


def evaluate_case(
    page: PageSpec,
    viewport: ViewportConfig,
    reference: ImageFrame,
    candidate: ImageFrame,
    policy: ComparisonPolicy,
    tolerance: float = 0.1,
    diff_options: DiffOptions | None = None,
) -> CaseOutcome:
    """Evaluate one (page, viewport) pair. Never raises; failures become error outcomes."""
    start = time.time()
    try:
        result = compare_frames(reference, candidate, policy, tolerance, diff_options)
    except Exception as e:
        logger.warning("Evaluation of %s/%s failed: %s", page.name, viewport.name, e)
        return error_outcome(page.name, viewport.name, e, time.time() - start)

    logger.debug("  %s/%s: %.2f%% pixels differ, height delta %.2f%% (%s vs %s)",
                 page.name, viewport.name, result.diff_percentage,
                 result.height_delta_percentage,
                 result.reference_dimensions, result.candidate_dimensions)
    return CaseOutcome(
        page_name=page.name,
        viewport_name=viewport.name,
        result=result,
        duration_seconds=round(time.time() - start, 3),
    )


def evaluate_files(
    page: PageSpec,
    viewport: ViewportConfig,
    reference_path: Path | str,
    candidate_path: Path | str,
    policy: ComparisonPolicy,
    tolerance: float = 0.1,
    diff_options: DiffOptions | None = None,
) -> CaseOutcome:
    """Like evaluate_case, decoding both images from disk first."""
    try:
        reference = load_frame(reference_path)
        candidate = load_frame(candidate_path)
    except Exception as e:
        logger.warning("Could not load images for %s/%s: %s", page.name, viewport.name, e)
        return error_outcome(page.name, viewport.name, e)
    return evaluate_case(page, viewport, reference, candidate, policy, tolerance, diff_options)
