"""Reduce case outcomes into a SuiteReport."""

from __future__ import annotations

import logging
from typing import Sequence

from clone_verify.models.config import ComparisonPolicy
from clone_verify.models.result import CaseOutcome, SuiteReport

logger = logging.getLogger(__name__)


def aggregate(
    outcomes: Sequence[CaseOutcome],
    run_id: str,
    started_at: str,
    completed_at: str,
    tolerance: float,
    policy: ComparisonPolicy,
    duration_seconds: float = 0.0,
) -> SuiteReport:
    """Count outcomes. Verdicts were finalized by the evaluator; nothing is recomputed."""
    total = len(outcomes)
    errored = sum(1 for o in outcomes if o.is_error)
    passed = sum(1 for o in outcomes if not o.is_error and o.result.passed)
    failed = total - passed - errored

    if total == 0:
        logger.warning("No tests ran")

    return SuiteReport(
        run_id=run_id,
        started_at=started_at,
        completed_at=completed_at,
        duration_seconds=round(duration_seconds, 2),
        tolerance=tolerance,
        max_diff_percent=policy.max_diff_percent,
        max_height_delta_percent=policy.max_height_delta_percent,
        total_tests=total,
        passed=passed,
        failed=failed,
        errored=errored,
        accuracy_percentage=100.0 * passed / total if total else 0.0,
        no_tests_ran=total == 0,
        outcomes=list(outcomes),
    )
