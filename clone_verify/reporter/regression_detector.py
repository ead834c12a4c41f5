"""Regression detection: compares two suite reports to find newly broken cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from clone_verify.models.result import SuiteReport

logger = logging.getLogger(__name__)


@dataclass
class Regression:
    case_id: str
    page_name: str
    viewport_name: str
    previous_status: str
    current_status: str
    previous_diff_percentage: float | None = None
    current_diff_percentage: float | None = None
    reason: str | None = None


def detect_regressions(previous: SuiteReport, current: SuiteReport) -> list[Regression]:
    """Cases that passed in ``previous`` and now fail or error.

    Cases are matched by case id, which is stable across runs of the same
    configuration. Cases absent from the previous run are ignored.
    """
    prev_by_id = {o.case_id: o for o in previous.outcomes}

    regressions = []
    for outcome in current.outcomes:
        prev = prev_by_id.get(outcome.case_id)
        if prev is None or prev.status != "pass" or outcome.status == "pass":
            continue

        if outcome.is_error:
            reason = outcome.error.message
        else:
            reason = (f"{outcome.result.diff_percentage:.2f}% pixels differ, "
                      f"height delta {outcome.result.height_delta_percentage:.2f}%")
        regressions.append(Regression(
            case_id=outcome.case_id,
            page_name=outcome.page_name,
            viewport_name=outcome.viewport_name,
            previous_status=prev.status,
            current_status=outcome.status,
            previous_diff_percentage=prev.result.diff_percentage,
            current_diff_percentage=None if outcome.is_error else outcome.result.diff_percentage,
            reason=reason,
        ))

    if regressions:
        logger.warning("Detected %d regressions", len(regressions))
    return regressions
