"""JSON report output."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from clone_verify.models.result import SuiteReport
from .regression_detector import Regression


def generate_json_report(
    report: SuiteReport,
    regressions: list[Regression],
    output_path: Path,
) -> None:
    """Write a machine-readable JSON report."""
    data = report.model_dump()
    data["regressions"] = [asdict(r) for r in regressions]

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)


def load_json_report(path: Path) -> SuiteReport:
    """Read a report written by generate_json_report."""
    with open(path) as f:
        data = json.load(f)
    data.pop("regressions", None)
    return SuiteReport.model_validate(data)
