"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from clone_verify.models.result import SuiteReport

from .html_report import generate_html_report
from .json_report import generate_json_report, load_json_report
from .regression_detector import detect_regressions

logger = logging.getLogger(__name__)


class Reporter:
    """Writes a finished SuiteReport in every configured format."""

    def __init__(self, output_dir: Path, formats: list[str] | None = None):
        self.output_dir = Path(output_dir)
        self.formats = formats if formats is not None else ["html", "json"]

    def generate_reports(
        self,
        report: SuiteReport,
        previous: SuiteReport | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        generated = {}
        logger.debug("Report output directory: %s", self.output_dir)

        regressions = []
        if previous:
            logger.debug("Detecting regressions against run %s...", previous.run_id)
            regressions = detect_regressions(previous, report)

        if "html" in self.formats:
            path = self.output_dir / f"report_{report.run_id}.html"
            generate_html_report(report, regressions, path)
            generated["html"] = str(path)
            logger.info("HTML report: %s", path)

        if "json" in self.formats:
            path = self.output_dir / f"report_{report.run_id}.json"
            generate_json_report(report, regressions, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        return generated

    def load_previous_report(self, current_run_id: str) -> SuiteReport | None:
        """Load the most recent JSON report that is not the current run."""
        if not self.output_dir.exists():
            return None

        report_files = sorted(
            self.output_dir.glob("report_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

        for report_path in report_files:
            try:
                previous = load_json_report(report_path)
            except Exception as e:
                logger.debug("Could not load previous report from %s: %s", report_path, e)
                continue
            if previous.run_id != current_run_id:
                return previous

        return None
