"""Suite orchestrator: captures and evaluates every page and viewport case."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import AsyncExitStack
from enum import Enum
from pathlib import Path

from clone_verify.artifacts import ArtifactWriter
from clone_verify.capture.capturer import Capturer, PlaywrightCapturer
from clone_verify.capture.local_server import LocalCloneServer
from clone_verify.comparison.evaluator import error_outcome, evaluate_case
from clone_verify.models.config import PageSpec, VerifyConfig, ViewportConfig
from clone_verify.models.frame import ImageFrame
from clone_verify.models.result import CaseOutcome, SuiteReport
from clone_verify.reporter.aggregator import aggregate
from clone_verify.reporter.reporter import Reporter
from clone_verify.url_utils import resolve_locator

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class SuiteOrchestrator:
    """Runs one verification suite.

    Cases run concurrently (bounded by ``max_parallel_cases``) but the
    report lists them in configuration order: pages outer, viewports inner.
    A failing case is recorded as an error outcome and never stops the run;
    only initialization failures abort it.
    """

    def __init__(
        self,
        config: VerifyConfig,
        capturer: Capturer | None = None,
        reporter: Reporter | None = None,
        runs_dir: Path | str | None = None,
        run_id: str | None = None,
    ):
        self.config = config
        self.capturer = capturer
        self.reporter = reporter
        self.run_id = run_id or f"run_{uuid.uuid4().hex[:8]}"
        self.run_dir = Path(runs_dir or config.runs_dir) / self.run_id
        self.artifacts = ArtifactWriter(self.run_dir)
        self.state = RunState.IDLE
        self.report: SuiteReport | None = None
        self.report_paths: dict[str, str] = {}

    def cases(self) -> list[tuple[PageSpec, ViewportConfig]]:
        """All (page, viewport) combinations in report order."""
        return [(page, viewport) for page in self.config.pages for viewport in self.config.viewports]

    def run_sync(self) -> SuiteReport:
        return asyncio.run(self.run())

    async def run(self) -> SuiteReport:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"Orchestrator already used (state={self.state.value})")

        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        start = time.time()
        cases = self.cases()
        logger.info("=== Starting verification run %s: %d pages x %d viewports ===",
                    self.run_id, len(self.config.pages), len(self.config.viewports))

        async with AsyncExitStack() as stack:
            self._transition(RunState.INITIALIZING)
            try:
                self.config.validate_for_run()
                self.artifacts.prepare()
                base_url = None
                if self.config.serve:
                    server = await stack.enter_async_context(LocalCloneServer(self.config.serve))
                    base_url = server.base_url
                capturer = self.capturer or PlaywrightCapturer(
                    self.config.capture, self.config.max_parallel_captures,
                )
                await stack.enter_async_context(capturer)
            except Exception:
                self._transition(RunState.FAILED)
                raise

            self._transition(RunState.RUNNING)
            outcomes = await self._run_cases(capturer, cases, base_url)
            self._transition(RunState.FINALIZING)

        duration = time.time() - start
        report = aggregate(
            outcomes,
            run_id=self.run_id,
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            tolerance=self.config.tolerance,
            policy=self.config.policy,
            duration_seconds=duration,
        )
        self.report = report

        if self.reporter is not None:
            previous = self.reporter.load_previous_report(self.run_id)
            self.report_paths = self.reporter.generate_reports(report, previous=previous)

        self._transition(RunState.DONE)
        logger.info(
            "=== Run complete: %d passed, %d failed, %d errors, accuracy %.1f%% (%.1fs) ===",
            report.passed, report.failed, report.errored, report.accuracy_percentage, duration,
        )
        return report

    def _transition(self, state: RunState) -> None:
        logger.debug("Run %s: %s -> %s", self.run_id, self.state.value, state.value)
        self.state = state

    async def _run_cases(
        self,
        capturer: Capturer,
        cases: list[tuple[PageSpec, ViewportConfig]],
        base_url: str | None,
    ) -> list[CaseOutcome]:
        # Index-addressed so completion order never leaks into the report
        results: list[CaseOutcome | None] = [None] * len(cases)
        semaphore = asyncio.Semaphore(self.config.max_parallel_cases)
        capture_slots = asyncio.Semaphore(self.config.max_parallel_captures)
        total = len(cases)

        async def _run_one(index: int, page: PageSpec, viewport: ViewportConfig) -> None:
            async with semaphore:
                logger.info("Running case [%d/%d]: %s @ %s", index + 1, total, page.name, viewport.name)
                results[index] = await self._run_case(capturer, page, viewport, base_url, capture_slots)

        tasks = [
            asyncio.create_task(_run_one(i, page, viewport), name=f"{page.name}-{viewport.name}")
            for i, (page, viewport) in enumerate(cases)
        ]
        _, pending = await asyncio.wait(tasks, timeout=self.config.run_timeout_seconds)
        if pending:
            logger.warning("Run timeout (%.0fs) reached, cancelling %d in-flight cases",
                           self.config.run_timeout_seconds, len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes = []
        for i, (task, (page, viewport)) in enumerate(zip(tasks, cases)):
            outcome = results[i]
            if outcome is None:
                if task.cancelled():
                    outcome = error_outcome(page.name, viewport.name, "timeout", error_type="Timeout")
                else:
                    exc = task.exception()
                    logger.error("Case %s/%s crashed: %s", page.name, viewport.name, exc)
                    outcome = error_outcome(page.name, viewport.name, exc or "unknown failure")
            outcomes.append(outcome)
        return outcomes

    async def _run_case(
        self,
        capturer: Capturer,
        page: PageSpec,
        viewport: ViewportConfig,
        base_url: str | None,
        capture_slots: asyncio.Semaphore,
    ) -> CaseOutcome:
        """Capture both renderings, evaluate them, and write artifacts."""
        start = time.time()
        reference_locator = resolve_locator(page.reference, base_url)
        candidate_locator = resolve_locator(page.candidate, base_url)

        async def _capture(locator: str) -> ImageFrame:
            async with capture_slots:
                return await capturer.capture(locator, viewport)

        reference, candidate = await asyncio.gather(
            _capture(reference_locator),
            _capture(candidate_locator),
            return_exceptions=True,
        )

        failures = [
            f"{role}: {exc}"
            for role, exc in (("reference", reference), ("candidate", candidate))
            if isinstance(exc, BaseException)
        ]
        if failures:
            artifacts = await asyncio.to_thread(
                self.artifacts.write_case, page.name, viewport.name,
                reference if isinstance(reference, ImageFrame) else None,
                candidate if isinstance(candidate, ImageFrame) else None,
            )
            error_type = type(reference if isinstance(reference, BaseException) else candidate).__name__
            logger.warning("[ERROR] %s @ %s: %s", page.name, viewport.name, "; ".join(failures))
            outcome = error_outcome(page.name, viewport.name, "; ".join(failures),
                                    time.time() - start, error_type=error_type)
            return outcome.model_copy(update={"artifacts": artifacts})

        outcome = await asyncio.to_thread(
            evaluate_case, page, viewport, reference, candidate,
            self.config.policy, self.config.tolerance, self.config.diff,
        )
        diff_image = outcome.result.diff_image if outcome.result else None
        artifacts = await asyncio.to_thread(
            self.artifacts.write_case, page.name, viewport.name, reference, candidate, diff_image,
        )

        update = {"artifacts": artifacts, "duration_seconds": round(time.time() - start, 3)}
        if outcome.result is not None:
            # Diff buffer is already on disk
            update["result"] = outcome.result.model_copy(update={"diff_image": None})
        outcome = outcome.model_copy(update=update)

        if outcome.is_error:
            logger.warning("[ERROR] %s @ %s: %s", page.name, viewport.name, outcome.error.message)
        else:
            logger.info("[%s] %s @ %s: %.2f%% diff, height delta %.2f%% (%.1fs)",
                        outcome.status.upper(), page.name, viewport.name,
                        outcome.result.diff_percentage, outcome.result.height_delta_percentage,
                        outcome.duration_seconds)
        return outcome
