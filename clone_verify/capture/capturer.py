"""Capture collaborators: produce an ImageFrame for a locator at a viewport."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from clone_verify.capture.browser import create_capture_context, launch_browser, scroll_for_lazy_load
from clone_verify.comparison.loader import load_frame
from clone_verify.errors import CaptureError
from clone_verify.models.config import CaptureConfig, ViewportConfig
from clone_verify.models.frame import ImageFrame

logger = logging.getLogger(__name__)


class Capturer(Protocol):
    """Anything the orchestrator can capture screenshots with.

    Used as an async context manager for the lifetime of a run.
    """

    async def __aenter__(self) -> "Capturer": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def capture(self, locator: str, viewport: ViewportConfig) -> ImageFrame: ...


class PlaywrightCapturer:
    """Captures pages with headless Chromium, one browser context per capture."""

    def __init__(self, config: CaptureConfig | None = None, max_parallel_captures: int = 3):
        self.config = config or CaptureConfig()
        self.max_parallel_captures = max_parallel_captures
        self._semaphore = asyncio.Semaphore(max_parallel_captures)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightCapturer":
        logger.debug("Launching Chromium for captures (headless=%s, max %d parallel)...",
                     self.config.headless, self.max_parallel_captures)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await launch_browser(self._playwright, headless=self.config.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def capture(self, locator: str, viewport: ViewportConfig) -> ImageFrame:
        """Load ``locator`` at ``viewport``, let it settle, and screenshot it.

        Raises:
            CaptureError: navigation failed, timed out, or returned an HTTP error.
        """
        if self._browser is None:
            raise CaptureError("Capturer used outside of its context", locator=locator)

        cfg = self.config
        async with self._semaphore:
            context = None
            try:
                context = await create_capture_context(
                    self._browser,
                    viewport=viewport.as_playwright(),
                    user_agent=cfg.user_agent,
                    reduced_motion=cfg.disable_animations,
                )
                page = await context.new_page()
                logger.debug("Capturing %s at %s (%dx%d)",
                             locator, viewport.name, viewport.width, viewport.height)
                response = await page.goto(
                    locator,
                    wait_until=cfg.wait_until,
                    timeout=cfg.navigation_timeout_seconds * 1000,
                )
                if response is not None and response.status >= 400:
                    raise CaptureError(
                        f"{locator} returned HTTP {response.status}", locator=locator
                    )
                if cfg.settle_ms:
                    await page.wait_for_timeout(cfg.settle_ms)
                if cfg.scroll_for_lazy_load:
                    await scroll_for_lazy_load(page, cfg.scroll_step_px, cfg.scroll_interval_ms)
                    try:
                        await page.wait_for_load_state("networkidle", timeout=5000)
                    except PlaywrightTimeoutError:
                        logger.debug("Network did not idle after scrolling %s", locator)
                png = await page.screenshot(
                    full_page=cfg.full_page,
                    type="png",
                    animations="disabled" if cfg.disable_animations else "allow",
                    caret="hide",
                )
            except PlaywrightTimeoutError as e:
                raise CaptureError(f"Timed out capturing {locator}: {e}", locator=locator) from e
            except PlaywrightError as e:
                raise CaptureError(f"Failed to capture {locator}: {e}", locator=locator) from e
            finally:
                if context is not None:
                    await context.close()

        return load_frame(png)
