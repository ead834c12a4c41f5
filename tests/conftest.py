"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from clone_verify.errors import CaptureError
from clone_verify.models.config import (
    ComparisonPolicy,
    PageSpec,
    VerifyConfig,
    ViewportConfig,
)
from clone_verify.models.frame import ImageFrame, frame_from_array, solid_frame


BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


# ============================================================================
# Frame helpers
# ============================================================================


def striped_frame(width: int, height: int, different_rows: int,
                  base=WHITE, stripe=BLACK) -> ImageFrame:
    """White frame whose first ``different_rows`` rows are black."""
    array = np.empty((height, width, 4), dtype=np.uint8)
    array[:, :] = base
    array[:different_rows, :] = stripe
    return frame_from_array(array)


def write_png(path: Path, width: int, height: int, rgba=(255, 255, 255, 255)) -> Path:
    Image.new("RGBA", (width, height), rgba).save(path)
    return path


# ============================================================================
# Fake capture collaborator
# ============================================================================


class FakeCapturer:
    """In-memory capturer keyed by (locator, viewport name)."""

    def __init__(
        self,
        frames: Callable[[str, ViewportConfig], ImageFrame] | None = None,
        failures: dict[tuple[str, str], Exception] | None = None,
        delays: dict[tuple[str, str], float] | None = None,
    ):
        self.frames = frames or (lambda locator, vp: solid_frame(vp.width // 10, vp.height // 10, WHITE))
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, str]] = []
        self.entered = False
        self.exited = False
        self.active = 0
        self.max_active = 0

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True

    async def capture(self, locator: str, viewport: ViewportConfig) -> ImageFrame:
        key = (locator, viewport.name)
        self.calls.append(key)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            if key in self.failures:
                raise self.failures[key]
            return self.frames(locator, viewport)
        finally:
            self.active -= 1


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def desktop() -> ViewportConfig:
    return ViewportConfig(name="desktop", width=1920, height=1080)


@pytest.fixture
def mobile() -> ViewportConfig:
    return ViewportConfig(name="mobile", width=320, height=568)


@pytest.fixture
def home_page() -> PageSpec:
    return PageSpec(name="home", reference="https://example.com/", candidate="https://clone.test/")


@pytest.fixture
def links_page() -> PageSpec:
    return PageSpec(name="links", reference="https://example.com/links", candidate="https://clone.test/links")


@pytest.fixture
def default_policy() -> ComparisonPolicy:
    return ComparisonPolicy()


@pytest.fixture
def verify_config(home_page, links_page, desktop, mobile, tmp_path: Path) -> VerifyConfig:
    """Two pages x two viewports, artifacts under tmp_path."""
    return VerifyConfig(
        pages=[home_page, links_page],
        viewports=[desktop, mobile],
        tolerance=0.1,
        max_parallel_cases=4,
        max_parallel_captures=3,
        report_output_dir=str(tmp_path / "reports"),
        runs_dir=str(tmp_path / "runs"),
    )


@pytest.fixture
def fake_capturer() -> FakeCapturer:
    return FakeCapturer()


@pytest.fixture
def capture_error() -> CaptureError:
    return CaptureError("Timed out capturing https://example.com/links", locator="https://example.com/links")
