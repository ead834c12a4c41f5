"""Configuration models for the verification engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clone_verify.errors import ConfigurationError


class ViewportConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "desktop"
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)

    def as_playwright(self) -> dict:
        return {"width": self.width, "height": self.height}


class PageSpec(BaseModel):
    """One logical page: where to get the reference and the candidate rendering."""
    model_config = ConfigDict(frozen=True)

    name: str
    reference: str
    candidate: str


class ComparisonPolicy(BaseModel):
    """Pass/fail thresholds applied to every case of a run."""
    model_config = ConfigDict(frozen=True)

    max_diff_percent: float = Field(default=5.0, ge=0.0, le=100.0)
    max_height_delta_percent: float = Field(default=10.0, ge=0.0, le=100.0)

    @classmethod
    def pixel_perfect(cls) -> "ComparisonPolicy":
        return cls(max_diff_percent=1.0, max_height_delta_percent=0.0)


class DiffOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    diff_color: tuple[int, int, int] = (255, 0, 0)
    # Used when the candidate pixel is darker than the reference; None keeps diff_color
    diff_color_alt: Optional[tuple[int, int, int]] = (0, 255, 0)
    diff_background: Literal["faded", "transparent"] = "faded"
    faded_alpha: float = Field(default=0.1, ge=0.0, le=1.0)

    @field_validator("diff_color", "diff_color_alt")
    @classmethod
    def check_channels(cls, v):
        if v is not None and any(c < 0 or c > 255 for c in v):
            raise ValueError(f"Color channels must be within 0-255: {v}")
        return v


class CaptureConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_page: bool = True
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "networkidle"
    navigation_timeout_seconds: int = Field(default=60, gt=0)
    settle_ms: int = Field(default=2000, ge=0)
    scroll_for_lazy_load: bool = True
    scroll_step_px: int = Field(default=100, gt=0)
    scroll_interval_ms: int = Field(default=100, ge=0)
    disable_animations: bool = True
    user_agent: Optional[str] = None
    headless: bool = True


class LocalServerConfig(BaseModel):
    """Serves a static clone directory so candidate locators can be relative paths."""
    model_config = ConfigDict(frozen=True)

    directory: str = "./docs"
    host: str = "127.0.0.1"
    port: int = Field(default=8889, ge=0, le=65535)


def _default_viewports() -> list[ViewportConfig]:
    return [
        ViewportConfig(name="desktop-large", width=1920, height=1080),
        ViewportConfig(name="desktop-medium", width=1440, height=900),
        ViewportConfig(name="tablet", width=768, height=1024),
        ViewportConfig(name="mobile-large", width=414, height=896),
        ViewportConfig(name="mobile-small", width=320, height=568),
    ]


class VerifyConfig(BaseModel):
    # What to compare
    pages: list[PageSpec] = Field(default_factory=list)
    viewports: list[ViewportConfig] = Field(default_factory=_default_viewports)

    # Comparison
    tolerance: float = Field(default=0.1, ge=0.0, le=1.0)
    policy: ComparisonPolicy = Field(default_factory=ComparisonPolicy)
    diff: DiffOptions = Field(default_factory=DiffOptions)

    # Capture
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    serve: Optional[LocalServerConfig] = None

    # Execution limits
    max_parallel_cases: int = Field(default=4, gt=0)
    max_parallel_captures: int = Field(default=3, gt=0)
    run_timeout_seconds: float = Field(default=1800, gt=0)

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])
    report_output_dir: str = "./verify-reports"
    runs_dir: str = "runs"

    def validate_for_run(self) -> None:
        """Checks that only matter once a run starts. Raises ConfigurationError."""
        if not self.pages:
            raise ConfigurationError("No pages configured")
        if not self.viewports:
            raise ConfigurationError("No viewports configured")
        _check_unique("page", [p.name for p in self.pages])
        _check_unique("viewport", [v.name for v in self.viewports])
        unknown = set(self.report_formats) - {"html", "json"}
        if unknown:
            raise ConfigurationError(f"Unknown report formats: {', '.join(sorted(unknown))}")

    @classmethod
    def load(cls, path: str | Path) -> "VerifyConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config in {path}: {e}") from e

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)


def _check_unique(kind: str, names: list[str]) -> None:
    seen = set()
    for name in names:
        if not name:
            raise ConfigurationError(f"Empty {kind} name")
        if name in seen:
            raise ConfigurationError(f"Duplicate {kind} name: {name}")
        seen.add(name)
