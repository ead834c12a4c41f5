"""Result data structures produced by the evaluator and the aggregator."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from clone_verify.models.frame import ImageFrame


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


class ComparisonResult(BaseModel):
    """Outcome of diffing one reference/candidate pair.

    ``passed`` is derived from the percentages and the policy snapshot the
    result was evaluated under; it cannot be set directly.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pixel_difference_count: int = Field(ge=0)
    total_compared_pixels: int = Field(gt=0)
    diff_percentage: float = Field(ge=0.0, le=100.0)
    reference_dimensions: Dimensions
    candidate_dimensions: Dimensions
    height_delta_percentage: float = Field(ge=0.0, le=100.0)
    max_diff_percent: float
    max_height_delta_percent: float
    diff_image: Optional[ImageFrame] = Field(default=None, exclude=True, repr=False)

    @computed_field
    @property
    def dimensions_match(self) -> bool:
        return self.reference_dimensions == self.candidate_dimensions

    @computed_field
    @property
    def passed(self) -> bool:
        # A zero measurement never counts against the case, even under a 0% threshold
        diff_ok = self.diff_percentage == 0 or self.diff_percentage < self.max_diff_percent
        height_ok = (
            self.height_delta_percentage == 0
            or self.height_delta_percentage < self.max_height_delta_percent
        )
        return diff_ok and height_ok


class ErrorOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    error_type: str = "Error"


class CaseArtifacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference_path: Optional[str] = None
    candidate_path: Optional[str] = None
    diff_path: Optional[str] = None


class CaseOutcome(BaseModel):
    """One (page, viewport) verdict: either a comparison result or an error."""
    model_config = ConfigDict(frozen=True)

    page_name: str
    viewport_name: str
    result: Optional[ComparisonResult] = None
    error: Optional[ErrorOutcome] = None
    artifacts: CaseArtifacts = Field(default_factory=CaseArtifacts)
    duration_seconds: float = 0.0

    @model_validator(mode="after")
    def exactly_one_outcome(self) -> "CaseOutcome":
        if (self.result is None) == (self.error is None):
            raise ValueError("CaseOutcome needs exactly one of result or error")
        return self

    @computed_field
    @property
    def case_id(self) -> str:
        return make_case_id(self.page_name, self.viewport_name)

    @computed_field
    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        return "pass" if self.result.passed else "fail"

    @property
    def is_error(self) -> bool:
        return self.error is not None


class SuiteReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    run_id: str
    started_at: str
    completed_at: str
    duration_seconds: float = 0.0
    tolerance: float
    max_diff_percent: float
    max_height_delta_percent: float
    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    errored: int = 0
    accuracy_percentage: float = 0.0
    no_tests_ran: bool = False
    outcomes: list[CaseOutcome] = Field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        return not self.no_tests_ran and self.passed == self.total_tests


def make_case_id(page_name: str, viewport_name: str) -> str:
    """Deterministic identifier and artifact stem for a case."""
    return f"{page_name}-{viewport_name}"
