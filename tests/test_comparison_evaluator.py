"""Tests for the case evaluator and result models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from clone_verify.comparison.evaluator import (
    compare_frames,
    error_outcome,
    evaluate_case,
    evaluate_files,
    height_delta_percentage,
)
from clone_verify.errors import NoOverlapError
from clone_verify.models.config import ComparisonPolicy
from clone_verify.models.frame import ImageFrame, solid_frame
from clone_verify.models.result import (
    CaseOutcome,
    ComparisonResult,
    Dimensions,
    ErrorOutcome,
    make_case_id,
)

from conftest import WHITE, striped_frame, write_png


def _result(diff=0.0, height=0.0, max_diff=5.0, max_height=10.0) -> ComparisonResult:
    return ComparisonResult(
        pixel_difference_count=int(diff * 100),
        total_compared_pixels=10_000,
        diff_percentage=diff,
        reference_dimensions=Dimensions(width=100, height=100),
        candidate_dimensions=Dimensions(width=100, height=100),
        height_delta_percentage=height,
        max_diff_percent=max_diff,
        max_height_delta_percent=max_height,
    )


class TestComparisonResult:
    """Tests for the pass rule carried by ComparisonResult."""

    def test_under_both_thresholds_passes(self):
        assert _result(diff=4.9, height=9.9).passed is True

    def test_threshold_is_exclusive(self):
        """A measurement equal to its threshold fails."""
        assert _result(diff=5.0).passed is False
        assert _result(height=10.0).passed is False

    def test_zero_measurement_passes_zero_threshold(self):
        """0% under a 0% threshold passes."""
        assert _result(diff=0.0, height=0.0, max_diff=0.0, max_height=0.0).passed is True

    def test_pixel_perfect_height_change_fails(self):
        """Any height change fails under a 0% height threshold."""
        assert _result(diff=0.5, height=0.1, max_diff=1.0, max_height=0.0).passed is False

    def test_diff_image_not_serialized(self):
        """The diff buffer never appears in dumps."""
        result = _result().model_copy(update={"diff_image": solid_frame(1, 1, WHITE)})
        data = result.model_dump()
        assert "diff_image" not in data
        assert data["passed"] is True
        assert data["dimensions_match"] is True

    def test_rejects_zero_compared_pixels(self):
        with pytest.raises(ValidationError):
            ComparisonResult(
                pixel_difference_count=0, total_compared_pixels=0, diff_percentage=0,
                reference_dimensions=Dimensions(width=0, height=0),
                candidate_dimensions=Dimensions(width=0, height=0),
                height_delta_percentage=0, max_diff_percent=5, max_height_delta_percent=10,
            )


class TestCaseOutcome:
    """Tests for CaseOutcome."""

    def test_requires_exactly_one(self):
        """Neither or both of result/error is invalid."""
        with pytest.raises(ValidationError):
            CaseOutcome(page_name="home", viewport_name="desktop")
        with pytest.raises(ValidationError):
            CaseOutcome(page_name="home", viewport_name="desktop",
                        result=_result(), error=ErrorOutcome(message="x"))

    def test_status_and_case_id(self):
        ok = CaseOutcome(page_name="home", viewport_name="desktop", result=_result())
        bad = CaseOutcome(page_name="home", viewport_name="mobile", result=_result(diff=50))
        err = CaseOutcome(page_name="about", viewport_name="tablet", error=ErrorOutcome(message="boom"))
        assert (ok.status, bad.status, err.status) == ("pass", "fail", "error")
        assert ok.case_id == "home-desktop" == make_case_id("home", "desktop")
        assert err.is_error and not ok.is_error


class TestHeightDelta:
    """Tests for height_delta_percentage."""

    def test_equal_heights(self):
        assert height_delta_percentage(900, 900) == 0.0

    def test_relative_to_taller(self):
        assert height_delta_percentage(1000, 800) == pytest.approx(20.0)
        assert height_delta_percentage(800, 1000) == pytest.approx(20.0)

    def test_both_zero(self):
        assert height_delta_percentage(0, 0) == 0.0

    @pytest.mark.parametrize("reference_height", [500, 1000])
    def test_grows_with_height_difference(self, reference_height):
        """Larger absolute height differences give strictly larger deltas, both directions."""
        for sign in (1, -1):
            deltas = [height_delta_percentage(reference_height, reference_height + sign * d)
                      for d in (0, 1, 10, 100, 250, 499)]
            assert deltas == sorted(deltas)
            assert all(a < b for a, b in zip(deltas, deltas[1:]))


class TestCompareFrames:
    """Tests for compare_frames."""

    def test_identical_frames(self, default_policy):
        frame = striped_frame(20, 10, different_rows=2)
        result = compare_frames(frame, frame, default_policy)
        assert result.pixel_difference_count == 0
        assert result.diff_percentage == 0.0
        assert result.passed
        assert result.diff_image.size == (20, 10)

    def test_fifteen_percent_fails_default_policy(self, default_policy):
        """15% of rows differing fails a 5% policy."""
        ref = solid_frame(10, 100, WHITE)
        cand = striped_frame(10, 100, different_rows=15)
        result = compare_frames(ref, cand, default_policy)
        assert result.diff_percentage == pytest.approx(15.0)
        assert result.passed is False

    def test_cropped_region_and_height_delta(self, default_policy):
        """Percentages use the overlap; height delta uses original heights."""
        ref = solid_frame(10, 100, WHITE)
        cand = solid_frame(10, 120, WHITE)
        result = compare_frames(ref, cand, default_policy)
        assert result.total_compared_pixels == 1000
        assert result.height_delta_percentage == pytest.approx(100 * 20 / 120)
        assert result.dimensions_match is False
        assert result.passed is False

    def test_swapping_inputs(self, default_policy):
        """Swapping reference and candidate keeps the count and swaps the dimensions."""
        a = striped_frame(10, 100, different_rows=30)
        b = striped_frame(12, 80, different_rows=5)
        forward = compare_frames(a, b, default_policy)
        backward = compare_frames(b, a, default_policy)

        assert forward.pixel_difference_count == backward.pixel_difference_count == 250
        assert forward.total_compared_pixels == backward.total_compared_pixels == 800
        assert forward.diff_percentage == backward.diff_percentage
        assert forward.height_delta_percentage == backward.height_delta_percentage
        assert forward.reference_dimensions == backward.candidate_dimensions == Dimensions(width=10, height=100)
        assert forward.candidate_dimensions == backward.reference_dimensions == Dimensions(width=12, height=80)

    def test_snapshots_policy(self):
        policy = ComparisonPolicy(max_diff_percent=2.5, max_height_delta_percent=3.0)
        frame = solid_frame(2, 2, WHITE)
        result = compare_frames(frame, frame, policy)
        assert (result.max_diff_percent, result.max_height_delta_percent) == (2.5, 3.0)

    def test_no_overlap_raises(self, default_policy):
        with pytest.raises(NoOverlapError):
            compare_frames(ImageFrame(0, 0, b""), solid_frame(2, 2, WHITE), default_policy)


class TestEvaluateCase:
    """Tests for evaluate_case and evaluate_files."""

    def test_pass(self, home_page, desktop, default_policy):
        frame = solid_frame(8, 8, WHITE)
        outcome = evaluate_case(home_page, desktop, frame, frame, default_policy)
        assert outcome.status == "pass"
        assert outcome.case_id == "home-desktop"

    def test_no_overlap_becomes_error(self, home_page, desktop, default_policy):
        """Evaluation failures never raise."""
        outcome = evaluate_case(home_page, desktop, ImageFrame(0, 4, b""), solid_frame(4, 4, WHITE), default_policy)
        assert outcome.status == "error"
        assert outcome.error.error_type == "NoOverlapError"

    def test_evaluate_files(self, tmp_path: Path, home_page, desktop, default_policy):
        ref = write_png(tmp_path / "ref.png", 6, 6)
        cand = write_png(tmp_path / "cand.png", 6, 6)
        outcome = evaluate_files(home_page, desktop, ref, cand, default_policy)
        assert outcome.status == "pass"

    def test_evaluate_files_decode_error(self, tmp_path: Path, home_page, desktop, default_policy):
        ref = write_png(tmp_path / "ref.png", 6, 6)
        outcome = evaluate_files(home_page, desktop, ref, tmp_path / "missing.png", default_policy)
        assert outcome.status == "error"
        assert outcome.error.error_type == "DecodeError"


class TestErrorOutcome:
    """Tests for error_outcome."""

    def test_from_exception(self):
        outcome = error_outcome("home", "desktop", RuntimeError("bad"), duration=1.23456)
        assert outcome.error == ErrorOutcome(message="bad", error_type="RuntimeError")
        assert outcome.duration_seconds == 1.235

    def test_from_message(self):
        outcome = error_outcome("home", "desktop", "timeout", error_type="Timeout")
        assert outcome.error.message == "timeout"
        assert outcome.error.error_type == "Timeout"

    def test_empty_exception_message_uses_type(self):
        outcome = error_outcome("home", "desktop", ValueError())
        assert outcome.error.message == "ValueError"
