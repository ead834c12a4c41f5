"""Tests for the reconciler and the pixel differencer."""

import numpy as np
import pytest

from clone_verify.comparison.differencer import BAND_ROWS, color_distance, diff_frames
from clone_verify.comparison.reconciler import reconcile
from clone_verify.errors import NoOverlapError
from clone_verify.models.config import DiffOptions
from clone_verify.models.frame import ImageFrame, solid_frame

from conftest import BLACK, WHITE, striped_frame


# ============================================================================
# Reconciler
# ============================================================================


class TestReconcile:
    """Tests for reconcile."""

    def test_same_size(self):
        """Equal frames reconcile to their full area."""
        pair = reconcile(solid_frame(4, 3, WHITE), solid_frame(4, 3, BLACK))
        assert (pair.width, pair.height) == (4, 3)
        assert pair.pixel_count == 12
        assert pair.reference_dimensions == pair.candidate_dimensions

    def test_crops_to_top_left_intersection(self):
        """Different sizes crop to min width and min height from the origin."""
        ref = striped_frame(10, 20, different_rows=1)
        cand = solid_frame(6, 30, WHITE)
        pair = reconcile(ref, cand)
        assert pair.reference.shape == (20, 6, 4)
        assert pair.candidate.shape == (20, 6, 4)
        assert tuple(pair.reference[0, 0]) == BLACK
        assert str(pair.reference_dimensions) == "10x20"
        assert str(pair.candidate_dimensions) == "6x30"

    def test_zero_width_has_no_overlap(self):
        """An empty intersection raises NoOverlapError."""
        empty = ImageFrame(width=0, height=5, pixels=b"")
        with pytest.raises(NoOverlapError):
            reconcile(empty, solid_frame(5, 5, WHITE))

    def test_zero_height_has_no_overlap(self):
        empty = ImageFrame(width=5, height=0, pixels=b"")
        with pytest.raises(NoOverlapError):
            reconcile(solid_frame(5, 5, WHITE), empty)


# ============================================================================
# Color distance
# ============================================================================


class TestColorDistance:
    """Tests for color_distance."""

    def test_identical_is_zero(self):
        assert color_distance((12, 34, 56, 255), (12, 34, 56, 255)) == 0.0

    def test_black_white_is_one(self):
        """Black vs white is the maximum distance."""
        assert color_distance(BLACK, WHITE) == pytest.approx(1.0)

    def test_symmetric(self):
        a, b = (200, 10, 40, 255), (30, 180, 90, 255)
        assert color_distance(a, b) == pytest.approx(color_distance(b, a))

    def test_bounded(self):
        """Distances are clipped to [0, 1]."""
        for a, b in [((255, 0, 0), (0, 0, 255)), ((0, 255, 0), (255, 0, 255))]:
            assert 0.0 <= color_distance(a, b) <= 1.0

    def test_rgb_equals_opaque_rgba(self):
        """RGB tuples compare as fully opaque colors."""
        assert color_distance((10, 200, 30), (250, 0, 90)) == color_distance((10, 200, 30, 255), (250, 0, 90, 255))

    def test_transparent_matches_white(self):
        """Fully transparent pixels render as the white page background."""
        assert color_distance((0, 0, 0, 0), WHITE) == pytest.approx(0.0)

    def test_small_change_under_default_tolerance(self):
        """A one-step channel change is far below 0.1."""
        assert color_distance((100, 100, 100), (101, 100, 100)) < 0.1


# ============================================================================
# diff_frames
# ============================================================================


class TestDiffFrames:
    """Tests for diff_frames."""

    def test_identical_buffers(self):
        """Identical inputs produce zero differences at any tolerance."""
        frame = striped_frame(8, 8, different_rows=3).as_array()
        for tolerance in (0.0, 0.1, 1.0):
            assert diff_frames(frame, frame, tolerance).pixel_difference_count == 0

    def test_black_vs_white_all_differ(self):
        """At tolerance 0 every black/white pixel counts."""
        out = diff_frames(solid_frame(5, 4, BLACK).as_array(), solid_frame(5, 4, WHITE).as_array(), 0.0)
        assert out.pixel_difference_count == 20

    def test_tolerance_one_never_differs(self):
        """Tolerance 1.0 accepts every pixel since distances are clipped to 1."""
        out = diff_frames(solid_frame(5, 4, BLACK).as_array(), solid_frame(5, 4, WHITE).as_array(), 1.0)
        assert out.pixel_difference_count == 0

    def test_symmetric_count(self):
        a = striped_frame(6, 10, different_rows=4).as_array()
        b = striped_frame(6, 10, different_rows=7).as_array()
        assert diff_frames(a, b).pixel_difference_count == diff_frames(b, a).pixel_difference_count == 18

    def test_spans_multiple_bands(self):
        """Counts from every row band are summed."""
        height = BAND_ROWS * 2 + 10
        a = solid_frame(3, height, WHITE).as_array()
        b = solid_frame(3, height, BLACK).as_array()
        assert diff_frames(a, b).pixel_difference_count == 3 * height

    def test_deterministic(self):
        """Same inputs always produce the same count and image."""
        rng = np.random.default_rng(7)
        a = rng.integers(0, 256, size=(40, 30, 4), dtype=np.uint8)
        b = rng.integers(0, 256, size=(40, 30, 4), dtype=np.uint8)
        first = diff_frames(a, b, 0.2)
        second = diff_frames(a, b, 0.2)
        assert first.pixel_difference_count == second.pixel_difference_count
        assert first.diff_image == second.diff_image

    @pytest.mark.parametrize("tolerance", [-0.1, 1.5])
    def test_tolerance_out_of_range(self, tolerance):
        frame = solid_frame(2, 2, WHITE).as_array()
        with pytest.raises(ValueError, match="Tolerance"):
            diff_frames(frame, frame, tolerance)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="shape"):
            diff_frames(solid_frame(2, 2, WHITE).as_array(), solid_frame(3, 2, WHITE).as_array())

    def test_diff_image_highlights(self):
        """Differing pixels are highlighted; darker candidates use the alternate color."""
        ref = solid_frame(2, 2, WHITE).as_array()
        cand = striped_frame(2, 2, different_rows=1).as_array()
        out = diff_frames(ref, cand, 0.1)
        image = out.diff_image.as_array()
        assert out.diff_image.size == (2, 2)
        assert tuple(image[0, 0]) == (0, 255, 0, 255)
        # unchanged white reference fades to white
        assert tuple(image[1, 0]) == (255, 255, 255, 255)

        lighter = diff_frames(cand, ref, 0.1).diff_image.as_array()
        assert tuple(lighter[0, 0]) == (255, 0, 0, 255)

    def test_single_highlight_color(self):
        """Without an alternate color every difference uses diff_color."""
        options = DiffOptions(diff_color=(0, 0, 255), diff_color_alt=None)
        out = diff_frames(solid_frame(1, 1, WHITE).as_array(), solid_frame(1, 1, BLACK).as_array(), 0.1, options)
        assert tuple(out.diff_image.as_array()[0, 0]) == (0, 0, 255, 255)

    def test_transparent_background(self):
        """Transparent background leaves matching pixels fully transparent."""
        options = DiffOptions(diff_background="transparent")
        frame = solid_frame(2, 2, BLACK).as_array()
        out = diff_frames(frame, frame, 0.1, options)
        assert out.diff_image.as_array()[..., 3].max() == 0
