"""Per-pixel difference mask and diff visualization for two aligned buffers.

Color distance is the YIQ-weighted delta used by pixelmatch, normalized so
that black vs white is exactly 1.0. Pixels are blended over white first so
transparent regions compare like the page background they render on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from clone_verify.models.config import DiffOptions
from clone_verify.models.frame import ImageFrame, frame_from_array

logger = logging.getLogger(__name__)

# Rows processed per vectorized band; bounds temporary memory on tall full-page shots
BAND_ROWS = 256

_Y = (0.29889531, 0.58662247, 0.11448223)
_I = (0.59597799, -0.27417610, -0.32180189)
_Q = (0.21147017, -0.52261711, 0.31114694)
_WEIGHTS = (0.5053, 0.299, 0.1957)


@dataclass(frozen=True)
class DiffOutput:
    pixel_difference_count: int
    diff_image: ImageFrame


def _blend_over_white(rgba: np.ndarray) -> np.ndarray:
    pixels = rgba.astype(np.float64)
    alpha = pixels[..., 3:4] / 255.0
    return 255.0 + (pixels[..., :3] - 255.0) * alpha


def _project(rgb: np.ndarray, coeffs: tuple[float, float, float]) -> np.ndarray:
    return rgb[..., 0] * coeffs[0] + rgb[..., 1] * coeffs[1] + rgb[..., 2] * coeffs[2]


def _yiq_delta(rgb_a: np.ndarray, rgb_b: np.ndarray) -> np.ndarray:
    dy = _project(rgb_a, _Y) - _project(rgb_b, _Y)
    di = _project(rgb_a, _I) - _project(rgb_b, _I)
    dq = _project(rgb_a, _Q) - _project(rgb_b, _Q)
    return _WEIGHTS[0] * dy * dy + _WEIGHTS[1] * di * di + _WEIGHTS[2] * dq * dq


_BLACK_WHITE_DELTA = float(
    _yiq_delta(np.zeros((1, 3)), np.full((1, 3), 255.0))[0]
)


def _normalized_distance(rgb_a: np.ndarray, rgb_b: np.ndarray) -> np.ndarray:
    return np.minimum(1.0, np.sqrt(_yiq_delta(rgb_a, rgb_b) / _BLACK_WHITE_DELTA))


def _color_array(color: tuple[int, ...]) -> np.ndarray:
    """(1, 4) uint8 array for an RGB or RGBA tuple; RGB gets opaque alpha."""
    return np.array([list(color) + [255] * (4 - len(color))], dtype=np.uint8)


def color_distance(a: tuple[int, ...], b: tuple[int, ...]) -> float:
    """Distance in [0, 1] between two RGBA (or RGB) colors. Symmetric."""
    return float(_normalized_distance(
        _blend_over_white(_color_array(a)), _blend_over_white(_color_array(b))
    )[0])


def diff_frames(
    reference: np.ndarray,
    candidate: np.ndarray,
    tolerance: float = 0.1,
    options: DiffOptions | None = None,
) -> DiffOutput:
    """Count pixels whose color distance exceeds ``tolerance``.

    Both inputs are (height, width, 4) uint8 arrays of identical shape.
    Returns the count and a same-sized visualization: differing pixels in
    the highlight color, the rest as a faded grayscale of the reference (or
    transparent).
    """
    if not 0.0 <= tolerance <= 1.0:
        raise ValueError(f"Tolerance must be within [0, 1], got {tolerance}")
    if reference.shape != candidate.shape:
        raise ValueError(f"Buffers differ in shape: {reference.shape} vs {candidate.shape}")
    options = options or DiffOptions()

    height, width = reference.shape[:2]
    output = np.zeros((height, width, 4), dtype=np.uint8)
    diff_color = np.array([*options.diff_color, 255], dtype=np.uint8)
    alt_color = (
        np.array([*options.diff_color_alt, 255], dtype=np.uint8)
        if options.diff_color_alt is not None else diff_color
    )

    band_counts = []
    for top in range(0, height, BAND_ROWS):
        bottom = min(top + BAND_ROWS, height)
        ref_rgb = _blend_over_white(reference[top:bottom])
        cand_rgb = _blend_over_white(candidate[top:bottom])

        mask = _normalized_distance(ref_rgb, cand_rgb) > tolerance
        band_counts.append(int(np.count_nonzero(mask)))

        band = output[top:bottom]
        ref_luma = _project(ref_rgb, _Y)
        if options.diff_background == "faded":
            gray = np.clip(255.0 + (ref_luma - 255.0) * options.faded_alpha, 0, 255)
            band[..., :3] = np.rint(gray)[..., None].astype(np.uint8)
            band[..., 3] = 255

        darker = mask & (_project(cand_rgb, _Y) < ref_luma)
        band[mask & ~darker] = diff_color
        band[darker] = alt_color

    count = sum(band_counts)
    logger.debug("Diffed %dx%d region: %d pixels over tolerance %.3f",
                 width, height, count, tolerance)
    return DiffOutput(pixel_difference_count=count, diff_image=frame_from_array(output))
