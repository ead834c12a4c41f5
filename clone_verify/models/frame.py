"""In-memory raster frame shared by every stage of the comparison."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

CHANNELS = 4


@dataclass(frozen=True)
class ImageFrame:
    """Decoded RGBA image, row-major, top-to-bottom. Never mutated."""

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative frame dimensions: {self.width}x{self.height}")
        expected = self.width * self.height * CHANNELS
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer has {len(self.pixels)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def as_array(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 view over the pixel buffer."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.width, CHANNELS
        )

    def __repr__(self) -> str:
        return f"ImageFrame({self.width}x{self.height})"


def frame_from_array(array: np.ndarray) -> ImageFrame:
    """Build a frame from an (height, width, 4) uint8 array."""
    if array.ndim != 3 or array.shape[2] != CHANNELS:
        raise ValueError(f"Expected (height, width, 4) array, got shape {array.shape}")
    data = np.ascontiguousarray(array, dtype=np.uint8)
    height, width = data.shape[:2]
    return ImageFrame(width=width, height=height, pixels=data.tobytes())


def solid_frame(width: int, height: int, rgba: tuple[int, int, int, int]) -> ImageFrame:
    """Frame filled with a single color."""
    array = np.empty((height, width, CHANNELS), dtype=np.uint8)
    array[:, :] = rgba
    return frame_from_array(array)
