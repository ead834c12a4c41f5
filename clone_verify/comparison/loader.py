"""Decode raster files into ImageFrames and encode them back to PNG."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from clone_verify.errors import DecodeError
from clone_verify.models.frame import ImageFrame

logger = logging.getLogger(__name__)


def load_frame(source: Path | str | bytes) -> ImageFrame:
    """Decode an image file (or its raw bytes) into an RGBA frame.

    Raises:
        DecodeError: missing file, unsupported or truncated data, zero dimensions.
    """
    label = "<bytes>" if isinstance(source, bytes) else str(source)
    if not isinstance(source, bytes):
        path = Path(source)
        if not path.exists():
            raise DecodeError(f"Image not found: {path}")
        try:
            source = path.read_bytes()
        except OSError as e:
            raise DecodeError(f"Could not read {path}: {e}") from e

    try:
        with Image.open(io.BytesIO(source)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except UnidentifiedImageError as e:
        raise DecodeError(f"Unsupported image format: {label}") from e
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Corrupt or truncated image {label}: {e}") from e

    width, height = rgba.size
    if width == 0 or height == 0:
        raise DecodeError(f"Image has zero dimensions: {label} ({width}x{height})")

    logger.debug("Decoded %s (%dx%d, mode %s)", label, width, height, rgba.mode)
    return ImageFrame(width=width, height=height, pixels=rgba.tobytes())


def encode_png(frame: ImageFrame) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.array(frame.as_array())).save(buf, format="PNG")
    return buf.getvalue()


def save_frame(frame: ImageFrame, path: Path | str) -> Path:
    """Write a frame as PNG, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_png(frame))
    return path
