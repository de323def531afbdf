"""Image export utilities for rendered frames.

Renderer.render() returns packed pixels (r << 16 | g << 8 | b, row-major).
This module unpacks them into an RGB array and writes PNG files.

Supported formats:
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from src.gridtracer.preview.export import save_png
    >>> pixels = renderer.render()
    >>> save_png(pixels, renderer.width, renderer.height, "output.png")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def unpack_pixels(
    pixels: npt.ArrayLike, width: int, height: int
) -> npt.NDArray[np.uint8]:
    """Unpack r << 16 | g << 8 | b integers into an RGB image.

    Args:
        pixels: Row-major array of width * height packed pixels.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        uint8 array of shape (height, width, 3), row 0 at the top.

    Raises:
        ValueError: If the buffer length does not match width * height.
    """
    packed = np.asarray(pixels, dtype=np.uint32).reshape(-1)
    if packed.shape[0] != width * height:
        raise ValueError(
            f"Pixel buffer has {packed.shape[0]} entries, expected {width}x{height}"
        )

    image = np.empty((height, width, 3), dtype=np.uint8)
    grid = packed.reshape(height, width)
    image[:, :, 0] = (grid >> 16) & 0xFF
    image[:, :, 1] = (grid >> 8) & 0xFF
    image[:, :, 2] = grid & 0xFF
    return image


def save_png(
    pixels: npt.ArrayLike,
    width: int,
    height: int,
    filepath: str | Path,
) -> None:
    """Save a packed pixel buffer as a PNG file.

    Args:
        pixels: Row-major array of width * height packed pixels.
        width: Image width in pixels.
        height: Image height in pixels.
        filepath: Output file path (should end in .png).
    """
    image = unpack_pixels(pixels, width, height)
    PILImage.fromarray(image, mode="RGB").save(filepath)
    logger.info("Saved %dx%d image to %s", width, height, filepath)
