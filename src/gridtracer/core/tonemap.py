"""Auto-exposure tone mapping and 24-bit pixel packing.

The exposure is chosen so the mean luminance of the frame lands on a target
value. Each channel is then compressed with x / (x + k), clamped to [0, 1]
and quantized to 8 bits. Pixels are packed as r << 16 | g << 8 | b.

The mean luminance is a sum over every pixel. It is computed as per-row
partial sums followed by an exactly rounded total (math.fsum), so the result
does not depend on the order rows were rendered or summed in.

Example:
    >>> import numpy as np
    >>> from src.gridtracer.core.tonemap import tone_map_array
    >>> radiance = np.zeros((2, 2, 3), dtype=np.float32)
    >>> tone_map_array(radiance)
    array([0, 0, 0, 0], dtype=uint32)
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

# Rec. 601-like luminance weights used for exposure metering
LUMINANCE_WEIGHTS = (0.3, 0.5, 0.2)


@dataclass(frozen=True)
class ToneMapConfig:
    """Tone mapping parameters.

    Attributes:
        target: Mean luminance the exposure maps the frame to.
        rolloff: The k in the x / (x + k) compression curve.
    """

    target: float = 0.5
    rolloff: float = 1.0

    def __post_init__(self) -> None:
        if self.target <= 0.0:
            raise ValueError(f"Tone map target must be positive, got {self.target}")
        if self.rolloff <= 0.0:
            raise ValueError(f"Tone map rolloff must be positive, got {self.rolloff}")


def _check_radiance(radiance: npt.ArrayLike) -> npt.NDArray[np.float64]:
    arr = np.asarray(radiance, dtype=np.float64)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"Radiance must have shape (H, W, 3), got {arr.shape}")
    return arr


def mean_luminance(radiance: npt.ArrayLike) -> float:
    """Mean luminance of a radiance image.

    Args:
        radiance: Array of shape (H, W, 3).

    Returns:
        The mean of 0.3 R + 0.5 G + 0.2 B over all pixels (0.0 when empty).
    """
    arr = _check_radiance(radiance)
    count = arr.shape[0] * arr.shape[1]
    if count == 0:
        return 0.0

    luminance = arr @ np.asarray(LUMINANCE_WEIGHTS, dtype=np.float64)
    row_sums = luminance.sum(axis=1)
    return math.fsum(row_sums.tolist()) / count


def compute_exposure(mean: float, target: float = 0.5) -> float:
    """Exposure scale that maps a mean luminance to the target.

    A black frame (mean 0) gets an exposure of 1.0.
    """
    if mean <= 0.0:
        return 1.0
    return target / mean


def pack_rgb(channels: npt.NDArray[np.floating]) -> npt.NDArray[np.uint32]:
    """Pack [0, 1] RGB values into r << 16 | g << 8 | b integers.

    Args:
        channels: Array with a trailing axis of size 3; values are clamped.

    Returns:
        uint32 array with the trailing axis removed.
    """
    quantized = (np.clip(channels, 0.0, 1.0) * 255.0).astype(np.uint32)
    return (quantized[..., 0] << 16) | (quantized[..., 1] << 8) | quantized[..., 2]


def tone_map_array(
    radiance: npt.ArrayLike, config: ToneMapConfig | None = None
) -> npt.NDArray[np.uint32]:
    """Tone map a linear radiance image into packed pixels.

    Args:
        radiance: Array of shape (H, W, 3), row 0 at the top.
        config: Tone mapping parameters (defaults to ToneMapConfig()).

    Returns:
        Row-major uint32 array of H * W packed pixels.

    Raises:
        ValueError: If radiance does not have shape (H, W, 3).
    """
    if config is None:
        config = ToneMapConfig()

    arr = _check_radiance(radiance)
    exposure = compute_exposure(mean_luminance(arr), config.target)

    exposed = arr * exposure
    # Negative radiance is not physical; keep the curve's denominator positive
    exposed = np.maximum(exposed, 0.0)
    mapped = exposed / (exposed + config.rolloff)

    return pack_rgb(mapped).reshape(-1)
