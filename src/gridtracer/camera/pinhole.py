"""Pinhole camera model for perspective projection ray generation.

This module implements a pinhole camera that generates primary rays for rendering.
The camera supports:
- Position plus view direction
- Vertical field of view specification
- Two cached resolutions (full and preview) switchable without recomputation
- Stratified sub-pixel sampling for anti-aliasing

The camera builds its basis from the view direction and the world up vector,
always in this order so the handedness never changes:
- forward: normalize(direction)
- right:   normalize(forward x world_up)
- up:      normalize(forward x right)

With the usual world up this "up" vector points toward the bottom of the
image, which is the direction of increasing pixel rows: row 0 is the top row
of the output buffer.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.camera.pinhole import PinholeCamera, setup_camera
    >>>
    >>> camera = PinholeCamera(
    ...     origin=(0.0, 0.0, 0.0),
    ...     direction=(0.0, 0.0, -1.0),
    ...     vfov=40.0,
    ...     width=640,
    ...     height=480,
    ... )
    >>> setup_camera(camera)
"""

import logging
import math
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.gridtracer.core.ray import Ray, make_ray, normalize, vec3

logger = logging.getLogger(__name__)

# =============================================================================
# Camera Data Structures
# =============================================================================


class CameraMode(IntEnum):
    """Which cached resolution the camera generates rays for."""

    FULL = 0
    PREVIEW = 1


@dataclass
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        origin: Camera position in world space (x, y, z).
        direction: View direction (need not be normalized).
        vfov: Vertical field of view in degrees.
        width: Full-resolution image width in pixels.
        height: Full-resolution image height in pixels.
        preview_width: Preview image width in pixels.
        preview_height: Preview image height in pixels.
        world_up: Up direction of the world (typically (0, 1, 0)).
    """

    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    direction: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vfov: float = 40.0
    width: int = 640
    height: int = 480
    preview_width: int = 160
    preview_height: int = 120
    world_up: tuple[float, float, float] = (0.0, 1.0, 0.0)

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {self.vfov}")
        for name in ("width", "height", "preview_width", "preview_height"):
            if getattr(self, name) < 1:
                raise ValueError(f"Camera {name} must be at least 1, got {getattr(self, name)}")
        if np.linalg.norm(np.asarray(self.direction, dtype=np.float64)) == 0.0:
            raise ValueError("Camera direction must not be the zero vector")


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())  # Toward increasing rows

# Per-mode image plane parameters, indexed by CameraMode
_half_extent = ti.Vector.field(2, dtype=ti.f32, shape=2)
_pixel_step = ti.Vector.field(2, dtype=ti.f32, shape=2)
_resolution = ti.Vector.field(2, dtype=ti.i32, shape=2)

_camera_mode = ti.field(dtype=ti.i32, shape=())
_camera_ready = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def camera_basis(
    direction: tuple[float, float, float],
    world_up: tuple[float, float, float] = (0.0, 1.0, 0.0),
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Build the camera's (forward, right, up) basis.

    When the view direction is parallel to world_up the cross product
    vanishes; the z axis (or x axis) is used as the up reference instead.

    Args:
        direction: The view direction.
        world_up: The world up vector.

    Returns:
        Tuple of unit vectors (forward, right, up).
    """
    forward = np.asarray(direction, dtype=np.float64)
    forward = forward / np.linalg.norm(forward)

    right = np.cross(forward, np.asarray(world_up, dtype=np.float64))
    if np.linalg.norm(right) < 1e-9:
        logger.warning("Camera direction %s is parallel to world up; using fallback", direction)
        fallback = np.array([0.0, 0.0, 1.0])
        if abs(forward[2]) > 0.9:
            fallback = np.array([1.0, 0.0, 0.0])
        right = np.cross(forward, fallback)
    right = right / np.linalg.norm(right)

    up = np.cross(forward, right)
    up = up / np.linalg.norm(up)

    return forward, right, up


def image_plane(vfov: float, width: int, height: int) -> tuple[float, float, float, float]:
    """Compute image plane half-extents and per-pixel steps at unit distance.

    Args:
        vfov: Vertical field of view in degrees.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Tuple (half_width, half_height, step_x, step_y).
    """
    half_height = math.tan(math.radians(vfov) / 2.0)
    half_width = half_height * width / height
    return half_width, half_height, 2.0 * half_width / width, 2.0 * half_height / height


def setup_camera(camera: PinholeCamera) -> None:
    """Initialize camera state from configuration.

    Computes the basis and, for both the full and the preview resolution,
    the image plane half-extents and pixel steps. The active mode is reset
    to CameraMode.FULL.

    Args:
        camera: Camera configuration.
    """
    forward, right, up = camera_basis(camera.direction, camera.world_up)

    _camera_origin[None] = list(camera.origin)
    _camera_forward[None] = forward.tolist()
    _camera_right[None] = right.tolist()
    _camera_up[None] = up.tolist()

    for mode, (w, h) in (
        (CameraMode.FULL, (camera.width, camera.height)),
        (CameraMode.PREVIEW, (camera.preview_width, camera.preview_height)),
    ):
        half_w, half_h, step_x, step_y = image_plane(camera.vfov, w, h)
        _half_extent[int(mode)] = [half_w, half_h]
        _pixel_step[int(mode)] = [step_x, step_y]
        _resolution[int(mode)] = [w, h]

    _camera_mode[None] = int(CameraMode.FULL)
    _camera_ready[None] = 1


def clear_camera() -> None:
    """Mark the camera as not set up."""
    _camera_ready[None] = 0


def is_camera_ready() -> bool:
    """Check whether setup_camera has been called."""
    return bool(_camera_ready[None])


def set_camera_mode(mode: CameraMode) -> None:
    """Select which cached resolution rays are generated for."""
    _camera_mode[None] = int(mode)


def get_camera_mode() -> CameraMode:
    """Get the active resolution mode."""
    return CameraMode(int(_camera_mode[None]))


def get_resolution(mode: CameraMode | None = None) -> tuple[int, int]:
    """Get (width, height) of a mode, the active one by default."""
    if mode is None:
        mode = get_camera_mode()
    res = _resolution[int(mode)]
    return int(res[0]), int(res[1])


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def get_camera_ray(px: ti.f32, py: ti.f32) -> Ray:
    """Generate a primary ray through a point of the pixel grid.

    Pixel (i, j) covers [i, i + 1) x [j, j + 1); its center is at
    (i + 0.5, j + 0.5). Row 0 is the top of the image.

    Args:
        px: Horizontal pixel coordinate (0 = left edge).
        py: Vertical pixel coordinate (0 = top edge).

    Returns:
        A Ray with origin at the camera position and a unit direction.
    """
    mode = _camera_mode[None]
    half = _half_extent[mode]
    step = _pixel_step[mode]

    sx = -half.x + px * step.x
    sy = -half.y + py * step.y
    direction = normalize(
        _camera_forward[None] + sx * _camera_right[None] + sy * _camera_up[None]
    )

    return make_ray(_camera_origin[None], direction, 0, 1.0)


@ti.func
def get_ray_stratified(
    pixel_i: ti.i32, pixel_j: ti.i32, sample: ti.i32, samples_per_axis: ti.i32
) -> Ray:
    """Generate the ray of one stratified sub-pixel sample.

    The pixel is split into samples_per_axis x samples_per_axis strata and
    the ray passes through the center of stratum `sample` (row-major).

    Args:
        pixel_i: Pixel column.
        pixel_j: Pixel row.
        sample: Stratum index in [0, samples_per_axis^2).
        samples_per_axis: Anti-aliasing factor AA.

    Returns:
        The sample ray.
    """
    n = ti.cast(samples_per_axis, ti.f32)
    sx = ti.cast(sample % samples_per_axis, ti.f32)
    sy = ti.cast(sample // samples_per_axis, ti.f32)
    px = ti.cast(pixel_i, ti.f32) + (sx + 0.5) / n
    py = ti.cast(pixel_j, ti.f32) + (sy + 0.5) / n
    return get_camera_ray(px, py)


@ti.kernel
def _ray_direction(px: ti.f32, py: ti.f32) -> vec3:
    return get_camera_ray(px, py).direction


def generate_camera_ray(
    px: float, py: float
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Generate a primary ray from Python.

    Args:
        px: Horizontal pixel coordinate (use i + 0.5 for a pixel center).
        py: Vertical pixel coordinate.

    Returns:
        Tuple of (origin, direction).

    Raises:
        RuntimeError: If the camera has not been set up.
    """
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    d = _ray_direction(px, py)
    o = _camera_origin[None]
    return (
        (float(o[0]), float(o[1]), float(o[2])),
        (float(d[0]), float(d[1]), float(d[2])),
    )


# =============================================================================
# Utility Functions
# =============================================================================


def camera_avatar_corners(
    camera: PinholeCamera, size: float = 0.5
) -> tuple[tuple[npt.NDArray[np.float64], ...], tuple[npt.NDArray[np.float64], ...]]:
    """Vertices of the two billboard triangles that depict a camera.

    The billboard is a square of side 2 * size centered on the camera
    origin, in the plane spanned by right and up, facing along the view
    direction. The first triangle is the lower texture half (orientation 0),
    the second the upper half (orientation 1).

    The camera's up vector points toward increasing image rows, so the
    texture's top row is placed on the -up side. Seen from in front, the
    camera's right is the viewer's left, so texture column 0 goes on the
    +right side. The texture then reads upright and unmirrored to a viewer
    looking back at the camera.

    Args:
        camera: The camera to depict.
        size: Half the side length of the square.

    Returns:
        Two (v0, v1, v2) vertex triples.
    """
    _, right, up = camera_basis(camera.direction, camera.world_up)
    center = np.asarray(camera.origin, dtype=np.float64)

    a = center + size * right + size * up
    b = center - size * right + size * up
    c = center - size * right - size * up
    d = center + size * right - size * up

    return (a, b, c), (a, c, d)


def get_camera_info() -> dict[str, tuple]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, basis vectors, mode and per-mode image
        plane parameters.
    """

    def _vec(v) -> tuple[float, ...]:
        return tuple(float(x) for x in v)

    return {
        "origin": _vec(_camera_origin[None]),
        "forward": _vec(_camera_forward[None]),
        "right": _vec(_camera_right[None]),
        "up": _vec(_camera_up[None]),
        "mode": (int(_camera_mode[None]),),
        "full_half_extent": _vec(_half_extent[int(CameraMode.FULL)]),
        "full_pixel_step": _vec(_pixel_step[int(CameraMode.FULL)]),
        "preview_half_extent": _vec(_half_extent[int(CameraMode.PREVIEW)]),
        "preview_pixel_step": _vec(_pixel_step[int(CameraMode.PREVIEW)]),
    }
