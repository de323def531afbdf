"""Whitted-style integrator: direct diffuse lighting plus mirror reflection.

For a hit point p with normal n on a surface with base color c, lambert
weight kd and specular weight ks, the radiance along a ray is

    L(ray) = kd * D(p) + ks * L(reflected ray)

where D(p) sums, over every light visible from p, the light color times
max(0, dot(normalize(light - p), n)), multiplied by c and, for textured
triangles, by the nearest texel. Rays that miss, and rays deeper than
MAX_DEPTH, return black.

Taichi functions cannot recurse, so trace() unrolls the recursion into a
bounded loop carrying the product of specular weights seen so far. The sum
it accumulates is exactly the recursive expansion above.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.core.integrator import trace_ray
    >>> trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
    (0.0, 0.0, 0.0)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.gridtracer.camera.pinhole import get_ray_stratified
from src.gridtracer.core.ray import Ray, make_ray, normalize, reflect
from src.gridtracer.materials.surface import get_surface
from src.gridtracer.materials.texture import sample_texture
from src.gridtracer.scene.grid import intersect_scene
from src.gridtracer.scene.intersection import shape_normal, shape_surfaces, shape_texture
from src.gridtracer.scene.lights import light_colors, light_positions, light_visible, num_lights

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Deepest reflection level that still contributes (primary rays are depth 0)
MAX_DEPTH = 4

# Offset of reflected ray origins along the normal
RAY_EPSILON = 1e-4


# =============================================================================
# Render Target (Radiance Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Linear radiance per pixel, indexed [row, column] with row 0 at the top
_radiance_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))


def check_image_size(width: int, height: int) -> None:
    """Validate image dimensions against the preallocated buffer.

    Raises:
        ValueError: If a dimension is below 1 or exceeds the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )


# =============================================================================
# Shading
# =============================================================================


@ti.func
def _diffuse(point: vec3, normal: vec3) -> vec3:
    """Sum of the light arriving at a point from all visible lights."""
    total = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        if light_visible(i, point, normal) == 1:
            to_light = normalize(light_positions[i] - point)
            total += light_colors[i] * ti.max(0.0, tm.dot(to_light, normal))
    return total


@ti.func
def trace(ray: Ray) -> vec3:
    """Radiance arriving along a ray.

    Args:
        ray: The ray to trace. Its depth field counts reflections so far.

    Returns:
        Linear RGB radiance (not clamped).
    """
    color = vec3(0.0, 0.0, 0.0)
    weight = 1.0
    current = ray
    active = 1

    # Taichi doesn't support recursion; each iteration is one reflection level
    for _ in range(MAX_DEPTH + 1):
        if active == 1 and current.depth <= MAX_DEPTH:
            rec = intersect_scene(current)

            if rec.hit == 0:
                active = 0
            else:
                base, lambert, specular = get_surface(shape_surfaces[rec.shape_id])
                normal = shape_normal(rec)

                if lambert > 0.0:
                    albedo = base
                    tex = shape_texture(rec)
                    if tex >= 0:
                        albedo = base * sample_texture(tex, rec.uv)
                    color += weight * lambert * albedo * _diffuse(rec.point, normal)

                if specular > 0.0:
                    weight *= specular
                    current = make_ray(
                        rec.point + normal * RAY_EPSILON,
                        reflect(current.direction, normal),
                        current.depth + 1,
                        current.ior,
                    )
                else:
                    active = 0

    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(width: ti.i32, height: ti.i32, samples_per_axis: ti.i32):
    """Trace every pixel with AA x AA stratified samples.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_axis: Anti-aliasing factor AA.
    """
    n = samples_per_axis * samples_per_axis
    for j, i in ti.ndrange(height, width):
        color = vec3(0.0, 0.0, 0.0)
        for s in range(n):
            color += trace(get_ray_stratified(i, j, s, samples_per_axis))
        _radiance_buffer[j, i] = color / ti.cast(n, ti.f32)


@ti.kernel
def _copy_radiance(width: ti.i32, height: ti.i32, out: ti.types.ndarray()):
    for j, i in ti.ndrange(height, width):
        for c in ti.static(range(3)):
            out[j, i, c] = _radiance_buffer[j, i][c]


@ti.kernel
def _trace_single(origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    return trace(make_ray(origin, normalize(direction), depth, 1.0))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_radiance(width: int, height: int, samples_per_axis: int = 1) -> npt.NDArray[np.float32]:
    """Render linear radiance for the active camera mode.

    The camera must already be set up and its active resolution must match
    width x height.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_axis: Anti-aliasing factor AA (AA x AA samples per pixel).

    Returns:
        Float32 array of shape (height, width, 3), row 0 at the top.

    Raises:
        ValueError: If the dimensions or AA factor are invalid.
    """
    check_image_size(width, height)
    if samples_per_axis < 1:
        raise ValueError(f"Anti-aliasing factor must be at least 1, got {samples_per_axis}")

    _render_pass(width, height, samples_per_axis)

    out = np.zeros((height, width, 3), dtype=np.float32)
    _copy_radiance(width, height, out)
    return out


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = 0,
) -> tuple[float, float, float]:
    """Trace a single ray from Python.

    Intended for tests and debugging; production rendering goes through
    render_radiance().

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized internally).
        depth: Starting reflection depth.

    Returns:
        Tuple of (R, G, B) radiance.
    """
    color = _trace_single(vec3(*origin), vec3(*direction), depth)
    return (float(color[0]), float(color[1]), float(color[2]))
