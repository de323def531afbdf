"""Ray data structure, vector utilities and the ray/box slab test.

This module provides the fundamental Ray dataclass used by every intersection
routine. A ray carries its reciprocal direction so that slab tests (against
model bounding boxes and the acceleration grid) do not divide per query, a
recursion depth for the integrator, and the refractive index of the medium
the ray currently travels through.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.core.ray import make_ray, ray_at, vec3
    >>> @ti.kernel
    ... def probe() -> ti.f32:
    ...     ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0, 1.0)
    ...     return ray_at(ray, 5.0).z
    >>> probe()
    -5.0
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Stand-in for 1/0 on axis-parallel rays. Finite so that 0 * sentinel stays 0
# when the origin lies exactly on a slab plane.
INV_DIR_SENTINEL = 1e30

# Parametric distance reported by a miss; farther than any real hit.
T_FAR = 1e30


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to
            be unit length; callers normalize where distances matter.
        inv_direction: Component-wise reciprocal of direction. Zero
            components hold INV_DIR_SENTINEL.
        depth: Recursion depth of the ray (0 for camera rays).
        ior: Refractive index of the medium the ray travels through.
    """

    origin: vec3
    direction: vec3
    inv_direction: vec3
    depth: ti.i32
    ior: ti.f32


@ti.func
def inverse_direction(direction: vec3) -> vec3:
    """Compute the reciprocal of a direction with zero components guarded.

    Args:
        direction: The direction vector.

    Returns:
        A vector whose components are 1/d, or INV_DIR_SENTINEL where d is 0.
    """
    inv = vec3(INV_DIR_SENTINEL, INV_DIR_SENTINEL, INV_DIR_SENTINEL)
    for k in ti.static(range(3)):
        if direction[k] != 0.0:
            inv[k] = 1.0 / direction[k]
    return inv


@ti.func
def make_ray(origin: vec3, direction: vec3, depth: ti.i32, ior: ti.f32) -> Ray:
    """Create a ray and precompute its reciprocal direction.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.
        depth: Recursion depth.
        ior: Refractive index of the surrounding medium.

    Returns:
        A new Ray instance.
    """
    return Ray(
        origin=origin,
        direction=direction,
        inv_direction=inverse_direction(direction),
        depth=depth,
        ior=ior,
    )


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def intersect_box(ray: Ray, box_min: vec3, box_max: vec3):
    """Slab test between a ray and an axis-aligned box.

    For each axis the ray is clipped against the two planes bounding the box;
    the ray hits the box when the intersection of the three parametric
    intervals is non-empty and not entirely behind the origin.

    Args:
        ray: The ray to test (uses its precomputed inv_direction).
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.

    Returns:
        A tuple (hit, t_min, t_max). t_min may be negative when the origin is
        inside the box. Values are only meaningful when hit == 1.
    """
    t0 = (box_min - ray.origin) * ray.inv_direction
    t1 = (box_max - ray.origin) * ray.inv_direction
    t_near = tm.min(t0, t1)
    t_far = tm.max(t0, t1)

    t_min = ti.max(ti.max(t_near.x, t_near.y), t_near.z)
    t_max = ti.min(ti.min(t_far.x, t_far.y), t_far.z)

    hit = 0
    if t_max >= t_min and t_max >= 0.0:
        hit = 1
    return hit, t_min, t_max


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Zero-length input returns the zero vector instead of NaNs, so degenerate
    geometry turns into a miss rather than poisoning the image.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v, or the zero vector.
    """
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > 0.0:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product of two vectors."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirror-reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal
