"""Sphere primitive with numerically stable ray-sphere intersection.

The ray-sphere intersection is found by solving:
    |ray_origin + t * ray_direction - center|^2 = radius^2

which expands to the quadratic a*t^2 + b*t + c = 0 with
    a = dot(direction, direction)
    b = 2 * dot(direction, origin - center)
    c = dot(origin - center, origin - center) - radius^2

The roots are computed with the sign-stable form
    q = -0.5 * (b + sign(b) * sqrt(b^2 - 4ac)),  t0 = q / a,  t1 = c / q
which avoids the catastrophic cancellation of the textbook formula when
b^2 is much larger than 4ac.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.geometry.sphere import hit_sphere
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.gridtracer.core.ray import Ray, normalize

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.func
def solve_quadratic(a: ti.f32, b: ti.f32, c: ti.f32):
    """Solve a*t^2 + b*t + c = 0 with the sign-stable quadratic formula.

    Args:
        a: Quadratic coefficient (non-zero for a non-degenerate ray).
        b: Linear coefficient.
        c: Constant term.

    Returns:
        Tuple of (found, t0, t1) with t0 <= t1. found is 0 when the
        discriminant is negative.
    """
    discriminant = b * b - 4.0 * a * c

    found = 0
    t0 = 0.0
    t1 = 0.0

    if discriminant == 0.0:
        found = 1
        t0 = -0.5 * b / a
        t1 = t0
    elif discriminant > 0.0:
        found = 1
        sqrt_d = ti.sqrt(discriminant)
        q = 0.0
        if b > 0.0:
            q = -0.5 * (b + sqrt_d)
        else:
            q = -0.5 * (b - sqrt_d)
        t0 = q / a
        # q is zero only when b and c are both zero; the roots coincide then.
        t1 = t0
        if q != 0.0:
            t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return found, t0, t1


@ti.func
def hit_sphere(ray: Ray, center: vec3, radius: ti.f32):
    """Test for ray-sphere intersection.

    Args:
        ray: The ray to test. Its direction need not be normalized.
        center: The center of the sphere.
        radius: The radius of the sphere.

    Returns:
        A tuple (hit, t). t is the smallest non-negative root; when the ray
        starts inside the sphere that is the exit point. hit is 0 when the
        ray misses or both roots lie behind the origin.
    """
    oc = ray.origin - center
    a = tm.dot(ray.direction, ray.direction)
    b = 2.0 * tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    did_hit = 0
    hit_t = 0.0

    if a > 0.0:
        found, t0, t1 = solve_quadratic(a, b, c)
        if found == 1 and t1 >= 0.0:
            did_hit = 1
            hit_t = t0
            if t0 < 0.0:
                hit_t = t1

    return did_hit, hit_t


@ti.func
def sphere_normal(center: vec3, point: vec3) -> vec3:
    """Outward unit normal of a sphere at a surface point."""
    return normalize(point - center)


def sphere_bounds(
    center: tuple[float, float, float],
    radius: float,
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Compute the axis-aligned bounding box of a sphere.

    Args:
        center: The center of the sphere.
        radius: The radius of the sphere.

    Returns:
        Tuple of (bounding_min, bounding_max).
    """
    r = abs(radius)
    bmin = (center[0] - r, center[1] - r, center[2] - r)
    bmax = (center[0] + r, center[1] + r, center[2] + r)
    return bmin, bmax
