"""Triangle primitive with Möller–Trumbore ray-triangle intersection.

A triangle is defined by three vertices v0, v1, v2. The hit point is
expressed in barycentric form
    P = (1 - u - v) * v0 + u * v1 + v * v2
and the ray parameter t, u and v are solved together from scaled triple
products of the edge vectors e1 = v1 - v0 and e2 = v2 - v0.

Triangles are single sided: the front face is the one whose normal
cross(e1, e2) points toward the ray origin. Rays arriving from behind (and
rays parallel to the plane) miss.

Textured triangles are the two halves of a textured quad. The orientation
flag picks which half, i.e. which texture corners the three vertices map to:

    orientation 0: v0 -> (0, 0), v1 -> (1, 0), v2 -> (1, 1)
    orientation 1: v0 -> (0, 0), v1 -> (1, 1), v2 -> (0, 1)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.gridtracer.core.ray import Ray, normalize

# Type aliases using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3

# Determinants below this are treated as back-facing or parallel.
TRIANGLE_EPSILON = 1e-8


@ti.func
def hit_triangle(ray: Ray, v0: vec3, v1: vec3, v2: vec3):
    """Test for ray-triangle intersection (Möller–Trumbore).

    Args:
        ray: The ray to test.
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.

    Returns:
        A tuple (hit, t, u, v) where u and v are the barycentric weights of
        v1 and v2. t is non-negative whenever hit == 1.
    """
    edge1 = v1 - v0
    edge2 = v2 - v0

    p = tm.cross(ray.direction, edge2)
    det = tm.dot(edge1, p)

    did_hit = 0
    hit_t = 0.0
    bary_u = 0.0
    bary_v = 0.0

    if det >= TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        s = ray.origin - v0
        u = tm.dot(s, p) * inv_det

        if u >= 0.0 and u <= 1.0:
            q = tm.cross(s, edge1)
            v = tm.dot(ray.direction, q) * inv_det

            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(edge2, q) * inv_det
                if t >= 0.0:
                    did_hit = 1
                    hit_t = t
                    bary_u = u
                    bary_v = v

    return did_hit, hit_t, bary_u, bary_v


@ti.func
def textured_uv(u: ti.f32, v: ti.f32, orientation: ti.i32) -> vec2:
    """Map barycentric coordinates to texture space for one quad half.

    Args:
        u: Barycentric weight of v1.
        v: Barycentric weight of v2.
        orientation: 0 for the lower quad half, 1 for the upper half.

    Returns:
        The (s, t) texture coordinate in [0, 1]^2.
    """
    uv = vec2(0.0, 0.0)
    if orientation == 0:
        # (0,0)*w + (1,0)*u + (1,1)*v
        uv = vec2(u + v, v)
    else:
        # (0,0)*w + (1,1)*u + (0,1)*v
        uv = vec2(u, u + v)
    return uv


@ti.func
def triangle_normal(v0: vec3, v1: vec3, v2: vec3) -> vec3:
    """Unit normal of the front face, constant over the whole triangle."""
    return normalize(tm.cross(v1 - v0, v2 - v0))


def triangle_bounds(
    v0: tuple[float, float, float],
    v1: tuple[float, float, float],
    v2: tuple[float, float, float],
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Compute the axis-aligned bounding box of a triangle.

    Returns:
        Tuple of (bounding_min, bounding_max), the per-axis min/max of the
        three vertices.
    """
    vertices = np.array([v0, v1, v2], dtype=np.float64)
    bmin = vertices.min(axis=0)
    bmax = vertices.max(axis=0)
    return tuple(float(x) for x in bmin), tuple(float(x) for x in bmax)


def face_normal(
    v0: tuple[float, float, float],
    v1: tuple[float, float, float],
    v2: tuple[float, float, float],
) -> tuple[float, float, float]:
    """Host-side unit normal of a triangle's front face.

    Degenerate (zero-area) triangles return the zero vector; they can never
    be hit because their determinant is zero.
    """
    a = np.asarray(v0, dtype=np.float64)
    n = np.cross(np.asarray(v1, dtype=np.float64) - a, np.asarray(v2, dtype=np.float64) - a)
    norm = np.linalg.norm(n)
    if norm > 0.0:
        n = n / norm
    return float(n[0]), float(n[1]), float(n[2])
