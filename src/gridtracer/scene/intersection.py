"""Shape storage and shape-level intersection queries.

Shapes live in a unified shape table. Each entry records its variant
(ShapeType), the index into the variant's own storage, and its surface id.
The variant storage uses a Structure-of-Arrays layout:

    spheres:    center, radius
    triangles:  v0, v1, v2, normal, texture id (-1 if untextured), orientation
    models:     first triangle, triangle count, aggregate bounding box

Standalone triangles, textured triangles and the triangles owned by models
all share the triangle storage. Model triangles are not entries of the shape
table; they are only reachable through their model.

Every intersect routine returns an IntersectionRecord by value. The record
carries everything shading needs afterwards (the sub-triangle of a model,
the texture coordinate of a textured triangle), so no per-thread scratch
state is written during intersection and all shape data stays read-only
while rendering.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.scene.intersection import add_sphere, intersect_objects
    >>> add_sphere((0.0, 0.0, -10.0), 1.0, surface_id=0)
    >>> # Use intersect_objects within a Taichi kernel
"""

from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.gridtracer.core.ray import T_FAR, Ray, intersect_box
from src.gridtracer.geometry.sphere import hit_sphere, sphere_normal
from src.gridtracer.geometry.triangle import face_normal, hit_triangle, textured_uv

# Type aliases using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3


class ShapeType(IntEnum):
    """Enumeration of shape variants in the shape table."""

    SPHERE = 0
    TRIANGLE = 1
    TEXTURED_TRIANGLE = 2
    MODEL = 3


@ti.dataclass
class IntersectionRecord:
    """Nearest-hit record of a ray query.

    Attributes:
        hit: 1 if the ray hit a shape, 0 otherwise.
        t: Parametric distance of the hit. T_FAR when hit == 0, so a miss
            always compares as farther than any hit.
        point: The hit point. Only valid if hit == 1.
        shape_id: Index of the hit shape in the shape table, -1 on a miss.
        triangle_id: Index into triangle storage of the triangle that was
            hit (the nearest sub-triangle for models), -1 for spheres.
        uv: Texture coordinate of the hit for textured triangles.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    shape_id: ti.i32
    triangle_id: ti.i32
    uv: vec2


# Maximum number of primitives supported in the scene
MAX_SHAPES = 16384
MAX_SPHERES = 4096
MAX_TRIANGLES = 1 << 18
MAX_MODELS = 256

# Shape table
shape_types = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_indices = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_surfaces = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
num_shapes = ti.field(dtype=ti.i32, shape=())

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Triangle storage (standalone, textured and model-owned)
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_textures = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
triangle_orientations = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Model storage
model_first_triangle = ti.field(dtype=ti.i32, shape=MAX_MODELS)
model_triangle_count = ti.field(dtype=ti.i32, shape=MAX_MODELS)
model_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MODELS)
model_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MODELS)
num_models = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all shapes from the scene.

    Resets the counts to zero. The field data is not cleared but will be
    overwritten when new shapes are added.
    """
    num_shapes[None] = 0
    num_spheres[None] = 0
    num_triangles[None] = 0
    num_models[None] = 0


def _check_shape_capacity() -> None:
    if num_shapes[None] >= MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")


def _register_shape(shape_type: ShapeType, type_index: int, surface_id: int) -> int:
    _check_shape_capacity()
    idx = num_shapes[None]
    shape_types[idx] = int(shape_type)
    shape_indices[idx] = type_index
    shape_surfaces[idx] = surface_id
    num_shapes[None] = idx + 1
    return idx


def _store_triangle(v0, v1, v2, texture_id: int = -1, orientation: int = 0) -> int:
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    triangle_v0[idx] = vec3(v0[0], v0[1], v0[2])
    triangle_v1[idx] = vec3(v1[0], v1[1], v1[2])
    triangle_v2[idx] = vec3(v2[0], v2[1], v2[2])
    triangle_normals[idx] = vec3(*face_normal(v0, v1, v2))
    triangle_textures[idx] = texture_id
    triangle_orientations[idx] = orientation
    num_triangles[None] = idx + 1
    return idx


@ti.kernel
def _upload_triangles(
    first: ti.i32,
    count: ti.i32,
    vertices: ti.types.ndarray(),
    normals: ti.types.ndarray(),
):
    for k in range(count):
        idx = first + k
        triangle_v0[idx] = vec3(vertices[k, 0, 0], vertices[k, 0, 1], vertices[k, 0, 2])
        triangle_v1[idx] = vec3(vertices[k, 1, 0], vertices[k, 1, 1], vertices[k, 1, 2])
        triangle_v2[idx] = vec3(vertices[k, 2, 0], vertices[k, 2, 1], vertices[k, 2, 2])
        triangle_normals[idx] = vec3(normals[k, 0], normals[k, 1], normals[k, 2])
        triangle_textures[idx] = -1
        triangle_orientations[idx] = 0


def add_sphere(center: tuple[float, float, float], radius: float, surface_id: int) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere.
        surface_id: The surface to shade the sphere with.

    Returns:
        The shape id of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres or shapes is exceeded.
    """
    _check_shape_capacity()
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    num_spheres[None] = idx + 1
    return _register_shape(ShapeType.SPHERE, idx, surface_id)


def add_triangle(v0, v1, v2, surface_id: int) -> int:
    """Add a single-sided triangle to the scene.

    The front face is the side cross(v1 - v0, v2 - v0) points to.

    Returns:
        The shape id of the added triangle.
    """
    _check_shape_capacity()
    tri = _store_triangle(v0, v1, v2)
    return _register_shape(ShapeType.TRIANGLE, tri, surface_id)


def add_textured_triangle(
    v0, v1, v2, surface_id: int, texture_id: int, orientation: int = 0
) -> int:
    """Add a textured triangle covering one half of a texture.

    Args:
        v0: First vertex, mapped to texture corner (0, 0).
        v1: Second vertex.
        v2: Third vertex.
        surface_id: The surface to shade the triangle with.
        texture_id: The texture sampled at the hit point.
        orientation: 0 maps (v1, v2) to corners (1, 0), (1, 1); 1 maps them
            to (1, 1), (0, 1).

    Returns:
        The shape id of the added triangle.
    """
    if orientation not in (0, 1):
        raise ValueError(f"orientation must be 0 or 1, got {orientation}")
    _check_shape_capacity()
    tri = _store_triangle(v0, v1, v2, texture_id=texture_id, orientation=orientation)
    return _register_shape(ShapeType.TEXTURED_TRIANGLE, tri, surface_id)


def add_model(
    triangles: npt.NDArray[np.float64],
    bounding_min: tuple[float, float, float],
    bounding_max: tuple[float, float, float],
    surface_id: int,
) -> int:
    """Add a triangle-mesh model to the scene.

    Args:
        triangles: Array of shape (N, 3, 3) of triangle vertices.
        bounding_min: Minimum corner of the aggregate bounding box.
        bounding_max: Maximum corner of the aggregate bounding box.
        surface_id: The surface shared by all triangles of the model.

    Returns:
        The shape id of the added model.

    Raises:
        RuntimeError: If model or triangle capacity is exceeded.
    """
    _check_shape_capacity()
    idx = num_models[None]
    if idx >= MAX_MODELS:
        raise RuntimeError(f"Maximum number of models ({MAX_MODELS}) exceeded")
    count = int(triangles.shape[0])
    if num_triangles[None] + count > MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")

    first = num_triangles[None]
    tris = np.ascontiguousarray(triangles, dtype=np.float32)
    normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    normals = np.divide(normals, lengths, out=np.zeros_like(normals), where=lengths > 0.0)
    _upload_triangles(first, count, tris, np.ascontiguousarray(normals, dtype=np.float32))
    num_triangles[None] = first + count

    model_first_triangle[idx] = first
    model_triangle_count[idx] = count
    model_min[idx] = vec3(bounding_min[0], bounding_min[1], bounding_min[2])
    model_max[idx] = vec3(bounding_max[0], bounding_max[1], bounding_max[2])
    num_models[None] = idx + 1
    return _register_shape(ShapeType.MODEL, idx, surface_id)


def get_shape_count() -> int:
    """Get the number of shapes in the shape table."""
    return int(num_shapes[None])


def get_triangle_count() -> int:
    """Get the number of stored triangles, including model triangles."""
    return int(num_triangles[None])


# =============================================================================
# Intersection Queries (Taichi functions)
# =============================================================================


@ti.func
def make_miss_record() -> IntersectionRecord:
    """Create a record indicating no intersection."""
    return IntersectionRecord(
        hit=0,
        t=T_FAR,
        point=vec3(0.0, 0.0, 0.0),
        shape_id=-1,
        triangle_id=-1,
        uv=vec2(0.0, 0.0),
    )


@ti.func
def _intersect_model(ray: Ray, model: ti.i32):
    """Nearest hit among the triangles of a model.

    Returns:
        A tuple (hit, t, triangle_id).
    """
    did_hit = 0
    best_t = T_FAR
    best_tri = -1

    box_hit, _, _ = intersect_box(ray, model_min[model], model_max[model])
    if box_hit == 1:
        first = model_first_triangle[model]
        for k in range(model_triangle_count[model]):
            tri = first + k
            hit, t, _, _ = hit_triangle(ray, triangle_v0[tri], triangle_v1[tri], triangle_v2[tri])
            if hit == 1 and t < best_t:
                did_hit = 1
                best_t = t
                best_tri = tri

    return did_hit, best_t, best_tri


@ti.func
def intersect_shape(ray: Ray, shape_id: ti.i32) -> IntersectionRecord:
    """Intersect a ray with one shape of the shape table.

    Args:
        ray: The ray to test.
        shape_id: Index into the shape table.

    Returns:
        The nearest hit with t >= 0 on that shape, or a miss record.
    """
    result = make_miss_record()
    stype = shape_types[shape_id]
    index = shape_indices[shape_id]

    if stype == int(ShapeType.SPHERE):
        hit, t = hit_sphere(ray, sphere_centers[index], sphere_radii[index])
        if hit == 1:
            result.hit = 1
            result.t = t
    elif stype == int(ShapeType.MODEL):
        hit, t, tri = _intersect_model(ray, index)
        if hit == 1:
            result.hit = 1
            result.t = t
            result.triangle_id = tri
    else:
        hit, t, u, v = hit_triangle(
            ray, triangle_v0[index], triangle_v1[index], triangle_v2[index]
        )
        if hit == 1:
            result.hit = 1
            result.t = t
            result.triangle_id = index
            if stype == int(ShapeType.TEXTURED_TRIANGLE):
                result.uv = textured_uv(u, v, triangle_orientations[index])

    if result.hit == 1:
        result.shape_id = shape_id
        result.point = ray.origin + result.t * ray.direction

    return result


@ti.func
def intersect_objects(ray: Ray) -> IntersectionRecord:
    """Brute-force nearest hit over every shape in the scene.

    This is the reference the grid traversal must agree with, and the
    fallback for scenes without a grid.

    Args:
        ray: The ray to test.

    Returns:
        The nearest hit with t >= 0, or a miss record.
    """
    closest = make_miss_record()
    for shape_id in range(num_shapes[None]):
        rec = intersect_shape(ray, shape_id)
        if rec.hit == 1 and rec.t < closest.t:
            closest = rec
    return closest


@ti.func
def shape_normal(rec: IntersectionRecord) -> vec3:
    """Unit surface normal at a hit.

    Spheres use the radial direction through the hit point. Triangles, and
    the sub-triangle of a model, use their flat face normal.

    Args:
        rec: A record with hit == 1.

    Returns:
        The unit normal.
    """
    n = vec3(0.0, 0.0, 0.0)
    if shape_types[rec.shape_id] == int(ShapeType.SPHERE):
        index = shape_indices[rec.shape_id]
        n = sphere_normal(sphere_centers[index], rec.point)
    else:
        n = triangle_normals[rec.triangle_id]
    return n


@ti.func
def shape_texture(rec: IntersectionRecord) -> ti.i32:
    """Texture id of the hit shape, -1 when the shape is untextured."""
    tex = -1
    if shape_types[rec.shape_id] == int(ShapeType.TEXTURED_TRIANGLE):
        tex = triangle_textures[rec.triangle_id]
    return tex
