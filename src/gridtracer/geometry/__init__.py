"""Geometry module for shape intersection routines.

Components:
    sphere: Ray-sphere intersection via a stable quadratic solver
    triangle: Single-sided Moller-Trumbore intersection and texture mapping
    model: Assembly of triangle meshes from vertex and face arrays

Intersection routines are Taichi functions (@ti.func); bounding boxes and
mesh assembly are host-side NumPy code.
"""

from .model import ModelMesh, build_model_mesh
from .sphere import hit_sphere, solve_quadratic, sphere_bounds, sphere_normal
from .triangle import (
    TRIANGLE_EPSILON,
    face_normal,
    hit_triangle,
    textured_uv,
    triangle_bounds,
    triangle_normal,
)

__all__ = [
    "solve_quadratic",
    "hit_sphere",
    "sphere_normal",
    "sphere_bounds",
    "hit_triangle",
    "textured_uv",
    "triangle_normal",
    "triangle_bounds",
    "face_normal",
    "TRIANGLE_EPSILON",
    "ModelMesh",
    "build_model_mesh",
]
