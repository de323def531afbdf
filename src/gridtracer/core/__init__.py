"""Core rendering module.

Components:
    ray: Ray data structure, slab test and vector utilities
    integrator: Whitted-style trace and the per-pixel render kernel
    tonemap: Auto-exposure tone mapping and pixel packing
    renderer: Renderer class driving a full frame

All per-ray work runs in Taichi kernels; the outermost loop over pixels is
parallelized by Taichi across the configured number of CPU threads.
"""

from .ray import (
    INV_DIR_SENTINEL,
    T_FAR,
    Ray,
    cross,
    dot,
    intersect_box,
    inverse_direction,
    length,
    make_ray,
    normalize,
    ray_at,
    reflect,
    vec3,
)

# Note: integrator and renderer are NOT imported here; they declare fields
# and must be imported after ti.init(). Use:
#   from src.gridtracer.core.renderer import Renderer

__all__ = [
    "Ray",
    "make_ray",
    "ray_at",
    "inverse_direction",
    "intersect_box",
    "vec3",
    "length",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "INV_DIR_SENTINEL",
    "T_FAR",
]
