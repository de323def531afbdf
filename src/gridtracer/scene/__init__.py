"""Scene module for shape storage, acceleration and lighting.

Components:
    intersection: Shape table, intersection records and linear-scan queries
    grid: Uniform grid construction and traversal
    lights: Point lights and shadow-ray visibility
    manager: SceneManager coordinating everything above

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for geometric data
    - Cell lists stored as flat start/count/item arrays
"""

from .grid import GridConfig, GridInfo, build_grid, intersect_grid, intersect_scene, upload_grid
from .intersection import (
    IntersectionRecord,
    ShapeType,
    clear_scene,
    get_shape_count,
    intersect_objects,
    intersect_shape,
)
from .lights import add_light, clear_lights, get_light_count, light_visible
from .manager import ModelInfo, SceneManager, SphereInfo, SurfaceInfo, TriangleInfo

__all__ = [
    # Intersection module
    "IntersectionRecord",
    "ShapeType",
    "clear_scene",
    "get_shape_count",
    "intersect_shape",
    "intersect_objects",
    # Grid module
    "GridConfig",
    "GridInfo",
    "build_grid",
    "upload_grid",
    "intersect_grid",
    "intersect_scene",
    # Lights module
    "add_light",
    "clear_lights",
    "get_light_count",
    "light_visible",
    # Manager module
    "SceneManager",
    "SurfaceInfo",
    "SphereInfo",
    "TriangleInfo",
    "ModelInfo",
]
