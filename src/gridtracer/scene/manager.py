"""Scene manager coordinating shapes, surfaces, lights and textures.

This module provides a high-level scene API on top of the field-backed
registries. The SceneManager keeps a host-side record of everything it adds
(shape ids, bounding boxes, surfaces) so it can build the acceleration grid
and validate references before they reach a kernel.

The SceneManager maintains:
- The shape table (spheres, triangles, textured triangles, models)
- Surfaces, lights and textures
- The camera and the anti-aliasing factor
- The uniform grid built over the shapes' bounding boxes

Adding a shape after the grid was built discards the grid; build_grid()
has to be called again before rendering.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.gridtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> white = scene.add_surface(color=(1.0, 1.0, 1.0))
    >>> scene.add_sphere(center=(0, 0, -10), radius=1.0, surface_id=white)
    >>> scene.add_light(position=(3, 3, -8), color=(1, 1, 1))
    >>> info = scene.build_grid()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.gridtracer.camera.pinhole import (
    PinholeCamera,
    camera_avatar_corners,
    clear_camera,
    setup_camera,
)
from src.gridtracer.geometry.model import build_model_mesh
from src.gridtracer.geometry.sphere import sphere_bounds
from src.gridtracer.geometry.triangle import triangle_bounds
from src.gridtracer.materials import surface, texture
from src.gridtracer.scene import grid, intersection, lights

logger = logging.getLogger(__name__)

Point = tuple[float, float, float]


@dataclass
class SurfaceInfo:
    """Information about a registered surface.

    Attributes:
        surface_id: Index of the surface in the registry.
        color: Base color.
        lambert: Diffuse weight.
        specular: Mirror reflection weight.
        refraction: Transmission weight (not shaded).
        ior: Index of refraction (not shaded).
    """

    surface_id: int
    color: Point
    lambert: float
    specular: float
    refraction: float
    ior: float


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        shape_id: The shape id of the sphere.
        center: The center of the sphere.
        radius: The radius of the sphere.
        surface_id: The surface the sphere is shaded with.
    """

    shape_id: int
    center: Point
    radius: float
    surface_id: int

    @property
    def bounding_min(self) -> Point:
        return sphere_bounds(self.center, self.radius)[0]

    @property
    def bounding_max(self) -> Point:
        return sphere_bounds(self.center, self.radius)[1]


@dataclass
class TriangleInfo:
    """Information about a plain or textured triangle in the scene.

    Attributes:
        shape_id: The shape id of the triangle.
        vertices: The three vertices, in winding order.
        surface_id: The surface the triangle is shaded with.
        texture_id: The texture sampled on the triangle, -1 if untextured.
        orientation: Which half of the texture the triangle covers.
    """

    shape_id: int
    vertices: tuple[Point, Point, Point]
    surface_id: int
    texture_id: int = -1
    orientation: int = 0

    @property
    def bounding_min(self) -> Point:
        return triangle_bounds(*self.vertices)[0]

    @property
    def bounding_max(self) -> Point:
        return triangle_bounds(*self.vertices)[1]


@dataclass
class ModelInfo:
    """Information about a triangle-mesh model in the scene.

    Attributes:
        shape_id: The shape id of the model.
        triangle_count: Number of triangles in the mesh.
        bounding_min: Minimum corner of the aggregate bounding box.
        bounding_max: Maximum corner of the aggregate bounding box.
        surface_id: The surface shared by all triangles.
    """

    shape_id: int
    triangle_count: int
    bounding_min: Point
    bounding_max: Point
    surface_id: int


ShapeInfo = SphereInfo | TriangleInfo | ModelInfo


def _as_point(value) -> Point:
    return float(value[0]), float(value[1]), float(value[2])


class SceneManager:
    """High-level API for building a renderable scene.

    Attributes:
        surfaces: SurfaceInfo for every registered surface.
        shapes: Info record for every shape, indexed by shape id.
        camera: The camera the scene is viewed through, or None.
        grid_info: The last built grid, or None.
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.surfaces: list[SurfaceInfo] = []
        self.shapes: list[ShapeInfo] = []
        self.camera: PinholeCamera | None = None
        self.grid_info: grid.GridInfo | None = None
        self._antialiasing = 1
        self._num_lights = 0
        self._num_textures = 0
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        intersection.clear_scene()
        surface.clear_surfaces()
        texture.clear_textures()
        lights.clear_lights()
        grid.clear_grid()
        clear_camera()

        self.surfaces.clear()
        self.shapes.clear()
        self.camera = None
        self.grid_info = None
        self._antialiasing = 1
        self._num_lights = 0
        self._num_textures = 0

    def clear(self) -> None:
        """Release every shape, surface, light, texture, the camera and the grid."""
        self._clear_all()
        logger.debug("Scene cleared")

    # =========================================================================
    # Rendering Parameters
    # =========================================================================

    @property
    def antialiasing(self) -> int:
        """Anti-aliasing factor AA: each pixel averages AA x AA samples."""
        return self._antialiasing

    @antialiasing.setter
    def antialiasing(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"Anti-aliasing factor must be at least 1, got {value}")
        self._antialiasing = int(value)

    def set_camera(self, camera: PinholeCamera) -> None:
        """Set the camera and compute its cached ray parameters."""
        setup_camera(camera)
        self.camera = camera

    # =========================================================================
    # Surfaces, Textures and Lights
    # =========================================================================

    def add_surface(
        self,
        color: Point,
        lambert: float = 1.0,
        specular: float = 0.0,
        refraction: float = 0.0,
        ior: float = 1.0,
    ) -> int:
        """Add a surface.

        Args:
            color: Base color as (R, G, B).
            lambert: Diffuse weight in [0, 1].
            specular: Mirror reflection weight in [0, 1].
            refraction: Transmission weight in [0, 1] (not shaded).
            ior: Index of refraction, at least 1.0 (not shaded).

        Returns:
            The surface id.

        Raises:
            RuntimeError: If the maximum number of surfaces is exceeded.
            ValueError: If any parameter is out of range.
        """
        surface_id = surface.add_surface(color, lambert, specular, refraction, ior)
        self.surfaces.append(
            SurfaceInfo(
                surface_id=surface_id,
                color=_as_point(color),
                lambert=lambert,
                specular=specular,
                refraction=refraction,
                ior=ior,
            )
        )
        return surface_id

    def add_texture(self, image: npt.ArrayLike) -> int:
        """Add a decoded texture image of shape (H, W, 3) or (H, W, 4).

        Returns:
            The texture id.
        """
        texture_id = texture.add_texture(image)
        self._num_textures += 1
        return texture_id

    def add_light(self, position: Point, color: Point) -> int:
        """Add a point light.

        Returns:
            The light index.
        """
        light_id = lights.add_light(position, color)
        self._num_lights += 1
        return light_id

    @property
    def light_count(self) -> int:
        """Number of lights in the scene."""
        return self._num_lights

    @property
    def texture_count(self) -> int:
        """Number of textures in the scene."""
        return self._num_textures

    # =========================================================================
    # Shapes
    # =========================================================================

    def _check_surface(self, surface_id: int) -> None:
        if not 0 <= surface_id < len(self.surfaces):
            raise ValueError(
                f"Unknown surface id {surface_id} (scene has {len(self.surfaces)} surfaces)"
            )

    def _check_texture(self, texture_id: int) -> None:
        if not 0 <= texture_id < self._num_textures:
            raise ValueError(
                f"Unknown texture id {texture_id} (scene has {self._num_textures} textures)"
            )

    def _shape_added(self, info: ShapeInfo) -> None:
        self.shapes.append(info)
        if self.grid_info is not None:
            logger.debug("Shape %d added after grid build; grid discarded", info.shape_id)
            self.grid_info = None
        grid.clear_grid()

    def add_sphere(self, center: Point, radius: float, surface_id: int) -> int:
        """Add a sphere.

        Args:
            center: The center of the sphere.
            radius: The radius, must be positive.
            surface_id: The surface to shade the sphere with.

        Returns:
            The shape id.

        Raises:
            ValueError: If the radius is not positive or surface_id is unknown.
            RuntimeError: If sphere or shape capacity is exceeded.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self._check_surface(surface_id)

        shape_id = intersection.add_sphere(center, radius, surface_id)
        self._shape_added(
            SphereInfo(
                shape_id=shape_id,
                center=_as_point(center),
                radius=float(radius),
                surface_id=surface_id,
            )
        )
        return shape_id

    def add_triangle(self, v0: Point, v1: Point, v2: Point, surface_id: int) -> int:
        """Add a single-sided triangle, visible from the side its winding faces.

        Returns:
            The shape id.
        """
        self._check_surface(surface_id)

        shape_id = intersection.add_triangle(v0, v1, v2, surface_id)
        self._shape_added(
            TriangleInfo(
                shape_id=shape_id,
                vertices=(_as_point(v0), _as_point(v1), _as_point(v2)),
                surface_id=surface_id,
            )
        )
        return shape_id

    def add_textured_triangle(
        self,
        v0: Point,
        v1: Point,
        v2: Point,
        surface_id: int,
        texture_id: int,
        orientation: int = 0,
    ) -> int:
        """Add a triangle covering one half of a texture.

        Args:
            v0: Vertex mapped to texture corner (0, 0).
            v1: Vertex mapped to (1, 0) for orientation 0, (1, 1) for 1.
            v2: Vertex mapped to (1, 1) for orientation 0, (0, 1) for 1.
            surface_id: The surface to shade the triangle with.
            texture_id: The texture to sample.
            orientation: 0 for the lower texture half, 1 for the upper.

        Returns:
            The shape id.
        """
        self._check_surface(surface_id)
        self._check_texture(texture_id)

        shape_id = intersection.add_textured_triangle(
            v0, v1, v2, surface_id, texture_id, orientation
        )
        self._shape_added(
            TriangleInfo(
                shape_id=shape_id,
                vertices=(_as_point(v0), _as_point(v1), _as_point(v2)),
                surface_id=surface_id,
                texture_id=texture_id,
                orientation=orientation,
            )
        )
        return shape_id

    def add_model(
        self,
        vertices: npt.ArrayLike,
        faces: npt.ArrayLike,
        surface_id: int,
        scale: float = 1.0,
        location: Point = (0.0, 0.0, 0.0),
    ) -> int:
        """Add a triangle-mesh model from vertex and face arrays.

        Args:
            vertices: Array-like of shape (V, 3).
            faces: Zero-based integer array-like of shape (F, 3).
            surface_id: The surface shared by every triangle.
            scale: Uniform scale applied to every vertex.
            location: Translation applied after scaling.

        Returns:
            The shape id.
        """
        self._check_surface(surface_id)
        mesh = build_model_mesh(vertices, faces, scale=scale, location=location)

        shape_id = intersection.add_model(
            mesh.triangles, mesh.bounding_min, mesh.bounding_max, surface_id
        )
        self._shape_added(
            ModelInfo(
                shape_id=shape_id,
                triangle_count=mesh.triangle_count,
                bounding_min=mesh.bounding_min,
                bounding_max=mesh.bounding_max,
                surface_id=surface_id,
            )
        )
        logger.debug("Added model %d with %d triangles", shape_id, mesh.triangle_count)
        return shape_id

    def add_camera_avatar(
        self,
        camera: PinholeCamera,
        texture_id: int,
        surface_id: int,
        size: float = 0.5,
    ) -> tuple[int, int]:
        """Depict a camera in the scene as a textured square.

        The square faces along the camera's view direction and is built from
        two textured triangles covering the two halves of the texture.

        Returns:
            The shape ids of the two triangles.
        """
        if size <= 0.0:
            raise ValueError(f"Avatar size must be positive, got {size}")
        lower, upper = camera_avatar_corners(camera, size)
        first = self.add_textured_triangle(*lower, surface_id, texture_id, orientation=0)
        second = self.add_textured_triangle(*upper, surface_id, texture_id, orientation=1)
        return first, second

    # =========================================================================
    # Acceleration Structure
    # =========================================================================

    def shape_bounds(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Bounding boxes of every shape, in shape id order.

        Returns:
            Tuple of (bounds_min, bounds_max), each of shape (N, 3).
        """
        bmin = np.array([s.bounding_min for s in self.shapes], dtype=np.float64).reshape(-1, 3)
        bmax = np.array([s.bounding_max for s in self.shapes], dtype=np.float64).reshape(-1, 3)
        return bmin, bmax

    def build_grid(self, config: grid.GridConfig | None = None) -> grid.GridInfo:
        """Build the uniform grid over the current shapes and upload it.

        Args:
            config: Grid resolution settings (defaults to GridConfig()).

        Returns:
            The built grid.

        Raises:
            RuntimeError: If the grid needs more cell entries than available.
        """
        bmin, bmax = self.shape_bounds()
        info = grid.build_grid(bmin, bmax, config)
        grid.upload_grid(info)
        self.grid_info = info

        nx, ny, nz = info.resolution
        logger.info(
            "Grid built: %dx%dx%d cells, %d shapes, %d entries",
            nx,
            ny,
            nz,
            len(self.shapes),
            info.entry_count,
        )
        return info

    @property
    def grid_ready(self) -> bool:
        """Whether the grid is built and matches the current shapes."""
        return self.grid_info is not None and grid.is_grid_ready()

    def __repr__(self) -> str:
        return (
            f"SceneManager(shapes={len(self.shapes)}, surfaces={len(self.surfaces)}, "
            f"lights={self._num_lights}, textures={self._num_textures}, "
            f"antialiasing={self._antialiasing})"
        )
