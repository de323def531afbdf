"""Frame renderer: traces every pixel and packs the tone-mapped result.

This module provides the Renderer class, the single entry point that turns a
populated SceneManager into an image. It checks the scene once, then each
call to render() traces all pixels of the active camera mode in parallel,
tone maps the frame and returns it as packed 24-bit pixels.

Example:
    >>> from src.gridtracer.config import RenderConfig, init_taichi
    >>> init_taichi(RenderConfig(num_threads=4))
    >>> from src.gridtracer.camera.pinhole import PinholeCamera
    >>> from src.gridtracer.core.renderer import Renderer
    >>> from src.gridtracer.scene.manager import SceneManager
    >>>
    >>> scene = SceneManager()
    >>> white = scene.add_surface(color=(1.0, 1.0, 1.0))
    >>> scene.add_sphere((0.0, 0.0, -10.0), 1.0, white)
    >>> scene.add_light((3.0, 3.0, -8.0), (1.0, 1.0, 1.0))
    >>> scene.set_camera(PinholeCamera(width=64, height=48))
    >>> scene.build_grid()
    >>> pixels = Renderer(scene).render()  # uint32, length 64 * 48
"""

from __future__ import annotations

import logging
import time

import numpy as np
import numpy.typing as npt

from src.gridtracer.camera.pinhole import (
    CameraMode,
    get_camera_mode,
    get_resolution,
    is_camera_ready,
    set_camera_mode,
)
from src.gridtracer.config import RenderConfig
from src.gridtracer.core.integrator import check_image_size, render_radiance
from src.gridtracer.core.tonemap import tone_map_array
from src.gridtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)


class Renderer:
    """Renders a scene through its camera into packed RGB pixels.

    The scene is read-only while rendering. Adding shapes after the renderer
    was created discards the grid, and the next render() raises until
    build_grid() is called again.

    Attributes:
        scene: The scene being rendered.
        config: Session settings, including tone mapping.
    """

    def __init__(self, scene: SceneManager, config: RenderConfig | None = None) -> None:
        """Create a renderer for a prepared scene.

        Args:
            scene: A scene with a camera set and the grid built.
            config: Session settings (defaults to RenderConfig()).

        Raises:
            RuntimeError: If the camera is not set or the grid is not built.
            ValueError: If a camera resolution exceeds the render buffer.
        """
        self.scene = scene
        self.config = config if config is not None else RenderConfig()
        self._check_scene()

        if self.scene.light_count == 0:
            logger.warning("Scene has no lights; diffuse surfaces will render black")

    def _check_scene(self) -> None:
        if self.scene.camera is None or not is_camera_ready():
            raise RuntimeError("Camera not set up. Call SceneManager.set_camera() first.")
        if not self.scene.grid_ready:
            raise RuntimeError("Grid not built. Call SceneManager.build_grid() first.")
        for mode in CameraMode:
            check_image_size(*get_resolution(mode))

    @property
    def mode(self) -> CameraMode:
        """The active camera mode."""
        return get_camera_mode()

    @property
    def width(self) -> int:
        """Image width of the active mode."""
        return get_resolution()[0]

    @property
    def height(self) -> int:
        """Image height of the active mode."""
        return get_resolution()[1]

    def set_mode(self, mode: CameraMode) -> None:
        """Switch between the full and the preview resolution."""
        set_camera_mode(mode)
        logger.debug("Camera mode set to %s (%dx%d)", mode.name, self.width, self.height)

    def render_radiance(self) -> npt.NDArray[np.float32]:
        """Trace every pixel of the active mode.

        Returns:
            Linear radiance of shape (height, width, 3), row 0 at the top.

        Raises:
            RuntimeError: If the scene changed and the grid was not rebuilt.
        """
        self._check_scene()
        return render_radiance(self.width, self.height, self.scene.antialiasing)

    def render(self) -> npt.NDArray[np.uint32]:
        """Render one frame.

        Returns:
            Row-major uint32 array of width * height pixels, each packed as
            r << 16 | g << 8 | b.
        """
        width, height = self.width, self.height
        aa = self.scene.antialiasing
        logger.info("Rendering %dx%d frame (%d samples per pixel)", width, height, aa * aa)

        start = time.perf_counter()
        radiance = self.render_radiance()
        pixels = tone_map_array(radiance, self.config.tone_map)
        elapsed = time.perf_counter() - start

        logger.info("Frame rendered in %.3f s", elapsed)
        return pixels

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"mode={self.mode.name}, antialiasing={self.scene.antialiasing})"
        )
