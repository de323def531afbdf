"""Tests that every module defining Taichi kernels or functions imports cleanly.

Taichi reads the annotations of @ti.kernel and @ti.func parameters at
decoration time, so these modules must keep them as real objects rather
than postponed strings.
"""

import __future__
import importlib

import numpy as np
import pytest

KERNEL_MODULES = [
    "src.gridtracer.camera.pinhole",
    "src.gridtracer.core.integrator",
    "src.gridtracer.core.ray",
    "src.gridtracer.geometry",
    "src.gridtracer.geometry.sphere",
    "src.gridtracer.geometry.triangle",
    "src.gridtracer.materials.surface",
    "src.gridtracer.materials.texture",
    "src.gridtracer.scene.grid",
    "src.gridtracer.scene.intersection",
    "src.gridtracer.scene.lights",
]


class TestKernelModules:
    """Tests for modules holding Taichi code."""

    @pytest.mark.parametrize("name", KERNEL_MODULES)
    def test_annotations_not_postponed(self, name):
        """Test the module imports and keeps evaluated annotations."""
        module = importlib.import_module(name)
        assert getattr(module, "annotations", None) is not __future__.annotations

    def test_grid_kernels_run(self):
        """Test building and uploading a grid compiles its kernels."""
        from src.gridtracer.scene.grid import build_grid, get_grid_info, upload_grid

        info = build_grid([(0.0, 0.0, 0.0)], [(1.0, 1.0, 1.0)])
        upload_grid(info)
        assert get_grid_info()["resolution"] == info.resolution

    def test_camera_kernels_run(self):
        """Test generating a primary ray compiles the camera kernels."""
        from src.gridtracer.camera.pinhole import (
            PinholeCamera,
            generate_camera_ray,
            setup_camera,
        )

        setup_camera(PinholeCamera(width=3, height=3))
        origin, direction = generate_camera_ray(1.5, 1.5)
        assert origin == (0.0, 0.0, 0.0)
        np.testing.assert_allclose(direction, (0.0, 0.0, -1.0), atol=1e-6)
