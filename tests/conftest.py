"""Pytest configuration for gridtracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so the field-declaring modules load after ti.init()
    from src.gridtracer.camera.pinhole import clear_camera
    from src.gridtracer.materials.surface import clear_surfaces
    from src.gridtracer.materials.texture import clear_textures
    from src.gridtracer.scene.grid import clear_grid
    from src.gridtracer.scene.intersection import clear_scene
    from src.gridtracer.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_surfaces()
        clear_textures()
        clear_lights()
        clear_grid()
        clear_camera()

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def scene():
    """Create a fresh SceneManager for a test."""
    from src.gridtracer.scene.manager import SceneManager

    manager = SceneManager()
    yield manager
    manager.clear()
