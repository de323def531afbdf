"""Unit tests for the SceneManager.

Tests cover:
- Surface, texture and light registration
- Shape addition with reference validation
- Model and camera avatar helpers
- Grid building and invalidation when shapes are added
- Scene clearing
"""

import numpy as np
import pytest
import taichi as ti


class TestRegistration:
    """Tests for surfaces, textures and lights."""

    def test_add_surface(self, scene):
        """Test surfaces get sequential ids and are recorded."""
        a = scene.add_surface((1.0, 0.0, 0.0))
        b = scene.add_surface((0.0, 1.0, 0.0), lambert=0.2, specular=0.8)
        assert (a, b) == (0, 1)
        assert scene.surfaces[1].specular == 0.8
        assert scene.surfaces[0].color == (1.0, 0.0, 0.0)

    def test_surface_validation(self, scene):
        """Test invalid surfaces are rejected without being recorded."""
        with pytest.raises(ValueError):
            scene.add_surface((1.0, 1.0, 1.0), lambert=2.0)
        assert scene.surfaces == []

    def test_texture_and_light_counts(self, scene):
        scene.add_texture(np.zeros((2, 2, 3), dtype=np.uint8))
        scene.add_light((0.0, 1.0, 0.0), (1.0, 1.0, 1.0))
        scene.add_light((0.0, 2.0, 0.0), (1.0, 1.0, 1.0))
        assert scene.texture_count == 1
        assert scene.light_count == 2


class TestShapes:
    """Tests for adding shapes."""

    def test_shape_ids(self, scene):
        """Test all shape kinds share one id space in insertion order."""
        from src.gridtracer.scene.manager import ModelInfo, SphereInfo, TriangleInfo

        white = scene.add_surface((1.0, 1.0, 1.0))
        tex = scene.add_texture(np.zeros((2, 2, 3), dtype=np.uint8))

        ids = [
            scene.add_sphere((0.0, 0.0, -5.0), 1.0, white),
            scene.add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), white),
            scene.add_textured_triangle((0, 0, 0), (1, 0, 0), (1, 1, 0), white, tex),
            scene.add_model([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [(0, 1, 2)], white),
        ]
        assert ids == [0, 1, 2, 3]
        assert isinstance(scene.shapes[0], SphereInfo)
        assert isinstance(scene.shapes[1], TriangleInfo)
        assert scene.shapes[2].texture_id == tex
        assert isinstance(scene.shapes[3], ModelInfo)
        assert scene.shapes[3].triangle_count == 1

    def test_unknown_surface(self, scene):
        """Test shapes referencing a missing surface are rejected."""
        with pytest.raises(ValueError):
            scene.add_sphere((0.0, 0.0, 0.0), 1.0, 0)
        with pytest.raises(ValueError):
            scene.add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), 5)

    def test_unknown_texture(self, scene):
        white = scene.add_surface((1.0, 1.0, 1.0))
        with pytest.raises(ValueError):
            scene.add_textured_triangle((0, 0, 0), (1, 0, 0), (1, 1, 0), white, 0)

    @pytest.mark.parametrize("radius", [0.0, -1.0])
    def test_invalid_radius(self, scene, radius):
        white = scene.add_surface((1.0, 1.0, 1.0))
        with pytest.raises(ValueError):
            scene.add_sphere((0.0, 0.0, 0.0), radius, white)

    def test_model_placement(self, scene):
        """Test model bounds reflect scale and location."""
        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_model(
            [(0, 0, 0), (1, 0, 0), (0, 1, 0)],
            [(0, 1, 2)],
            white,
            scale=2.0,
            location=(1.0, 1.0, 1.0),
        )
        info = scene.shapes[0]
        assert info.bounding_min == (1.0, 1.0, 1.0)
        assert info.bounding_max == (3.0, 3.0, 1.0)

    def test_shape_bounds(self, scene):
        """Test bounds are collected in shape id order."""
        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.add_triangle((2, 2, 2), (3, 2, 2), (2, 4, 2), white)

        bmin, bmax = scene.shape_bounds()
        np.testing.assert_allclose(bmin, [(-1, -1, -1), (2, 2, 2)])
        np.testing.assert_allclose(bmax, [(1, 1, 1), (3, 4, 2)])

    def test_camera_avatar(self, scene):
        """Test a camera avatar adds two textured triangles visible from the front."""
        from src.gridtracer.camera.pinhole import PinholeCamera
        from src.gridtracer.core.ray import make_ray, vec3
        from src.gridtracer.scene.intersection import intersect_objects

        white = scene.add_surface((1.0, 1.0, 1.0))
        tex = scene.add_texture(np.full((2, 2, 3), 255, dtype=np.uint8))
        avatar = PinholeCamera(origin=(0.0, 0.0, -5.0), direction=(0.0, 0.0, 1.0))

        first, second = scene.add_camera_avatar(avatar, tex, white, size=1.0)
        assert (first, second) == (0, 1)
        assert scene.shapes[0].orientation == 0
        assert scene.shapes[1].orientation == 1

        hit = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            toward = make_ray(vec3(0.2, 0.1, 0.0), vec3(0.0, 0.0, -1.0), 0, 1.0)
            away = make_ray(vec3(0.2, 0.1, -10.0), vec3(0.0, 0.0, 1.0), 0, 1.0)
            hit[0] = intersect_objects(toward).hit
            hit[1] = intersect_objects(away).hit

        test_kernel()
        # The avatar faces where the camera looks (+z): visible from +z only
        assert hit[0] == 1
        assert hit[1] == 0

    def test_camera_avatar_texture_upright(self, scene):
        """Test the avatar shows its texture upright and unmirrored from the front."""
        from src.gridtracer.camera.pinhole import PinholeCamera
        from src.gridtracer.core.ray import make_ray, vec3
        from src.gridtracer.materials.texture import sample_texture
        from src.gridtracer.scene.intersection import intersect_objects, shape_texture

        white = scene.add_surface((1.0, 1.0, 1.0))
        image = np.array(
            [
                [(255, 0, 0), (0, 255, 0)],  # top: red, green
                [(0, 0, 255), (255, 255, 255)],  # bottom: blue, white
            ],
            dtype=np.uint8,
        )
        tex = scene.add_texture(image)
        avatar = PinholeCamera(origin=(0.0, 0.0, -5.0), direction=(0.0, 0.0, 1.0))
        scene.add_camera_avatar(avatar, tex, white, size=1.0)

        colors = ti.Vector.field(3, dtype=ti.f32, shape=4)

        @ti.kernel
        def test_kernel():
            # A viewer at +z looking down -z has +x on its right
            points = ti.static([(-0.5, 0.5), (0.5, 0.5), (-0.5, -0.5), (0.5, -0.5)])
            for k in ti.static(range(4)):
                ray = make_ray(
                    vec3(points[k][0], points[k][1], 0.0), vec3(0.0, 0.0, -1.0), 0, 1.0
                )
                rec = intersect_objects(ray)
                colors[k] = sample_texture(shape_texture(rec), rec.uv)

        test_kernel()
        expected = [(1, 0, 0), (0, 1, 0), (0, 0, 1), (1, 1, 1)]
        for k, color in enumerate(expected):
            np.testing.assert_allclose(colors[k].to_numpy(), color, atol=1e-3)


class TestGrid:
    """Tests for grid building through the manager."""

    def test_build_grid(self, scene):
        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.add_sphere((5.0, 0.0, 0.0), 1.0, white)

        info = scene.build_grid()
        assert scene.grid_ready
        assert scene.grid_info is info
        assert info.entry_count >= 2

    def test_adding_shape_discards_grid(self, scene):
        """Test the grid must be rebuilt after a shape is added."""
        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.build_grid()

        scene.add_sphere((5.0, 0.0, 0.0), 1.0, white)
        assert not scene.grid_ready
        assert scene.grid_info is None

    def test_lights_keep_grid(self, scene):
        """Test adding lights and surfaces leaves the grid intact."""
        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.build_grid()

        scene.add_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))
        scene.add_surface((0.5, 0.5, 0.5))
        assert scene.grid_ready


class TestClear:
    """Tests for clearing the scene."""

    def test_clear(self, scene):
        """Test clearing removes everything, including camera and grid."""
        from src.gridtracer.camera.pinhole import PinholeCamera, is_camera_ready
        from src.gridtracer.materials.surface import get_surface_count
        from src.gridtracer.scene.intersection import get_shape_count

        white = scene.add_surface((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 1.0, white)
        scene.add_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))
        scene.set_camera(PinholeCamera())
        scene.antialiasing = 3
        scene.build_grid()

        scene.clear()

        assert scene.shapes == []
        assert scene.surfaces == []
        assert scene.light_count == 0
        assert scene.camera is None
        assert scene.antialiasing == 1
        assert not scene.grid_ready
        assert not is_camera_ready()
        assert get_shape_count() == 0
        assert get_surface_count() == 0

    def test_repr(self, scene):
        scene.add_surface((1.0, 1.0, 1.0))
        assert "surfaces=1" in repr(scene)
