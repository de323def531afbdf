"""Unit tests for the pinhole camera.

Tests cover:
- Camera configuration validation
- Basis construction, including the parallel-to-up fallback
- Primary ray directions for the full and preview resolutions
- Stratified sub-pixel sample placement
- The billboard triangles used to depict a camera
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestPinholeCameraConfig:
    """Tests for PinholeCamera validation."""

    def test_defaults(self):
        """Test the default camera looks down -z at 640x480."""
        from src.gridtracer.camera.pinhole import PinholeCamera

        camera = PinholeCamera()
        assert camera.direction == (0.0, 0.0, -1.0)
        assert (camera.width, camera.height) == (640, 480)
        assert (camera.preview_width, camera.preview_height) == (160, 120)

    @pytest.mark.parametrize("vfov", [0.0, 180.0, -10.0])
    def test_invalid_vfov(self, vfov):
        """Test fields of view outside (0, 180) raise ValueError."""
        from src.gridtracer.camera.pinhole import PinholeCamera

        with pytest.raises(ValueError):
            PinholeCamera(vfov=vfov)

    def test_invalid_dimensions(self):
        """Test zero-sized images raise ValueError."""
        from src.gridtracer.camera.pinhole import PinholeCamera

        with pytest.raises(ValueError):
            PinholeCamera(width=0)
        with pytest.raises(ValueError):
            PinholeCamera(preview_height=0)

    def test_zero_direction(self):
        """Test a zero view direction raises ValueError."""
        from src.gridtracer.camera.pinhole import PinholeCamera

        with pytest.raises(ValueError):
            PinholeCamera(direction=(0.0, 0.0, 0.0))


class TestCameraBasis:
    """Tests for camera_basis."""

    def test_default_basis(self):
        """Test looking down -z gives right = +x and up = -y (toward lower rows)."""
        from src.gridtracer.camera.pinhole import camera_basis

        forward, right, up = camera_basis((0.0, 0.0, -1.0))
        np.testing.assert_allclose(forward, (0.0, 0.0, -1.0), atol=1e-12)
        np.testing.assert_allclose(right, (1.0, 0.0, 0.0), atol=1e-12)
        np.testing.assert_allclose(up, (0.0, -1.0, 0.0), atol=1e-12)

    def test_orthonormal(self):
        """Test the basis is orthonormal for an arbitrary direction."""
        from src.gridtracer.camera.pinhole import camera_basis

        forward, right, up = camera_basis((1.0, -2.0, 3.0))
        for v in (forward, right, up):
            assert abs(np.linalg.norm(v) - 1.0) < 1e-12
        assert abs(np.dot(forward, right)) < 1e-12
        assert abs(np.dot(forward, up)) < 1e-12
        assert abs(np.dot(right, up)) < 1e-12

    def test_parallel_to_world_up(self, caplog):
        """Test looking straight up falls back to a valid basis and warns."""
        from src.gridtracer.camera.pinhole import camera_basis

        with caplog.at_level("WARNING"):
            forward, right, up = camera_basis((0.0, 5.0, 0.0))

        assert "parallel" in caplog.text
        assert np.all(np.isfinite(right))
        assert abs(np.linalg.norm(right) - 1.0) < 1e-12
        assert abs(np.dot(forward, right)) < 1e-12
        assert abs(np.dot(forward, up)) < 1e-12


class TestImagePlane:
    """Tests for image plane extents."""

    def test_extents(self):
        """Test half extents follow from vfov and aspect ratio."""
        from src.gridtracer.camera.pinhole import image_plane

        half_w, half_h, step_x, step_y = image_plane(90.0, 200, 100)
        assert abs(half_h - 1.0) < 1e-12
        assert abs(half_w - 2.0) < 1e-12
        assert abs(step_x - 0.02) < 1e-12
        assert abs(step_y - 0.02) < 1e-12


class TestRayGeneration:
    """Tests for primary rays."""

    def test_requires_setup(self):
        """Test generating a ray before setup raises RuntimeError."""
        from src.gridtracer.camera.pinhole import generate_camera_ray

        with pytest.raises(RuntimeError):
            generate_camera_ray(0.5, 0.5)

    def test_center_ray(self):
        """Test the image center maps to the view direction."""
        from src.gridtracer.camera.pinhole import PinholeCamera, generate_camera_ray, setup_camera

        setup_camera(PinholeCamera(origin=(1.0, 2.0, 3.0)))
        origin, direction = generate_camera_ray(320.0, 240.0)

        assert origin == pytest.approx((1.0, 2.0, 3.0))
        assert direction == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)

    def test_top_left_corner(self):
        """Test row 0 is the top of the image and column 0 the left."""
        from src.gridtracer.camera.pinhole import PinholeCamera, generate_camera_ray, setup_camera

        setup_camera(PinholeCamera(vfov=90.0, width=100, height=100))
        _, direction = generate_camera_ray(0.0, 0.0)

        # Corner of a 90 degree square image: (-1, 1, -1) normalized
        expected = 1.0 / math.sqrt(3.0)
        assert direction[0] == pytest.approx(-expected, abs=1e-5)
        assert direction[1] == pytest.approx(expected, abs=1e-5)
        assert direction[2] == pytest.approx(-expected, abs=1e-5)

    def test_directions_are_unit(self):
        """Test generated directions are normalized."""
        from src.gridtracer.camera.pinhole import PinholeCamera, generate_camera_ray, setup_camera

        setup_camera(PinholeCamera(direction=(1.0, 1.0, -2.0)))
        for px, py in [(0.0, 0.0), (639.5, 10.0), (100.25, 479.0)]:
            _, d = generate_camera_ray(px, py)
            assert abs(math.sqrt(sum(c * c for c in d)) - 1.0) < 1e-5

    def test_preview_mode(self):
        """Test switching modes changes resolution and keeps the center ray."""
        from src.gridtracer.camera.pinhole import (
            CameraMode,
            PinholeCamera,
            generate_camera_ray,
            get_camera_mode,
            get_resolution,
            set_camera_mode,
            setup_camera,
        )

        setup_camera(PinholeCamera())
        assert get_camera_mode() == CameraMode.FULL
        assert get_resolution() == (640, 480)

        set_camera_mode(CameraMode.PREVIEW)
        assert get_resolution() == (160, 120)
        assert get_resolution(CameraMode.FULL) == (640, 480)

        _, direction = generate_camera_ray(80.0, 60.0)
        assert direction == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)

        # Same field of view: the full-resolution corner matches the preview corner
        _, preview_corner = generate_camera_ray(0.0, 0.0)
        set_camera_mode(CameraMode.FULL)
        _, full_corner = generate_camera_ray(0.0, 0.0)
        assert preview_corner == pytest.approx(full_corner, abs=1e-6)

    def test_setup_resets_mode(self):
        """Test setup_camera returns to full resolution."""
        from src.gridtracer.camera.pinhole import (
            CameraMode,
            PinholeCamera,
            get_camera_mode,
            set_camera_mode,
            setup_camera,
        )

        setup_camera(PinholeCamera())
        set_camera_mode(CameraMode.PREVIEW)
        setup_camera(PinholeCamera())
        assert get_camera_mode() == CameraMode.FULL

    def test_stratified_samples(self):
        """Test AA x AA samples land at stratum centers inside the pixel."""
        from src.gridtracer.camera.pinhole import (
            PinholeCamera,
            generate_camera_ray,
            get_ray_stratified,
            setup_camera,
        )

        setup_camera(PinholeCamera(width=64, height=48))
        result = ti.Vector.field(3, dtype=ti.f32, shape=4)

        @ti.kernel
        def test_kernel():
            for s in range(4):
                result[s] = get_ray_stratified(10, 20, s, 2).direction

        test_kernel()

        # Sample s sits at ((s % 2) + 0.5) / 2, ((s // 2) + 0.5) / 2 within the pixel
        for s in range(4):
            px = 10.0 + ((s % 2) + 0.5) / 2.0
            py = 20.0 + ((s // 2) + 0.5) / 2.0
            _, expected = generate_camera_ray(px, py)
            got = tuple(float(c) for c in result[s])
            assert got == pytest.approx(expected, abs=1e-6)


class TestCameraAvatar:
    """Tests for camera_avatar_corners."""

    def test_faces_view_direction(self):
        """Test both billboard triangles face along the camera direction."""
        from src.gridtracer.camera.pinhole import PinholeCamera, camera_avatar_corners
        from src.gridtracer.geometry.triangle import face_normal

        camera = PinholeCamera(origin=(1.0, 2.0, 3.0), direction=(1.0, 0.0, -1.0))
        lower, upper = camera_avatar_corners(camera, size=0.25)

        forward = np.array([1.0, 0.0, -1.0]) / math.sqrt(2.0)
        for tri in (lower, upper):
            np.testing.assert_allclose(face_normal(*tri), forward, atol=1e-9)

    def test_centered_on_origin(self):
        """Test the square is centered on the camera position."""
        from src.gridtracer.camera.pinhole import PinholeCamera, camera_avatar_corners

        camera = PinholeCamera(origin=(1.0, 2.0, 3.0))
        (a, _, c), _ = camera_avatar_corners(camera, size=0.5)
        np.testing.assert_allclose((a + c) / 2.0, (1.0, 2.0, 3.0), atol=1e-12)
        assert np.linalg.norm(c - a) == pytest.approx(math.sqrt(2.0))
