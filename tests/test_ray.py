"""Unit tests for the Ray dataclass, vector utilities and the slab test."""

import taichi as ti


class TestMakeRay:
    """Tests for ray construction."""

    def test_inverse_direction(self):
        """Test that the reciprocal direction is precomputed."""
        from src.gridtracer.core.ray import make_ray, vec3

        inv = ti.Vector.field(3, dtype=ti.f32, shape=())
        depth = ti.field(dtype=ti.i32, shape=())
        ior = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(2.0, -4.0, 0.5), 3, 1.5)
            inv[None] = ray.inv_direction
            depth[None] = ray.depth
            ior[None] = ray.ior

        test_kernel()
        v = inv[None]
        assert abs(v[0] - 0.5) < 1e-6
        assert abs(v[1] + 0.25) < 1e-6
        assert abs(v[2] - 2.0) < 1e-6
        assert depth[None] == 3
        assert abs(ior[None] - 1.5) < 1e-6

    def test_zero_component_uses_sentinel(self):
        """Test that zero direction components do not produce inf or NaN."""
        from src.gridtracer.core.ray import INV_DIR_SENTINEL, make_ray, vec3

        inv = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0, 1.0)
            inv[None] = ray.inv_direction

        test_kernel()
        v = inv[None]
        assert abs(v[0] / INV_DIR_SENTINEL - 1.0) < 1e-5
        assert abs(v[1] / INV_DIR_SENTINEL - 1.0) < 1e-5
        assert abs(v[2] + 1.0) < 1e-6

    def test_ray_at(self):
        """Test point evaluation along a ray."""
        from src.gridtracer.core.ray import make_ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 0.0, 0.0), vec3(0.0, 2.0, 0.0), 0, 1.0)
            result[None] = ray_at(ray, 1.5)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1] - 3.0) < 1e-6
        assert abs(p[2]) < 1e-6


class TestIntersectBox:
    """Tests for the ray/box slab test."""

    def _run(self, origin, direction):
        from src.gridtracer.core.ray import intersect_box, make_ray, vec3

        hit = ti.field(dtype=ti.i32, shape=())
        t_min = ti.field(dtype=ti.f32, shape=())
        t_max = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(o: vec3, d: vec3):
            ray = make_ray(o, d, 0, 1.0)
            h, t0, t1 = intersect_box(ray, vec3(-1.0, -1.0, -1.0), vec3(1.0, 1.0, 1.0))
            hit[None] = h
            t_min[None] = t0
            t_max[None] = t1

        test_kernel(vec3(*origin), vec3(*direction))
        return hit[None], t_min[None], t_max[None]

    def test_hit_from_outside(self):
        """Test a ray entering the box head-on."""
        hit, t0, t1 = self._run((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t0 - 4.0) < 1e-5
        assert abs(t1 - 6.0) < 1e-5

    def test_origin_inside(self):
        """Test a ray starting inside the box reports a negative entry."""
        hit, t0, t1 = self._run((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 1
        assert abs(t0 + 1.0) < 1e-5
        assert abs(t1 - 1.0) < 1e-5

    def test_box_behind_origin(self):
        """Test that a box entirely behind the ray is a miss."""
        hit, _, _ = self._run((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert hit == 0

    def test_parallel_outside_slab(self):
        """Test a ray parallel to a slab and outside it misses."""
        hit, _, _ = self._run((5.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0


class TestVectorUtilities:
    """Tests for vector helper functions."""

    def test_normalize_zero_vector(self):
        """Test that normalizing the zero vector yields the zero vector."""
        from src.gridtracer.core.ray import normalize, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = normalize(vec3(0.0, 0.0, 0.0))

        test_kernel()
        v = result[None]
        assert v[0] == 0.0 and v[1] == 0.0 and v[2] == 0.0

    def test_reflect(self):
        """Test mirror reflection about a normal."""
        from src.gridtracer.core.ray import reflect, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        v = result[None]
        assert abs(v[0] - 1.0) < 1e-6
        assert abs(v[1] - 1.0) < 1e-6
        assert abs(v[2]) < 1e-6
