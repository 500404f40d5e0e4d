"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside
- Ray missing sphere
- Ray starting inside sphere (passes through)
- Sphere behind the ray
- Distance for rays aimed at the centre
- Non-normalised ray directions
"""

import pytest
import taichi as ti


def _make_kernel():
    from pathtracer.core.ray import make_ray
    from pathtracer.geometry.sphere import intersect_sphere

    hit = ti.field(dtype=ti.i32, shape=())
    distance = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        origin: ti.math.vec3, direction: ti.math.vec3, center: ti.math.vec3, radius: ti.f32
    ):
        rec = intersect_sphere(make_ray(origin, direction), center, radius)
        hit[None] = rec.hit
        distance[None] = rec.distance
        point[None] = rec.point
        normal[None] = rec.normal
        material_id[None] = rec.material_id

    return test_kernel, hit, distance, point, normal, material_id


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit(self):
        """Test ray hitting sphere head-on from outside."""
        test_kernel, hit, distance, point, normal, _ = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(0, 0, 5), vec3(0, 0, -1), vec3(0, 0, 0), 1.0)

        assert hit[None] == 1
        assert abs(distance[None] - 4.0) < 1e-5
        p = point[None]
        assert abs(p[0]) < 1e-5
        assert abs(p[1]) < 1e-5
        assert abs(p[2] - 1.0) < 1e-5
        n = normal[None]
        assert abs(n[2] - 1.0) < 1e-5

    def test_miss(self):
        """Test ray passing beside the sphere."""
        test_kernel, hit, distance, *_ = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(5, 0, 0), vec3(0, 0, -1), vec3(0, 0, 0), 1.0)

        assert hit[None] == 0
        assert distance[None] == float("inf")

    def test_sphere_behind_ray(self):
        """Test ray aimed away from the sphere."""
        test_kernel, hit, *_ = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(0, 0, 5), vec3(0, 0, 1), vec3(0, 0, 0), 1.0)

        assert hit[None] == 0

    def test_origin_inside_is_miss(self):
        """Only the nearer root is considered, so rays from inside pass through."""
        test_kernel, hit, *_ = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(0, 0, 0), vec3(0, 0, 1), vec3(0, 0, 0), 1.0)

        assert hit[None] == 0

    def test_material_unresolved(self):
        """The primitive test leaves material resolution to the scene query."""
        test_kernel, hit, _, _, _, material_id = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(0, 0, 5), vec3(0, 0, -1), vec3(0, 0, 0), 1.0)

        assert hit[None] == 1
        assert material_id[None] == -1

    @pytest.mark.parametrize(
        "origin,center,radius",
        [
            ((0.0, 0.0, 10.0), (0.0, 0.0, 0.0), 2.0),
            ((3.0, -1.0, 2.0), (-1.0, 2.0, -4.0), 0.5),
            ((0.0, 100.0, 0.0), (0.0, 0.0, 0.0), 10.0),
        ],
    )
    def test_distance_toward_center(self, origin, center, radius):
        """A ray aimed at the centre hits at |origin - center| - radius."""
        import math

        test_kernel, hit, distance, *_ = _make_kernel()
        vec3 = ti.math.vec3

        d = [c - o for o, c in zip(origin, center)]
        length = math.sqrt(sum(x * x for x in d))
        direction = [x / length for x in d]

        test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius)

        assert hit[None] == 1
        assert abs(distance[None] - (length - radius)) < 1e-3 * max(1.0, length)

    def test_unnormalised_direction(self):
        """Distance is measured in units of the direction vector."""
        test_kernel, hit, distance, point, *_ = _make_kernel()
        vec3 = ti.math.vec3

        test_kernel(vec3(0, 0, 5), vec3(0, 0, -2), vec3(0, 0, 0), 1.0)

        assert hit[None] == 1
        assert abs(distance[None] - 2.0) < 1e-5
        assert abs(point[None][2] - 1.0) < 1e-5
