"""Triangle primitive with Moller-Trumbore intersection and smooth normals.

A triangle carries one normal per corner. On a hit the shading normal is the
barycentric blend of the corner normals, renormalised, which gives smooth
shading across meshes that share vertex normals.

Faces are single-sided: the signed determinant

    det = -dot(ray.direction, cross(B - A, C - A))

must be at least TRIANGLE_EPSILON, so rays arriving from behind or running
parallel to the face are treated as misses.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, vec3
from pathtracer.geometry.sphere import HitRecord, make_miss_record

# Smallest accepted determinant (back-face and near-parallel culling)
TRIANGLE_EPSILON = 1e-6


@ti.dataclass
class Triangle:
    """A triangle with per-corner normals.

    Attributes:
        pos_a: First corner position.
        pos_b: Second corner position.
        pos_c: Third corner position.
        normal_a: Vertex normal at pos_a.
        normal_b: Vertex normal at pos_b.
        normal_c: Vertex normal at pos_c.
    """

    pos_a: vec3
    pos_b: vec3
    pos_c: vec3
    normal_a: vec3
    normal_b: vec3
    normal_c: vec3


@ti.func
def triangle_barycentrics(ray: Ray, tri: Triangle):
    """Solve the Moller-Trumbore system for a ray and a triangle.

    Args:
        ray: The ray to test.
        tri: The triangle to test against.

    Returns:
        A tuple (det, distance, u, v, w) where u, v, w are the barycentric
        weights of pos_b, pos_c and pos_a respectively. The values are only
        meaningful when det >= TRIANGLE_EPSILON.
    """
    edge_ab = tri.pos_b - tri.pos_a
    edge_ac = tri.pos_c - tri.pos_a
    face_normal = tm.cross(edge_ab, edge_ac)
    ao = ray.origin - tri.pos_a
    dao = tm.cross(ao, ray.direction)

    det = -tm.dot(ray.direction, face_normal)
    inv_det = 1.0 / det

    distance = tm.dot(ao, face_normal) * inv_det
    u = tm.dot(edge_ac, dao) * inv_det
    v = -tm.dot(edge_ab, dao) * inv_det
    w = 1.0 - u - v
    return det, distance, u, v, w


@ti.func
def intersect_triangle(ray: Ray, tri: Triangle) -> HitRecord:
    """Test a ray against a single-sided triangle.

    Args:
        ray: The ray to test.
        tri: The triangle to test against.

    Returns:
        A HitRecord with the interpolated vertex normal, or a miss record.
    """
    det, distance, u, v, w = triangle_barycentrics(ray, tri)

    rec = make_miss_record()

    if det >= TRIANGLE_EPSILON and distance >= 0.0 and u >= 0.0 and v >= 0.0 and w >= 0.0:
        rec.hit = 1
        rec.distance = distance
        rec.point = ray.origin + ray.direction * distance
        rec.normal = tm.normalize(tri.normal_a * w + tri.normal_b * u + tri.normal_c * v)

    return rec
