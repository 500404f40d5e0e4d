"""Sphere primitive and the hit record shared by all primitives.

The ray-sphere test solves the quadratic

    |O + tD - C|^2 = r^2

with coefficients a = D.D, b = 2 (O-C).D, c = (O-C).(O-C) - r^2 and keeps the
smaller root only. A negative discriminant is a miss, and so is a smaller
root behind the ray origin, which means a ray starting inside a sphere passes
through it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import intersect_sphere
    >>> # Inside a kernel:
    >>> # rec = intersect_sphere(ray, vec3(0, 0, 0), 1.0)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray hit the primitive, 0 otherwise.
        distance: Distance along the ray to the hit (>= 0). Only valid if hit == 1.
        point: World-space hit point. Only valid if hit == 1.
        normal: Unit world-space surface normal. Only valid if hit == 1.
        material_id: Material bound to the hit primitive, -1 when unresolved.
    """

    hit: ti.i32
    distance: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        distance=tm.inf,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def intersect_sphere(ray: Ray, center: vec3, radius: ti.f32) -> HitRecord:
    """Test a ray against a sphere.

    Args:
        ray: The ray to test.
        center: The centre of the sphere.
        radius: The radius of the sphere.

    Returns:
        A HitRecord for the nearer intersection in front of the ray origin,
        or a miss record.
    """
    offset_origin = ray.origin - center

    a = tm.dot(ray.direction, ray.direction)
    b = 2.0 * tm.dot(offset_origin, ray.direction)
    c = tm.dot(offset_origin, offset_origin) - radius * radius
    discriminant = b * b - 4.0 * a * c

    rec = make_miss_record()

    if discriminant >= 0.0:
        distance = (-b - ti.sqrt(discriminant)) / (2.0 * a)

        # Smaller root behind the origin
        if distance >= 0.0:
            rec.hit = 1
            rec.distance = distance
            rec.point = ray.origin + ray.direction * distance
            rec.normal = tm.normalize(rec.point - center)

    return rec
