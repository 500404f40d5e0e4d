"""Axis-aligned bounding box test used to reject whole mesh groups.

The slab method intersects the ray with the three pairs of axis-aligned
planes. An axis the ray runs parallel to has no slab crossing; the ray
stays inside that slab exactly when the origin lies within the closed
[box_min, box_max] range on that axis. The box only answers "possibly hit";
the caller still tests the triangles.
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, vec3


@ti.func
def intersect_box(ray: Ray, box_min: vec3, box_max: vec3) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    Args:
        ray: The ray to test.
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.

    Returns:
        1 unless the per-axis [near, far] intervals have an empty
        intersection, 0 otherwise.
    """
    t_near = -tm.inf
    t_far = tm.inf
    inside = 1

    for axis in ti.static(range(3)):
        origin = ray.origin[axis]
        direction = ray.direction[axis]
        if direction == 0.0:
            if origin < box_min[axis] or origin > box_max[axis]:
                inside = 0
        else:
            inv_dir = 1.0 / direction
            t0 = (box_min[axis] - origin) * inv_dir
            t1 = (box_max[axis] - origin) * inv_dir
            t_near = tm.max(t_near, tm.min(t0, t1))
            t_far = tm.min(t_far, tm.max(t0, t1))

    result = 1
    if inside == 0 or t_near > t_far:
        result = 0
    return result
