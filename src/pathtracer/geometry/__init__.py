"""Geometry module for primitive intersection.

Components:
    sphere: Sphere intersection and the HitRecord structure
    triangle: Moller-Trumbore triangle intersection with back-face culling
    aabb: Slab test used to reject whole mesh groups

All intersection routines are Taichi functions (@ti.func) that return a
HitRecord (or a hit flag for boxes) instead of raising on degenerate input.
"""

from .aabb import intersect_box
from .sphere import HitRecord, intersect_sphere, make_miss_record
from .triangle import TRIANGLE_EPSILON, Triangle, intersect_triangle, triangle_barycentrics

__all__ = [
    "HitRecord",
    "make_miss_record",
    "intersect_sphere",
    "Triangle",
    "TRIANGLE_EPSILON",
    "triangle_barycentrics",
    "intersect_triangle",
    "intersect_box",
]
