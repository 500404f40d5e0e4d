"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray data structure and vector helpers
    random: Deterministic per-pixel random streams
    integrator: Path tracing kernel and per-frame context
    accumulator: Running-mean accumulation of frame estimates
    progressive: Frame loop tying integrator and accumulator together

All compute-intensive operations use Taichi kernels.
"""

from .random import (
    hemisphere_direction,
    next_uint32,
    normal,
    seed_pixel,
    uniform01,
    uniform_disk_point,
    unit_sphere_direction,
)
from .ray import Ray, length_squared, make_ray, ray_at, reflect, vec2, vec3

# Note: integrator, accumulator and progressive are NOT imported here to avoid
# circular imports with the scene package. Import them from their modules:
#   from pathtracer.core.progressive import ProgressiveRenderer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec2",
    "vec3",
    "length_squared",
    "reflect",
    "next_uint32",
    "uniform01",
    "normal",
    "unit_sphere_direction",
    "hemisphere_direction",
    "uniform_disk_point",
    "seed_pixel",
]
