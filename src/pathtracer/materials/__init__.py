"""Materials module.

A single material type covers diffuse, glossy, mirror and emissive surfaces:
every bounce is diffuse or specular by one uniform draw, and smoothness
shapes specular bounces only.
"""

from .material import Material, MaterialFlag, apply_bounce, emitted_light, scatter_direction

__all__ = [
    "Material",
    "MaterialFlag",
    "emitted_light",
    "scatter_direction",
    "apply_bounce",
]
