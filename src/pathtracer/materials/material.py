"""Surface material and the stochastic diffuse/specular bounce model.

Every material can be both diffuse and specular. On each bounce one uniform
draw decides whether the bounce is specular (probability
``specular_probability``). The outgoing direction is

    normalize(mix(diffuse_dir, specular_dir, smoothness * is_specular))

so smoothness only shapes specular bounces: 0 gives a diffuse-looking
reflection, 1 a perfect mirror. Diffuse bounces ignore smoothness entirely.

Radiance bookkeeping per bounce, in order:
    1. incoming_light += emission_colour * emission_strength * throughput
    2. throughput *= specular_colour if specular else colour

Example:
    >>> # Inside a Taichi kernel:
    >>> # direction, light, throughput, specular, state = apply_bounce(
    >>> #     material, ray.direction, rec.normal, light, throughput, state
    >>> # )
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from pathtracer.core.random import uniform01, unit_sphere_direction
from pathtracer.core.ray import reflect, vec3


class MaterialFlag(IntEnum):
    """Reserved material variant markers.

    The flag is stored with every material and carried through the scene
    buffers. The integrator does not branch on it.
    """

    NONE = 0
    INVISIBLE = 1


@ti.dataclass
class Material:
    """Surface appearance parameters.

    Attributes:
        colour: Diffuse reflectance (RGB).
        emission_colour: Emitted colour (RGB).
        emission_strength: Scale applied to emission_colour (>= 0).
        specular_colour: Tint applied on specular bounces (RGB).
        smoothness: 0 = rough, 1 = mirror; only used on specular bounces.
        specular_probability: Chance in [0, 1] that a bounce is specular.
        flag: A MaterialFlag value.
    """

    colour: vec3
    emission_colour: vec3
    emission_strength: ti.f32
    specular_colour: vec3
    smoothness: ti.f32
    specular_probability: ti.f32
    flag: ti.i32


@ti.func
def emitted_light(material: Material) -> vec3:
    """Radiance emitted by a surface with this material."""
    return material.emission_colour * material.emission_strength


@ti.func
def scatter_direction(material: Material, incident: vec3, normal: vec3, state: ti.u32):
    """Choose the outgoing direction for one bounce.

    Args:
        material: The material at the hit point.
        incident: The incoming ray direction.
        normal: The unit surface normal.
        state: The random stream state.

    Returns:
        A tuple (direction, is_specular, new_state) where is_specular is 1
        for a specular bounce and 0 for a diffuse one.
    """
    sphere_dir, state = unit_sphere_direction(state)
    diffuse_dir = tm.normalize(normal + sphere_dir)
    specular_dir = reflect(incident, normal)

    u, state = uniform01(state)
    is_specular = 0
    if u <= material.specular_probability:
        is_specular = 1

    blend = material.smoothness * ti.cast(is_specular, ti.f32)
    direction = tm.normalize(tm.mix(diffuse_dir, specular_dir, blend))
    return direction, is_specular, state


@ti.func
def apply_bounce(
    material: Material,
    incident: vec3,
    normal: vec3,
    incoming_light: vec3,
    throughput: vec3,
    state: ti.u32,
):
    """Apply one surface interaction to a path.

    Args:
        material: The material at the hit point.
        incident: The incoming ray direction.
        normal: The unit surface normal.
        incoming_light: Radiance accumulated along the path so far.
        throughput: Current path throughput.
        state: The random stream state.

    Returns:
        A tuple (direction, incoming_light, throughput, is_specular, new_state).
    """
    direction, is_specular, state = scatter_direction(material, incident, normal, state)

    incoming_light += emitted_light(material) * throughput
    attenuation = material.colour
    if is_specular == 1:
        attenuation = material.specular_colour
    throughput *= attenuation

    return direction, incoming_light, throughput, is_specular, state
