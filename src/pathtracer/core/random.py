"""Deterministic pseudo-random stream for per-pixel Monte Carlo sampling.

Every path owns a single 32-bit unsigned state. Each draw advances the state
with a permuted congruential step and returns the new state alongside the
value, so a stream is fully reproducible from its seed and the sequence of
draws taken from it.

State update (wrapping u32 arithmetic):
    state = state * 747796405 + 2891336453

Output permutation:
    result = ((state >> ((state >> 28) + 4)) ^ state) * 277803737
    result = (result >> 22) ^ result

Seeds are derived from the pixel index and the frame index so that no two
pixels or frames share a stream:
    seed = pixel_index + frame_index * 719393

Example:
    >>> # Inside a Taichi kernel:
    >>> # state = seed_pixel(pixel_index, frame_index)
    >>> # u, state = uniform01(state)
    >>> # d, state = unit_sphere_direction(state)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import vec2, vec3

# PCG constants
PCG_MULTIPLIER = 747796405
PCG_INCREMENT = 2891336453
PCG_OUTPUT_MULTIPLIER = 277803737

# Odd multiplier decorrelating successive frames of the same pixel
FRAME_SEED_MULTIPLIER = 719393

# Largest u32 value, used to map raw output onto [0, 1]
UINT32_MAX_FLOAT = 4294967295.0

# Smallest uniform value fed to the Box-Muller logarithm
NORMAL_UNIFORM_EPSILON = 1e-10


@ti.func
def next_uint32(state: ti.u32):
    """Advance the stream and return a raw 32-bit value.

    Args:
        state: The current stream state.

    Returns:
        A tuple (value, new_state), both u32.
    """
    new_state = state * ti.u32(PCG_MULTIPLIER) + ti.u32(PCG_INCREMENT)
    shift = ti.bit_shr(new_state, ti.u32(28)) + ti.u32(4)
    result = (ti.bit_shr(new_state, shift) ^ new_state) * ti.u32(PCG_OUTPUT_MULTIPLIER)
    result = ti.bit_shr(result, ti.u32(22)) ^ result
    return result, new_state


@ti.func
def uniform01(state: ti.u32):
    """Draw a uniform value in [0, 1].

    Returns:
        A tuple (value, new_state).
    """
    raw, new_state = next_uint32(state)
    return ti.cast(raw, ti.f32) / UINT32_MAX_FLOAT, new_state


@ti.func
def normal(state: ti.u32):
    """Draw a standard normal value using the Box-Muller transform.

    The first uniform is clamped away from zero so the logarithm stays finite.

    Returns:
        A tuple (value, new_state).
    """
    u1, state = uniform01(state)
    u2, state = uniform01(state)
    rho = ti.sqrt(-2.0 * ti.log(tm.max(u1, NORMAL_UNIFORM_EPSILON)))
    return rho * ti.cos(2.0 * tm.pi * u2), state


@ti.func
def unit_sphere_direction(state: ti.u32):
    """Draw a direction uniformly distributed over the unit sphere.

    Three independent normal draws form an isotropic vector, which is then
    normalised. No rejection loop is needed.

    Returns:
        A tuple (direction, new_state).
    """
    x, state = normal(state)
    y, state = normal(state)
    z, state = normal(state)
    return tm.normalize(vec3(x, y, z)), state


@ti.func
def hemisphere_direction(surface_normal: vec3, state: ti.u32):
    """Draw a unit direction in the hemisphere around a normal.

    Args:
        surface_normal: The normal defining the hemisphere.
        state: The current stream state.

    Returns:
        A tuple (direction, new_state) with dot(direction, normal) >= 0.
    """
    direction, state = unit_sphere_direction(state)
    if tm.dot(direction, surface_normal) < 0.0:
        direction = -direction
    return direction, state


@ti.func
def uniform_disk_point(state: ti.u32):
    """Draw a point uniformly distributed over the unit disk.

    The radius is the square root of a uniform draw to keep the area density
    constant.

    Returns:
        A tuple (point, new_state) where point is a vec2.
    """
    u_angle, state = uniform01(state)
    u_radius, state = uniform01(state)
    angle = 2.0 * tm.pi * u_angle
    radius = ti.sqrt(u_radius)
    return vec2(ti.cos(angle), ti.sin(angle)) * radius, state


@ti.func
def seed_pixel(pixel_index: ti.i32, frame_index: ti.i32) -> ti.u32:
    """Derive the stream seed for one pixel in one frame."""
    return ti.cast(pixel_index, ti.u32) + ti.cast(frame_index, ti.u32) * ti.u32(
        FRAME_SEED_MULTIPLIER
    )
