"""Analytic sky and sun lighting for rays that escape the scene.

The environment is a vertical gradient from a horizon colour to a zenith
colour, a ground colour below a narrow transition band at the horizon, and a
sun disk whose sharpness is controlled by ``sun_focus``:

    sky_t         = smoothstep(0, 0.4, dir.y) ** 0.35
    ground_to_sky = smoothstep(-0.01, 0, dir.y)
    sun           = max(0, dot(dir, -sun_direction)) ** sun_focus * sun_intensity
    light         = mix(ground, mix(horizon, zenith, sky_t), ground_to_sky)
                    + sun * (ground_to_sky >= 1)

``sun_direction`` is the direction the sunlight travels. The sun only shows
once the ray is fully in the sky half, which leaves a hard edge at the top of
the transition band.

Example:
    >>> settings = EnvironmentSettings(sun_direction=(0.3, -1.0, 0.2))
    >>> # Inside a kernel: light = environment_light(ray.direction, env)
"""

import math
from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import vec3

# Exponent shaping the horizon-to-zenith gradient
SKY_GRADIENT_EXPONENT = 0.35

# Direction y at which the sky gradient reaches the zenith colour
SKY_GRADIENT_HEIGHT = 0.4

# Width of the ground-to-sky transition band below the horizon
HORIZON_BAND = 0.01


@dataclass(frozen=True)
class EnvironmentSettings:
    """Configuration of the sky and sun.

    Attributes:
        enabled: When False escaped rays carry no light.
        ground_colour: Colour below the horizon.
        sky_colour_horizon: Sky colour at the horizon.
        sky_colour_zenith: Sky colour straight up.
        sun_direction: Direction the sunlight travels (normalised on creation).
        sun_focus: Exponent sharpening the sun disk (>= 0).
        sun_intensity: Brightness of the sun (>= 0).
    """

    enabled: bool = True
    ground_colour: tuple[float, float, float] = (0.35, 0.3, 0.35)
    sky_colour_horizon: tuple[float, float, float] = (1.0, 1.0, 1.0)
    sky_colour_zenith: tuple[float, float, float] = (0.08, 0.37, 0.73)
    sun_direction: tuple[float, float, float] = (-0.3, -0.8, -0.5)
    sun_focus: float = 500.0
    sun_intensity: float = 10.0

    def __post_init__(self) -> None:
        if self.sun_focus < 0.0:
            raise ValueError(f"sun_focus = {self.sun_focus} must be non-negative")
        if self.sun_intensity < 0.0:
            raise ValueError(f"sun_intensity = {self.sun_intensity} must be non-negative")

        x, y, z = self.sun_direction
        norm = math.sqrt(x * x + y * y + z * z)
        if norm < 1e-8:
            raise ValueError("sun_direction must be a non-zero vector")
        object.__setattr__(self, "sun_direction", (x / norm, y / norm, z / norm))


@ti.dataclass
class Environment:
    """Kernel-side copy of EnvironmentSettings."""

    enabled: ti.i32
    ground_colour: vec3
    sky_colour_horizon: vec3
    sky_colour_zenith: vec3
    sun_direction: vec3
    sun_focus: ti.f32
    sun_intensity: ti.f32


@ti.func
def environment_light(direction: vec3, env: Environment) -> vec3:
    """Radiance arriving along a ray that left the scene.

    Args:
        direction: The unit direction of the escaped ray.
        env: The environment parameters for this frame.

    Returns:
        The environment radiance (RGB), zero when the environment is disabled.
    """
    result = vec3(0.0, 0.0, 0.0)

    if env.enabled == 1:
        sky_t = tm.smoothstep(0.0, SKY_GRADIENT_HEIGHT, direction.y) ** SKY_GRADIENT_EXPONENT
        ground_to_sky = tm.smoothstep(-HORIZON_BAND, 0.0, direction.y)
        sky_gradient = tm.mix(env.sky_colour_horizon, env.sky_colour_zenith, sky_t)

        sun_alignment = tm.max(0.0, tm.dot(direction, -env.sun_direction))
        sun = sun_alignment**env.sun_focus * env.sun_intensity

        result = tm.mix(env.ground_colour, sky_gradient, ground_to_sky)
        if ground_to_sky >= 1.0:
            result += sun

    return result


def store_environment(target, settings: EnvironmentSettings) -> None:
    """Write settings into a 0-d Environment field.

    Args:
        target: An Environment.field(shape=()).
        settings: The environment to store.
    """
    target.enabled[None] = 1 if settings.enabled else 0
    target.ground_colour[None] = settings.ground_colour
    target.sky_colour_horizon[None] = settings.sky_colour_horizon
    target.sky_colour_zenith[None] = settings.sky_colour_zenith
    target.sun_direction[None] = settings.sun_direction
    target.sun_focus[None] = settings.sun_focus
    target.sun_intensity[None] = settings.sun_intensity
