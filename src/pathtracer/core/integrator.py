"""Path tracing integrator for Monte Carlo light transport.

Each pixel traces ``samples_per_pixel`` independent paths per frame. A path
starts at the camera with zero incoming light and unit throughput and runs
for at most ``max_bounce_count + 1`` segments:

    - miss: add environment_light(direction) * throughput, stop
    - hit:  apply the material bounce (emission, then throughput tint) and
            continue from the hit point in the chosen direction

There is no Russian roulette; the bounce cap is the only termination rule
besides escaping the scene.

The kernel takes everything it needs from an explicit, immutable
FrameContext (frame index, integrator settings, camera, environment) and a
read-only SceneBuffers. Per-pixel random streams are seeded from the pixel
index and the frame index only, so re-rendering a frame reproduces it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import FrameContext, PathIntegrator
    >>> from pathtracer.camera.pinhole import PinholeCamera
    >>> from pathtracer.scene.intersection import SceneBuffers
    >>> scene = SceneBuffers()
    >>> integrator = PathIntegrator(64, 64)
    >>> context = FrameContext(frame_index=0, camera=PinholeCamera())
    >>> integrator.render_frame(scene, context)
    >>> estimate = integrator.frame_to_numpy()
"""

from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.pinhole import CameraFrame, PinholeCamera, generate_ray, store_camera_frame
from pathtracer.core.random import seed_pixel
from pathtracer.core.ray import Ray, make_ray, vec3
from pathtracer.materials.material import apply_bounce
from pathtracer.scene.environment import (
    Environment,
    EnvironmentSettings,
    environment_light,
    store_environment,
)

# =============================================================================
# Frame Configuration
# =============================================================================

# Defaults of the integrator settings
DEFAULT_MAX_BOUNCE_COUNT = 4
DEFAULT_SAMPLES_PER_PIXEL = 2


@dataclass(frozen=True)
class IntegratorSettings:
    """Per-frame integrator parameters.

    Attributes:
        max_bounce_count: Maximum number of bounces; a path has at most
            max_bounce_count + 1 segments. 0 means camera rays only.
        samples_per_pixel: Number of paths averaged per pixel per frame.
    """

    max_bounce_count: int = DEFAULT_MAX_BOUNCE_COUNT
    samples_per_pixel: int = DEFAULT_SAMPLES_PER_PIXEL

    def __post_init__(self) -> None:
        if self.max_bounce_count < 0:
            raise ValueError(f"max_bounce_count = {self.max_bounce_count} must be >= 0")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel = {self.samples_per_pixel} must be >= 1")


@dataclass(frozen=True)
class FrameContext:
    """Everything the integrator reads for one frame.

    Attributes:
        frame_index: Index of the frame in the current accumulation run.
        settings: Bounce and sample budget.
        camera: The camera for this frame.
        environment: Sky and sun parameters.
    """

    frame_index: int = 0
    settings: IntegratorSettings = field(default_factory=IntegratorSettings)
    camera: PinholeCamera = field(default_factory=PinholeCamera)
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)

    def __post_init__(self) -> None:
        if self.frame_index < 0:
            raise ValueError(f"frame_index = {self.frame_index} must be >= 0")


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace_path(ray: Ray, state: ti.u32, scene: ti.template(), env: Environment, max_bounces: ti.i32):
    """Trace a single path from an initial ray.

    Args:
        ray: The initial ray (normally a camera ray).
        state: The random stream state.
        scene: The SceneBuffers to trace against.
        env: The environment parameters.
        max_bounces: The bounce cap (segments = max_bounces + 1).

    Returns:
        A tuple (incoming_light, new_state).
    """
    incoming_light = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    current = ray

    # Taichi funcs cannot break out of this loop, so an active flag is used
    active = 1
    for _bounce in range(max_bounces + 1):
        if active == 1:
            rec = scene.find_closest_hit(current)

            if rec.hit == 0:
                incoming_light += environment_light(current.direction, env) * throughput
                active = 0
            else:
                material = scene.get_material(rec.material_id)
                direction, incoming_light, throughput, _is_specular, state = apply_bounce(
                    material, current.direction, rec.normal, incoming_light, throughput, state
                )
                current = make_ray(rec.point, direction)

    return incoming_light, state


@ti.func
def _sanitize(color: vec3) -> vec3:
    """Replace NaN and Inf components with zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Integrator
# =============================================================================


@ti.data_oriented
class PathIntegrator:
    """Renders one noisy frame estimate per call into its own buffer.

    The integrator owns the frame buffer for a fixed image size and the
    kernel-side copies of the camera and environment of the frame being
    rendered. Nothing outside the FrameContext influences a frame.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
        self.width = width
        self.height = height

        # Current frame estimate, indexed [i, j] with j = 0 at the bottom row
        self.frame_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))

        self._camera = CameraFrame.field(shape=())
        self._environment = Environment.field(shape=())

    def _upload_context(self, context: FrameContext) -> None:
        """Copy the camera and environment of a frame into kernel-side fields."""
        store_camera_frame(self._camera, context.camera)
        store_environment(self._environment, context.environment)

    @ti.kernel
    def _render_frame_kernel(
        self,
        scene: ti.template(),
        frame_index: ti.i32,
        max_bounces: ti.i32,
        samples_per_pixel: ti.i32,
    ):
        width = self.width
        height = self.height

        for i, j in ti.ndrange(width, height):
            camera = self._camera[None]
            env = self._environment[None]
            state = seed_pixel(j * width + i, frame_index)
            total = vec3(0.0, 0.0, 0.0)

            for _sample in range(samples_per_pixel):
                ray, state = generate_ray(camera, i, j, width, height, state)
                light, state = trace_path(ray, state, scene, env, max_bounces)
                total += light

            self.frame_buffer[i, j] = _sanitize(total / ti.cast(samples_per_pixel, ti.f32))

    @ti.kernel
    def _trace_ray_kernel(
        self,
        scene: ti.template(),
        origin: vec3,
        direction: vec3,
        seed: ti.u32,
        max_bounces: ti.i32,
    ) -> vec3:
        env = self._environment[None]
        light, _ = trace_path(make_ray(origin, tm.normalize(direction)), seed, scene, env, max_bounces)
        return light

    def render_frame(self, scene, context: FrameContext) -> None:
        """Render one frame estimate into the frame buffer.

        Args:
            scene: The SceneBuffers to render.
            context: The immutable per-frame parameters.
        """
        self._upload_context(context)
        self._render_frame_kernel(
            scene,
            context.frame_index,
            context.settings.max_bounce_count,
            context.settings.samples_per_pixel,
        )

    def trace_ray(
        self,
        scene,
        origin: tuple[float, float, float],
        direction: tuple[float, float, float],
        context: FrameContext,
        seed: int = 0,
    ) -> tuple[float, float, float]:
        """Trace a single path from an explicit ray.

        Useful for testing and debugging; the camera of the context is
        ignored, its environment and bounce budget are used.

        Args:
            scene: The SceneBuffers to trace against.
            origin: Ray origin.
            direction: Ray direction (normalised internally).
            context: Frame parameters.
            seed: Initial random stream state.

        Returns:
            Tuple of (R, G, B) radiance.
        """
        self._upload_context(context)
        light = self._trace_ray_kernel(
            scene,
            vec3(*origin),
            vec3(*direction),
            seed,
            context.settings.max_bounce_count,
        )
        return (float(light[0]), float(light[1]), float(light[2]))

    def frame_to_numpy(self) -> npt.NDArray[np.float32]:
        """Return the frame estimate as a (height, width, 3) array, top row first."""
        image = self.frame_buffer.to_numpy()
        return np.flipud(np.transpose(image, (1, 0, 2))).astype(np.float32)
