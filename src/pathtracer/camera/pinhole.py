"""Pinhole camera with lens and divergence jitter.

The camera places a virtual view plane ``near_plane`` units in front of its
position. The plane size follows from the vertical field of view and the
aspect ratio:

    plane_height = 2 * near_plane * tan(vfov / 2)
    plane_width  = plane_height * aspect_ratio

A pixel with normalised coordinates (u, v) in [0, 1] maps to the view point

    origin + right * (u - 0.5) * plane_width
           + up * (v - 0.5) * plane_height
           + forward * near_plane

Each sample jitters the ray origin inside a disk scaled by
``defocus_strength`` (depth of field) and the view point inside a disk scaled
by ``diverge_strength`` (anti-aliasing), both divided by the image width in
pixels. With both strengths at zero every sample of a pixel follows the same
ray through the pixel centre.

Example:
    >>> camera = PinholeCamera(
    ...     position=(0.0, 1.0, 5.0),
    ...     look_at=(0.0, 1.0, 0.0),
    ...     vfov=45.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... )
    >>> basis = compute_view_basis(camera)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.random import uniform_disk_point
from pathtracer.core.ray import make_ray, vec3


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        position: Camera position in world space.
        look_at: Point the camera looks at.
        vup: Up direction used to orient the camera (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Image width divided by height.
        near_plane: Distance from the camera to the view plane.
        defocus_strength: Radius scale of the lens (origin) jitter.
        diverge_strength: Radius scale of the view-point jitter.
    """

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    look_at: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 60.0
    aspect_ratio: float = 1.0
    near_plane: float = 1.0
    defocus_strength: float = 0.0
    diverge_strength: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov = {self.vfov} must be in (0, 180) degrees")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio = {self.aspect_ratio} must be positive")
        if self.near_plane <= 0.0:
            raise ValueError(f"near_plane = {self.near_plane} must be positive")
        if self.defocus_strength < 0.0 or self.diverge_strength < 0.0:
            raise ValueError("Jitter strengths must be non-negative")


@dataclass(frozen=True)
class ViewBasis:
    """Camera frame and view-plane size derived from a PinholeCamera.

    Attributes:
        origin: Camera position.
        right: Unit vector to the right of the image.
        up: Unit vector to the top of the image.
        forward: Unit viewing direction.
        plane: (plane_width, plane_height, near_plane).
    """

    origin: tuple[float, float, float]
    right: tuple[float, float, float]
    up: tuple[float, float, float]
    forward: tuple[float, float, float]
    plane: tuple[float, float, float]


def _as_tuple(v: np.ndarray) -> tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def compute_view_basis(camera: PinholeCamera) -> ViewBasis:
    """Derive the camera frame and view-plane size.

    Args:
        camera: The camera configuration.

    Returns:
        The ViewBasis consumed by the integrator.

    Raises:
        ValueError: If position equals look_at or vup is parallel to the
            viewing direction.
    """
    plane_height = 2.0 * camera.near_plane * math.tan(math.radians(camera.vfov) / 2.0)
    plane_width = plane_height * camera.aspect_ratio

    position = np.array(camera.position, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    forward = look_at - position
    forward_norm = np.linalg.norm(forward)
    if forward_norm < 1e-12:
        raise ValueError("Camera position and look_at must differ")
    forward = forward / forward_norm

    right = np.cross(forward, vup)
    right_norm = np.linalg.norm(right)
    if right_norm < 1e-12:
        raise ValueError("Camera vup must not be parallel to the viewing direction")
    right = right / right_norm

    up = np.cross(right, forward)

    return ViewBasis(
        origin=_as_tuple(position),
        right=_as_tuple(right),
        up=_as_tuple(up),
        forward=_as_tuple(forward),
        plane=(plane_width, plane_height, camera.near_plane),
    )


@ti.dataclass
class CameraFrame:
    """Kernel-side camera parameters for one frame."""

    origin: vec3
    right: vec3
    up: vec3
    forward: vec3
    plane: vec3
    defocus_strength: ti.f32
    diverge_strength: ti.f32


@ti.func
def view_point(camera: CameraFrame, u: ti.f32, v: ti.f32) -> vec3:
    """World-space point on the view plane for normalised coordinates (u, v)."""
    return (
        camera.origin
        + camera.right * (u - 0.5) * camera.plane.x
        + camera.up * (v - 0.5) * camera.plane.y
        + camera.forward * camera.plane.z
    )


@ti.func
def generate_ray(
    camera: CameraFrame,
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    state: ti.u32,
):
    """Generate one jittered camera ray through a pixel.

    Args:
        camera: The camera parameters.
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        state: The random stream state.

    Returns:
        A tuple (ray, new_state).
    """
    u = (ti.cast(pixel_i, ti.f32) + 0.5) / ti.cast(width, ti.f32)
    v = (ti.cast(pixel_j, ti.f32) + 0.5) / ti.cast(height, ti.f32)
    target = view_point(camera, u, v)
    width_f = ti.cast(width, ti.f32)

    defocus, state = uniform_disk_point(state)
    defocus *= camera.defocus_strength / width_f
    origin = camera.origin + camera.right * defocus.x + camera.up * defocus.y

    diverge, state = uniform_disk_point(state)
    diverge *= camera.diverge_strength / width_f
    jittered_target = target + camera.right * diverge.x + camera.up * diverge.y

    ray = make_ray(origin, tm.normalize(jittered_target - origin))
    return ray, state


def store_camera_frame(target, camera: PinholeCamera) -> None:
    """Write the derived basis of a camera into a 0-d CameraFrame field.

    Args:
        target: A CameraFrame.field(shape=()).
        camera: The camera to store.
    """
    basis = compute_view_basis(camera)
    target.origin[None] = basis.origin
    target.right[None] = basis.right
    target.up[None] = basis.up
    target.forward[None] = basis.forward
    target.plane[None] = basis.plane
    target.defocus_strength[None] = camera.defocus_strength
    target.diverge_strength[None] = camera.diverge_strength
