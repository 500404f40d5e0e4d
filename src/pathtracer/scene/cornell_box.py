"""Cornell box scene configuration.

This module provides a factory function to create the classic Cornell box scene,
a standard test scene used in computer graphics for evaluating global illumination
algorithms.

The Cornell box consists of:
- 5 walls forming an open box (left, right, back, floor, ceiling), each a
  two-triangle mesh facing into the box
- Left wall: red diffuse
- Right wall: green diffuse
- Back, floor, ceiling: white diffuse
- 3 spheres: diffuse, polished metal and glossy coated
- Emissive panel just below the ceiling

The box spans 0 to 555 units in each dimension with the camera outside,
looking in through the open front. The environment light is disabled so the
panel is the only light source.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> scene, camera, environment, light_mat = create_cornell_box_scene()
"""

from dataclasses import dataclass

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.scene.environment import EnvironmentSettings
from pathtracer.scene.manager import SceneManager


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    Attributes:
        light_intensity: Emission strength of the ceiling panel.
        light_color: RGB emission colour of the panel.
        left_wall_color: RGB colour of the left wall.
        right_wall_color: RGB colour of the right wall.
        back_wall_color: RGB colour of the back wall, floor and ceiling.

    Example:
        >>> custom = CornellBoxParams(
        ...     light_intensity=20.0,
        ...     light_color=(1.0, 0.9, 0.8),  # Warm light
        ... )
    """

    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    right_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    back_wall_color: tuple[float, float, float] = (0.73, 0.73, 0.73)


# Classic Cornell box dimensions (approximately 555x555x555 units)
BOX_SIZE = 555.0

# Lengths below are given for BOX_SIZE and scaled with box_size

# Ceiling panel size (classic light is ~130x105 units)
LIGHT_WIDTH = 130.0
LIGHT_DEPTH = 105.0

# Sphere materials
DIFFUSE_SPHERE_COLOUR = (0.73, 0.73, 0.73)
METAL_SPHERE_COLOUR = (0.95, 0.93, 0.88)
METAL_SPHERE_SMOOTHNESS = 0.7
GLOSSY_SPHERE_COLOUR = (0.2, 0.3, 0.8)
GLOSSY_SPHERE_SMOOTHNESS = 0.95
GLOSSY_SPHERE_SPECULAR_PROBABILITY = 0.3

SPHERE_RADIUS = 80.0

# Gap between the ceiling and the light panel
LIGHT_OFFSET = 1.0

# Camera distance in front of the open side of the box
CAMERA_DISTANCE = 800.0


def create_cornell_box_scene(
    box_size: float = BOX_SIZE,
    params: CornellBoxParams | None = None,
) -> tuple[SceneManager, PinholeCamera, EnvironmentSettings, int]:
    """Create a Cornell box scene with standard configuration.

    The coordinate system places the box origin at (0, 0, 0) with:
    - X-axis: left to right (0 to box_size)
    - Y-axis: floor to ceiling (0 to box_size)
    - Z-axis: front to back (0 to box_size), camera looks toward +Z

    Args:
        box_size: The size of the box in each dimension.
        params: Optional CornellBoxParams for customizing light and wall colors.

    Returns:
        A tuple of (SceneManager, PinholeCamera, EnvironmentSettings,
        light_material_id).

    Raises:
        ValueError: If box_size is not positive.

    Example:
        >>> scene, camera, environment, light_mat = create_cornell_box_scene()
        >>> scene.get_triangle_count()
        12
        >>> scene.get_sphere_count()
        3
    """
    if box_size <= 0.0:
        raise ValueError(f"box_size = {box_size} must be positive")
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager()
    s = box_size
    scale = box_size / BOX_SIZE
    light_width = LIGHT_WIDTH * scale
    light_depth = LIGHT_DEPTH * scale
    radius = SPHERE_RADIUS * scale

    # =========================================================================
    # Materials
    # =========================================================================

    red_mat = scene.add_material(colour=params.left_wall_color)
    green_mat = scene.add_material(colour=params.right_wall_color)
    white_mat = scene.add_material(colour=params.back_wall_color)
    light_mat = scene.add_material(
        colour=(0.0, 0.0, 0.0),
        emission_colour=params.light_color,
        emission_strength=params.light_intensity,
    )

    diffuse_mat = scene.add_material(colour=DIFFUSE_SPHERE_COLOUR)
    metal_mat = scene.add_material(
        colour=METAL_SPHERE_COLOUR,
        specular_colour=METAL_SPHERE_COLOUR,
        smoothness=METAL_SPHERE_SMOOTHNESS,
        specular_probability=1.0,
    )
    glossy_mat = scene.add_material(
        colour=GLOSSY_SPHERE_COLOUR,
        specular_colour=(1.0, 1.0, 1.0),
        smoothness=GLOSSY_SPHERE_SMOOTHNESS,
        specular_probability=GLOSSY_SPHERE_SPECULAR_PROBABILITY,
    )

    # =========================================================================
    # Walls (front face is on the cross(edge_u, edge_v) side, into the box)
    # =========================================================================

    # Left wall - YZ plane at x=0, facing +X
    scene.add_quad((0.0, 0.0, 0.0), (0.0, s, 0.0), (0.0, 0.0, s), red_mat)

    # Right wall - YZ plane at x=s, facing -X
    scene.add_quad((s, 0.0, s), (0.0, s, 0.0), (0.0, 0.0, -s), green_mat)

    # Back wall - XY plane at z=s, facing -Z
    scene.add_quad((0.0, 0.0, s), (0.0, s, 0.0), (s, 0.0, 0.0), white_mat)

    # Floor - XZ plane at y=0, facing +Y
    scene.add_quad((0.0, 0.0, 0.0), (0.0, 0.0, s), (s, 0.0, 0.0), white_mat)

    # Ceiling - XZ plane at y=s, facing -Y
    scene.add_quad((0.0, s, 0.0), (s, 0.0, 0.0), (0.0, 0.0, s), white_mat)

    # =========================================================================
    # Ceiling light, just below the ceiling, facing -Y
    # =========================================================================

    light_x = (s - light_width) / 2.0
    light_z = (s - light_depth) / 2.0
    scene.add_quad(
        (light_x, s - LIGHT_OFFSET * scale, light_z),
        (light_width, 0.0, 0.0),
        (0.0, 0.0, light_depth),
        light_mat,
    )

    # =========================================================================
    # Spheres resting on the floor
    # =========================================================================

    scene.add_sphere((s * 0.27, radius, s * 0.35), radius, diffuse_mat)
    scene.add_sphere((s * 0.73, radius, s * 0.35), radius, metal_mat)
    scene.add_sphere((s * 0.5, radius, s * 0.65), radius, glossy_mat)

    # =========================================================================
    # Camera and environment
    # =========================================================================

    camera = PinholeCamera(
        position=(s / 2.0, s / 2.0, -CAMERA_DISTANCE * scale),
        look_at=(s / 2.0, s / 2.0, s / 2.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        aspect_ratio=1.0,
        diverge_strength=1.0,
    )
    environment = EnvironmentSettings(enabled=False)

    return scene, camera, environment, light_mat
