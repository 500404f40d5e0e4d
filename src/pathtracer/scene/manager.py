"""Scene builder coordinating materials, spheres and triangle meshes.

This module provides the high-level scene API on top of SceneBuffers. It
validates input, keeps a host-side record of everything added and splits
large meshes into mesh groups of at most TRIANGLE_LIMIT triangles so that
each group gets a tight bounding box for the scene query.

The SceneManager maintains:
- The SceneBuffers the integrator reads from
- MaterialInfo / SphereInfo / MeshInfo records of what was added
- Scene serialization to and from plain dictionaries

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> red = scene.add_material(colour=(0.8, 0.1, 0.1))
    >>> light = scene.add_material(emission_colour=(1.0, 1.0, 1.0), emission_strength=4.0)
    >>> scene.add_sphere(center=(0, 0, -3), radius=1.0, material_id=red)
    0
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import numpy.typing as npt

from pathtracer.materials.material import MaterialFlag
from pathtracer.scene.intersection import (
    MAX_MATERIALS,
    MAX_MESH_GROUPS,
    MAX_SPHERES,
    MAX_TRIANGLES,
    SceneBuffers,
    Vec3Tuple,
    compute_bounds,
)

logger = logging.getLogger(__name__)

# Maximum number of triangles per mesh group
TRIANGLE_LIMIT = 1500


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material ID.
        params: The material parameters as stored.
    """

    material_id: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: Vec3Tuple
    radius: float
    material_id: int


@dataclass
class MeshInfo:
    """Information about a triangle mesh in the scene.

    Attributes:
        mesh_index: Position of the mesh in the order meshes were added.
        group_indices: Mesh groups the mesh was split into.
        triangle_start: Index of the first triangle of the mesh.
        triangle_count: Number of triangles in the mesh.
        material_id: The material ID assigned to the mesh.
        positions: Triangle corners, shape (N, 3, 3).
        normals: Triangle corner normals, shape (N, 3, 3).
    """

    mesh_index: int
    group_indices: list[int]
    triangle_start: int
    triangle_count: int
    material_id: int
    positions: npt.NDArray[np.float32]
    normals: npt.NDArray[np.float32]


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
        meshes: List of mesh configurations.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    meshes: list[dict[str, Any]] = field(default_factory=list)


def _check_colour(name: str, colour: Vec3Tuple) -> Vec3Tuple:
    if len(colour) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(colour)}")
    if any(c < 0.0 for c in colour):
        raise ValueError(f"{name} components must be non-negative, got {colour}")
    return (float(colour[0]), float(colour[1]), float(colour[2]))


def _check_unit_interval(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} = {value} must be in [0, 1]")
    return float(value)


def compute_face_normals(positions: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Flat corner normals for a triangle batch.

    The normal of triangle (A, B, C) is normalize(cross(B - A, C - A)), the
    side the scene query treats as the front face.

    Args:
        positions: Array of shape (N, 3, 3).

    Returns:
        Array of shape (N, 3, 3) with the face normal repeated per corner.

    Raises:
        ValueError: If a triangle is degenerate (zero area).
    """
    tris = np.asarray(positions, dtype=np.float64)
    face = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lengths = np.linalg.norm(face, axis=1)
    if np.any(lengths < 1e-12):
        raise ValueError("Mesh contains degenerate (zero-area) triangles")
    face /= lengths[:, None]
    return np.repeat(face[:, None, :], 3, axis=1).astype(np.float32)


class SceneManager:
    """Validated scene construction on top of SceneBuffers.

    Attributes:
        buffers: The SceneBuffers handed to the integrator.
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.
        meshes: List of MeshInfo for all meshes in the scene.

    Example:
        >>> scene = SceneManager()
        >>> mirror = scene.add_material(smoothness=1.0, specular_probability=1.0)
        >>> floor = scene.add_material(colour=(0.7, 0.7, 0.7))
        >>> scene.add_sphere((0, 1, 0), 1.0, mirror)
        0
        >>> scene.add_quad((-5, 0, -5), (0, 0, 10), (10, 0, 0), floor)
        0
    """

    def __init__(
        self,
        max_materials: int = MAX_MATERIALS,
        max_spheres: int = MAX_SPHERES,
        max_triangles: int = MAX_TRIANGLES,
        max_mesh_groups: int = MAX_MESH_GROUPS,
    ) -> None:
        """Initialize an empty scene with the given buffer capacities."""
        self.buffers = SceneBuffers(
            max_materials=max_materials,
            max_spheres=max_spheres,
            max_triangles=max_triangles,
            max_mesh_groups=max_mesh_groups,
        )
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.meshes: list[MeshInfo] = []

    @property
    def version(self) -> int:
        """Mutation counter of the underlying buffers."""
        return self.buffers.version

    def clear(self) -> None:
        """Clear the entire scene (primitives and materials)."""
        self.buffers.clear()
        self.materials.clear()
        self.spheres.clear()
        self.meshes.clear()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(
        self,
        colour: Vec3Tuple = (1.0, 1.0, 1.0),
        emission_colour: Vec3Tuple = (0.0, 0.0, 0.0),
        emission_strength: float = 0.0,
        specular_colour: Vec3Tuple = (1.0, 1.0, 1.0),
        smoothness: float = 0.0,
        specular_probability: float = 0.0,
        flag: MaterialFlag = MaterialFlag.NONE,
    ) -> int:
        """Add a material to the scene.

        Args:
            colour: Diffuse reflectance (R, G, B), components >= 0.
            emission_colour: Emitted colour (R, G, B), components >= 0.
            emission_strength: Emission scale (>= 0).
            specular_colour: Tint on specular bounces (R, G, B), components >= 0.
            smoothness: 0 = rough, 1 = mirror.
            specular_probability: Chance in [0, 1] of a specular bounce.
            flag: Reserved MaterialFlag.

        Returns:
            The material ID.

        Raises:
            ValueError: If any parameter is out of range.
            RuntimeError: If the maximum number of materials is exceeded.
        """
        params = {
            "colour": _check_colour("colour", colour),
            "emission_colour": _check_colour("emission_colour", emission_colour),
            "emission_strength": float(emission_strength),
            "specular_colour": _check_colour("specular_colour", specular_colour),
            "smoothness": _check_unit_interval("smoothness", smoothness),
            "specular_probability": _check_unit_interval(
                "specular_probability", specular_probability
            ),
            "flag": int(MaterialFlag(flag)),
        }
        if emission_strength < 0.0:
            raise ValueError(f"emission_strength = {emission_strength} must be non-negative")

        material_id = self.buffers.add_material(**params)
        self.materials.append(MaterialInfo(material_id=material_id, params=params))
        return material_id

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return self.buffers.get_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID.

        Returns:
            MaterialInfo for the material, or None if not found.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= self.get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(self, center: Vec3Tuple, radius: float, material_id: int) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: The material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If radius is not positive or material_id is invalid.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius = {radius} must be positive")
        self._check_material_id(material_id)

        center_t = (float(center[0]), float(center[1]), float(center[2]))
        sphere_index = self.buffers.add_sphere(center_t, float(radius), material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center_t,
                radius=float(radius),
                material_id=material_id,
            )
        )
        return sphere_index

    def add_mesh(
        self,
        positions: npt.ArrayLike,
        material_id: int,
        normals: npt.ArrayLike | None = None,
    ) -> int:
        """Add a triangle mesh with a single material.

        The mesh is stored as consecutive triangles and split into mesh
        groups of at most TRIANGLE_LIMIT triangles, each with its own
        bounding box.

        Args:
            positions: Triangle corners, shape (N, 3, 3), counter-clockwise
                when seen from the front.
            material_id: The material ID to assign to the mesh.
            normals: Optional corner normals, shape (N, 3, 3). Flat face
                normals are used when omitted.

        Returns:
            The index of the added mesh.

        Raises:
            ValueError: If the arrays are malformed, empty or the material_id
                is invalid.
            RuntimeError: If triangle or mesh group capacity is exceeded.
        """
        self._check_material_id(material_id)
        tris = np.asarray(positions, dtype=np.float32)
        if tris.ndim != 3 or tris.shape[1:] != (3, 3):
            raise ValueError(f"positions must have shape (N, 3, 3), got {tris.shape}")
        if tris.shape[0] == 0:
            raise ValueError("Mesh must contain at least one triangle")
        if not np.all(np.isfinite(tris)):
            raise ValueError("Mesh positions must be finite")

        if normals is None:
            corner_normals = compute_face_normals(tris)
        else:
            corner_normals = np.asarray(normals, dtype=np.float32)
            if corner_normals.shape != tris.shape:
                raise ValueError(
                    f"normals shape {corner_normals.shape} does not match "
                    f"positions shape {tris.shape}"
                )
            lengths = np.linalg.norm(corner_normals, axis=2, keepdims=True)
            if np.any(lengths < 1e-12):
                raise ValueError("Mesh normals must be non-zero")
            corner_normals = (corner_normals / lengths).astype(np.float32)

        num_groups = -(-tris.shape[0] // TRIANGLE_LIMIT)
        free_groups = self.buffers.max_mesh_groups - self.buffers.get_mesh_group_count()
        if num_groups > free_groups:
            raise RuntimeError(
                f"Maximum number of mesh groups ({self.buffers.max_mesh_groups}) exceeded"
            )

        triangle_start = self.buffers.add_triangles(tris, corner_normals)
        group_indices = []
        for offset in range(0, tris.shape[0], TRIANGLE_LIMIT):
            chunk = tris[offset : offset + TRIANGLE_LIMIT]
            bounds_min, bounds_max = compute_bounds(chunk)
            group_indices.append(
                self.buffers.add_mesh_group(
                    triangle_start + offset,
                    chunk.shape[0],
                    material_id,
                    bounds_min,
                    bounds_max,
                )
            )

        mesh_index = len(self.meshes)
        self.meshes.append(
            MeshInfo(
                mesh_index=mesh_index,
                group_indices=group_indices,
                triangle_start=triangle_start,
                triangle_count=tris.shape[0],
                material_id=material_id,
                positions=tris,
                normals=corner_normals,
            )
        )
        logger.debug(
            "Added mesh %d: %d triangles in %d group(s)",
            mesh_index,
            tris.shape[0],
            len(group_indices),
        )
        return mesh_index

    def add_quad(
        self,
        corner: Vec3Tuple,
        edge_u: Vec3Tuple,
        edge_v: Vec3Tuple,
        material_id: int,
    ) -> int:
        """Add a parallelogram as a two-triangle mesh.

        The quad has vertices corner, corner+edge_u, corner+edge_u+edge_v and
        corner+edge_v; its front face is on the side of cross(edge_u, edge_v).

        Args:
            corner: The corner point (Q) of the quad as (x, y, z).
            edge_u: The first edge vector as (x, y, z).
            edge_v: The second edge vector as (x, y, z).
            material_id: The material ID to assign to the quad.

        Returns:
            The index of the added mesh.
        """
        q = np.asarray(corner, dtype=np.float32)
        u = np.asarray(edge_u, dtype=np.float32)
        v = np.asarray(edge_v, dtype=np.float32)
        positions = np.array([[q, q + u, q + u + v], [q, q + u + v, q + v]], dtype=np.float32)
        return self.add_mesh(positions, material_id)

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return self.buffers.get_sphere_count()

    def get_triangle_count(self) -> int:
        """Get the number of triangles in the scene."""
        return self.buffers.get_triangle_count()

    def get_mesh_count(self) -> int:
        """Get the number of meshes in the scene."""
        return len(self.meshes)

    def get_mesh_group_count(self) -> int:
        """Get the number of mesh groups in the scene."""
        return self.buffers.get_mesh_group_count()

    def get_primitive_count(self) -> int:
        """Get the total number of spheres and triangles in the scene."""
        return self.get_sphere_count() + self.get_triangle_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object.

        Returns:
            A SceneConfig containing all materials and primitives.
        """
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append({key: _to_plain(value) for key, value in mat.params.items()})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for mesh in self.meshes:
            config.meshes.append(
                {
                    "positions": mesh.positions.tolist(),
                    "normals": mesh.normals.tolist(),
                    "material_id": mesh.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Args:
            config: The scene configuration to load.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Materials first, primitives refer to them by ID
        for mat_config in config.materials:
            self.add_material(
                colour=tuple(mat_config.get("colour", (1.0, 1.0, 1.0))),
                emission_colour=tuple(mat_config.get("emission_colour", (0.0, 0.0, 0.0))),
                emission_strength=mat_config.get("emission_strength", 0.0),
                specular_colour=tuple(mat_config.get("specular_colour", (1.0, 1.0, 1.0))),
                smoothness=mat_config.get("smoothness", 0.0),
                specular_probability=mat_config.get("specular_probability", 0.0),
                flag=MaterialFlag(mat_config.get("flag", MaterialFlag.NONE)),
            )

        for sphere_config in config.spheres:
            if "center" not in sphere_config or "radius" not in sphere_config:
                raise ValueError(f"Sphere configuration is incomplete: {sphere_config}")
            self.add_sphere(
                tuple(sphere_config["center"]),
                sphere_config["radius"],
                sphere_config.get("material_id", 0),
            )

        for mesh_config in config.meshes:
            if "positions" not in mesh_config:
                raise ValueError("Mesh configuration is missing 'positions'")
            self.add_mesh(
                mesh_config["positions"],
                mesh_config.get("material_id", 0),
                normals=mesh_config.get("normals"),
            )

        logger.info(
            "Loaded scene: %d materials, %d spheres, %d meshes",
            len(self.materials),
            len(self.spheres),
            len(self.meshes),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "meshes": config.meshes,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials', 'spheres', 'meshes' keys."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            meshes=data.get("meshes", []),
        )
        self.from_config(config)


def _to_plain(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value
