"""Flat scene buffers and the nearest-hit scene query.

The scene is stored the way the integrator consumes it: flat arrays of
spheres, triangles, mesh groups and materials in Taichi fields
(Structure-of-Arrays layout). A mesh group is a contiguous run of triangles
sharing one material and one axis-aligned bounding box; the box rejects the
whole group before any of its triangles are tested.

Nearest-hit search order is fixed: every sphere by index, then every mesh
group by index, then the triangles of a group by index. A candidate only
replaces the current best when it is strictly closer, so the earliest
primitive in that order wins exact ties.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import SceneBuffers
    >>> scene = SceneBuffers()
    >>> white = scene.add_material(colour=(1.0, 1.0, 1.0))
    >>> scene.add_sphere((0.0, 0.0, -3.0), 1.0, white)
    0
    >>> # Inside a kernel: rec = scene.find_closest_hit(ray)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.geometry.aabb import intersect_box
from pathtracer.geometry.sphere import HitRecord, intersect_sphere, make_miss_record
from pathtracer.geometry.triangle import Triangle, intersect_triangle
from pathtracer.materials.material import Material, MaterialFlag

# Default capacities of the scene buffers
MAX_MATERIALS = 256
MAX_SPHERES = 1024
MAX_TRIANGLES = 16384
MAX_MESH_GROUPS = 1024

Vec3Tuple = tuple[float, float, float]


@ti.data_oriented
class SceneBuffers:
    """Read-only (during a frame) flat primitive and material arrays.

    Every mutating call bumps ``version``, which renderers use to detect that
    accumulated history no longer matches the scene.

    Attributes:
        version: Monotonic counter of scene mutations.
    """

    def __init__(
        self,
        max_materials: int = MAX_MATERIALS,
        max_spheres: int = MAX_SPHERES,
        max_triangles: int = MAX_TRIANGLES,
        max_mesh_groups: int = MAX_MESH_GROUPS,
    ) -> None:
        self.max_materials = max_materials
        self.max_spheres = max_spheres
        self.max_triangles = max_triangles
        self.max_mesh_groups = max_mesh_groups
        self.version = 0

        # Materials
        self.material_colours = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)
        self.material_emission_colours = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)
        self.material_emission_strengths = ti.field(dtype=ti.f32, shape=max_materials)
        self.material_specular_colours = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)
        self.material_smoothness = ti.field(dtype=ti.f32, shape=max_materials)
        self.material_specular_probabilities = ti.field(dtype=ti.f32, shape=max_materials)
        self.material_flags = ti.field(dtype=ti.i32, shape=max_materials)
        self.num_materials = ti.field(dtype=ti.i32, shape=())

        # Spheres
        self.sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=max_spheres)
        self.sphere_radii = ti.field(dtype=ti.f32, shape=max_spheres)
        self.sphere_material_ids = ti.field(dtype=ti.i32, shape=max_spheres)
        self.num_spheres = ti.field(dtype=ti.i32, shape=())

        # Triangles: three corners and three corner normals each
        self.triangle_pos_a = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.triangle_pos_b = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.triangle_pos_c = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.triangle_normal_a = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.triangle_normal_b = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.triangle_normal_c = ti.Vector.field(3, dtype=ti.f32, shape=max_triangles)
        self.num_triangles = ti.field(dtype=ti.i32, shape=())

        # Mesh groups
        self.group_starts = ti.field(dtype=ti.i32, shape=max_mesh_groups)
        self.group_counts = ti.field(dtype=ti.i32, shape=max_mesh_groups)
        self.group_material_ids = ti.field(dtype=ti.i32, shape=max_mesh_groups)
        self.group_bounds_min = ti.Vector.field(3, dtype=ti.f32, shape=max_mesh_groups)
        self.group_bounds_max = ti.Vector.field(3, dtype=ti.f32, shape=max_mesh_groups)
        self.num_mesh_groups = ti.field(dtype=ti.i32, shape=())

        # Host mirror of the triangle arrays, uploaded in bulk
        self._triangle_host = np.zeros((6, max_triangles, 3), dtype=np.float32)
        self._claimed_triangles = 0

    # =========================================================================
    # Population (Python scope)
    # =========================================================================

    def clear(self) -> None:
        """Remove all primitives and materials.

        Counts are reset to zero; stale field data is overwritten by later
        additions.
        """
        self.num_materials[None] = 0
        self.num_spheres[None] = 0
        self.num_triangles[None] = 0
        self.num_mesh_groups[None] = 0
        self._triangle_host.fill(0.0)
        self._claimed_triangles = 0
        self.version += 1

    def add_material(
        self,
        colour: Vec3Tuple = (1.0, 1.0, 1.0),
        emission_colour: Vec3Tuple = (0.0, 0.0, 0.0),
        emission_strength: float = 0.0,
        specular_colour: Vec3Tuple = (1.0, 1.0, 1.0),
        smoothness: float = 0.0,
        specular_probability: float = 0.0,
        flag: int = MaterialFlag.NONE,
    ) -> int:
        """Append a material.

        Values are stored as given; range checks belong to the caller
        (see SceneManager).

        Returns:
            The material id.

        Raises:
            RuntimeError: If the material capacity is exceeded.
        """
        idx = self.num_materials[None]
        if idx >= self.max_materials:
            raise RuntimeError(f"Maximum number of materials ({self.max_materials}) exceeded")
        self.material_colours[idx] = list(colour)
        self.material_emission_colours[idx] = list(emission_colour)
        self.material_emission_strengths[idx] = emission_strength
        self.material_specular_colours[idx] = list(specular_colour)
        self.material_smoothness[idx] = smoothness
        self.material_specular_probabilities[idx] = specular_probability
        self.material_flags[idx] = int(flag)
        self.num_materials[None] = idx + 1
        self.version += 1
        return idx

    def add_sphere(self, center: Vec3Tuple, radius: float, material_id: int) -> int:
        """Append a sphere.

        Returns:
            The sphere index.

        Raises:
            RuntimeError: If the sphere capacity is exceeded.
        """
        idx = self.num_spheres[None]
        if idx >= self.max_spheres:
            raise RuntimeError(f"Maximum number of spheres ({self.max_spheres}) exceeded")
        self.sphere_centers[idx] = list(center)
        self.sphere_radii[idx] = radius
        self.sphere_material_ids[idx] = material_id
        self.num_spheres[None] = idx + 1
        self.version += 1
        return idx

    def add_triangles(
        self,
        positions: npt.ArrayLike,
        normals: npt.ArrayLike,
    ) -> int:
        """Append a batch of triangles.

        Args:
            positions: Array of shape (N, 3, 3): corners A, B, C per triangle.
            normals: Array of shape (N, 3, 3): corner normals per triangle.

        Returns:
            Index of the first appended triangle.

        Raises:
            ValueError: If the array shapes do not match (N, 3, 3).
            RuntimeError: If the triangle capacity is exceeded.
        """
        positions = np.asarray(positions, dtype=np.float32)
        normals = np.asarray(normals, dtype=np.float32)
        if positions.ndim != 3 or positions.shape[1:] != (3, 3):
            raise ValueError(f"positions must have shape (N, 3, 3), got {positions.shape}")
        if normals.shape != positions.shape:
            raise ValueError(
                f"normals shape {normals.shape} does not match positions shape {positions.shape}"
            )

        start = self.num_triangles[None]
        count = positions.shape[0]
        if start + count > self.max_triangles:
            raise RuntimeError(f"Maximum number of triangles ({self.max_triangles}) exceeded")

        end = start + count
        for corner in range(3):
            self._triangle_host[corner, start:end] = positions[:, corner]
            self._triangle_host[3 + corner, start:end] = normals[:, corner]

        targets = (
            self.triangle_pos_a,
            self.triangle_pos_b,
            self.triangle_pos_c,
            self.triangle_normal_a,
            self.triangle_normal_b,
            self.triangle_normal_c,
        )
        for slot, target in enumerate(targets):
            target.from_numpy(np.ascontiguousarray(self._triangle_host[slot]))

        self.num_triangles[None] = end
        self.version += 1
        return start

    def add_mesh_group(
        self,
        start: int,
        count: int,
        material_id: int,
        bounds_min: Vec3Tuple,
        bounds_max: Vec3Tuple,
    ) -> int:
        """Append a mesh group covering triangles [start, start + count).

        Groups must claim disjoint, increasing triangle ranges.

        Returns:
            The mesh group index.

        Raises:
            ValueError: If the range is outside the stored triangles or
                overlaps a previous group.
            RuntimeError: If the mesh group capacity is exceeded.
        """
        if count < 0 or start < 0 or start + count > self.num_triangles[None]:
            raise ValueError(
                f"Triangle range [{start}, {start + count}) is outside the "
                f"{self.num_triangles[None]} stored triangles"
            )
        if start < self._claimed_triangles:
            raise ValueError(
                f"Triangle range starting at {start} overlaps a previous mesh group "
                f"(first free triangle is {self._claimed_triangles})"
            )

        idx = self.num_mesh_groups[None]
        if idx >= self.max_mesh_groups:
            raise RuntimeError(f"Maximum number of mesh groups ({self.max_mesh_groups}) exceeded")
        self.group_starts[idx] = start
        self.group_counts[idx] = count
        self.group_material_ids[idx] = material_id
        self.group_bounds_min[idx] = list(bounds_min)
        self.group_bounds_max[idx] = list(bounds_max)
        self.num_mesh_groups[None] = idx + 1
        self._claimed_triangles = start + count
        self.version += 1
        return idx

    def get_material_count(self) -> int:
        """Get the number of materials."""
        return int(self.num_materials[None])

    def get_sphere_count(self) -> int:
        """Get the number of spheres."""
        return int(self.num_spheres[None])

    def get_triangle_count(self) -> int:
        """Get the number of triangles."""
        return int(self.num_triangles[None])

    def get_mesh_group_count(self) -> int:
        """Get the number of mesh groups."""
        return int(self.num_mesh_groups[None])

    # =========================================================================
    # Kernel-side access
    # =========================================================================

    @ti.func
    def get_material(self, material_id: ti.i32) -> Material:
        """Resolve a material id into its parameters."""
        return Material(
            colour=self.material_colours[material_id],
            emission_colour=self.material_emission_colours[material_id],
            emission_strength=self.material_emission_strengths[material_id],
            specular_colour=self.material_specular_colours[material_id],
            smoothness=self.material_smoothness[material_id],
            specular_probability=self.material_specular_probabilities[material_id],
            flag=self.material_flags[material_id],
        )

    @ti.func
    def get_triangle(self, idx: ti.i32) -> Triangle:
        """Assemble the triangle at index idx."""
        return Triangle(
            pos_a=self.triangle_pos_a[idx],
            pos_b=self.triangle_pos_b[idx],
            pos_c=self.triangle_pos_c[idx],
            normal_a=self.triangle_normal_a[idx],
            normal_b=self.triangle_normal_b[idx],
            normal_c=self.triangle_normal_c[idx],
        )

    @ti.func
    def find_closest_hit(self, ray: Ray) -> HitRecord:
        """Find the nearest intersection of a ray with the whole scene.

        Args:
            ray: The ray to trace.

        Returns:
            The closest HitRecord with material_id set to the material of the
            hit primitive, or a miss record (hit == 0, distance == inf).
        """
        closest = make_miss_record()
        closest_distance = tm.inf

        for i in range(self.num_spheres[None]):
            rec = intersect_sphere(ray, self.sphere_centers[i], self.sphere_radii[i])
            if rec.hit == 1 and rec.distance < closest_distance:
                closest_distance = rec.distance
                closest = rec
                closest.material_id = self.sphere_material_ids[i]

        for g in range(self.num_mesh_groups[None]):
            if intersect_box(ray, self.group_bounds_min[g], self.group_bounds_max[g]) == 1:
                start = self.group_starts[g]
                for k in range(self.group_counts[g]):
                    rec = intersect_triangle(ray, self.get_triangle(start + k))
                    if rec.hit == 1 and rec.distance < closest_distance:
                        closest_distance = rec.distance
                        closest = rec
                        closest.material_id = self.group_material_ids[g]

        return closest


def compute_bounds(positions: npt.ArrayLike) -> tuple[Vec3Tuple, Vec3Tuple]:
    """Axis-aligned bounds of a triangle batch of shape (N, 3, 3).

    Returns:
        Tuple of (bounds_min, bounds_max).
    """
    points = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    return (
        (float(lo[0]), float(lo[1]), float(lo[2])),
        (float(hi[0]), float(hi[1]), float(hi[2])),
    )
