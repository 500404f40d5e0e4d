"""Scene module for scene storage, queries and construction.

Components:
    intersection: Flat scene buffers and the nearest-hit query
    environment: Sky and sun light for escaped rays
    manager: Validated scene builder with mesh chunking
    cornell_box: Cornell box test scene

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for geometric data
    - Triangles grouped into mesh groups with one bounding box each
    - Materials resolved by ID at hit time
"""

from .cornell_box import BOX_SIZE, CornellBoxParams, create_cornell_box_scene
from .environment import Environment, EnvironmentSettings, environment_light, store_environment
from .intersection import (
    MAX_MATERIALS,
    MAX_MESH_GROUPS,
    MAX_SPHERES,
    MAX_TRIANGLES,
    SceneBuffers,
    compute_bounds,
)
from .manager import (
    TRIANGLE_LIMIT,
    MaterialInfo,
    MeshInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    compute_face_normals,
)

__all__ = [
    # Intersection module
    "SceneBuffers",
    "compute_bounds",
    "MAX_MATERIALS",
    "MAX_SPHERES",
    "MAX_TRIANGLES",
    "MAX_MESH_GROUPS",
    # Environment module
    "Environment",
    "EnvironmentSettings",
    "environment_light",
    "store_environment",
    # Manager module
    "SceneManager",
    "MaterialInfo",
    "SphereInfo",
    "MeshInfo",
    "SceneConfig",
    "TRIANGLE_LIMIT",
    "compute_face_normals",
    # Cornell box module
    "create_cornell_box_scene",
    "CornellBoxParams",
    "BOX_SIZE",
]
