"""Camera module for primary ray generation.

Ray generation uses normalized image coordinates:
    u in [0, 1]: left to right across image
    v in [0, 1]: bottom to top across image

The camera configuration is a plain frozen dataclass; its derived basis is
copied into a kernel-side CameraFrame once per frame.
"""

from .pinhole import (
    CameraFrame,
    PinholeCamera,
    ViewBasis,
    compute_view_basis,
    generate_ray,
    store_camera_frame,
    view_point,
)

__all__ = [
    "PinholeCamera",
    "ViewBasis",
    "CameraFrame",
    "compute_view_basis",
    "view_point",
    "generate_ray",
    "store_camera_frame",
]
