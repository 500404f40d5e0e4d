"""Preview module for image output.

Components:
    display: Tone mapping, gamma encoding and difference images
    export: PNG export through Pillow

Example:
    >>> from pathtracer.preview import save_png
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(scene.buffers, 256, 256, camera)
    >>> renderer.render(64)
    >>> save_png(renderer, "output.png", tone_map="reinhard", gamma=2.2)
"""

from pathtracer.preview.display import (
    TONE_MAP_METHODS,
    ToneMapMethod,
    apply_gamma,
    difference_image,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from pathtracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    load_png,
    save_png,
    save_png_from_array,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "difference_image",
    "ToneMapMethod",
    "TONE_MAP_METHODS",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "load_png",
    "compute_rmse",
]
