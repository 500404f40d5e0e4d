"""Display transforms for accumulated radiance images.

The accumulator holds linear, unbounded radiance. Before an image can be
shown or written as 8-bit it goes through an optional tone mapping operator,
gamma encoding and a final clamp.

Features:
    - Tone mapping (Reinhard, exposure-based)
    - Gamma correction (sRGB 2.2)
    - Amplified difference images for comparing two renders

Example:
    >>> from pathtracer.preview.display import process_image_for_display
    >>> display = process_image_for_display(renderer.get_image_numpy(), tone_map="reinhard")
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]

TONE_MAP_METHODS = ("none", "reinhard", "exposure")


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1) range.
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value. Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1) range.

    Raises:
        ValueError: If exposure is not positive.
    """
    if exposure <= 0.0:
        raise ValueError(f"exposure = {exposure} must be positive")
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma encoding out = in^(1/gamma) after clamping to [0, 1].

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value (2.2 for sRGB, 1.0 leaves the image unchanged).

    Returns:
        Gamma encoded image.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma = {gamma} must be positive")
    if gamma == 1.0:
        return image

    # Negative values would turn into NaN
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, gamma encode and clamp a linear image.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Processed image in [0, 1] range.

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    result = np.asarray(image, dtype=np.float32).copy()

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def difference_image(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    diff_scale: float = 10.0,
) -> tuple[npt.NDArray[np.float32], float]:
    """Amplified absolute difference of two renders in display space.

    Args:
        image_a: First image array (H, W, 3) in linear space.
        image_b: Second image array (H, W, 3) in linear space.
        tone_map: Tone mapping method applied to both images.
        gamma: Gamma correction value.
        diff_scale: Scale factor for difference amplification.

    Returns:
        Tuple of (difference image in [0, 1], RMSE in display space).

    Raises:
        ValueError: If the image shapes differ.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    display_a = process_image_for_display(image_a, tone_map=tone_map, gamma=gamma)
    display_b = process_image_for_display(image_b, tone_map=tone_map, gamma=gamma)

    diff = display_a.astype(np.float64) - display_b.astype(np.float64)
    rmse = float(np.sqrt(np.mean(diff**2)))
    amplified = np.clip(np.abs(diff) * diff_scale, 0.0, 1.0).astype(np.float32)
    return amplified, rmse
