"""Progressive renderer for iterative frame accumulation.

This module ties the path integrator and the accumulator together:
- Each frame is rendered with the accumulator's current frame index
- Complete frames are committed to the running mean
- Camera, environment or integrator changes reset the accumulation
- Scene mutations (detected through the scene version) reset it as well

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera, environment, _ = create_cornell_box_scene()
    >>> renderer = ProgressiveRenderer(scene, 256, 256, camera, environment=environment)
    >>> renderer.render(100)  # Accumulate 100 frames
    >>> image = renderer.get_image_numpy()
"""

import logging
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.core.accumulator import Accumulator
from pathtracer.core.integrator import FrameContext, IntegratorSettings, PathIntegrator
from pathtracer.preview.display import ToneMapMethod
from pathtracer.preview.export import save_png
from pathtracer.scene.environment import EnvironmentSettings

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (frames_accumulated, target_frames)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates frames over time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(
        self,
        scene,
        width: int,
        height: int,
        camera: PinholeCamera,
        settings: IntegratorSettings | None = None,
        environment: EnvironmentSettings | None = None,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            scene: A SceneManager or SceneBuffers to render.
            width: Image width in pixels.
            height: Image height in pixels.
            camera: The camera to render from.
            settings: Integrator settings (defaults to IntegratorSettings()).
            environment: Environment settings (defaults to EnvironmentSettings()).

        Raises:
            ValueError: If the dimensions are not positive.
        """
        self._scene = getattr(scene, "buffers", scene)
        self._camera = camera
        self._settings = settings if settings is not None else IntegratorSettings()
        self._environment = environment if environment is not None else EnvironmentSettings()
        self._create_targets(width, height)

    def _create_targets(self, width: int, height: int) -> None:
        self._integrator = PathIntegrator(width, height)
        self._accumulator = Accumulator(width, height)
        self._scene_version = self._scene.version
        logger.debug("Created %dx%d render targets", width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._integrator.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._integrator.height

    @property
    def frame_index(self) -> int:
        """Number of frames accumulated since the last reset."""
        return self._accumulator.frame_index

    @property
    def camera(self) -> PinholeCamera:
        return self._camera

    @property
    def environment(self) -> EnvironmentSettings:
        return self._environment

    @property
    def settings(self) -> IntegratorSettings:
        return self._settings

    def reset(self) -> None:
        """Discard the accumulated frames and start again at frame 0."""
        self._accumulator.reset()
        self._scene_version = self._scene.version
        logger.debug("Accumulation reset")

    def resize(self, width: int, height: int) -> None:
        """Resize the render targets and reset the accumulation.

        Raises:
            ValueError: If the dimensions are not positive.
        """
        self._create_targets(width, height)

    def set_camera(self, camera: PinholeCamera) -> None:
        """Replace the camera; resets accumulation if it changed."""
        if camera != self._camera:
            self._camera = camera
            self.reset()

    def set_environment(self, environment: EnvironmentSettings) -> None:
        """Replace the environment; resets accumulation if it changed."""
        if environment != self._environment:
            self._environment = environment
            self.reset()

    def set_settings(self, settings: IntegratorSettings) -> None:
        """Replace the integrator settings; resets accumulation if they changed."""
        if settings != self._settings:
            self._settings = settings
            self.reset()

    def _render_one_frame(self) -> None:
        if self._scene.version != self._scene_version:
            logger.info("Scene changed, discarding %d accumulated frame(s)", self.frame_index)
            self.reset()

        context = FrameContext(
            frame_index=self._accumulator.frame_index,
            settings=self._settings,
            camera=self._camera,
            environment=self._environment,
        )
        self._integrator.render_frame(self._scene, context)
        self._accumulator.commit(self._integrator.frame_buffer, context.frame_index)

    def render(
        self,
        num_frames: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render frames progressively with optional progress callback.

        Accumulates the specified number of frames into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_frames: Number of frames to add.
            batch_size: Number of frames to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (frames_accumulated, target_frames).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} frames")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_frames, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_frames: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render frames progressively, yielding progress after each batch.

        Stopping the generator between batches leaves the accumulation
        consistent; only complete frames are ever committed.

        Args:
            num_frames: Number of frames to add.
            batch_size: Number of frames to render before each yield.

        Yields:
            Tuple of (frames_accumulated, target_frames).
        """
        if num_frames <= 0:
            return
        if batch_size < 1:
            raise ValueError(f"batch_size = {batch_size} must be >= 1")

        target_frames = self.frame_index + num_frames
        remaining = num_frames
        while remaining > 0:
            batch = min(batch_size, remaining)
            for _ in range(batch):
                self._render_one_frame()
            remaining -= batch
            # A scene change mid-run restarts the count, keep the target reachable
            target_frames = max(target_frames, self.frame_index + remaining)
            logger.debug("Accumulated %d/%d frames", self.frame_index, target_frames)
            yield (self.frame_index, target_frames)

    def get_frame_numpy(self) -> npt.NDArray[np.float32]:
        """Return the most recent single-frame estimate, (height, width, 3)."""
        return self._integrator.frame_to_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the accumulated image as a NumPy array.

        Returns the running mean with values clamped to [0, 1] and optionally
        gamma corrected. The array shape is (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.
        """
        if gamma <= 0.0:
            raise ValueError(f"gamma = {gamma} must be positive")
        image = np.clip(self._accumulator.to_numpy(), 0.0, 1.0)

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image.astype(np.float32)

    def get_radiance_numpy(self) -> npt.NDArray[np.float32]:
        """Get the unclamped linear accumulated radiance, (height, width, 3)."""
        return self._accumulator.to_numpy()

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the accumulated image as an 8-bit NumPy array.

        Args:
            gamma: Gamma correction value. Default 2.2 for sRGB.

        Returns:
            NumPy array of shape (height, width, 3) with dtype uint8.
        """
        image = self.get_image_numpy(gamma=gamma)
        return np.round(image * 255.0).astype(np.uint8)

    def save_image(
        self,
        filepath: str | Path,
        gamma: float = 2.2,
        tone_map: ToneMapMethod = "none",
        exposure: float = 1.0,
    ) -> None:
        """Save the accumulated image as an 8-bit PNG.

        Args:
            filepath: Path to save the image (e.g., "output.png").
            gamma: Gamma correction value. Default 2.2 for sRGB.
            tone_map: Tone mapping method ("none", "reinhard", or "exposure").
            exposure: Exposure value for exposure tone mapping.
        """
        save_png(self, filepath, tone_map=tone_map, gamma=gamma, exposure=exposure)
        logger.info(
            "Saved %dx%d image after %d frame(s) to %s",
            self.width,
            self.height,
            self.frame_index,
            filepath,
        )

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"frames={self.frame_index})"
        )
