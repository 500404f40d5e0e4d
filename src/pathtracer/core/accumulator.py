"""Temporal accumulation of per-frame radiance estimates.

Frames are folded into a persistent buffer as a running mean:

    average += (frame - average) / (frame_index + 1)

so after N accepted frames every pixel holds the plain mean of the N frame
estimates. Frames must be committed in strictly increasing order starting at
0; any camera or scene change calls reset() to discard the history.

Example:
    >>> accumulator = Accumulator(64, 64)
    >>> integrator.render_frame(scene, FrameContext(frame_index=accumulator.frame_index))
    >>> accumulator.commit(integrator.frame_buffer, accumulator.frame_index)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti


@ti.data_oriented
class Accumulator:
    """Running-mean image buffer for one accumulation run.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
        self.width = width
        self.height = height
        self.average = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
        self._frame_index = 0

    @property
    def frame_index(self) -> int:
        """Index the next committed frame must carry (= frames accepted so far)."""
        return self._frame_index

    @ti.kernel
    def _blend(self, frame: ti.template(), weight: ti.f32):
        for i, j in self.average:
            old = self.average[i, j]
            self.average[i, j] = old + (frame[i, j] - old) * weight

    @ti.kernel
    def _clear(self):
        for i, j in self.average:
            self.average[i, j] = ti.Vector([0.0, 0.0, 0.0])

    def commit(self, frame, frame_index: int) -> None:
        """Fold one complete frame estimate into the running mean.

        Args:
            frame: A (width, height) Vector field holding the frame estimate.
            frame_index: The index the frame was rendered with.

        Raises:
            ValueError: If frame_index is not the next expected index or the
                frame has the wrong shape.
        """
        if frame_index != self._frame_index:
            raise ValueError(
                f"Out-of-order commit: expected frame {self._frame_index}, got {frame_index}"
            )
        if tuple(frame.shape) != (self.width, self.height):
            raise ValueError(
                f"Frame shape {tuple(frame.shape)} does not match ({self.width}, {self.height})"
            )
        self._blend(frame, 1.0 / (frame_index + 1))
        self._frame_index += 1

    def reset(self) -> None:
        """Discard the accumulated history and restart at frame 0."""
        self._clear()
        self._frame_index = 0

    def to_numpy(self) -> npt.NDArray[np.float32]:
        """Return the running mean as a (height, width, 3) array, top row first."""
        image = self.average.to_numpy()
        return np.flipud(np.transpose(image, (1, 0, 2))).astype(np.float32)

    def __repr__(self) -> str:
        return f"Accumulator(width={self.width}, height={self.height}, frames={self._frame_index})"
