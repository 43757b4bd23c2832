"""Captured frame adapters.

A frame is a pixel-addressable RGBA still drawn from the camera feed.
The buffer is scoped to one analysis pass and dropped by ``release()``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class PixelSource(Protocol):
    """Synchronous pixel-read capability required by the scorer."""

    def get_pixels(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """Return the RGBA block as an (height, width, 4) uint8 array."""
        ...


class Frame(PixelSource, Protocol):
    """Frame of known size handed to the orchestrator."""

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def release(self) -> None:
        """Drop the pixel buffer. Must be idempotent."""
        ...


class ImageFrame:
    """In-memory RGBA frame backed by a numpy array.

    Args:
        rgba: Pixel data, shape (H, W, 4), dtype uint8.

    Example:
        >>> frame = ImageFrame.from_bgr(cv2_capture)
        >>> block = frame.get_pixels(10, 20, 32, 16)
        >>> frame.release()
    """

    def __init__(self, rgba: np.ndarray):
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA array, got shape {rgba.shape}")
        if rgba.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {rgba.dtype}")
        self._data: Optional[np.ndarray] = rgba
        self._height, self._width = rgba.shape[:2]

    @classmethod
    def from_bgr(cls, image: np.ndarray) -> ImageFrame:
        """Wrap an OpenCV BGR capture (H, W, 3)."""
        return cls(cv2.cvtColor(image, cv2.COLOR_BGR2RGBA))

    @classmethod
    def from_rgb(cls, image: np.ndarray) -> ImageFrame:
        """Wrap an RGB image (H, W, 3)."""
        return cls(cv2.cvtColor(image, cv2.COLOR_RGB2RGBA))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> ImageFrame:
        """Load a still image from disk.

        Raises:
            FileNotFoundError: If the file is missing or not a readable image.
        """
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise FileNotFoundError(f"Could not read image: {path}")
        return cls.from_bgr(image)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def released(self) -> bool:
        return self._data is None

    def get_pixels(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """Return the RGBA block at (x, y), clipped to the frame.

        Raises:
            RuntimeError: If the frame was already released.
        """
        data = self._require_data()
        x0 = max(0, x)
        y0 = max(0, y)
        return data[y0:max(y0, y + height), x0:max(x0, x + width)]

    def to_rgb(self) -> np.ndarray:
        """Contiguous RGB copy, for detectors that expect 3 channels."""
        return cv2.cvtColor(self._require_data(), cv2.COLOR_RGBA2RGB)

    def release(self) -> None:
        if self._data is not None:
            self._data = None
            logger.debug("Frame buffer released (%dx%d)", self._width, self._height)

    def _require_data(self) -> np.ndarray:
        if self._data is None:
            raise RuntimeError("Frame already released")
        return self._data


__all__ = ["PixelSource", "Frame", "ImageFrame"]
