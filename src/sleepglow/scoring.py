"""Region brightness scoring.

Per-pixel luminance is the unweighted mean of R, G and B (alpha ignored);
a region's score is the mean luminance over its block. Reductions run in
float64 on a single thread so identical input gives identical output.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from sleepglow.frame import PixelSource
from sleepglow.types import EyeRegions, RegionOfInterest


def pixel_luminance(rgba: np.ndarray) -> np.ndarray:
    """Per-pixel (R + G + B) / 3 for an (..., 4) RGBA array."""
    rgb = rgba[..., :3].astype(np.float64)
    return rgb.sum(axis=-1) / 3.0


def score_region(
    pixel_source: PixelSource,
    roi: Optional[RegionOfInterest],
) -> Optional[float]:
    """Mean luminance of the RGBA block under ``roi``.

    Returns:
        Score in [0, 255], or None if the ROI is absent or the block is empty.

    Raises:
        ValueError: If the block is not a whole number of RGBA pixels.
    """
    if roi is None or roi.width <= 0 or roi.height <= 0:
        return None

    block = np.asarray(pixel_source.get_pixels(roi.x, roi.y, roi.width, roi.height))
    if block.size == 0:
        return None

    if block.size % 4:
        raise ValueError(f"Pixel block of size {block.size} is not RGBA")
    lum = pixel_luminance(block.reshape(-1, 4))
    return float(lum.sum() / lum.shape[0])


def combine_scores(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Mean of both sides, the present side alone, or None."""
    if left is not None and right is not None:
        return (left + right) / 2
    if left is not None:
        return left
    return right


def score_frame(pixel_source: PixelSource, rois: EyeRegions) -> Optional[float]:
    """Frame brightness score from the left/right under-eye ROIs.

    None means no usable region; callers must not substitute zero.
    """
    left = score_region(pixel_source, rois.left)
    right = score_region(pixel_source, rois.right)
    return combine_scores(left, right)


__all__ = ["pixel_luminance", "score_region", "combine_scores", "score_frame"]
