"""Landmark geometry: under-eye ROI placement from normalized face landmarks.

The ROI is sized relative to the face height so the sampled patch scales
with the distance to the camera, and is anchored just below the lowest
point of each eye's landmark cluster.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from sleepglow.config import GeometryConfig
from sleepglow.types import EyeRegions, LandmarkPoint, RegionOfInterest

# MediaPipe Face Mesh numbering (468/478 points). Changing the detector
# model version requires revalidating these.
LEFT_UNDER_EYE_INDICES: Tuple[int, ...] = (145, 159, 160, 144)
RIGHT_UNDER_EYE_INDICES: Tuple[int, ...] = (374, 386, 387, 380)


def face_height_norm(
    landmarks: Sequence[LandmarkPoint],
    min_face_height: float = 0.2,
) -> float:
    """Vertical landmark spread, floored at ``min_face_height``."""
    if not landmarks:
        return min_face_height
    ys = [p.y for p in landmarks]
    return max(min_face_height, max(ys) - min(ys))


def resolve_rois(
    landmarks: Sequence[LandmarkPoint],
    frame_width: int,
    frame_height: int,
    config: Optional[GeometryConfig] = None,
) -> EyeRegions:
    """Resolve left/right under-eye ROIs in pixel space.

    Args:
        landmarks: Landmarks of the first detected face, in detector order.
        frame_width: Frame width in pixels.
        frame_height: Frame height in pixels.
        config: ROI placement ratios.

    Returns:
        EyeRegions; a side is None when none of its indices resolve or the
        clamped box is too small to sample.
    """
    cfg = config or GeometryConfig()
    if frame_width <= 0 or frame_height <= 0:
        return EyeRegions()

    points = list(landmarks)
    face_h = face_height_norm(points, cfg.min_face_height)

    left = _resolve_side(points, LEFT_UNDER_EYE_INDICES, face_h, frame_width, frame_height, cfg)
    right = _resolve_side(points, RIGHT_UNDER_EYE_INDICES, face_h, frame_width, frame_height, cfg)
    return EyeRegions(left=left, right=right)


def _resolve_side(
    points: Sequence[LandmarkPoint],
    indices: Sequence[int],
    face_h: float,
    frame_width: int,
    frame_height: int,
    cfg: GeometryConfig,
) -> Optional[RegionOfInterest]:
    cluster = [points[i] for i in indices if 0 <= i < len(points)]
    if not cluster:
        return None

    min_x = min(p.x for p in cluster)
    max_x = max(p.x for p in cluster)
    lowest_y = max(p.y for p in cluster)

    center_x = (min_x + max_x) / 2
    center_y = lowest_y + face_h * cfg.roi_offset_ratio
    roi_w_px = face_h * cfg.roi_width_ratio * frame_width
    roi_h_px = face_h * cfg.roi_height_ratio * frame_height

    x = max(0, math.floor(center_x * frame_width - roi_w_px / 2))
    y = max(0, math.floor(center_y * frame_height - roi_h_px / 2))
    w = min(math.floor(roi_w_px), frame_width - x)
    h = min(math.floor(roi_h_px), frame_height - y)

    if w <= cfg.min_roi_px or h <= cfg.min_roi_px:
        return None
    return RegionOfInterest(x=int(x), y=int(y), width=int(w), height=int(h))


__all__ = [
    "LEFT_UNDER_EYE_INDICES",
    "RIGHT_UNDER_EYE_INDICES",
    "face_height_norm",
    "resolve_rois",
]
