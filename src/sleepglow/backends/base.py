"""Landmark detector protocol and result wrapping."""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from sleepglow.types import LandmarkPoint


class LandmarkDetector(Protocol):
    """Protocol for facial landmark detectors.

    Implementations return the first detected face's landmarks in the
    detector's fixed index order, or None when no face is found. They may
    block for model inference and may raise on failure.
    """

    def detect(self, frame: Any, timestamp_ms: int) -> Optional[Sequence[LandmarkPoint]]:
        ...


def to_landmark_points(raw: Iterable[Any]) -> List[LandmarkPoint]:
    """Convert detector-native landmarks into LandmarkPoints.

    Accepts objects with ``x``/``y`` (and optional ``z``) attributes, or
    sequences ``(x, y[, z])``.

    Raises:
        ValueError: If a landmark has non-finite coordinates.
    """
    points: List[LandmarkPoint] = []
    for lm in raw:
        if hasattr(lm, "x") and hasattr(lm, "y"):
            x, y, z = lm.x, lm.y, getattr(lm, "z", 0.0)
        else:
            x, y = lm[0], lm[1]
            z = lm[2] if len(lm) > 2 else 0.0
        x, y, z = float(x), float(y), float(z or 0.0)
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"Non-finite landmark at index {len(points)}")
        points.append(LandmarkPoint(x=x, y=y, z=z))
    return points


__all__ = ["LandmarkDetector", "to_landmark_points"]
