"""Configuration for the brightness delta engine.

Example:
    >>> from sleepglow.config import AnalysisConfig, GeometryConfig
    >>> config = AnalysisConfig(
    ...     geometry=GeometryConfig(roi_width_ratio=0.14),
    ...     detector_timeout_sec=5.0,
    ... )
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Persistence keys shared with earlier releases of the app
BASELINE_KEY = "sleepglow_baseline_score"
HISTORY_KEY = "sleepglow_history_v1"

HOME_ENV = "SLEEPGLOW_HOME"
MODELS_DIR_ENV = "SLEEPGLOW_MODELS_DIR"


def data_home() -> Path:
    """Directory holding the local store and downloaded models.

    ``$SLEEPGLOW_HOME`` if set, otherwise ``~/.sleepglow``. Nothing is
    created here; each writer creates the directories it needs.
    """
    override = os.environ.get(HOME_ENV)
    return Path(override).expanduser() if override else Path.home() / ".sleepglow"


@dataclass(frozen=True)
class GeometryConfig:
    """Under-eye ROI placement, as fractions of the normalized face height.

    Attributes:
        min_face_height: Floor for the face height when landmark spread
            is degenerate (e.g. a partially occluded face).
        roi_offset_ratio: Gap between the lowest eye landmark and the ROI center.
        roi_height_ratio: ROI height.
        roi_width_ratio: ROI width.
        min_roi_px: Sides whose clamped width or height is <= this are dropped.
    """

    min_face_height: float = 0.2
    roi_offset_ratio: float = 0.06
    roi_height_ratio: float = 0.09
    roi_width_ratio: float = 0.12
    min_roi_px: int = 1


@dataclass(frozen=True)
class AnalysisConfig:
    """Orchestrator settings.

    Attributes:
        geometry: ROI placement.
        detector_timeout_sec: Max wait for the landmark detector (0 = no limit).
        poll_interval_sec: How often a pending detector call checks for
            cancellation.
    """

    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    detector_timeout_sec: float = 10.0
    poll_interval_sec: float = 0.05


__all__ = [
    "BASELINE_KEY",
    "HISTORY_KEY",
    "HOME_ENV",
    "MODELS_DIR_ENV",
    "data_home",
    "GeometryConfig",
    "AnalysisConfig",
]
