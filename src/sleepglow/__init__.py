"""sleepglow - On-device under-eye brightness delta engine.

Places an ROI under each eye from facial landmarks, scores its mean
luminance, and reports the change against a personal baseline with a
day-keyed history. Only scalar scores are persisted; frames are released
at the end of every pass.

Quick Start:
    >>> from sleepglow import BaselineStore, JsonFileStore, ImageFrame, Failure, run_analysis
    >>> from sleepglow.backends import MediaPipeFaceLandmarker
    >>> detector = MediaPipeFaceLandmarker()
    >>> detector.initialize()
    >>> store = BaselineStore(JsonFileStore())
    >>> outcome = run_analysis(ImageFrame.from_file("morning.jpg"), detector, store)
    >>> if not isinstance(outcome, Failure):
    ...     print(outcome.summary())
"""

from sleepglow.types import (
    LandmarkPoint,
    RegionOfInterest,
    EyeRegions,
    DeltaResult,
    HistoryEntry,
    AnalysisResult,
    Failure,
    AnalysisState,
)
from sleepglow.config import AnalysisConfig, GeometryConfig
from sleepglow.geometry import resolve_rois
from sleepglow.scoring import score_region, score_frame
from sleepglow.delta import compute_delta
from sleepglow.frame import ImageFrame
from sleepglow.store import MemoryStore, JsonFileStore
from sleepglow.baseline import BaselineStore, today_key
from sleepglow.orchestrator import CancelToken, CaptureAnalyzer, run_analysis, get_history

__version__ = "0.1.0"

__all__ = [
    "LandmarkPoint",
    "RegionOfInterest",
    "EyeRegions",
    "DeltaResult",
    "HistoryEntry",
    "AnalysisResult",
    "Failure",
    "AnalysisState",
    "AnalysisConfig",
    "GeometryConfig",
    "resolve_rois",
    "score_region",
    "score_frame",
    "compute_delta",
    "ImageFrame",
    "MemoryStore",
    "JsonFileStore",
    "BaselineStore",
    "today_key",
    "CancelToken",
    "CaptureAnalyzer",
    "run_analysis",
    "get_history",
]
