"""Error taxonomy for the brightness delta engine.

Every error that aborts an analysis pass carries a ``reason`` tag and a
short message. Only those two cross the ``run_analysis`` boundary.
"""

from typing import Dict


FAILURE_MESSAGES: Dict[str, str] = {
    "no-face": "No clear face detected. Adjust the lighting and try again.",
    "detector-error": "Face analysis is unavailable right now. Please try again.",
    "no-usable-region": "Could not see the under-eye area. Center your face and retry.",
    "baseline-write-failed": "Could not save your baseline. Please try again.",
    "cancelled": "Analysis was cancelled.",
    "busy": "Another analysis is already running.",
    "frame-not-ready": "The camera image is not ready yet. Please wait a moment.",
}


class SleepGlowError(Exception):
    """Base class for sleepglow errors."""


class AnalysisError(SleepGlowError):
    """Error that aborts the current analysis pass."""

    reason = "analysis-error"

    def __init__(self, message: str = ""):
        super().__init__(message or FAILURE_MESSAGES.get(self.reason, self.reason))

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES.get(self.reason, str(self))


class NoFaceDetected(AnalysisError):
    reason = "no-face"


class DetectorUnavailable(AnalysisError):
    """Detector raised, timed out, or could not be loaded."""

    reason = "detector-error"


class NoUsableRegion(AnalysisError):
    """Both under-eye ROIs were too small or out of frame."""

    reason = "no-usable-region"


class FrameNotReady(AnalysisError):
    reason = "frame-not-ready"


class AnalysisCancelled(AnalysisError):
    reason = "cancelled"


class AnalysisBusy(AnalysisError):
    """A pass is already in flight for this store."""

    reason = "busy"


class PersistenceError(SleepGlowError):
    """Base class for store problems."""


class PersistenceReadCorrupt(PersistenceError):
    """Persisted value could not be parsed. Recovered as empty/absent."""


class PersistenceWriteFailed(PersistenceError, AnalysisError):
    """Store write failed. Fatal only for the baseline commit."""

    reason = "baseline-write-failed"


__all__ = [
    "FAILURE_MESSAGES",
    "SleepGlowError",
    "AnalysisError",
    "NoFaceDetected",
    "DetectorUnavailable",
    "NoUsableRegion",
    "FrameNotReady",
    "AnalysisCancelled",
    "AnalysisBusy",
    "PersistenceError",
    "PersistenceReadCorrupt",
    "PersistenceWriteFailed",
]
