"""Sleepglow data types.

Landmarks and ROIs live only for one analysis pass. Only the scalar
baseline and the history entries are ever persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class LandmarkPoint:
    """Facial landmark in normalized frame coordinates.

    Attributes:
        x: Horizontal position as a fraction of frame width.
        y: Vertical position as a fraction of frame height.
        z: Depth reported by the detector (unused by scoring).
    """

    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class RegionOfInterest:
    """Axis-aligned pixel rectangle, clamped to frame bounds."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class EyeRegions:
    """Left/right under-eye ROIs. A side is None when it can't be sampled."""

    left: Optional[RegionOfInterest] = None
    right: Optional[RegionOfInterest] = None

    @property
    def is_empty(self) -> bool:
        return self.left is None and self.right is None


@dataclass(frozen=True)
class DeltaResult:
    """Signed percentage change against the baseline."""

    delta_percent: float
    improved: bool


@dataclass(frozen=True)
class HistoryEntry:
    """One day of history, keyed by calendar day (``YYYY-MM-DD``)."""

    date_key: str
    delta_percent: float
    is_first: bool

    def to_dict(self) -> dict:
        return {
            "date": self.date_key,
            "deltaPercent": self.delta_percent,
            "isFirst": self.is_first,
        }

    @classmethod
    def from_dict(cls, data: dict) -> HistoryEntry:
        """Build an entry from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed.
        """
        date_key = data["date"]
        if not isinstance(date_key, str) or not date_key:
            raise ValueError(f"Invalid history date: {date_key!r}")
        delta = data["deltaPercent"]
        if isinstance(delta, bool) or not isinstance(delta, (int, float)):
            raise TypeError(f"Invalid deltaPercent: {delta!r}")
        return cls(
            date_key=date_key,
            delta_percent=float(delta),
            is_first=bool(data.get("isFirst", False)),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of a successful analysis pass, handed to the presentation layer.

    Attributes:
        baseline_score: Committed baseline brightness [0, 255].
        current_score: Brightness of this capture [0, 255].
        delta_percent: Change vs. baseline, rounded to one decimal.
        improved: True only when current_score > baseline_score.
        is_first_time: True when this pass set the baseline.
        date_key: Day the history entry was recorded under.
        warnings: Non-fatal problems, e.g. ``"history-write-failed"``.
    """

    baseline_score: float
    current_score: float
    delta_percent: float
    improved: bool
    is_first_time: bool
    date_key: str = ""
    warnings: Tuple[str, ...] = ()

    def summary(self) -> str:
        """Short human-readable description of the result."""
        if self.is_first_time:
            return "Baseline under-eye brightness recorded. Check back tomorrow."
        if self.improved:
            return f"Under-eye brightness is up {self.delta_percent}% from your baseline."
        return f"Under-eye brightness changed {self.delta_percent}% from your baseline."


@dataclass(frozen=True)
class Failure:
    """Terminal failure of an analysis pass.

    Attributes:
        reason: Taxonomy tag, e.g. ``"no-face"``.
        message: Short user-facing explanation.
    """

    reason: str
    message: str = ""


class AnalysisState(Enum):
    """Capture analysis state machine."""

    IDLE = "idle"
    CAPTURING = "capturing"
    DETECTING = "detecting"
    SCORING = "scoring"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisState.DONE, AnalysisState.FAILED)


__all__ = [
    "LandmarkPoint",
    "RegionOfInterest",
    "EyeRegions",
    "DeltaResult",
    "HistoryEntry",
    "AnalysisResult",
    "Failure",
    "AnalysisState",
]
