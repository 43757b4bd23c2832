"""Capture analysis orchestrator.

Sequences one analysis pass over a captured frame::

    IDLE → CAPTURING → DETECTING → SCORING → PERSISTING → DONE
                  └──────────┴──────────┴──────────┴──→ FAILED(reason)

The detector call is the only long suspension point. It runs on a worker
thread and is polled so cancellation and the timeout are honoured. Store
writes happen only in PERSISTING, after a successful score, so a failed or
cancelled pass never leaves partial state behind.

Example:
    >>> store = BaselineStore(JsonFileStore())
    >>> analyzer = CaptureAnalyzer(detector, store)
    >>> outcome = analyzer.run(ImageFrame.from_bgr(capture))
    >>> if isinstance(outcome, Failure):
    ...     analyzer.reset()
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence, Union

from sleepglow.backends.base import LandmarkDetector, to_landmark_points
from sleepglow.baseline import BaselineStore, PassSlot, today_key
from sleepglow.config import AnalysisConfig
from sleepglow.delta import compute_delta
from sleepglow.errors import (
    AnalysisBusy,
    AnalysisCancelled,
    AnalysisError,
    DetectorUnavailable,
    FrameNotReady,
    NoFaceDetected,
    NoUsableRegion,
)
from sleepglow.frame import Frame
from sleepglow.geometry import resolve_rois
from sleepglow.scoring import score_frame
from sleepglow.types import (
    AnalysisResult,
    AnalysisState,
    DeltaResult,
    Failure,
    HistoryEntry,
    LandmarkPoint,
)

logger = logging.getLogger(__name__)

HISTORY_WRITE_FAILED = "history-write-failed"


class CancelToken:
    """Cancellation signal shared between the caller and a running pass."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled("Cancelled by caller")


class CaptureAnalyzer:
    """Runs analysis passes for one user/session.

    Args:
        detector: Landmark detector collaborator.
        store: Baseline & history store. Its session guard allows one
            in-flight pass at a time.
        config: Geometry and timeout settings.
        date_key: Returns the history day key for a pass. Defaults to the
            current UTC day.
        on_state: Called with every state transition.
    """

    def __init__(
        self,
        detector: LandmarkDetector,
        store: BaselineStore,
        config: Optional[AnalysisConfig] = None,
        date_key: Optional[Callable[[], str]] = None,
        on_state: Optional[Callable[[AnalysisState], None]] = None,
    ):
        self._detector = detector
        self._store = store
        self.config = config or AnalysisConfig()
        self._date_key = date_key or today_key
        self._on_state = on_state
        self._state = AnalysisState.IDLE
        self._last_failure: Optional[Failure] = None

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def last_failure(self) -> Optional[Failure]:
        return self._last_failure

    @property
    def store(self) -> BaselineStore:
        return self._store

    def reset(self, state: AnalysisState = AnalysisState.CAPTURING) -> None:
        """Return to a prior state for a fresh attempt."""
        if state.is_terminal:
            raise ValueError(f"Cannot reset into terminal state {state.value}")
        self._last_failure = None
        self._set_state(state)

    def get_history(self) -> List[HistoryEntry]:
        """Read-only view of the day-keyed history."""
        return self._store.read_history()

    def run(
        self,
        frame: Frame,
        cancel: Optional[CancelToken] = None,
    ) -> Union[AnalysisResult, Failure]:
        """Run one pass and return the result or a tagged failure."""
        try:
            return self.analyze(frame, cancel)
        except AnalysisError as e:
            return Failure(reason=e.reason, message=e.message)

    def analyze(
        self,
        frame: Frame,
        cancel: Optional[CancelToken] = None,
    ) -> AnalysisResult:
        """Run one pass.

        If the detector call is abandoned (timeout or cancellation), the
        in-flight slot stays taken and the frame stays alive until that
        call returns, so the detector never runs twice at once and never
        reads a released frame.

        Raises:
            AnalysisError: Subclass tagged with the failure reason.
        """
        cancel = cancel or CancelToken()
        pending: Optional[Future] = None
        try:
            with self._store.exclusive_pass() as slot:
                try:
                    return self._run_pass(frame, cancel, slot)
                except AnalysisError as e:
                    self._last_failure = Failure(reason=e.reason, message=e.message)
                    self._set_state(AnalysisState.FAILED)
                    logger.info("Analysis failed: %s (%s)", e.reason, e)
                    raise
                finally:
                    pending = slot.pending
        except AnalysisBusy:
            logger.info("Analysis rejected: a pass is already in flight")
            raise
        finally:
            if pending is None:
                frame.release()
            else:
                pending.add_done_callback(lambda _f: frame.release())

    def _run_pass(self, frame: Frame, cancel: CancelToken, slot: PassSlot) -> AnalysisResult:
        self._set_state(AnalysisState.CAPTURING)
        if frame.width <= 0 or frame.height <= 0:
            raise FrameNotReady(f"Frame size {frame.width}x{frame.height}")
        cancel.raise_if_cancelled()

        self._set_state(AnalysisState.DETECTING)
        landmarks = self._detect(frame, cancel, slot)
        if not landmarks:
            raise NoFaceDetected("Detector returned no face")
        cancel.raise_if_cancelled()

        self._set_state(AnalysisState.SCORING)
        rois = resolve_rois(landmarks, frame.width, frame.height, self.config.geometry)
        score = score_frame(frame, rois)
        frame.release()
        if score is None:
            raise NoUsableRegion("Both under-eye regions unusable")
        cancel.raise_if_cancelled()

        self._set_state(AnalysisState.PERSISTING)
        result = self._persist(score)
        self._set_state(AnalysisState.DONE)
        logger.info(
            "Analysis done: current=%.3f baseline=%.3f delta=%.1f%% first=%s",
            result.current_score, result.baseline_score,
            result.delta_percent, result.is_first_time,
        )
        return result

    def _detect(
        self,
        frame: Frame,
        cancel: CancelToken,
        slot: PassSlot,
    ) -> Optional[List[LandmarkPoint]]:
        timeout = self.config.detector_timeout_sec
        poll = self.config.poll_interval_sec
        deadline = time.monotonic() + timeout if timeout > 0 else None
        timestamp_ms = int(time.monotonic() * 1000)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sleepglow_detect_")
        try:
            future = executor.submit(self._detector.detect, frame, timestamp_ms)
            while True:
                if cancel.cancelled:
                    if not future.cancel():
                        slot.hold_until(future)
                    raise AnalysisCancelled("Cancelled while detecting")
                wait_sec = poll
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        if not future.cancel():
                            slot.hold_until(future)
                        raise DetectorUnavailable(f"Detector timed out after {timeout:.1f}s")
                    wait_sec = min(poll, remaining)
                done, _ = wait([future], timeout=wait_sec, return_when=FIRST_COMPLETED)
                if done:
                    break
        finally:
            executor.shutdown(wait=False)

        try:
            raw = future.result()
        except Exception as e:
            raise DetectorUnavailable(f"Detector raised {type(e).__name__}: {e}") from e

        if raw is None:
            return None
        return self._wrap_landmarks(raw)

    @staticmethod
    def _wrap_landmarks(raw: Sequence) -> List[LandmarkPoint]:
        try:
            items = list(raw)
            if all(isinstance(p, LandmarkPoint) for p in items):
                return items
            return to_landmark_points(items)
        except (TypeError, ValueError, IndexError) as e:
            raise DetectorUnavailable(f"Unusable detector output: {e}") from e

    def _persist(self, score: float) -> AnalysisResult:
        date_key = self._date_key()
        baseline = self._store.read_baseline()

        if baseline is None:
            baseline, is_first = self._store.commit_baseline(score)
            if is_first:
                delta = DeltaResult(delta_percent=0.0, improved=False)
            else:
                # Another pass committed first; measure against its value.
                delta = compute_delta(baseline, score)
        else:
            is_first = False
            delta = compute_delta(baseline, score)

        warnings = []
        if not self._store.upsert_history_entry(date_key, delta.delta_percent, is_first):
            warnings.append(HISTORY_WRITE_FAILED)

        return AnalysisResult(
            baseline_score=baseline,
            current_score=score,
            delta_percent=delta.delta_percent,
            improved=delta.improved,
            is_first_time=is_first,
            date_key=date_key,
            warnings=tuple(warnings),
        )

    def _set_state(self, state: AnalysisState) -> None:
        if state is self._state:
            return
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state is not None:
            self._on_state(state)


def run_analysis(
    frame: Frame,
    detector: LandmarkDetector,
    store: BaselineStore,
    config: Optional[AnalysisConfig] = None,
    cancel: Optional[CancelToken] = None,
    date_key: Optional[Callable[[], str]] = None,
) -> Union[AnalysisResult, Failure]:
    """Run a single analysis pass.

    Args:
        frame: Captured frame; released before this returns.
        detector: Landmark detector collaborator.
        store: Baseline & history store for the user/session.
        config: Geometry and timeout settings.
        cancel: Optional cancellation token.
        date_key: Optional day-key provider.

    Returns:
        AnalysisResult on success, Failure with a reason tag otherwise.
    """
    analyzer = CaptureAnalyzer(detector, store, config=config, date_key=date_key)
    return analyzer.run(frame, cancel)


def get_history(store: BaselineStore) -> List[HistoryEntry]:
    """Read-only accessor for the day-keyed history."""
    return store.read_history()


__all__ = [
    "HISTORY_WRITE_FAILED",
    "CancelToken",
    "CaptureAnalyzer",
    "run_analysis",
    "get_history",
]
