"""Shared test helpers for sleepglow tests."""

import threading
import time

import numpy as np

from sleepglow.frame import ImageFrame
from sleepglow.geometry import LEFT_UNDER_EYE_INDICES, RIGHT_UNDER_EYE_INDICES
from sleepglow.store import MemoryStore
from sleepglow.types import LandmarkPoint

FRAME_W, FRAME_H = 640, 480
NUM_LANDMARKS = 478


def make_face_landmarks(n: int = NUM_LANDMARKS) -> list:
    """Face spanning y in [0.2, 0.8] with eye clusters at x=0.4 / x=0.6.

    Both clusters have their lowest point at y=0.45.
    """
    points = [LandmarkPoint(0.5, 0.5) for _ in range(n)]
    points[10] = LandmarkPoint(0.5, 0.2)   # forehead
    points[152] = LandmarkPoint(0.5, 0.8)  # chin

    left = [(0.40, 0.45), (0.40, 0.40), (0.42, 0.41), (0.38, 0.44)]
    right = [(0.60, 0.45), (0.60, 0.40), (0.62, 0.41), (0.58, 0.44)]
    for idx, (x, y) in zip(LEFT_UNDER_EYE_INDICES, left):
        points[idx] = LandmarkPoint(x, y)
    for idx, (x, y) in zip(RIGHT_UNDER_EYE_INDICES, right):
        points[idx] = LandmarkPoint(x, y)
    return points


def make_uniform_frame(r: int, g: int, b: int, a: int = 255,
                       width: int = FRAME_W, height: int = FRAME_H) -> ImageFrame:
    rgba = np.zeros((height, width, 4), dtype=np.uint8)
    rgba[..., 0] = r
    rgba[..., 1] = g
    rgba[..., 2] = b
    rgba[..., 3] = a
    return ImageFrame(rgba)


class FakeDetector:
    """Detector returning canned landmarks."""

    def __init__(self, landmarks=None, error=None):
        self.landmarks = landmarks
        self.error = error
        self.calls = []

    def detect(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        if self.error is not None:
            raise self.error
        return self.landmarks


class BlockingDetector:
    """Detector that blocks until ``unblock`` is set.

    Tracks how many calls overlap in ``max_active``.
    """

    def __init__(self, landmarks=None, on_enter=None):
        self.landmarks = landmarks
        self.entered = threading.Event()
        self.unblock = threading.Event()
        self._on_enter = on_enter
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def detect(self, frame, timestamp_ms):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.entered.set()
            if self._on_enter is not None:
                self._on_enter()
            self.unblock.wait(timeout=5.0)
            return self.landmarks
        finally:
            with self._lock:
                self.active -= 1


def wait_until(predicate, timeout=5.0):
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


class FailingStore(MemoryStore):
    """MemoryStore whose writes to ``fail_keys`` raise."""

    def __init__(self, fail_keys=(), initial=None):
        super().__init__(initial)
        self.fail_keys = set(fail_keys)

    def set(self, key, value):
        if key in self.fail_keys:
            raise OSError(f"quota exceeded for {key}")
        super().set(key, value)


