"""Shared fixtures for sleepglow tests.

Frames and landmarks are synthetic; NO camera or ML model needed.
"""

import importlib.util
import sys
from pathlib import Path

import numpy as np
import pytest

# Load helpers module from the tests directory using importlib to avoid
# polluting sys.path.
_helpers_path = Path(__file__).resolve().parent / "helpers.py"
_spec = importlib.util.spec_from_file_location("helpers", _helpers_path)
_helpers = importlib.util.module_from_spec(_spec)
sys.modules["helpers"] = _helpers
_spec.loader.exec_module(_helpers)

from helpers import (  # noqa: E402
    FRAME_H,
    FRAME_W,
    make_face_landmarks,
    make_uniform_frame,
)
from sleepglow.baseline import BaselineStore  # noqa: E402
from sleepglow.store import MemoryStore  # noqa: E402


@pytest.fixture
def face_landmarks():
    return make_face_landmarks()


@pytest.fixture
def gray_frame():
    """Uniform frame with luminance 100."""
    return make_uniform_frame(100, 100, 100)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def baseline_store(memory_store):
    return BaselineStore(memory_store)


@pytest.fixture
def random_rgba():
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(FRAME_H, FRAME_W, 4), dtype=np.uint8)
