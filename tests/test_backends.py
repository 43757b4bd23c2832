"""Tests for landmark detector backends (no MediaPipe install needed)."""

import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from sleepglow.backends import MediaPipeFaceLandmarker, to_landmark_points
from sleepglow.backends import mediapipe_face
from sleepglow.types import LandmarkPoint


class TestToLandmarkPoints:
    def test_from_attribute_objects(self):
        raw = [SimpleNamespace(x=0.1, y=0.2, z=-0.05), SimpleNamespace(x=0.3, y=0.4, z=0.0)]
        assert to_landmark_points(raw) == [
            LandmarkPoint(0.1, 0.2, -0.05),
            LandmarkPoint(0.3, 0.4, 0.0),
        ]

    def test_from_sequences(self):
        assert to_landmark_points([(0.1, 0.2), [0.3, 0.4, 0.5]]) == [
            LandmarkPoint(0.1, 0.2, 0.0),
            LandmarkPoint(0.3, 0.4, 0.5),
        ]

    def test_missing_z_attribute(self):
        assert to_landmark_points([SimpleNamespace(x=0.1, y=0.2)]) == [LandmarkPoint(0.1, 0.2)]

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError):
            to_landmark_points([(0.1, float("inf"))])


class TestModelPath:
    def test_default_under_data_home(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SLEEPGLOW_MODELS_DIR", raising=False)
        monkeypatch.setenv("SLEEPGLOW_HOME", str(tmp_path))
        assert mediapipe_face._default_models_dir() == tmp_path / "models"

    def test_models_dir_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLEEPGLOW_HOME", str(tmp_path / "home"))
        monkeypatch.setenv("SLEEPGLOW_MODELS_DIR", str(tmp_path / "models"))
        assert mediapipe_face._default_models_dir() == tmp_path / "models"

    def test_models_dir_created(self, tmp_path, monkeypatch):
        monkeypatch.setattr(mediapipe_face.urllib.request, "urlretrieve", MagicMock())
        target = tmp_path / "nested" / "models"

        mediapipe_face._get_model_path(target)

        assert target.is_dir()

    def test_existing_model_not_downloaded(self, tmp_path, monkeypatch):
        (tmp_path / "face_landmarker.task").write_bytes(b"model")
        download = MagicMock()
        monkeypatch.setattr(mediapipe_face.urllib.request, "urlretrieve", download)

        path = mediapipe_face._get_model_path(tmp_path)

        assert path == tmp_path / "face_landmarker.task"
        download.assert_not_called()

    def test_download_failure(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            mediapipe_face.urllib.request, "urlretrieve",
            MagicMock(side_effect=OSError("offline")),
        )
        with pytest.raises(RuntimeError, match="Failed to download"):
            mediapipe_face._get_model_path(tmp_path)


class TestMediaPipeFaceLandmarker:
    def test_detect_requires_initialize(self, gray_frame):
        with pytest.raises(RuntimeError, match="not initialized"):
            MediaPipeFaceLandmarker().detect(gray_frame, 0)

    def test_initialize_without_mediapipe(self, monkeypatch, tmp_path):
        monkeypatch.setitem(sys.modules, "mediapipe", None)
        monkeypatch.setitem(sys.modules, "mediapipe.tasks", None)
        with pytest.raises(ImportError, match="pip install"):
            MediaPipeFaceLandmarker(models_dir=tmp_path).initialize()

    def _ready_backend(self, monkeypatch, result):
        fake_mp = MagicMock()
        monkeypatch.setitem(sys.modules, "mediapipe", fake_mp)
        backend = MediaPipeFaceLandmarker()
        backend._landmarker = MagicMock()
        backend._landmarker.detect_for_video.return_value = result
        backend._initialized = True
        return backend, fake_mp

    def test_detect_wraps_first_face(self, monkeypatch, gray_frame):
        face0 = [SimpleNamespace(x=0.1, y=0.2, z=0.0), SimpleNamespace(x=0.3, y=0.4, z=0.1)]
        face1 = [SimpleNamespace(x=0.9, y=0.9, z=0.0)]
        backend, fake_mp = self._ready_backend(
            monkeypatch, SimpleNamespace(face_landmarks=[face0, face1]),
        )

        landmarks = backend.detect(gray_frame, timestamp_ms=1000)

        assert landmarks == [LandmarkPoint(0.1, 0.2, 0.0), LandmarkPoint(0.3, 0.4, 0.1)]
        image_kwargs = fake_mp.Image.call_args.kwargs
        assert image_kwargs["data"].shape == (480, 640, 3)

    def test_detect_no_face(self, monkeypatch, gray_frame):
        backend, _ = self._ready_backend(monkeypatch, SimpleNamespace(face_landmarks=[]))
        assert backend.detect(gray_frame, 0) is None

    def test_timestamps_strictly_increase(self, monkeypatch, gray_frame):
        backend, _ = self._ready_backend(monkeypatch, SimpleNamespace(face_landmarks=[]))

        backend.detect(gray_frame, 500)
        backend.detect(gray_frame, 500)
        backend.detect(gray_frame, 100)

        sent = [c.args[1] for c in backend._landmarker.detect_for_video.call_args_list]
        assert sent == [500, 501, 502]

    def test_cleanup_closes_landmarker(self, monkeypatch):
        backend, _ = self._ready_backend(monkeypatch, None)
        landmarker = backend._landmarker

        backend.cleanup()

        landmarker.close.assert_called_once()
        assert backend._landmarker is None
