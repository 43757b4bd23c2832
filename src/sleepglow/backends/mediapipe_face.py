"""MediaPipe Face Landmarker backend."""

from pathlib import Path
from typing import List, Optional
import logging
import os
import urllib.request

from sleepglow.backends.base import to_landmark_points
from sleepglow.config import MODELS_DIR_ENV, data_home
from sleepglow.frame import ImageFrame
from sleepglow.types import LandmarkPoint

logger = logging.getLogger(__name__)

FACE_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/1/face_landmarker.task"
)


def _default_models_dir() -> Path:
    """``$SLEEPGLOW_MODELS_DIR`` if set, otherwise ``models/`` under the data home."""
    override = os.environ.get(MODELS_DIR_ENV)
    return Path(override).expanduser() if override else data_home() / "models"


def _get_model_path(models_dir: Optional[Path] = None) -> Path:
    """Get path to the face landmarker model, downloading if necessary."""
    models_dir = Path(models_dir) if models_dir is not None else _default_models_dir()
    models_dir.mkdir(parents=True, exist_ok=True)
    model_path = models_dir / "face_landmarker.task"

    if not model_path.exists():
        logger.info("Downloading face landmarker model to %s...", model_path)
        try:
            urllib.request.urlretrieve(FACE_LANDMARKER_MODEL_URL, model_path)
            logger.info("Download complete.")
        except Exception as e:
            raise RuntimeError(
                f"Failed to download face landmarker model: {e}\n"
                f"You can manually download from: {FACE_LANDMARKER_MODEL_URL}\n"
                f"And save to: {model_path}"
            ) from e

    return model_path


class MediaPipeFaceLandmarker:
    """Landmark detector using the MediaPipe Tasks FaceLandmarker.

    Runs in VIDEO mode with a single face. Landmark numbering follows the
    Face Mesh topology that the under-eye indices are defined against.

    Args:
        min_detection_confidence: Minimum face detection confidence.
        models_dir: Directory holding ``face_landmarker.task``.

    Example:
        >>> detector = MediaPipeFaceLandmarker()
        >>> detector.initialize()
        >>> landmarks = detector.detect(frame, timestamp_ms=0)
        >>> detector.cleanup()
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        models_dir: Optional[Path] = None,
    ):
        self._min_detection_confidence = min_detection_confidence
        self._models_dir = models_dir
        self._landmarker: Optional[object] = None
        self._initialized = False
        self._last_timestamp_ms = -1

    def initialize(self) -> None:
        """Load the FaceLandmarker model."""
        if self._initialized:
            return

        try:
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision
        except ImportError as e:
            raise ImportError(
                "MediaPipe is required for face landmark detection. "
                "Install it with: pip install 'sleepglow[mediapipe]'"
            ) from e

        model_path = _get_model_path(self._models_dir)
        base_options = python.BaseOptions(model_asset_path=str(model_path))
        options = vision.FaceLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=self._min_detection_confidence,
        )
        self._landmarker = vision.FaceLandmarker.create_from_options(options)
        self._initialized = True
        logger.info("MediaPipe FaceLandmarker initialized")

    def detect(self, frame: ImageFrame, timestamp_ms: int) -> Optional[List[LandmarkPoint]]:
        """Detect the first face's landmarks.

        Args:
            frame: Captured frame.
            timestamp_ms: Monotonic capture time; VIDEO mode rejects
                non-increasing timestamps, so repeats are bumped by 1 ms.

        Returns:
            Landmarks of the first face, or None if no face was found.
        """
        if not self._initialized or self._landmarker is None:
            raise RuntimeError("Backend not initialized. Call initialize() first.")

        import mediapipe as mp

        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame.to_rgb())
        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        faces = getattr(result, "face_landmarks", None) or []
        if not faces:
            return None
        return to_landmark_points(faces[0])

    def cleanup(self) -> None:
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
        self._initialized = False
        logger.info("MediaPipe FaceLandmarker cleaned up")


__all__ = ["FACE_LANDMARKER_MODEL_URL", "MediaPipeFaceLandmarker"]
