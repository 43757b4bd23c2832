"""Landmark detector backends.

Heavy backends import their ML dependencies lazily, so importing this
package never requires them.
"""

from sleepglow.backends.base import LandmarkDetector, to_landmark_points
from sleepglow.backends.mediapipe_face import MediaPipeFaceLandmarker

__all__ = ["LandmarkDetector", "to_landmark_points", "MediaPipeFaceLandmarker"]
