"""
Detector interface consumed by the game engine.

Any backend that turns an RGB image into ordered landmark sequences can
drive the games; MediaPipeLandmarker is the production implementation.
"""

import numpy as np

from core.types import DetectionResult

IMAGE = "IMAGE"
VIDEO = "VIDEO"


class LandmarkDetector:
    """Black-box landmark detector with explicit IMAGE/VIDEO running modes."""

    @property
    def is_ready(self) -> bool:
        raise NotImplementedError

    @property
    def running_mode(self) -> str:
        raise NotImplementedError

    def set_running_mode(self, mode: str):
        """Switch between IMAGE and VIDEO; returns once the switch is done."""
        raise NotImplementedError

    def detect(self, image: np.ndarray) -> DetectionResult:
        """Detect landmarks in a single RGB image (IMAGE mode)."""
        raise NotImplementedError

    def detect_for_video(self, frame: np.ndarray, timestamp_ms: float) -> DetectionResult:
        """Detect landmarks in one RGB video frame (VIDEO mode)."""
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
