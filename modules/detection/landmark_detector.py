"""
Landmark detection via the MediaPipe Tasks API (HandLandmarker / PoseLandmarker).

The game treats the detector as a black box that turns an RGB image into
zero or more ordered landmark sequences. Two running modes exist:
IMAGE for one-off reference images and VIDEO for the webcam stream. A
MediaPipe task cannot change mode in place, so switching re-creates it.
"""

import logging
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from core.errors import TransientDetectionError
from core.types import DetectionResult, Landmark
from modules.detection.base import IMAGE, VIDEO, LandmarkDetector

logger = logging.getLogger(__name__)

MODEL_URLS = {
    "hand": "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task",
    "pose": "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task",
}
MODEL_DIR = Path(__file__).parent.parent.parent / "models"

@dataclass
class DetectorConfig:
    """Configuration for a landmark detector."""
    kind: str = "hand"                # hand or pose
    model_path: str = ""
    max_results: int = 2              # num_hands / num_poses
    min_detection_confidence: float = 0.1
    min_presence_confidence: float = 0.1
    min_tracking_confidence: float = 0.1
    running_mode: str = IMAGE
    delegate: str = "GPU"             # GPU first, CPU fallback

    @classmethod
    def from_dict(cls, d: dict, kind: Optional[str] = None) -> "DetectorConfig":
        """Create config from dictionary."""
        return cls(
            kind=kind or d.get("kind", "hand"),
            model_path=d.get("model_path", ""),
            max_results=d.get("max_results", 2),
            min_detection_confidence=d.get("min_detection_confidence", 0.1),
            min_presence_confidence=d.get("min_presence_confidence", 0.1),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.1),
            running_mode=d.get("running_mode", IMAGE),
            delegate=d.get("delegate", "GPU"),
        )


def download_model(url: str, save_path: Path) -> bool:
    """Download a landmarker model if not present."""
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except Exception as e:
        logger.error("Failed to download model: %s", e)
        return False


class MediaPipeLandmarker(LandmarkDetector):
    """
    MediaPipe Tasks landmarker for hands or full-body poses.

    Example:
        >>> detector = MediaPipeLandmarker(DetectorConfig(kind="pose", running_mode="VIDEO"))
        >>> detector.start()
        >>> result = detector.detect_for_video(rgb_frame, timestamp_ms)
        >>> detector.close()
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        if self.config.kind not in MODEL_URLS:
            raise ValueError(f"Unknown detector kind: {self.config.kind!r}")
        self._landmarker = None
        self._mode = self.config.running_mode
        self._delegate = None
        self._last_timestamp_ms = -1

    @property
    def is_ready(self) -> bool:
        return self._landmarker is not None

    @property
    def running_mode(self) -> str:
        return self._mode

    @property
    def model_path(self) -> Path:
        if self.config.model_path:
            return Path(self.config.model_path)
        return MODEL_DIR / Path(MODEL_URLS[self.config.kind]).name

    def start(self) -> bool:
        """Create the landmarker, trying the GPU delegate before the CPU."""
        model_path = self.model_path
        if not model_path.exists():
            if not download_model(MODEL_URLS[self.config.kind], model_path):
                logger.error("Could not download %s landmarker model", self.config.kind)
                return False

        delegates = [self.config.delegate.upper()]
        if delegates[0] != "CPU":
            delegates.append("CPU")

        for delegate in delegates:
            try:
                self._landmarker = self._create(self._mode, delegate)
                self._delegate = delegate
                logger.info("%s landmarker loaded (%s, mode=%s)",
                            self.config.kind.capitalize(), delegate, self._mode)
                return True
            except Exception as e:
                logger.warning("%s delegate failed for %s landmarker: %s",
                               delegate, self.config.kind, e)

        logger.error("Failed to create %s landmarker with any delegate", self.config.kind)
        return False

    def _create(self, mode: str, delegate: str):
        base_options = python.BaseOptions(
            model_asset_path=str(self.model_path),
            delegate=(python.BaseOptions.Delegate.GPU if delegate == "GPU"
                      else python.BaseOptions.Delegate.CPU),
        )
        running_mode = vision.RunningMode.IMAGE if mode == IMAGE else vision.RunningMode.VIDEO

        if self.config.kind == "hand":
            options = vision.HandLandmarkerOptions(
                base_options=base_options,
                running_mode=running_mode,
                num_hands=self.config.max_results,
                min_hand_detection_confidence=self.config.min_detection_confidence,
                min_hand_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            return vision.HandLandmarker.create_from_options(options)

        options = vision.PoseLandmarkerOptions(
            base_options=base_options,
            running_mode=running_mode,
            num_poses=self.config.max_results,
            min_pose_detection_confidence=self.config.min_detection_confidence,
            min_pose_presence_confidence=self.config.min_presence_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )
        return vision.PoseLandmarker.create_from_options(options)

    def set_running_mode(self, mode: str):
        mode = mode.upper()
        if mode not in (IMAGE, VIDEO):
            raise ValueError(f"Unknown running mode: {mode!r}")
        if mode == self._mode:
            return

        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = self._create(mode, self._delegate or "CPU")
        self._mode = mode
        self._last_timestamp_ms = -1
        logger.info("Switched %s landmarker to %s mode", self.config.kind, mode)

    def _to_mp_image(self, image: np.ndarray):
        return mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(image))

    def detect(self, image: np.ndarray) -> DetectionResult:
        if self._landmarker is None:
            logger.warning("Landmarker not initialized. Call start() first.")
            return DetectionResult()
        if self._mode != IMAGE:
            self.set_running_mode(IMAGE)
        return self._convert(self._landmarker.detect(self._to_mp_image(image)))

    def detect_for_video(self, frame: np.ndarray, timestamp_ms: float) -> DetectionResult:
        if self._landmarker is None:
            logger.warning("Landmarker not initialized. Call start() first.")
            return DetectionResult()
        if self._mode != VIDEO:
            self.set_running_mode(VIDEO)

        # VIDEO mode rejects non-increasing timestamps
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        try:
            raw = self._landmarker.detect_for_video(self._to_mp_image(frame), ts)
        except (RuntimeError, ValueError) as e:
            raise TransientDetectionError(f"{self.config.kind} detection failed at {ts}ms: {e}") from e
        return self._convert(raw)

    def _convert(self, result) -> DetectionResult:
        if self.config.kind == "hand":
            raw_landmarks = result.hand_landmarks or []
            raw_handedness = result.handedness or []
        else:
            raw_landmarks = result.pose_landmarks or []
            raw_handedness = []

        detection = DetectionResult()
        for i, seq in enumerate(raw_landmarks):
            detection.landmarks.append([Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in seq])
            label = None
            if i < len(raw_handedness) and raw_handedness[i]:
                label = raw_handedness[i][0].category_name
            detection.handedness.append(label)
        return detection

    def close(self):
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("%s landmarker closed", self.config.kind.capitalize())
