"""
Tests for the MediaPipe Landmarker Wrapper
===========================================
"""

import pytest
import numpy as np
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

pytest.importorskip("mediapipe")

from core.errors import TransientDetectionError
from modules.detection.landmark_detector import DetectorConfig, MediaPipeLandmarker, MODEL_DIR


def mp_landmark(x, y, z=0.0):
    return SimpleNamespace(x=x, y=y, z=z)


class TestDetectorConfig:
    """Test suite for DetectorConfig."""

    def test_default_values(self):
        config = DetectorConfig()
        assert config.kind == "hand"
        assert config.max_results == 2
        assert config.min_detection_confidence == 0.1
        assert config.running_mode == "IMAGE"
        assert config.delegate == "GPU"

    def test_from_dict_with_kind(self):
        config = DetectorConfig.from_dict({"max_results": 1, "delegate": "CPU"}, kind="pose")
        assert config.kind == "pose"
        assert config.max_results == 1
        assert config.delegate == "CPU"


class TestMediaPipeLandmarker:
    """Test suite for the landmarker without loading a model."""

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            MediaPipeLandmarker(DetectorConfig(kind="face"))

    def test_not_ready_before_start(self):
        detector = MediaPipeLandmarker()
        assert not detector.is_ready
        assert detector.detect(np.zeros((10, 10, 3), dtype=np.uint8)).is_empty

    def test_default_model_path(self):
        detector = MediaPipeLandmarker(DetectorConfig(kind="pose"))
        assert detector.model_path == MODEL_DIR / "pose_landmarker_lite.task"

    def test_set_running_mode_validates(self):
        detector = MediaPipeLandmarker()
        with pytest.raises(ValueError):
            detector.set_running_mode("LIVE_STREAM")

    def test_set_running_mode_before_start(self):
        detector = MediaPipeLandmarker()
        detector.set_running_mode("video")
        assert detector.running_mode == "VIDEO"

    def test_set_running_mode_recreates_task(self):
        detector = MediaPipeLandmarker()
        old = MagicMock()
        detector._landmarker = old
        detector._create = MagicMock(return_value=MagicMock())

        detector.set_running_mode("VIDEO")

        old.close.assert_called_once()
        detector._create.assert_called_once_with("VIDEO", "CPU")

    def test_convert_hand_result(self):
        detector = MediaPipeLandmarker()
        raw = SimpleNamespace(
            hand_landmarks=[[mp_landmark(0.1 * i, 0.5) for i in range(21)]],
            handedness=[[SimpleNamespace(category_name="Left")]],
        )
        result = detector._convert(raw)
        assert len(result.landmarks) == 1
        assert result.handedness == ["Left"]
        assert result.landmarks[0][3].x == pytest.approx(0.3)

    def test_convert_pose_result(self):
        detector = MediaPipeLandmarker(DetectorConfig(kind="pose"))
        raw = SimpleNamespace(pose_landmarks=[[mp_landmark(0.5, 0.5)] * 33])
        result = detector._convert(raw)
        assert len(result.landmarks[0]) == 33
        assert result.handedness == [None]

    def test_video_timestamps_strictly_increase(self):
        detector = MediaPipeLandmarker(DetectorConfig(running_mode="VIDEO"))
        task = MagicMock()
        task.detect_for_video.return_value = SimpleNamespace(hand_landmarks=[], handedness=[])
        detector._landmarker = task
        frame = np.zeros((10, 10, 3), dtype=np.uint8)

        detector.detect_for_video(frame, 100)
        detector.detect_for_video(frame, 100)

        stamps = [call.args[1] for call in task.detect_for_video.call_args_list]
        assert stamps == [100, 101]

    def test_video_failure_is_transient(self):
        detector = MediaPipeLandmarker(DetectorConfig(running_mode="VIDEO"))
        task = MagicMock()
        task.detect_for_video.side_effect = RuntimeError("graph error")
        detector._landmarker = task

        with pytest.raises(TransientDetectionError):
            detector.detect_for_video(np.zeros((10, 10, 3), dtype=np.uint8), 5)
