"""Landmark detection. The MediaPipe backend lives in landmark_detector."""
from .base import IMAGE, VIDEO, LandmarkDetector
from .landmark_normalizer import mirror_landmarks, normalize_landmarks

__all__ = ["IMAGE", "VIDEO", "LandmarkDetector", "mirror_landmarks", "normalize_landmarks"]
