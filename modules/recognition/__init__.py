"""Hand-shape similarity, multi-hand matching and body motion classification."""
from .similarity_scorer import similarity_score, score_color
from .hand_matcher import match_hands
from .motion_classifier import MotionClassifier, MotionConfig

__all__ = ["similarity_score", "score_color", "match_hands", "MotionClassifier", "MotionConfig"]
