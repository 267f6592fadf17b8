"""Reference targets for the charades game."""
from .target_loader import TargetCarousel, detect_target_hands

__all__ = ["TargetCarousel", "detect_target_hands"]
