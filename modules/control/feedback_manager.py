"""
Score popups: the short "+10" acknowledgment drawn where an object was hit.
Popups hold for a moment, then fade out and expire.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

import cv2
import numpy as np

from core.types import COLOR_GOOD, ScorePopup

logger = logging.getLogger(__name__)


class FeedbackManager:
    """Manages the score popups of the running session."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._duration_ms = config.get("popup_duration_ms", 800)
        self._fade_ms = config.get("popup_fade_ms", 300)
        self._rise_px = config.get("popup_rise_px", 30)
        self._color = tuple(config.get("popup_color", COLOR_GOOD))
        self._popups: List[ScorePopup] = []

    def add(self, x: float, y: float, text: str, now_ms: float) -> ScorePopup:
        """Show `text` at canvas position (x, y)."""
        popup = ScorePopup(x=x, y=y, text=text, created_at=now_ms)
        self._popups.append(popup)
        return popup

    def opacity(self, popup: ScorePopup, now_ms: float) -> float:
        elapsed = now_ms - popup.created_at
        if elapsed > self._duration_ms:
            return 0.0
        fade_start = self._duration_ms - self._fade_ms
        if self._fade_ms > 0 and elapsed > fade_start:
            return max(0.0, 1.0 - (elapsed - fade_start) / self._fade_ms)
        return 1.0

    def active(self, now_ms: float) -> List[ScorePopup]:
        """Drop expired popups and return the rest with their current opacity."""
        self._popups = [p for p in self._popups if now_ms - p.created_at <= self._duration_ms]
        result = []
        for popup in self._popups:
            elapsed = max(0.0, now_ms - popup.created_at)
            rise = self._rise_px * elapsed / self._duration_ms if self._duration_ms else 0.0
            result.append(replace(popup, y=popup.y - rise, opacity=self.opacity(popup, now_ms)))
        return result

    def clear(self):
        self._popups.clear()

    def render(self, frame: np.ndarray, popups: List[ScorePopup],
               color: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
        """Draw popups on a BGR frame, blending by opacity."""
        color = color or self._color
        for popup in popups:
            if popup.opacity <= 0:
                continue
            org = (int(popup.x), int(popup.y))
            if popup.opacity >= 1.0:
                cv2.putText(frame, popup.text, org, cv2.FONT_HERSHEY_SIMPLEX, 1.0, color, 2)
                continue
            overlay = frame.copy()
            cv2.putText(overlay, popup.text, org, cv2.FONT_HERSHEY_SIMPLEX, 1.0, color, 2)
            cv2.addWeighted(overlay, popup.opacity, frame, 1 - popup.opacity, 0, frame)
        return frame

    def __len__(self):
        return len(self._popups)
