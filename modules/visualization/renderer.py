"""
Frame renderer: camera image, skeleton, game objects, popups and the HUD.

Pure drawing. Everything shown comes from one FrameDrawables snapshot,
so the renderer never reads game state directly.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from core.types import Block, Circle, FrameDrawables
from modules.control.feedback_manager import FeedbackManager

logger = logging.getLogger(__name__)


class Renderer:
    """Draws a FrameDrawables snapshot over the camera frame."""

    def __init__(self, config: dict, feedback: Optional[FeedbackManager] = None):
        self._show_fps = config.get("show_fps", True)
        self._show_skeleton = config.get("show_skeleton", True)
        self._hud_height = config.get("hud_height", 50)
        self._hud_opacity = config.get("hud_opacity", 0.6)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [255, 255, 255]))
        self._color_bone = tuple(colors.get("bone", [255, 255, 255]))
        self._color_joint = tuple(colors.get("joint", [0, 0, 255]))
        self._color_fps = tuple(colors.get("fps", [0, 255, 0]))

        self._feedback = feedback or FeedbackManager(config)

    def render(self, frame: Optional[np.ndarray], drawables: FrameDrawables,
               canvas_size=(640, 480)) -> np.ndarray:
        """Compose one display frame.

        Args:
            frame: BGR camera frame, or None for a black canvas
            drawables: Snapshot of what to draw
            canvas_size: (width, height) used when frame is None

        Returns:
            The composed BGR image
        """
        if frame is None:
            w, h = canvas_size
            canvas = np.zeros((h, w, 3), dtype=np.uint8)
        elif drawables.mirrored:
            canvas = cv2.flip(frame, 1)
        else:
            canvas = frame.copy()

        if self._show_skeleton:
            for skeleton in drawables.skeletons:
                self._draw_skeleton(canvas, skeleton, drawables.connections, drawables.mirrored)

        for entity in drawables.entities:
            self._draw_entity(canvas, entity)

        self._feedback.render(canvas, drawables.popups)
        self._draw_hud(canvas, drawables)
        return canvas

    def _draw_skeleton(self, canvas, landmarks, connections, mirrored):
        h, w = canvas.shape[:2]
        points = []
        for lm in landmarks:
            x = (1.0 - lm.x) if mirrored else lm.x
            points.append((int(x * w), int(lm.y * h)))

        for start, end in connections:
            if start < len(points) and end < len(points):
                cv2.line(canvas, points[start], points[end], self._color_bone, 2)
        for point in points:
            cv2.circle(canvas, point, 4, self._color_joint, -1)

    def _draw_entity(self, canvas, entity):
        color = tuple(int(c) for c in entity.color)
        if isinstance(entity, Block):
            top_left = (int(entity.x), int(entity.y))
            bottom_right = (int(entity.x + entity.width), int(entity.y + entity.height))
            cv2.rectangle(canvas, top_left, bottom_right, color, -1)
            cv2.rectangle(canvas, top_left, bottom_right, (255, 255, 255), 1)
        elif isinstance(entity, Circle):
            center = (int(entity.x), int(entity.y))
            cv2.circle(canvas, center, int(entity.radius), color, -1)
            cv2.circle(canvas, center, int(entity.radius), (255, 255, 255), 2)
        else:
            logger.debug("No drawing for %s", type(entity).__name__)

    def _draw_hud(self, canvas, drawables: FrameDrawables):
        h, w = canvas.shape[:2]
        overlay = canvas.copy()
        cv2.rectangle(overlay, (0, 0), (w, self._hud_height), (20, 20, 20), -1)
        cv2.addWeighted(overlay, self._hud_opacity, canvas, 1 - self._hud_opacity, 0, canvas)

        baseline = self._hud_height - 18
        if drawables.time_left is not None:
            cv2.putText(canvas, f"Score: {drawables.score}", (15, baseline),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.8, self._color_text, 2)
            cv2.putText(canvas, f"Time: {drawables.time_left}", (w - 150, baseline),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.8, self._color_text, 2)

        if drawables.status_text:
            size = cv2.getTextSize(drawables.status_text, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2)[0]
            x = (w - size[0]) // 2
            y = baseline if drawables.time_left is None else h - 20
            cv2.putText(canvas, drawables.status_text, (x, y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.8, drawables.status_color, 2)

        if self._show_fps and drawables.fps > 0:
            cv2.putText(canvas, f"FPS: {drawables.fps:.1f}", (15, h - 15),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, self._color_fps, 1)
