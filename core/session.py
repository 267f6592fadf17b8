"""
Session controller: owns the GameState and drives one game session.

A session runs up to three recurring tasks on the scheduler:
    frame      read camera -> detect -> mode.on_frame -> render
    countdown  one-second timer (timed modes only)
    spawn      create a game object (modes with a spawner)

start() builds a fresh GameState; stop() is idempotent and releases the
camera on every path. All callbacks re-check is_playing first, so a tick
that lands after stop() does nothing.
"""

import logging
from typing import Callable, Optional

import cv2
import numpy as np

from core.errors import (
    CameraAcquisitionError, DetectorUnavailableError, TransientDetectionError,
)
from core.events import EventBus, Events
from core.modes import BaseMode, CharadesMode
from core.scheduler import Scheduler
from core.types import (
    COLOR_TEXT, Block, DetectionResult, FrameDrawables, GameState, SessionStatus,
)
from modules.control.feedback_manager import FeedbackManager
from modules.detection.base import VIDEO, LandmarkDetector
from modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

RenderCallback = Callable[[np.ndarray, FrameDrawables], None]


class SessionController:
    """Start/stop lifecycle and per-tick game logic for one mode.

    Args:
        mode: Game mode rules (CharadesMode, BlocksMode, CirclesMode)
        detector: Landmark detector matching mode.detector_kind
        camera: Object with open(), read(), release(), blank_frame()
        scheduler: Scheduler the session tasks are registered on
        event_bus: Bus for session events (a private one if omitted)
        config: The "game" config section
        performance_monitor: FPS and stage latency tracking
        feedback: Score popup manager
        render: Called with (bgr_frame, FrameDrawables) every frame
    """

    def __init__(
        self,
        mode: BaseMode,
        detector: LandmarkDetector,
        camera,
        scheduler: Scheduler,
        event_bus: Optional[EventBus] = None,
        config: Optional[dict] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        feedback: Optional[FeedbackManager] = None,
        render: Optional[RenderCallback] = None,
    ):
        config = config or {}
        self._mode = mode
        self._detector = detector
        self._camera = camera
        self._scheduler = scheduler
        self._bus = event_bus or EventBus()
        self._perf = performance_monitor or PerformanceMonitor()
        self._feedback = feedback or FeedbackManager()
        self._render = render

        self._duration_sec = int(config.get("duration_sec", 60))
        self._frame_interval_ms = config.get("frame_interval_ms", 33)
        self._countdown_interval_ms = config.get("countdown_interval_ms", 1000)

        self._state = GameState(time_left=self._duration_sec)
        self._status = SessionStatus.IDLE
        self._last_detection: Optional[DetectionResult] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def mode(self) -> BaseMode:
        return self._mode

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Begin a new session.

        Raises:
            DetectorUnavailableError: the detector is not initialized
            CameraAcquisitionError: the webcam could not be opened
        """
        if self._detector is None or not self._detector.is_ready:
            raise DetectorUnavailableError("Detector not initialized")

        if self._status == SessionStatus.PLAYING:
            logger.info("Restarting running session")
            self.stop(reason="restart")

        now = self._scheduler.now()
        self._state = GameState(time_left=self._duration_sec)
        self._feedback.clear()
        self._last_detection = None
        self._mode.on_start(self._state, now)

        if not self._camera.open():
            self._end(reason="camera_error")
            self._bus.emit(Events.CAMERA_ERROR)
            raise CameraAcquisitionError("Could not open the camera")

        self._state.is_playing = True
        self._status = SessionStatus.PLAYING

        self._scheduler.schedule("frame", self._frame_interval_ms, self._on_frame)
        if self._mode.timed:
            self._scheduler.schedule("countdown", self._countdown_interval_ms, self._on_countdown)
        if self._mode.spawn_interval_ms is not None:
            self._scheduler.schedule("spawn", self._mode.spawn_interval_ms, self._on_spawn)

        logger.info("Session started: mode=%s, duration=%s", self._mode.mode.value,
                    f"{self._duration_sec}s" if self._mode.timed else "untimed")
        self._bus.emit(Events.SESSION_STARTED, mode=self._mode.mode.value,
                       duration_sec=self._duration_sec if self._mode.timed else None)

    def stop(self, reason: str = "user"):
        """End the session. Calling it again, or before start(), is a no-op."""
        if self._status != SessionStatus.PLAYING:
            return
        self._end(reason)
        final = self._shown_score()
        self._state.status_text = f"Game over! Final score: {final}"
        self._state.status_color = COLOR_TEXT
        logger.info("Session ended (%s): score=%d", reason, final)
        self._bus.emit(Events.SESSION_ENDED, score=final, reason=reason)

    def _shown_score(self) -> int:
        # Untimed charades reports the live similarity instead of points
        return self._state.similarity if not self._mode.timed else self._state.score

    def _end(self, reason: str):
        self._state.is_playing = False
        for name in ("frame", "countdown", "spawn"):
            self._scheduler.cancel(name)
        self._camera.release()
        self._status = SessionStatus.ENDED
        logger.debug("Session resources released (%s)", reason)

    def load_target(self, source) -> bool:
        """Load a charades reference image.

        Must run on the scheduler thread (main.py queues it as a one-shot
        task): the frame task reads the detector without locking.
        """
        if not isinstance(self._mode, CharadesMode):
            logger.warning("load_target() ignored in %s mode", self._mode.mode.value)
            return False
        ok = self._mode.load_target(self._detector, source)
        if self._status != SessionStatus.PLAYING:
            self._state.status_text, self._state.status_color = self._mode.target_status
        return ok

    # ------------------------------------------------------------------
    # Task callbacks
    # ------------------------------------------------------------------

    def _on_frame(self, now_ms: float):
        if not self._state.is_playing:
            return False
        if not self._mode.ready_for_frame():
            # Detector is busy with a target image; retry next tick.
            self._perf.record_drop()
            return None

        with self._perf.measure("capture"):
            _, frame = self._camera.read()
        if frame is None:
            logger.debug("No camera frame")
            self._perf.record_drop()
            return None

        detection = self._detect(frame, now_ms)
        self._last_detection = detection

        with self._perf.measure("game"):
            hits = self._mode.on_frame(self._state, detection, now_ms)
        points = getattr(getattr(self._mode, "collision", None), "points", 0)
        for obj in hits:
            cx, cy = obj.center
            # Blocks sit on the floor; lift the popup above them.
            if isinstance(obj, Block):
                cy -= obj.height
            self._feedback.add(cx, cy, f"+{points}", now_ms)

        if self._render is not None:
            with self._perf.measure("render"):
                self._render(frame, self.drawables(now_ms))

        self._perf.tick()
        return None

    def _detect(self, frame: np.ndarray, now_ms: float) -> Optional[DetectionResult]:
        try:
            if self._detector.running_mode != VIDEO:
                self._detector.set_running_mode(VIDEO)
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            with self._perf.measure("detection"):
                return self._detector.detect_for_video(rgb, now_ms)
        except TransientDetectionError as e:
            logger.warning("Frame skipped: %s", e)
            self._bus.emit(Events.DETECTION_ERROR, error=str(e))
            return None

    def _on_countdown(self, now_ms: float):
        if not self._state.is_playing:
            return False
        self._state.time_left = max(0, self._state.time_left - 1)
        self._bus.emit(Events.TIMER_TICK, time_left=self._state.time_left)
        if self._state.time_left <= 0:
            self.stop(reason="time_up")
            return False
        return None

    def _on_spawn(self, now_ms: float):
        if not self._state.is_playing:
            return False
        self._mode.spawn(self._state, now_ms)
        return None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def drawables(self, now_ms: Optional[float] = None) -> FrameDrawables:
        """Snapshot of what the renderer should draw for the current state."""
        now_ms = self._scheduler.now() if now_ms is None else now_ms
        detection = self._last_detection
        state = self._state
        return FrameDrawables(
            skeletons=list(detection.landmarks) if detection is not None else [],
            connections=self._mode.connections,
            mirrored=self._mode.mirrored,
            entities=[e for e in state.entities if e.active],
            popups=self._feedback.active(now_ms),
            score=self._shown_score(),
            time_left=state.time_left if self._mode.timed else None,
            status_text=state.status_text,
            status_color=state.status_color,
            fps=self._perf.fps,
        )

    def shutdown(self):
        """Stop the session and close the detector."""
        self.stop(reason="shutdown")
        self._camera.release()
        if self._detector is not None:
            self._detector.close()
        logger.info("Session controller shut down")
