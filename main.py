#!/usr/bin/env python3
"""
Pose Arcade - webcam body and hand games
Main application entry point.

Games:
    charades   match the hand shapes of a reference image
    blocks     step on floor blocks (move your feet or jump first)
    circles    touch circles with your wrists or ankles

Usage:
    python main.py                          # Blocks game
    python main.py --mode circles           # Circles game
    python main.py --mode charades --targets ./targets
    python main.py --camera 1 --config my_config.yaml

Keys:
    s  start a session        x  stop the session
    n  next target image      p  previous target image
    q  quit
"""

import sys
import os
import signal
import argparse
import logging

import cv2
import numpy as np

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, GameEventLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.capture.camera_manager import CameraManager
from modules.charades.target_loader import TargetCarousel
from modules.control.feedback_manager import FeedbackManager
from modules.detection.landmark_detector import DetectorConfig, MediaPipeLandmarker
from modules.visualization.renderer import Renderer

from core.errors import CameraAcquisitionError, DetectorUnavailableError
from core.events import EventBus
from core.modes import create_mode
from core.scheduler import Scheduler
from core.session import SessionController
from core.types import FrameDrawables, GameMode

logger = logging.getLogger(__name__)


class PoseArcadeApp:
    """Wires config, detector, camera, session and window together."""

    def __init__(self, config: Config, mode: GameMode, targets_dir: str = None):
        self.config = config
        self._running = False
        self._window = config.visualization.get("window_name", "Pose Arcade")

        camera_cfg = config.camera
        self._canvas_size = (camera_cfg.get("width", 640), camera_cfg.get("height", 480))
        self._last_canvas = None

        self.bus = EventBus()
        self.event_log = GameEventLogger(self.bus)
        self.scheduler = Scheduler.wall_clock()
        self.perf = PerformanceMonitor()
        self.feedback = FeedbackManager(config.visualization)
        self.renderer = Renderer(config.visualization, self.feedback)

        self.mode = create_mode(mode, config.as_dict(), self._canvas_size, self.bus)

        det_cfg = dict(config.detector)
        det_cfg["model_path"] = det_cfg.get(f"{self.mode.detector_kind}_model_path", "")
        self.detector = MediaPipeLandmarker(
            DetectorConfig.from_dict(det_cfg, kind=self.mode.detector_kind))
        self.camera = CameraManager(camera_cfg)

        self.session = SessionController(
            self.mode, self.detector, self.camera, self.scheduler,
            event_bus=self.bus,
            config=config.game,
            performance_monitor=self.perf,
            feedback=self.feedback,
            render=self._on_render,
        )

        self.carousel = None
        if mode == GameMode.CHARADES:
            targets_dir = targets_dir or os.path.join(
                config.base_dir, config.charades.get("targets_dir", "targets"))
            self.carousel = TargetCarousel(targets_dir)
            self.carousel.on_change(self._queue_target)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        logger.info("Initializing %s landmarker...", self.mode.detector_kind)
        if not self.detector.start():
            logger.error("Detector failed to initialize, exiting")
            return

        if self.carousel is not None and self.carousel.current is not None:
            self._queue_target(self.carousel.current)

        # Window and keyboard run as their own task, alongside the session's
        self.scheduler.schedule("ui", 15, self._on_ui, delay_ms=0)
        self._running = True
        logger.info("Press 's' to start, 'x' to stop, 'q' to quit")
        try:
            self.scheduler.run_forever()
        finally:
            self._shutdown()

    def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        self.scheduler.cancel_all()
        self.session.shutdown()
        self.event_log.detach()
        self.perf.log_report()
        cv2.destroyAllWindows()
        logger.info("Shutdown complete")

    def handle_signal(self, signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        self._running = False
        self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_render(self, frame: np.ndarray, drawables: FrameDrawables):
        self._last_canvas = self.renderer.render(frame, drawables, self._canvas_size)

    def _queue_target(self, path):
        """Load a target image on the next scheduler pass."""
        logger.info("Loading target: %s", path)

        def load(now_ms):
            self.session.load_target(path)
            return False

        self.scheduler.schedule("load_target", 1, load, delay_ms=0)

    def _on_ui(self, now_ms: float):
        if not self._running:
            return False

        if self._last_canvas is None or not self.session.is_playing:
            # Idle screen: last frame or a blank canvas, with the status line
            self._last_canvas = self.renderer.render(
                None, self.session.drawables(now_ms), self._canvas_size)

        cv2.imshow(self._window, self._last_canvas)
        key = cv2.waitKey(1) & 0xFF
        if key != 255:
            self._handle_key(chr(key))
        return None

    def _handle_key(self, key: str):
        if key == "q":
            self._running = False
            self.scheduler.shutdown()
        elif key == "s":
            try:
                self.session.start()
            except (DetectorUnavailableError, CameraAcquisitionError) as e:
                logger.error("Could not start session: %s", e)
        elif key == "x":
            self.session.stop(reason="user")
        elif key == "n" and self.carousel is not None:
            self.carousel.next()
        elif key == "p" and self.carousel is not None:
            self.carousel.previous()


def parse_args():
    parser = argparse.ArgumentParser(
        description="Pose Arcade - webcam body and hand games"
    )
    parser.add_argument(
        "--mode", type=str, default=None,
        choices=[m.value for m in GameMode],
        help="Game to play (default from config: game.mode)"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--targets", type=str, default=None,
        help="Directory of charades reference images"
    )
    parser.add_argument(
        "--duration", type=int, default=None,
        help="Session length in seconds for timed games"
    )
    return parser.parse_args()


def main():
    args = parse_args()

    config = Config()
    config.load(config_path=args.config)

    overrides = {}
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.duration is not None:
        overrides.setdefault("game", {})["duration_sec"] = args.duration
    if overrides:
        config.update(overrides)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file") or None,
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    mode = GameMode.from_string(args.mode or config.get("game.mode", "blocks"))

    logger.info("=" * 60)
    logger.info("  POSE ARCADE")
    logger.info("  Game: %s", mode.value)
    logger.info("=" * 60)

    app = PoseArcadeApp(config, mode, targets_dir=args.targets)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    app.start()


if __name__ == "__main__":
    main()
