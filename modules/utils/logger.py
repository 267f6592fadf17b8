"""
Logging setup and the session event log.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps

from core.events import EventBus, Events


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console (and optional rotating file) logging."""
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-28s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    # MediaPipe and absl are chatty at INFO
    logging.getLogger("absl").setLevel(logging.WARNING)

    return root_logger


class GameEventLogger:
    """Writes session events from the bus to the "game_events" logger.

    Also keeps the per-session tallies printed when a session ends.
    """

    def __init__(self, event_bus: EventBus):
        self.logger = logging.getLogger("game_events")
        self._bus = event_bus
        self._session_start = None
        self.hits = 0
        self.jumps = 0
        self.evictions = 0

        self._handlers = {
            Events.SESSION_STARTED: self._on_started,
            Events.SESSION_ENDED: self._on_ended,
            Events.OBJECT_HIT: self._on_hit,
            Events.OBJECT_EVICTED: self._on_evicted,
            Events.JUMP_DETECTED: self._on_jump,
            Events.TARGET_LOADED: self._on_target_loaded,
            Events.TARGET_FAILED: self._on_target_failed,
            Events.CAMERA_ERROR: self._on_camera_error,
        }
        for name, handler in self._handlers.items():
            event_bus.subscribe(name, handler)

    def detach(self):
        for name, handler in self._handlers.items():
            self._bus.unsubscribe(name, handler)

    def _on_started(self, mode=None, duration_sec=None, **_):
        self._session_start = time.monotonic()
        self.hits = self.jumps = self.evictions = 0
        self.logger.info("Session start | mode: %-8s | duration: %s",
                         mode, f"{duration_sec}s" if duration_sec else "untimed")

    def _on_ended(self, score=0, reason="", **_):
        elapsed = time.monotonic() - self._session_start if self._session_start else 0.0
        self.logger.info("Session end   | reason: %-8s | score: %d | hits: %d | jumps: %d | "
                         "evicted: %d | %.1fs", reason, score, self.hits, self.jumps,
                         self.evictions, elapsed)

    def _on_hit(self, kind="", points=0, **_):
        self.hits += 1
        self.logger.debug("Hit: %s +%d", kind, points)

    def _on_evicted(self, **_):
        self.evictions += 1

    def _on_jump(self, **_):
        self.jumps += 1

    def _on_target_loaded(self, hand_count=0, **_):
        self.logger.info("Target loaded with %d hand(s)", hand_count)

    def _on_target_failed(self, reason="", message="", **_):
        self.logger.warning("Target failed: %s (%s)", reason, message)

    def _on_camera_error(self, **_):
        self.logger.error("Camera could not be acquired")


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
