"""
Frame-rate and per-stage latency tracking for the game loop.
Rolling windows; safe to read from the UI while the loop writes.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)

GAME_STAGES = ("capture", "detection", "game", "render")


class PerformanceMonitor:
    """Tracks FPS, dropped frames and average stage latency."""

    def __init__(self, window_size=60):
        self._window_size = window_size
        self._lock = threading.Lock()
        self._intervals = deque(maxlen=window_size)
        self._last_tick = None
        self._stages = {name: deque(maxlen=window_size) for name in GAME_STAGES}
        self._frame_count = 0
        self._dropped_frames = 0
        self._start_time = time.monotonic()

    @contextmanager
    def measure(self, stage_name: str):
        """Time the body of a with-block as one sample of `stage_name`."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                samples = self._stages.setdefault(stage_name, deque(maxlen=self._window_size))
                samples.append(elapsed_ms)

    def tick(self):
        """Mark one rendered frame."""
        now = time.perf_counter()
        with self._lock:
            if self._last_tick is not None:
                self._intervals.append(now - self._last_tick)
            self._last_tick = now
            self._frame_count += 1

    def record_drop(self):
        with self._lock:
            self._dropped_frames += 1

    @property
    def fps(self) -> float:
        with self._lock:
            if len(self._intervals) < 2:
                return 0.0
            avg = sum(self._intervals) / len(self._intervals)
        return 1.0 / avg if avg > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def dropped_frames(self) -> int:
        return self._dropped_frames

    def stage_latency(self, stage_name: str) -> float:
        """Average latency of a stage in ms (0.0 before any sample)."""
        with self._lock:
            samples = self._stages.get(stage_name)
            if not samples:
                return 0.0
            return sum(samples) / len(samples)

    def get_report(self) -> dict:
        with self._lock:
            stages = list(self._stages)
        return {
            "fps": round(self.fps, 1),
            "frames": self._frame_count,
            "dropped": self._dropped_frames,
            "uptime_seconds": round(time.monotonic() - self._start_time, 1),
            "latencies_ms": {name: round(self.stage_latency(name), 2) for name in stages},
        }

    def log_report(self):
        report = self.get_report()
        logger.info("Frames: %d rendered, %d dropped, %.1f FPS over %.1fs",
                    report["frames"], report["dropped"], report["fps"],
                    report["uptime_seconds"])
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-10s %7.2f ms", stage, latency)

    def reset(self):
        with self._lock:
            self._intervals.clear()
            self._last_tick = None
            for samples in self._stages.values():
                samples.clear()
            self._frame_count = 0
            self._dropped_frames = 0
            self._start_time = time.monotonic()
