"""
Session-scoped webcam capture.

The camera is opened when a session starts and released on every exit
path (stop, shutdown, acquisition failure) so the device is never left
running. Frames are read synchronously from the frame task; the game
loop is single-threaded.
"""

import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraManager:
    """OpenCV webcam wrapper with explicit acquire/release."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._buffer_size = config.get("buffer_size", 1)
        self._warmup_frames = config.get("warmup_frames", 5)

        self._cap = None
        self._frame_id = 0

    def open(self) -> bool:
        """Acquire the camera. Returns False (with nothing held) on failure."""
        if self.is_open:
            return True

        backend_map = {
            "v4l2": cv2.CAP_V4L2,
            "dshow": cv2.CAP_DSHOW,
            "auto": cv2.CAP_ANY,
        }
        backend = backend_map.get(self._backend, cv2.CAP_ANY)

        self._cap = cv2.VideoCapture(self._device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s", self._device_id, self._backend)
            self.release()
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._buffer_size)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera opened: %dx%d (requested %dx%d)",
                    actual_w, actual_h, self._width, self._height)

        # Let auto-exposure settle
        for _ in range(self._warmup_frames):
            self._cap.read()

        return True

    def read(self):
        """Read the next frame.

        Returns:
            tuple: (frame_id, BGR numpy array) or (None, None)
        """
        if self._cap is None:
            return None, None
        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None, None
        if frame.shape[1] != self._width or frame.shape[0] != self._height:
            frame = cv2.resize(frame, (self._width, self._height))
        self._frame_id += 1
        return self._frame_id, frame

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def blank_frame(self) -> np.ndarray:
        """Black canvas of the configured size."""
        return np.zeros((self._height, self._width, 3), dtype=np.uint8)

    def release(self):
        """Release the device. Safe to call repeatedly."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera released")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.release()
