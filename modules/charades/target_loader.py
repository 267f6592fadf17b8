"""
Reference-image handling for the charades game.

Reads a target image, runs the detector in IMAGE mode with a few
fallback inputs, and returns the detected hands as an immutable target
set. A carousel cycles through the reference images on disk.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

import cv2
import numpy as np

from core.errors import NoLandmarksFoundError, UnreadableImageError
from core.types import TargetSet
from modules.detection.base import LandmarkDetector
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")

ImageSource = Union[str, Path, np.ndarray]


def read_image(source: ImageSource) -> np.ndarray:
    """Decode a target image into an RGB array.

    Raises:
        UnreadableImageError: the pixels could not be read
    """
    if isinstance(source, np.ndarray):
        image = source
    else:
        path = Path(source)
        try:
            image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        except cv2.error as e:
            raise UnreadableImageError(f"Could not decode {path}: {e}") from e
        if image is None:
            raise UnreadableImageError(f"Could not read pixels from {path}")

    if image.size == 0 or image.ndim not in (2, 3):
        raise UnreadableImageError(f"Unsupported image shape {image.shape}")

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    raise UnreadableImageError(f"Unsupported channel count {image.shape[2]}")


def letterbox(image: np.ndarray) -> np.ndarray:
    """Pad an image to a square with black borders, content centered."""
    h, w = image.shape[:2]
    side = max(h, w)
    top = (side - h) // 2
    left = (side - w) // 2
    return cv2.copyMakeBorder(image, top, side - h - top, left, side - w - left,
                              cv2.BORDER_CONSTANT, value=(0, 0, 0))


def upscale(image: np.ndarray, min_side: int = 800) -> np.ndarray:
    """Enlarge to max(2x, min_side) per side; small images often fail detection."""
    h, w = image.shape[:2]
    new_w = max(w * 2, min_side)
    new_h = max(h * 2, min_side)
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_CUBIC)


@log_timing
def detect_target_hands(detector: LandmarkDetector, source: ImageSource,
                        upscale_min_side: int = 800) -> TargetSet:
    """Detect the hands of a reference image.

    Tries the image as decoded, then a letterboxed square copy, then an
    upscaled copy; the first attempt that finds a hand wins.

    Raises:
        UnreadableImageError: the image pixels could not be read
        NoLandmarksFoundError: no attempt found a hand
    """
    image = read_image(source)
    logger.debug("Target image size: %dx%d", image.shape[1], image.shape[0])

    attempts: List[tuple] = [
        ("original", lambda: image),
        ("letterboxed", lambda: letterbox(image)),
        ("upscaled", lambda: upscale(image, upscale_min_side)),
    ]

    for name, make_input in attempts:
        try:
            result = detector.detect(make_input())
        except Exception as e:
            logger.warning("Target detect (%s) failed: %s", name, e)
            continue
        if not result.is_empty:
            hands = tuple(result.hands())
            logger.info("Target detect (%s) found %d hand(s)", name, len(hands))
            return hands
        logger.debug("Target detect (%s) found no hands", name)

    raise NoLandmarksFoundError("No hand detected in target image after fallbacks")


class TargetCarousel:
    """Cycles through the reference images in a directory."""

    def __init__(self, images: Union[str, Path, List[Path]]):
        if isinstance(images, (str, Path)):
            directory = Path(images)
            self._images = sorted(
                p for p in directory.glob("*") if p.suffix.lower() in IMAGE_EXTENSIONS
            ) if directory.is_dir() else []
        else:
            self._images = [Path(p) for p in images]
        self._index = 0
        self._listeners: List[Callable[[Path], None]] = []
        logger.info("Target carousel: %d image(s)", len(self._images))

    def on_change(self, callback: Callable[[Path], None]):
        """Register a callback receiving the newly selected image path."""
        self._listeners.append(callback)

    @property
    def current(self) -> Optional[Path]:
        if not self._images:
            return None
        return self._images[self._index]

    @property
    def index(self) -> int:
        return self._index

    def __len__(self):
        return len(self._images)

    def _select(self, index: int) -> Optional[Path]:
        if not self._images:
            return None
        self._index = index % len(self._images)
        current = self._images[self._index]
        for callback in self._listeners:
            callback(current)
        return current

    def next(self) -> Optional[Path]:
        return self._select(self._index + 1)

    def previous(self) -> Optional[Path]:
        return self._select(self._index - 1)
