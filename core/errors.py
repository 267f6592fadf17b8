"""
Error kinds raised or reported by the game engine.

Only initialization and resource-acquisition failures propagate to the
caller; per-frame and target-loading failures are logged and reported
through status text and events.
"""


class GameError(Exception):
    """Base class for all game engine errors."""


class DetectorUnavailableError(GameError):
    """The landmark detector never finished initializing."""


class NoLandmarksFoundError(GameError):
    """A target image yielded no hands after every fallback attempt."""

    status_text = "Error: No hand in target"


class UnreadableImageError(GameError):
    """The pixels of a reference image could not be read."""

    status_text = "Error: Image cross-origin blocked"


class CameraAcquisitionError(GameError):
    """The webcam could not be opened for a session."""


class TransientDetectionError(GameError):
    """A single detector call failed; the frame is skipped."""
