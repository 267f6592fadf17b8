"""Building blocks used by the game engine: capture, detection, scoring, drawing."""
