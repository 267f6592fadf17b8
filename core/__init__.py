"""
Pose Arcade game engine
=======================

Webcam games driven by hand and body landmarks.

Modules:
    - types: landmarks, game objects, session state
    - scheduler: cooperative recurring tasks (frame, countdown, spawn)
    - modes: per-game rules (charades, blocks, circles)
    - session: start/stop lifecycle and per-tick logic
    - events: publish/subscribe bus
"""

__version__ = "1.0.0"
