"""
Centralized configuration manager.
Loads config/config.yaml over built-in defaults and provides dotted access.

Every section has defaults, so a missing or partial file still yields a
playable game; fields of the wrong type or out of range are reported and
replaced by their default.
"""

import copy
import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "backend": "auto",
        "buffer_size": 1,
        "warmup_frames": 5,
    },
    "detector": {
        "max_results": 2,
        "min_detection_confidence": 0.1,
        "min_presence_confidence": 0.1,
        "min_tracking_confidence": 0.1,
        "delegate": "GPU",
        "hand_model_path": "",
        "pose_model_path": "",
    },
    "game": {
        "mode": "blocks",
        "duration_sec": 60,
        "frame_interval_ms": 33,
        "countdown_interval_ms": 1000,
    },
    "blocks": {
        "interval_ms": 2000,
        "capacity": 6,
        "width": 80,
        "height": 40,
        "lanes_x": [160, 240, 320, 400],
        "bottom_offset": 40,
    },
    "circles": {
        "interval_ms": 1500,
        "capacity": 5,
        "radii": [30, 40, 50],
        "margin": 60,
    },
    "motion": {
        "baseline_samples": 30,
        "jump_threshold": 0.3,
        "jump_cooldown_ms": 500,
        "action_threshold": 0.05,
        "jump_arms_action": True,
    },
    "collision": {
        "points": 10,
        "block_margin_x": 20.0,
        "block_margin_y": 30.0,
        "circle_margin": 20.0,
        "mirrored": True,
    },
    "charades": {
        "targets_dir": "targets",
        "mirror_tolerant": True,
        "max_distance": 0.5,
        "upscale_min_side": 800,
    },
    "visualization": {
        "window_name": "Pose Arcade",
        "show_fps": True,
        "show_skeleton": True,
        "popup_duration_ms": 800,
        "popup_fade_ms": 300,
    },
    "logging": {
        "level": "INFO",
        "file": "",
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Expected types of the fields that are validated
_CONFIG_SCHEMA = {
    "camera": {"device_id": int, "width": int, "height": int, "fps": int},
    "game": {"mode": str, "duration_sec": int, "frame_interval_ms": (int, float),
             "countdown_interval_ms": (int, float)},
    "blocks": {"interval_ms": (int, float), "capacity": int, "lanes_x": list},
    "circles": {"interval_ms": (int, float), "capacity": int, "radii": list},
    "motion": {"baseline_samples": int, "jump_threshold": float,
               "jump_cooldown_ms": (int, float), "action_threshold": float},
    "collision": {"points": int},
    "charades": {"max_distance": float, "mirror_tolerant": bool},
    "logging": {"level": str},
}

# Numeric fields that must be strictly positive
_POSITIVE_FIELDS = {
    "game": ("duration_sec", "frame_interval_ms", "countdown_interval_ms"),
    "blocks": ("interval_ms", "capacity"),
    "circles": ("interval_ms", "capacity"),
    "motion": ("baseline_samples",),
    "charades": ("max_distance",),
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _type_ok(value, expected) -> bool:
    if expected is float:
        expected = (int, float)
    if isinstance(value, bool) and expected is not bool:
        return False
    return isinstance(value, expected)


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file over the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")
        overrides = {}
        try:
            with open(config_path, "r") as f:
                overrides = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
        except yaml.YAMLError as e:
            logger.error("Invalid YAML in %s: %s, using defaults", config_path, e)

        if not isinstance(overrides, dict):
            logger.error("Config root must be a mapping, got %s", type(overrides).__name__)
            overrides = {}

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), overrides)
        self._validate()
        return self

    def update(self, overrides: dict):
        """Apply overrides (e.g. from the command line) on top of the loaded config."""
        self._data = _deep_merge(self._data, overrides)
        self._validate()
        return self

    def _validate(self):
        """Reset mistyped or non-positive fields to their defaults, logging each one."""
        problems = 0
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                logger.warning("Config validation: section '%s' should be a mapping, using defaults",
                               section_name)
                self._data[section_name] = copy.deepcopy(DEFAULTS[section_name])
                problems += 1
                continue
            for field_name, expected in fields.items():
                value = section.get(field_name)
                if value is None:
                    continue
                if not _type_ok(value, expected):
                    reason = "has the wrong type"
                elif field_name in _POSITIVE_FIELDS.get(section_name, ()) and value <= 0:
                    reason = "must be positive"
                else:
                    continue
                default = DEFAULTS[section_name][field_name]
                logger.warning("Config validation: %s.%s = %r %s, using %r",
                               section_name, field_name, value, reason, default)
                section[field_name] = copy.deepcopy(default)
                problems += 1
        if not problems:
            logger.debug("Config validation passed")

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        return self._data.get(section, {})

    def as_dict(self) -> dict:
        return copy.deepcopy(self._data)

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def detector(self) -> dict:
        return self._data.get("detector", {})

    @property
    def game(self) -> dict:
        return self._data.get("game", {})

    @property
    def blocks(self) -> dict:
        return self._data.get("blocks", {})

    @property
    def circles(self) -> dict:
        return self._data.get("circles", {})

    @property
    def motion(self) -> dict:
        return self._data.get("motion", {})

    @property
    def charades(self) -> dict:
        return self._data.get("charades", {})

    @property
    def visualization(self) -> dict:
        return self._data.get("visualization", {})

    @property
    def logging(self) -> dict:
        return self._data.get("logging", {})

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
