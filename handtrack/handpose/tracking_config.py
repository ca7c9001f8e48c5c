"""
Tracking configuration management for the hand tracking pipeline.

This module provides centralized configuration for every pipeline stage:
Kalman filtering, predictive tracking, coordinate mapping, state
management, combo detection and gesture classification. Named profiles
bundle defaults for common use cases; callers override individual
sections with a nested dict.
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.constants import (
    CALIBRATION_STORAGE_KEY, DEFAULT_COMBO_TIMEOUT_MS, DEFAULT_CONFIDENCE_THRESHOLD,
    DEFAULT_SCENE_HEIGHT, DEFAULT_SCENE_WIDTH, DEFAULT_SMOOTHING_FACTOR,
    DEFAULT_VIDEO_HEIGHT, DEFAULT_VIDEO_WIDTH, BOUNDARY_PADDING,
    TRACKING_LOSS_GRACE_PERIOD
)
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class KalmanConfig:
    """Configuration for the constant-velocity Kalman filter."""
    process_noise: float = 0.01
    measurement_noise: float = 0.1
    initial_uncertainty: float = 1.0
    adaptive_noise: bool = True
    default_delta_time: float = 0.033  # seconds
    max_prediction_history: int = 10
    max_innovation_history: int = 20
    innovation_window: int = 5


@dataclass
class TrackerConfig:
    """Configuration for the predictive tracker."""
    enable_prediction: bool = True
    prediction_time_ahead: float = 0.1  # seconds
    confidence_threshold: float = 0.3
    max_prediction_distance: float = 50.0  # pixels
    adaptive_smoothing: bool = True
    max_history_size: int = 30
    tracking_loss_grace_period: float = TRACKING_LOSS_GRACE_PERIOD  # seconds
    gesture_process_noise: float = 0.05
    gesture_measurement_noise: float = 0.2


@dataclass
class MapperConfig:
    """Configuration for the adaptive coordinate mapper."""
    webcam_width: int = DEFAULT_VIDEO_WIDTH
    webcam_height: int = DEFAULT_VIDEO_HEIGHT
    scene_width: int = DEFAULT_SCENE_WIDTH
    scene_height: int = DEFAULT_SCENE_HEIGHT
    quality_threshold: float = 0.7
    jitter_threshold: float = 5.0  # pixels
    fast_motion_threshold: float = 50.0  # pixels per frame
    max_history_size: int = 30
    min_samples_for_boundaries: int = 10
    min_high_confidence_samples: int = 5
    high_confidence_threshold: float = 0.7
    boundary_padding: float = BOUNDARY_PADDING
    storage_key: str = CALIBRATION_STORAGE_KEY
    storage_path: Optional[str] = None  # None keeps calibration in memory


@dataclass
class StateManagerConfig:
    """Configuration for the hand state manager."""
    smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    quality_alpha: float = 0.1
    movement_threshold: float = 10.0
    stable_duration_ms: int = 500


@dataclass
class SequenceConfig:
    """Configuration for the gesture sequence detector."""
    timeout_ms: int = DEFAULT_COMBO_TIMEOUT_MS
    min_confidence: float = 0.5  # gestures below this are not fed to combo matching


@dataclass
class ClassifierConfig:
    """Configuration for the gesture classifier."""
    history_size: int = 5
    min_history_for_vote: int = 3
    min_hand_confidence: float = 0.5  # detections below this count as no hand


SECTION_TYPES = {
    "kalman": KalmanConfig,
    "tracker": TrackerConfig,
    "mapper": MapperConfig,
    "state_manager": StateManagerConfig,
    "sequence": SequenceConfig,
    "classifier": ClassifierConfig,
}


class TrackingConfig:
    """
    Manages tracking configuration profiles.
    """

    DEFAULT_CONFIGS = {
        "default": {
            "kalman": KalmanConfig(),
            "tracker": TrackerConfig(),
            "mapper": MapperConfig(),
            "state_manager": StateManagerConfig(),
            "sequence": SequenceConfig(),
            "classifier": ClassifierConfig(),
        },
        "low_latency": {
            "kalman": KalmanConfig(process_noise=0.05, measurement_noise=0.1),
            "tracker": TrackerConfig(prediction_time_ahead=0.05, adaptive_smoothing=False),
            "mapper": MapperConfig(),
            "state_manager": StateManagerConfig(smoothing_factor=0.4),
            "sequence": SequenceConfig(),
            "classifier": ClassifierConfig(history_size=3),
        },
        "high_stability": {
            "kalman": KalmanConfig(process_noise=0.005, measurement_noise=0.3),
            "tracker": TrackerConfig(confidence_threshold=0.5),
            "mapper": MapperConfig(quality_threshold=0.8),
            "state_manager": StateManagerConfig(smoothing_factor=0.85, confidence_threshold=0.7),
            "sequence": SequenceConfig(),
            "classifier": ClassifierConfig(history_size=7, min_history_for_vote=4),
        },
    }

    def __init__(self, profile: str = "default", custom_config: Optional[Dict[str, Any]] = None):
        """
        Initialize tracking configuration.

        Args:
            profile: Name of the configuration profile
            custom_config: Optional nested dict overriding profile sections
        """
        self.profile = profile
        self.config = self._load_default_config(profile)

        if custom_config:
            self._apply_custom_config(custom_config)

    def _load_default_config(self, profile: str) -> Dict[str, Dict[str, Any]]:
        """Load default configuration for the profile."""
        if profile in self.DEFAULT_CONFIGS:
            config = {}
            for key, value in self.DEFAULT_CONFIGS[profile].items():
                config[key] = asdict(value)
            return config
        else:
            logger.warning(f"No tracking profile '{profile}', using default profile")
            return self._load_default_config("default")

    def _apply_custom_config(self, custom_config: Dict[str, Any]):
        """Apply custom configuration overrides."""
        for section, params in custom_config.items():
            if section not in SECTION_TYPES:
                raise ConfigurationError("tracking", f"unknown section '{section}'")
            if not isinstance(params, dict):
                raise ConfigurationError(section, "overrides must be a mapping")

            known = {f.name for f in fields(SECTION_TYPES[section])}
            unknown = set(params) - known
            if unknown:
                raise ConfigurationError(section, f"unknown keys {sorted(unknown)}")

            self.config[section].update(params)

        logger.info(f"Applied custom configuration to profile {self.profile}")

    def _build(self, section: str):
        return SECTION_TYPES[section](**self.config.get(section, {}))

    def get_kalman_config(self) -> KalmanConfig:
        """Get Kalman configuration as KalmanConfig object."""
        return self._build("kalman")

    def get_tracker_config(self) -> TrackerConfig:
        """Get tracker configuration as TrackerConfig object."""
        return self._build("tracker")

    def get_mapper_config(self) -> MapperConfig:
        """Get mapper configuration as MapperConfig object."""
        return self._build("mapper")

    def get_state_manager_config(self) -> StateManagerConfig:
        """Get state manager configuration as StateManagerConfig object."""
        return self._build("state_manager")

    def get_sequence_config(self) -> SequenceConfig:
        """Get sequence configuration as SequenceConfig object."""
        return self._build("sequence")

    def get_classifier_config(self) -> ClassifierConfig:
        """Get classifier configuration as ClassifierConfig object."""
        return self._build("classifier")

    def to_dict(self) -> Dict[str, Any]:
        return {"profile": self.profile, **{k: dict(v) for k, v in self.config.items()}}

    def save_config(self, filepath: Union[str, Path]) -> bool:
        """Save current configuration to file."""
        try:
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Saved configuration to {filepath}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    @classmethod
    def load_config(cls, filepath: Union[str, Path]) -> 'TrackingConfig':
        """
        Load a configuration saved with ``save_config``.

        Unreadable files fall back to the default profile. Files that parse
        but contain unknown sections or keys raise ConfigurationError.
        """
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {filepath}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.error(f"Configuration file {filepath} does not hold an object")
            return cls()

        profile = data.pop("profile", "default")
        logger.info(f"Loaded configuration from {filepath}")
        return cls(profile, data)
