"""Hand pose tracking for the Handtrack SDK.

Classes:
    GestureClassifier: Rule-based gesture recognition from 21 landmarks
    KalmanFilter: Constant-velocity 3D Kalman filter
    PredictiveTracker: Adaptive smoothing, prediction and quality scoring
    AdaptiveCoordinateMapper: Camera to scene mapping with calibration
    HandStateManager: Per-frame HandState assembly
    GestureSequenceDetector: Gesture combo recognition
    HandTrackingPipeline: All of the above wired for one hand

Modules:
    gesture_types: Gesture enumeration and landmark indices
    finger_detection: Finger extension rule
    gesture_detectors: Individual gesture detection functions
    hand_detector: MediaPipe landmark source (needs the ``detector`` extra)
"""

# Types and constants
from .gesture_types import GestureType, GESTURE_CONFIG
from .geometry import Vector3, Orientation, ScalarScale, VectorScale
from .hand_state import GestureResult, HandState, QualityMetrics
from .tracking_config import TrackingConfig

# Core classes
from .gesture_classifier import GestureClassifier
from .kalman_filter import KalmanFilter
from .predictive_tracker import PredictiveTracker
from .coordinate_mapper import AdaptiveCoordinateMapper, CalibrationData
from .hand_state_manager import HandStateManager
from .gesture_sequence import GestureSequenceDetector, ComboDefinition, GESTURE_COMBOS
from .pipeline import HandTrackingPipeline

# Detection functions
from .finger_detection import calculate_finger_states
from .gesture_detectors import (
    detect_open_hand, detect_closed_fist, detect_pinch, detect_point,
    detect_victory, detect_thumbs_up, detect_rock_on, detect_ok_sign
)

__all__ = [
    'GestureType',
    'GESTURE_CONFIG',
    'Vector3',
    'Orientation',
    'ScalarScale',
    'VectorScale',
    'GestureResult',
    'HandState',
    'QualityMetrics',
    'TrackingConfig',
    'GestureClassifier',
    'KalmanFilter',
    'PredictiveTracker',
    'AdaptiveCoordinateMapper',
    'CalibrationData',
    'HandStateManager',
    'GestureSequenceDetector',
    'ComboDefinition',
    'GESTURE_COMBOS',
    'HandTrackingPipeline',
    'calculate_finger_states',
    'detect_open_hand',
    'detect_closed_fist',
    'detect_pinch',
    'detect_point',
    'detect_victory',
    'detect_thumbs_up',
    'detect_rock_on',
    'detect_ok_sign',
]
