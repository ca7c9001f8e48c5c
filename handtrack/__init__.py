"""
Handtrack SDK - real-time hand tracking state pipeline.

Turns per-frame hand landmarks into a stable, predictively smoothed and
calibrated hand state with gesture and combo recognition.

Quick start:
    from handtrack import HandTrackingPipeline
    pipeline = HandTrackingPipeline()
    state = pipeline.process_frame(landmarks, hand_confidence=0.95)
"""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("handtrack-sdk")
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout
    __version__ = "1.0.0"

from .core.events import EventEmitter, EventType
from .core.exceptions import (
    HandtrackException, CalibrationError, CalibrationNotStartedError,
    InsufficientCalibrationPointsError, MatrixSizeError, ConfigurationError,
    DependencyError
)
from .core.memory_pool import PoolManager
from .handpose import (
    GestureType, GestureResult, HandState, Vector3, GestureClassifier,
    KalmanFilter, PredictiveTracker, AdaptiveCoordinateMapper, HandStateManager,
    GestureSequenceDetector, GESTURE_COMBOS, TrackingConfig, HandTrackingPipeline
)

__all__ = [
    '__version__',
    'EventEmitter',
    'EventType',
    'HandtrackException',
    'CalibrationError',
    'CalibrationNotStartedError',
    'InsufficientCalibrationPointsError',
    'MatrixSizeError',
    'ConfigurationError',
    'DependencyError',
    'PoolManager',
    'GestureType',
    'GestureResult',
    'HandState',
    'Vector3',
    'GestureClassifier',
    'KalmanFilter',
    'PredictiveTracker',
    'AdaptiveCoordinateMapper',
    'HandStateManager',
    'GestureSequenceDetector',
    'GESTURE_COMBOS',
    'TrackingConfig',
    'HandTrackingPipeline',
]
