"""
Per-frame records flowing through the hand tracking pipeline.

``HandState`` is the authoritative output of a frame. A new instance is
built every frame; the previous one is only read for smoothing.
``HandObservation`` is the transient raw-detection record that the state
manager borrows from the object pool while a frame is being assembled.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from ..core.memory_pool import PoolManager
from .geometry import Orientation, Vector3, clamp
from .gesture_types import GestureType


@dataclass
class GestureResult:
    """Classifier output for one frame."""
    gesture: GestureType = GestureType.NO_HAND
    confidence: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.confidence = clamp(float(self.confidence))

    def reset(self) -> None:
        self.gesture = GestureType.NO_HAND
        self.confidence = 0.0
        self.details = {}

    @classmethod
    def no_hand(cls) -> 'GestureResult':
        return cls(GestureType.NO_HAND, 0.0, {})


@dataclass
class QualityMetrics:
    """Tracking quality scores, each in [0, 1]."""
    smoothness: float = 0.0
    responsiveness: float = 0.0
    prediction_accuracy: float = 0.0
    overall: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'smoothness': self.smoothness,
            'responsiveness': self.responsiveness,
            'prediction_accuracy': self.prediction_accuracy,
            'overall': self.overall,
        }


@dataclass
class PredictionRecord:
    """Short-horizon position prediction; ``position`` is None when rejected."""
    position: Optional[Vector3] = None
    confidence: float = 0.0
    time_ahead: float = 0.0
    is_valid: bool = False


@dataclass
class HandObservation:
    """Raw detection for one frame, borrowed from the ``HandObservation`` pool."""
    is_tracking: bool = False
    position: Vector3 = field(default_factory=Vector3)
    gesture: GestureType = GestureType.NO_HAND
    confidence: float = 0.0
    landmarks: Optional[np.ndarray] = None
    timestamp: int = 0

    def reset(self) -> None:
        self.is_tracking = False
        self.position.reset()
        self.gesture = GestureType.NO_HAND
        self.confidence = 0.0
        self.landmarks = None
        self.timestamp = 0


@dataclass
class TrackedState:
    """Predictive tracker output for one frame."""
    is_tracking: bool = False
    position: Vector3 = field(default_factory=Vector3)
    smoothed_position: Vector3 = field(default_factory=Vector3)
    predicted_position: Optional[Vector3] = None
    velocity: Vector3 = field(default_factory=Vector3)
    gesture: GestureType = GestureType.NO_HAND
    confidence: float = 0.0
    gesture_stability: float = 0.0
    quality: QualityMetrics = field(default_factory=QualityMetrics)
    predictions: PredictionRecord = field(default_factory=PredictionRecord)
    timestamp: int = 0

    @classmethod
    def empty(cls, timestamp: int = 0) -> 'TrackedState':
        return cls(timestamp=timestamp)


@dataclass
class HandState:
    """The authoritative hand state for one frame."""
    is_tracking: bool = False
    gesture: GestureType = GestureType.NO_HAND
    confidence: float = 0.0
    gesture_confidence: float = 0.0
    position: Vector3 = field(default_factory=Vector3)
    smoothed_position: Optional[Vector3] = None
    predicted_position: Optional[Vector3] = None
    velocity: Vector3 = field(default_factory=Vector3)
    finger_spread: float = 0.0
    is_pinched: bool = False
    pinch_distance: float = 0.0
    orientation: Optional[Orientation] = None
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
    landmarks: Optional[np.ndarray] = None
    timestamp: int = 0

    @classmethod
    def not_tracking(cls, timestamp: int) -> 'HandState':
        """Canonical state for frames without a hand."""
        return cls(timestamp=timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation (landmarks as nested lists)."""
        return {
            'is_tracking': self.is_tracking,
            'gesture': self.gesture.value,
            'confidence': self.confidence,
            'gesture_confidence': self.gesture_confidence,
            'position': self.position.to_dict(),
            'smoothed_position': self.smoothed_position.to_dict() if self.smoothed_position else None,
            'predicted_position': self.predicted_position.to_dict() if self.predicted_position else None,
            'velocity': self.velocity.to_dict(),
            'finger_spread': self.finger_spread,
            'is_pinched': self.is_pinched,
            'pinch_distance': self.pinch_distance,
            'orientation': self.orientation.to_dict() if self.orientation else None,
            'quality_metrics': self.quality_metrics.to_dict(),
            'landmarks': self.landmarks.tolist() if self.landmarks is not None else None,
            'timestamp': self.timestamp,
        }


def register_common_pools(pool_manager: PoolManager) -> None:
    """Create the standard per-frame pools if they are not registered yet."""
    common = [
        ('HandObservation', HandObservation, 10, 50),
    ]
    for name, factory, initial_size, max_size in common:
        if not pool_manager.has_pool(name):
            pool_manager.create_pool(name, factory, initial_size, max_size)
