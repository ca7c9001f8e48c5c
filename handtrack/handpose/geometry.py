"""
Small geometric value types shared by the tracking components.
"""

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..core.constants import NUM_LANDMARKS


@dataclass
class Vector3:
    """3D point or vector."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def reset(self) -> None:
        self.x = 0.0
        self.y = 0.0
        self.z = 0.0

    def copy(self) -> 'Vector3':
        return Vector3(self.x, self.y, self.z)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: 'Vector3') -> float:
        return math.sqrt((self.x - other.x) ** 2 +
                         (self.y - other.y) ** 2 +
                         (self.z - other.z) ** 2)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> 'Vector3':
        """Build from a sequence of 2 or 3 numbers; a missing z is 0."""
        z = float(values[2]) if len(values) > 2 else 0.0
        return cls(float(values[0]), float(values[1]), z)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vector3':
        return cls(float(data.get('x', 0.0)),
                   float(data.get('y', 0.0)),
                   float(data.get('z', 0.0)))


@dataclass
class Orientation:
    """Hand orientation in radians."""
    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Orientation':
        return cls(float(data.get('pitch', 0.0)),
                   float(data.get('yaw', 0.0)),
                   float(data.get('roll', 0.0)))


@dataclass(frozen=True)
class ScalarScale:
    """Uniform scale applied to every axis."""
    value: float


@dataclass(frozen=True)
class VectorScale:
    """Per-axis scale."""
    x: float
    y: float
    z: float


Scale = Union[ScalarScale, VectorScale]


def scale_components(scale: Scale) -> Vector3:
    """Expand either scale variant into per-axis factors."""
    if isinstance(scale, ScalarScale):
        return Vector3(scale.value, scale.value, scale.value)
    if isinstance(scale, VectorScale):
        return Vector3(scale.x, scale.y, scale.z)
    raise TypeError(f"Unsupported scale type: {type(scale).__name__}")


def apply_scale(vector: Vector3, scale: Scale) -> Vector3:
    factors = scale_components(scale)
    return Vector3(vector.x * factors.x, vector.y * factors.y, vector.z * factors.z)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def as_landmark_array(landmarks: Any) -> Optional[np.ndarray]:
    """
    Convert a landmark sequence into a (21, 3) float array.

    Accepts lists of 2- or 3-tuples or numpy arrays. Missing z values are
    filled with 0. Returns None for absent, short or malformed input so
    callers can take the no-hand branch.
    """
    if landmarks is None:
        return None

    try:
        points = np.asarray(landmarks, dtype=float)
    except (TypeError, ValueError):
        return None

    if points.ndim != 2 or points.shape[0] < NUM_LANDMARKS or points.shape[1] < 2:
        return None

    points = points[:NUM_LANDMARKS]
    if points.shape[1] == 2:
        points = np.hstack([points, np.zeros((NUM_LANDMARKS, 1))])
    else:
        points = points[:, :3]

    if not np.all(np.isfinite(points)):
        return None
    return points
