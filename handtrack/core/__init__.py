"""Core utilities shared by the hand tracking pipeline: events, errors, pooling and storage."""

from .events import EventEmitter, EventType
from .exceptions import (
    HandtrackException, CalibrationError, CalibrationNotStartedError,
    InsufficientCalibrationPointsError, MatrixSizeError, ConfigurationError,
    DependencyError
)
from .memory_pool import ObjectPool, PoolManager, PoolScope
from .persistence import InMemoryStore, JsonFileStore
