"""Kalman filter for 3D hand position tracking.

This module provides a constant-velocity Kalman filter over the state
``[x, y, z, vx, vy, vz]`` with position-only measurements. Measurement
noise adapts to detection confidence and process noise adapts to recent
innovation magnitudes, so the filter trusts weak detections less and
follows fast, unexpected motion more closely.
"""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Optional

import numpy as np

from ..core.constants import SINGULAR_DETERMINANT_EPSILON
from ..core.exceptions import MatrixSizeError
from .geometry import Vector3, clamp
from .tracking_config import KalmanConfig

logger = logging.getLogger(__name__)

STATE_SIZE = 6
MEASUREMENT_SIZE = 3


@dataclass
class FilterEstimate:
    """Position/velocity estimate returned by the filter."""
    position: Vector3 = field(default_factory=Vector3)
    velocity: Vector3 = field(default_factory=Vector3)
    confidence: float = 0.0
    innovation: float = 0.0
    time_ahead: float = 0.0


def invert_3x3(matrix: np.ndarray) -> np.ndarray:
    """
    Invert a 3x3 matrix using the adjugate formula.

    Near-singular matrices (|det| < 1e-10) return ``0.001 * I`` instead of
    propagating NaN or infinity.

    Raises:
        MatrixSizeError: For any shape other than (3, 3)
    """
    m = np.asarray(matrix, dtype=float)
    if m.shape != (3, 3):
        raise MatrixSizeError(m.shape)

    det = (m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1]) -
           m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0]) +
           m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0]))

    if not np.isfinite(det) or abs(det) < SINGULAR_DETERMINANT_EPSILON:
        logger.warning("Singular innovation covariance, using identity fallback")
        return np.eye(3) * 0.001

    inv_det = 1.0 / det
    return np.array([
        [(m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1]) * inv_det,
         (m[0, 2] * m[2, 1] - m[0, 1] * m[2, 2]) * inv_det,
         (m[0, 1] * m[1, 2] - m[0, 2] * m[1, 1]) * inv_det],
        [(m[1, 2] * m[2, 0] - m[1, 0] * m[2, 2]) * inv_det,
         (m[0, 0] * m[2, 2] - m[0, 2] * m[2, 0]) * inv_det,
         (m[0, 2] * m[1, 0] - m[0, 0] * m[1, 2]) * inv_det],
        [(m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0]) * inv_det,
         (m[0, 1] * m[2, 0] - m[0, 0] * m[2, 1]) * inv_det,
         (m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]) * inv_det],
    ])


class KalmanFilter:
    """
    Constant-velocity Kalman filter over 3D position.

    Attributes:
        x: State vector (6x1)
        P: Error covariance (6x6)
        Q: Process noise covariance (6x6)
        R: Measurement noise covariance (3x3)
        F: State transition matrix (6x6)
        H: Measurement matrix (3x6)
    """

    def __init__(self,
                 config: Optional[KalmanConfig] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize Kalman filter.

        Args:
            config: Filter configuration, defaults to KalmanConfig()
            clock: Wall-clock source in seconds, used for update deltas
        """
        self.config = config or KalmanConfig()
        self.clock = clock

        self.base_process_noise = self.config.process_noise
        self.base_measurement_noise = self.config.measurement_noise
        self.process_noise = self.config.process_noise
        self.measurement_noise = self.config.measurement_noise

        # State vector
        self.x = np.zeros((STATE_SIZE, 1))

        # State transition matrix
        self.F = self._state_transition(self.config.default_delta_time)

        # Measurement function: position only
        self.H = np.hstack([np.eye(MEASUREMENT_SIZE), np.zeros((MEASUREMENT_SIZE, 3))])

        # Covariance matrix
        self.P = np.eye(STATE_SIZE) * self.config.initial_uncertainty

        # Process noise covariance
        self.Q = self._process_noise_matrix(self.process_noise)

        # Measurement noise covariance
        self.R = np.eye(MEASUREMENT_SIZE) * self.measurement_noise

        # Identity matrix
        self.I = np.eye(STATE_SIZE)

        self.is_initialized = False
        self.last_update_time = 0.0
        self.prediction_history: Deque[Dict] = deque(maxlen=self.config.max_prediction_history)
        self.innovation_history: Deque[np.ndarray] = deque(maxlen=self.config.max_innovation_history)

        logger.debug(f"KalmanFilter created with {self.config}")

    @staticmethod
    def _state_transition(dt: float) -> np.ndarray:
        F = np.eye(STATE_SIZE)
        F[0, 3] = dt
        F[1, 4] = dt
        F[2, 5] = dt
        return F

    @staticmethod
    def _process_noise_matrix(process_noise: float) -> np.ndarray:
        # Velocity noise is an order of magnitude below position noise
        return np.diag([process_noise] * 3 + [process_noise * 0.1] * 3)

    def initialize(self, measurement: Vector3, confidence: float = 1.0) -> None:
        """
        Initialize state from a first measurement.

        Args:
            measurement: Observed position
            confidence: Detection confidence; lower values give a larger
                initial uncertainty
        """
        self.x = np.array([[measurement.x], [measurement.y], [measurement.z],
                           [0.0], [0.0], [0.0]])

        uncertainty = self.config.initial_uncertainty / max(0.1, confidence)
        self.P = np.eye(STATE_SIZE) * uncertainty

        self.is_initialized = True
        self.last_update_time = self.clock()

        logger.info(f"KalmanFilter initialized at ({measurement.x:.1f}, {measurement.y:.1f}, "
                    f"{measurement.z:.2f}) with uncertainty {uncertainty:.2f}")

    def predict(self, delta_time: Optional[float] = None) -> FilterEstimate:
        """
        Predict next state using the Kalman filter state propagation equation.

        Args:
            delta_time: Step in seconds, defaults to one 30 FPS frame

        Returns:
            Predicted position and velocity with a covariance-based confidence
        """
        if not self.is_initialized:
            return FilterEstimate()

        dt = self.config.default_delta_time if delta_time is None else max(0.0, delta_time)
        self.F[0, 3] = dt
        self.F[1, 4] = dt
        self.F[2, 5] = dt

        # Update state estimate
        self.x = np.dot(self.F, self.x)

        # Update state covariance
        self.P = np.dot(np.dot(self.F, self.P), self.F.T) + self.Q

        estimate = self._estimate(self.prediction_confidence())
        self.prediction_history.append({
            'position': estimate.position,
            'confidence': estimate.confidence,
            'timestamp': self.clock(),
        })
        return estimate

    def update(self, measurement: Vector3, confidence: float = 1.0) -> FilterEstimate:
        """
        Update state estimate based on measurement.

        The first measurement initializes the filter and is returned as-is.

        Args:
            measurement: Observed position
            confidence: Detection confidence in [0, 1]

        Returns:
            Filtered estimate with the innovation magnitude
        """
        if not self.is_initialized:
            self.initialize(measurement, confidence)
            return FilterEstimate(position=measurement.copy(),
                                  confidence=self.filter_confidence())

        now = self.clock()
        delta_time = now - self.last_update_time
        self.last_update_time = now

        self.predict(delta_time)

        if self.config.adaptive_noise:
            self._adapt_noise(confidence)

        z = np.array([[measurement.x], [measurement.y], [measurement.z]])

        # Calculate innovation
        y = z - np.dot(self.H, self.x)

        # Calculate innovation covariance
        S = np.dot(np.dot(self.H, self.P), self.H.T) + self.R

        # Calculate Kalman gain
        K = np.dot(np.dot(self.P, self.H.T), invert_3x3(S))

        # Update state estimate
        self.x = self.x + np.dot(K, y)

        # Update state covariance
        self.P = np.dot(self.I - np.dot(K, self.H), self.P)

        if self.config.adaptive_noise:
            self.innovation_history.append(y.flatten())

        innovation = float(np.linalg.norm(y))
        logger.debug(f"Kalman update dt={delta_time:.3f}s innovation={innovation:.2f}")

        estimate = self._estimate(self.filter_confidence())
        estimate.innovation = innovation
        return estimate

    def _adapt_noise(self, confidence: float) -> None:
        """Scale R with inverse confidence and Q with recent innovations."""
        self.measurement_noise = self.base_measurement_noise / max(0.1, confidence)
        self.R = np.eye(MEASUREMENT_SIZE) * self.measurement_noise

        window = self.config.innovation_window
        if len(self.innovation_history) > window:
            recent = list(self.innovation_history)[-window:]
            avg_innovation = float(np.mean([np.linalg.norm(inn) for inn in recent]))
            innovation_factor = clamp(avg_innovation / 10.0, 0.5, 3.0)
            self.process_noise = self.base_process_noise * innovation_factor
            self.Q = self._process_noise_matrix(self.process_noise)

    def predict_future(self, time_ahead: float = 0.1) -> FilterEstimate:
        """
        Extrapolate the current state linearly.

        Confidence decays exponentially with the horizon. The filter state
        is not modified.
        """
        if not self.is_initialized:
            return FilterEstimate(time_ahead=time_ahead)

        state = self.x.flatten()
        position = Vector3(state[0] + state[3] * time_ahead,
                           state[1] + state[4] * time_ahead,
                           state[2] + state[5] * time_ahead)
        return FilterEstimate(
            position=position,
            velocity=Vector3(state[3], state[4], state[5]),
            confidence=self.prediction_confidence() * math.exp(-time_ahead * 2),
            time_ahead=time_ahead,
        )

    def get_current_estimate(self) -> FilterEstimate:
        if not self.is_initialized:
            return FilterEstimate()
        return self._estimate(self.filter_confidence())

    def _estimate(self, confidence: float) -> FilterEstimate:
        state = self.x.flatten()
        return FilterEstimate(
            position=Vector3(float(state[0]), float(state[1]), float(state[2])),
            velocity=Vector3(float(state[3]), float(state[4]), float(state[5])),
            confidence=confidence,
        )

    def prediction_confidence(self) -> float:
        """Confidence from the trace of the position covariance block."""
        if not self.is_initialized:
            return 0.0
        position_uncertainty = float(np.trace(self.P[:3, :3]))
        return clamp(1.0 / (1.0 + position_uncertainty))

    def filter_confidence(self) -> float:
        """Prediction confidence weighted by how much history exists."""
        if not self.is_initialized:
            return 0.0
        history_factor = min(1.0, len(self.prediction_history) / 5)
        return self.prediction_confidence() * history_factor

    @property
    def velocity(self) -> Vector3:
        state = self.x.flatten()
        return Vector3(float(state[3]), float(state[4]), float(state[5]))

    def get_metrics(self) -> Dict[str, float]:
        """Get filter diagnostics."""
        if self.innovation_history:
            avg_innovation = float(np.mean([np.linalg.norm(inn) for inn in self.innovation_history]))
        else:
            avg_innovation = 0.0

        return {
            'is_initialized': self.is_initialized,
            'prediction_history': len(self.prediction_history),
            'average_innovation': avg_innovation,
            'current_process_noise': self.process_noise,
            'current_measurement_noise': self.measurement_noise,
            'filter_confidence': self.filter_confidence(),
        }

    def reset(self) -> None:
        """Return the filter to its uninitialized state."""
        self.x = np.zeros((STATE_SIZE, 1))
        self.P = np.eye(STATE_SIZE) * self.config.initial_uncertainty
        self.process_noise = self.base_process_noise
        self.measurement_noise = self.base_measurement_noise
        self.Q = self._process_noise_matrix(self.process_noise)
        self.R = np.eye(MEASUREMENT_SIZE) * self.measurement_noise
        self.is_initialized = False
        self.last_update_time = 0.0
        self.prediction_history.clear()
        self.innovation_history.clear()

        logger.info("KalmanFilter reset")
