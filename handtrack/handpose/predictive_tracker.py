"""
Predictive hand tracking on top of the Kalman filter.

The tracker owns two filters: one for the hand position and one anchored
to the wrist landmark while a gesture is held. On top of the filtered
position it applies motion-adaptive exponential smoothing, rates gesture
stability, produces a short-horizon position prediction and scores the
tracking quality of every frame.
"""

import logging
import time
from collections import deque
from dataclasses import fields, replace
from typing import Any, Callable, Deque, Dict, Optional

from ..core.exceptions import ConfigurationError
from .geometry import Vector3, clamp
from .gesture_types import GestureType, WRIST
from .hand_state import HandObservation, PredictionRecord, QualityMetrics, TrackedState
from .kalman_filter import FilterEstimate, KalmanFilter
from .tracking_config import KalmanConfig, TrackerConfig

logger = logging.getLogger(__name__)

BASE_SMOOTHING = 0.3
FAST_MOVEMENT = 20.0
SLOW_MOVEMENT = 5.0
STABILITY_WINDOW = 5


class PredictiveTracker:
    """
    Smooths and predicts hand motion frame by frame.

    When tracking is lost the filters are kept for a grace period so a
    brief dropout does not throw away the motion model. The period is
    checked synchronously on every call; once it has elapsed without a
    valid frame the tracker resets itself.
    """

    def __init__(self,
                 config: Optional[TrackerConfig] = None,
                 kalman_config: Optional[KalmanConfig] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the tracker.

        Args:
            config: Tracker configuration
            kalman_config: Configuration of the position filter
            clock: Wall-clock source in seconds
        """
        self.config = config or TrackerConfig()
        self.clock = clock

        self.position_filter = KalmanFilter(kalman_config or KalmanConfig(), clock=clock)
        self.gesture_filter = KalmanFilter(
            KalmanConfig(process_noise=self.config.gesture_process_noise,
                         measurement_noise=self.config.gesture_measurement_noise),
            clock=clock,
        )

        self.is_tracking = False
        self.loss_deadline: Optional[float] = None
        self.tracking_history: Deque[Dict[str, Any]] = deque(maxlen=self.config.max_history_size)

        self.metrics = {
            'prediction_accuracy': 1.0,
            'latency': 0.0,
            'frame_count': 0,
        }
        self.last_prediction = PredictionRecord()

        logger.info("PredictiveTracker initialized")

    def update(self, observation: Optional[HandObservation]) -> TrackedState:
        """
        Process one frame.

        Args:
            observation: Raw detection, or None / not tracking for an
                empty frame

        Returns:
            Enhanced state; an empty state when no hand is tracked
        """
        start_time = time.perf_counter()
        self._check_grace_period()

        if observation is None or not observation.is_tracking:
            self._handle_tracking_loss()
            return self.create_empty_state()

        if not self.is_tracking:
            self._start_tracking(observation)

        filtered, smoothed = self._update_position_tracking(observation)
        confidence, stability = self._update_gesture_tracking(observation)
        predictions = self._generate_predictions()
        quality = self._calculate_quality_metrics(filtered)

        self.tracking_history.append({
            'position': smoothed,
            'velocity': filtered.velocity,
            'gesture': observation.gesture,
            'confidence': observation.confidence,
            'timestamp': self.clock(),
        })

        self.metrics['latency'] = (time.perf_counter() - start_time) * 1000
        self.metrics['frame_count'] += 1

        return TrackedState(
            is_tracking=True,
            position=observation.position.copy(),
            smoothed_position=smoothed,
            predicted_position=predictions.position,
            velocity=filtered.velocity,
            gesture=observation.gesture,
            confidence=confidence,
            gesture_stability=stability,
            quality=quality,
            predictions=predictions,
            timestamp=self._now_ms(),
        )

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _start_tracking(self, observation: HandObservation) -> None:
        if self.loss_deadline is not None and self.position_filter.is_initialized:
            # Dropout shorter than the grace period: keep the motion model
            logger.info("Tracking resumed within grace period")
        else:
            self.position_filter.initialize(observation.position, observation.confidence)
            if observation.gesture != GestureType.NO_HAND:
                self.gesture_filter.initialize(self._gesture_center(observation),
                                               observation.confidence)
            logger.info("Tracking started")

        self.is_tracking = True
        self.loss_deadline = None

    def _handle_tracking_loss(self) -> None:
        if self.is_tracking:
            self.is_tracking = False
            self.loss_deadline = self.clock() + self.config.tracking_loss_grace_period
            logger.info(f"Tracking lost, resetting in {self.config.tracking_loss_grace_period:.1f}s "
                        f"unless the hand returns")

    def _check_grace_period(self) -> None:
        if (self.loss_deadline is not None and not self.is_tracking and
                self.clock() >= self.loss_deadline):
            logger.info("Grace period elapsed without tracking, resetting filters")
            self.reset()

    @staticmethod
    def _gesture_center(observation: HandObservation) -> Vector3:
        if observation.landmarks is None or len(observation.landmarks) == 0:
            return observation.position.copy()
        return Vector3.from_array(observation.landmarks[WRIST])

    def _update_position_tracking(self, observation: HandObservation):
        filtered = self.position_filter.update(observation.position, observation.confidence)

        smoothed = filtered.position.copy()
        if self.config.adaptive_smoothing:
            smoothed = self._apply_adaptive_smoothing(filtered.position, observation.confidence)

        return filtered, smoothed

    def _apply_adaptive_smoothing(self, position: Vector3, confidence: float) -> Vector3:
        """
        Blend towards the filtered position with a motion-dependent factor.

        Fast motion uses a small factor for responsiveness, slow motion a
        large one for stability.
        """
        if not self.tracking_history:
            return position.copy()

        last = self.tracking_history[-1]['position']
        movement = position.distance_to(last)

        factor = BASE_SMOOTHING
        if movement > FAST_MOVEMENT:
            factor = max(0.1, factor * (confidence + 0.5))
        elif movement < SLOW_MOVEMENT:
            factor = min(0.8, factor * (2 - confidence))

        return Vector3(last.x + (position.x - last.x) * factor,
                       last.y + (position.y - last.y) * factor,
                       last.z + (position.z - last.z) * factor)

    def _update_gesture_tracking(self, observation: HandObservation):
        """Return (enhanced confidence, stability) for the current gesture."""
        if observation.gesture == GestureType.NO_HAND:
            return 0.0, 0.0

        self.gesture_filter.update(self._gesture_center(observation), observation.confidence)

        stability = self._calculate_gesture_stability(observation.gesture)
        return min(1.0, observation.confidence * stability), stability

    def _calculate_gesture_stability(self, gesture: GestureType) -> float:
        if len(self.tracking_history) < STABILITY_WINDOW:
            return 0.5
        recent = list(self.tracking_history)[-STABILITY_WINDOW:]
        return sum(1 for entry in recent if entry['gesture'] == gesture) / STABILITY_WINDOW

    def _generate_predictions(self) -> PredictionRecord:
        time_ahead = self.config.prediction_time_ahead
        if not self.config.enable_prediction or not self.is_tracking:
            return PredictionRecord(time_ahead=time_ahead)

        future = self.position_filter.predict_future(time_ahead)
        if not self._validate_prediction(future):
            return PredictionRecord(time_ahead=time_ahead)

        record = PredictionRecord(position=future.position,
                                  confidence=future.confidence,
                                  time_ahead=time_ahead,
                                  is_valid=True)
        self.last_prediction = record
        return record

    def _validate_prediction(self, prediction: FilterEstimate) -> bool:
        if prediction.confidence < self.config.confidence_threshold:
            return False

        if self.tracking_history:
            last = self.tracking_history[-1]['position']
            if prediction.position.distance_to(last) > self.config.max_prediction_distance:
                return False

        return True

    def _calculate_quality_metrics(self, filtered: FilterEstimate) -> QualityMetrics:
        smoothness = self._calculate_smoothness()
        responsiveness = max(0.0, 1.0 - filtered.innovation / 20.0)
        # TODO: score prediction accuracy by comparing past predictions against later observations
        prediction_accuracy = self.metrics['prediction_accuracy']
        overall = (smoothness + responsiveness + prediction_accuracy) / 3

        return QualityMetrics(smoothness=smoothness,
                              responsiveness=responsiveness,
                              prediction_accuracy=prediction_accuracy,
                              overall=clamp(overall))

    def _calculate_smoothness(self) -> float:
        """Smoothness from the mean velocity change over the last 3 frames."""
        if len(self.tracking_history) < 3:
            return 1.0

        velocities = [entry['velocity'] for entry in list(self.tracking_history)[-3:]]
        variance = sum(velocities[i].distance_to(velocities[i - 1])
                       for i in range(1, len(velocities))) / (len(velocities) - 1)
        return clamp(1.0 - variance / 50.0)

    def create_empty_state(self) -> TrackedState:
        return TrackedState.empty(self._now_ms())

    def get_tracking_metrics(self) -> Dict[str, Any]:
        return {
            **self.metrics,
            'is_tracking': self.is_tracking,
            'history_size': len(self.tracking_history),
            'position_filter_metrics': self.position_filter.get_metrics(),
            'gesture_filter_metrics': self.gesture_filter.get_metrics(),
        }

    def update_config(self, **overrides) -> None:
        """
        Override tracker settings.

        Raises:
            ConfigurationError: For unknown setting names
        """
        known = {f.name for f in fields(TrackerConfig)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError("tracker", f"unknown keys {sorted(unknown)}")

        self.config = replace(self.config, **overrides)
        if self.tracking_history.maxlen != self.config.max_history_size:
            self.tracking_history = deque(self.tracking_history, maxlen=self.config.max_history_size)

    def reset(self) -> None:
        """Reset both filters and all tracking history."""
        self.position_filter.reset()
        self.gesture_filter.reset()
        self.is_tracking = False
        self.loss_deadline = None
        self.tracking_history.clear()
        self.last_prediction = PredictionRecord()
        logger.info("PredictiveTracker reset")
