"""
Per-frame hand state assembly.

``HandStateManager`` is the single entry point that turns one frame of
classifier and feature output into the authoritative ``HandState``. It
runs the predictive tracker, smooths finger spread and orientation,
offers scene-space mapping with a legacy fallback and notifies
subscribers once per frame.
"""

import logging
import math
import time
from typing import Any, Callable, Dict, Optional

from ..core.constants import (
    DEFAULT_VIDEO_HEIGHT, DEFAULT_VIDEO_WIDTH, LEGACY_SCENE_HEIGHT, LEGACY_SCENE_WIDTH
)
from ..core.events import EventEmitter, EventType
from ..core.memory_pool import PoolManager
from .coordinate_mapper import AdaptiveCoordinateMapper, MappingResult
from .geometry import Orientation, Vector3, as_landmark_array, clamp
from .gesture_types import GestureType
from .hand_features import PinchData, calculate_hand_center
from .hand_state import GestureResult, HandObservation, HandState, register_common_pools
from .predictive_tracker import PredictiveTracker
from .tracking_config import MapperConfig, StateManagerConfig, TrackingConfig

logger = logging.getLogger(__name__)


class HandStateManager(EventEmitter):
    """
    Assembles the hand state of every frame.

    Subscribers register with ``on(EventType.STATE_CHANGED, callback)`` or
    ``set_state_change_callback``; each ``update_state`` call emits exactly
    one STATE_CHANGED event carrying the new HandState.
    """

    def __init__(self,
                 pool_manager: Optional[PoolManager] = None,
                 config: Optional[TrackingConfig] = None,
                 tracker: Optional[PredictiveTracker] = None,
                 mapper: Optional[AdaptiveCoordinateMapper] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the state manager.

        Args:
            pool_manager: Shared pool manager; a private one is created if
                omitted
            config: Tracking configuration
            tracker: Predictive tracker, built from ``config`` if omitted
            mapper: Coordinate mapper, built from ``config`` if omitted
            clock: Wall-clock source in seconds
        """
        super().__init__()
        config = config or TrackingConfig()
        self.config: StateManagerConfig = config.get_state_manager_config()
        self.clock = clock

        self.pool_manager = pool_manager or PoolManager()
        register_common_pools(self.pool_manager)

        self.tracker = tracker or PredictiveTracker(config.get_tracker_config(),
                                                    config.get_kalman_config(),
                                                    clock=clock)
        mapper_config: MapperConfig = config.get_mapper_config()
        self.mapper = mapper or AdaptiveCoordinateMapper(mapper_config, clock=clock)
        self.is_mapper_initialized = False

        self.smoothing_factor = self.config.smoothing_factor
        self.confidence_threshold = self.config.confidence_threshold

        now = self._now_ms()
        self.current_state = HandState.not_tracking(now)
        self.previous_state = HandState.not_tracking(now)
        self.gesture_start_time = now
        self.tracking_metrics: Dict[str, Any] = {}

        self.quality_metrics = {
            'stability': 1.0,
            'accuracy': 1.0,
            'responsiveness': 1.0,
        }

        logger.info("HandStateManager initialized")

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def update_state(self,
                     landmarks: Any,
                     gesture_result: Optional[GestureResult],
                     hand_center: Optional[Vector3] = None,
                     finger_spread: float = 0.0,
                     pinch_data: Optional[PinchData] = None,
                     orientation: Optional[Orientation] = None) -> HandState:
        """
        Build the new hand state for one frame and notify subscribers.

        Args:
            landmarks: 21 hand landmarks, or None when no hand is visible
            gesture_result: Classifier output, or None
            hand_center: Camera-space hand position
            finger_spread: Thumb-to-pinky distance
            pinch_data: Pinch measurement
            orientation: Hand orientation

        Returns:
            The new current HandState
        """
        now = self._now_ms()
        self.previous_state = self.current_state
        keypoints = as_landmark_array(landmarks)

        if keypoints is None or gesture_result is None or gesture_result.gesture == GestureType.NO_HAND:
            self.tracker.update(None)
            self.current_state = HandState.not_tracking(now)
        else:
            self.current_state = self._assemble_state(
                keypoints, gesture_result,
                hand_center if hand_center is not None else calculate_hand_center(keypoints),
                finger_spread, pinch_data or PinchData(), orientation, now)

        self._update_gesture_timing(now)
        self._emit_transitions()
        self.emit(EventType.STATE_CHANGED, self.current_state)
        return self.current_state

    def _assemble_state(self, keypoints, gesture_result: GestureResult, hand_center: Vector3,
                        finger_spread: float, pinch_data: PinchData,
                        orientation: Optional[Orientation], now: int) -> HandState:
        def populate(obs: HandObservation) -> None:
            obs.reset()
            obs.is_tracking = True
            obs.position.x, obs.position.y, obs.position.z = hand_center.x, hand_center.y, hand_center.z
            obs.gesture = gesture_result.gesture
            obs.confidence = gesture_result.confidence
            obs.landmarks = keypoints
            obs.timestamp = now

        observation = self.pool_manager.get('HandObservation', populate)
        try:
            tracked = self.tracker.update(observation)
        finally:
            self.pool_manager.release(observation)

        previous = self.previous_state
        smoothed_spread = finger_spread
        smoothed_orientation = orientation
        if previous.is_tracking:
            smoothed_spread = self._smooth_value(finger_spread, previous.finger_spread)
            if orientation is not None and previous.orientation is not None:
                smoothed_orientation = Orientation(
                    pitch=self._smooth_angle(orientation.pitch, previous.orientation.pitch),
                    yaw=self._smooth_angle(orientation.yaw, previous.orientation.yaw),
                    roll=self._smooth_angle(orientation.roll, previous.orientation.roll),
                )

        self.quality_metrics = {
            'stability': tracked.quality.smoothness,
            'accuracy': tracked.quality.overall,
            'responsiveness': tracked.quality.responsiveness,
        }
        self.tracking_metrics = self.tracker.get_tracking_metrics()

        return HandState(
            is_tracking=True,
            gesture=gesture_result.gesture,
            confidence=gesture_result.confidence,
            gesture_confidence=tracked.confidence,
            position=hand_center.copy(),
            smoothed_position=tracked.smoothed_position,
            predicted_position=tracked.predicted_position,
            velocity=tracked.velocity,
            finger_spread=smoothed_spread,
            is_pinched=pinch_data.is_pinched,
            pinch_distance=pinch_data.distance,
            orientation=smoothed_orientation,
            quality_metrics=tracked.quality,
            landmarks=keypoints.copy(),
            timestamp=now,
        )

    def _smooth_value(self, new_value: float, old_value: float) -> float:
        return old_value + (new_value - old_value) * self.smoothing_factor

    def _smooth_angle(self, new_angle: float, old_angle: float) -> float:
        """Smooth along the shorter arc; result wrapped to (-pi, pi]."""
        delta = math.atan2(math.sin(new_angle - old_angle), math.cos(new_angle - old_angle))
        angle = old_angle + delta * self.smoothing_factor
        return math.atan2(math.sin(angle), math.cos(angle))

    def _update_gesture_timing(self, now: int) -> None:
        current, previous = self.current_state, self.previous_state
        if not current.is_tracking:
            return
        if not previous.is_tracking or current.gesture != previous.gesture:
            self.gesture_start_time = now

    def _emit_transitions(self) -> None:
        was_tracking = self.previous_state.is_tracking
        is_tracking = self.current_state.is_tracking
        if was_tracking and not is_tracking:
            logger.info("Hand tracking lost")
            self.emit(EventType.TRACKING_LOST, self.current_state)
        elif is_tracking and not was_tracking:
            logger.info(f"Hand tracking acquired ({self.current_state.gesture.value})")
            self.emit(EventType.TRACKING_RESUMED, self.current_state)

    def set_state_change_callback(self, callback: Callable[[HandState], None]) -> None:
        self.on(EventType.STATE_CHANGED, callback)

    def get_current_state(self) -> HandState:
        return self.current_state

    # ---------------------------------------------------------------- queries

    def is_gesture_stable(self, min_duration_ms: Optional[int] = None) -> bool:
        """
        Check that the current gesture has been held long enough.

        Duration is measured from the last gesture change, tracking start
        or reset, whichever came last.
        """
        if min_duration_ms is None:
            min_duration_ms = self.config.stable_duration_ms
        if not self.current_state.is_tracking:
            return False
        return (self.get_gesture_duration() >= min_duration_ms and
                self.current_state.confidence >= self.confidence_threshold)

    def get_gesture_duration(self) -> int:
        """Milliseconds the current gesture has been held, 0 when not tracking."""
        if not self.current_state.is_tracking:
            return 0
        return max(0, self._now_ms() - self.gesture_start_time)

    def has_hand_moved(self, threshold: Optional[float] = None) -> bool:
        if threshold is None:
            threshold = self.config.movement_threshold
        if not self.previous_state.is_tracking or not self.current_state.is_tracking:
            return False
        current, previous = self.current_state.position, self.previous_state.position
        return math.hypot(current.x - previous.x, current.y - previous.y) > threshold

    # ---------------------------------------------------------------- mapping

    def initialize_mapper(self, video_source: Any = None, scene_surface: Any = None) -> bool:
        """Initialize the adaptive mapper with the given dimension providers."""
        self.is_mapper_initialized = self.mapper.initialize(video_source, scene_surface)
        return self.is_mapper_initialized

    def update_scene_dimensions(self, scene_surface: Any) -> None:
        if self.is_mapper_initialized:
            self.mapper.update_scene_dimensions(scene_surface)

    def map_to_3d_coordinates(self,
                              scene_width: float = LEGACY_SCENE_WIDTH,
                              scene_height: float = LEGACY_SCENE_HEIGHT,
                              video_width: float = DEFAULT_VIDEO_WIDTH,
                              video_height: float = DEFAULT_VIDEO_HEIGHT) -> Vector3:
        """
        Map the current hand position into scene space.

        Uses the adaptive mapper when it is initialized and its result is
        valid; otherwise falls back to plain proportional mapping.
        """
        if not self.current_state.is_tracking:
            return Vector3()

        if self.is_mapper_initialized:
            result = self.mapper.map_coordinates(self.current_state.position,
                                                 self.current_state.confidence)
            if result.is_valid:
                self._update_quality_metrics(result)
                return result.position
            logger.debug(f"Adaptive mapping rejected (quality={result.quality:.2f}), using legacy mapping")

        return self._map_legacy(scene_width, scene_height, video_width, video_height)

    def _map_legacy(self, scene_width: float, scene_height: float,
                    video_width: float, video_height: float) -> Vector3:
        if video_width <= 0 or video_height <= 0:
            logger.warning("Invalid video size for legacy mapping, using defaults")
            video_width, video_height = DEFAULT_VIDEO_WIDTH, DEFAULT_VIDEO_HEIGHT

        position = self.current_state.position
        x = (position.x / video_width) * scene_width - scene_width / 2
        y = (1 - position.y / video_height) * scene_height - scene_height / 2
        # Finger spread stands in for depth
        z = (self.current_state.finger_spread / 200) * 20 - 10
        return Vector3(x, y, z)

    def _update_quality_metrics(self, result: MappingResult) -> None:
        alpha = self.config.quality_alpha
        metrics = self.quality_metrics
        metrics['stability'] = metrics['stability'] * (1 - alpha) + result.quality * alpha
        metrics['accuracy'] = metrics['accuracy'] * (1 - alpha) + self.current_state.confidence * alpha

        latency = result.metadata.get('latency')
        if latency:
            score = max(0.0, 1.0 - latency / 50.0)
            metrics['responsiveness'] = metrics['responsiveness'] * (1 - alpha) + score * alpha

    def get_quality_metrics(self) -> Dict[str, Any]:
        metrics = dict(self.quality_metrics)
        metrics['is_adaptive_mapping'] = self.is_mapper_initialized
        metrics['overall_quality'] = (metrics['stability'] + metrics['accuracy'] +
                                      metrics['responsiveness']) / 3

        if self.tracking_metrics:
            metrics['predictive_tracking'] = {
                'is_active': self.tracking_metrics['is_tracking'],
                'smoothness': self.current_state.quality_metrics.smoothness,
                'prediction_accuracy': self.current_state.quality_metrics.prediction_accuracy,
                'latency': self.tracking_metrics['latency'],
                'frame_count': self.tracking_metrics['frame_count'],
            }
            metrics['kalman_filter'] = {
                'position': self.tracking_metrics['position_filter_metrics'],
                'gesture': self.tracking_metrics['gesture_filter_metrics'],
            }
        return metrics

    # ------------------------------------------------------------ calibration

    def start_calibration(self) -> Dict[str, Any]:
        if not self.is_mapper_initialized:
            logger.warning("Cannot start calibration: adaptive mapper not initialized")
            return {'is_active': False, 'error': 'Adaptive mapper not initialized'}

        status = self.mapper.start_calibration()
        self.emit(EventType.CALIBRATION_STARTED, status)
        return status

    def add_calibration_point(self, point_type: str) -> Dict[str, Any]:
        """
        Record the current hand position as a calibration point.

        Raises:
            CalibrationNotStartedError: If calibration was not started
        """
        if not self.is_mapper_initialized or not self.current_state.is_tracking:
            logger.warning("Cannot add calibration point: mapper not initialized or hand not tracked")
            return {'is_complete': False, 'error': 'Cannot add calibration point'}

        result = self.mapper.add_calibration_point(self.current_state.position, point_type)
        if result.get('is_complete'):
            self.emit(EventType.CALIBRATION_COMPLETED, self.mapper.calibration_data)
        return result

    def reset_calibration(self) -> None:
        if self.is_mapper_initialized:
            self.mapper.reset_calibration()
            self.emit(EventType.CALIBRATION_RESET)

    # --------------------------------------------------------------- settings

    def set_smoothing_factor(self, factor: float) -> None:
        self.smoothing_factor = clamp(factor)

    def set_confidence_threshold(self, threshold: float) -> None:
        self.confidence_threshold = clamp(threshold)

    def reset(self) -> None:
        """Return to the initial not-tracking state."""
        now = self._now_ms()
        self.current_state = HandState.not_tracking(now)
        self.previous_state = HandState.not_tracking(now)
        self.gesture_start_time = now
        self.tracking_metrics = {}
        self.tracker.reset()
        logger.info("HandStateManager reset")
