"""Per-frame hand tracking pipeline.

Wires the classifier, hand feature extraction, the state manager (with
its predictive tracker and coordinate mapper) and the combo detector into
a single ``process_frame`` call.
"""

import logging
import time
from typing import Any, Callable, Optional

from ..core.memory_pool import PoolManager
from .geometry import Vector3, as_landmark_array
from .gesture_classifier import GestureClassifier
from .gesture_sequence import GestureSequenceDetector
from .gesture_types import GestureType
from .hand_features import (
    calculate_finger_spread, calculate_hand_center, calculate_hand_orientation, calculate_pinch
)
from .hand_state import HandState
from .hand_state_manager import HandStateManager
from .logging_util import HandposeLogger, create_logger
from .tracking_config import TrackingConfig

logger = logging.getLogger(__name__)


class HandTrackingPipeline:
    """
    Single-hand tracking pipeline.

    Frames must be fed in arrival order; the Kalman filters derive their
    time step from the clock.

    Attributes:
        classifier: Gesture classifier
        state_manager: Hand state assembly (tracker + mapper)
        sequence_detector: Combo detector fed with gesture changes
        last_mapped_position: Scene-space position of the last tracked frame
    """

    def __init__(self,
                 config: Optional[TrackingConfig] = None,
                 pool_manager: Optional[PoolManager] = None,
                 clock: Callable[[], float] = time.time,
                 log: Optional[HandposeLogger] = None):
        """
        Initialize the pipeline.

        Args:
            config: Tracking configuration, defaults to the "default" profile
            pool_manager: Pool manager shared with other pipelines, if any
            clock: Wall-clock source in seconds
            log: Logger for gesture/state/performance output
        """
        self.config = config or TrackingConfig()
        self.clock = clock
        self.log = log or create_logger("pipeline")

        classifier_config = self.config.get_classifier_config()
        self.min_hand_confidence = classifier_config.min_hand_confidence
        self.classifier = GestureClassifier(classifier_config.history_size,
                                            classifier_config.min_history_for_vote)

        self.state_manager = HandStateManager(pool_manager=pool_manager,
                                              config=self.config,
                                              clock=clock)

        sequence_config = self.config.get_sequence_config()
        self.sequence_min_confidence = sequence_config.min_confidence
        self.sequence_detector = GestureSequenceDetector(sequence_config.timeout_ms, clock=clock)

        self.last_mapped_position: Optional[Vector3] = None
        self.frame_count = 0
        self._last_sequence_gesture: Optional[GestureType] = None

        logger.info(f"HandTrackingPipeline initialized with profile '{self.config.profile}'")

    @property
    def pool_manager(self) -> PoolManager:
        return self.state_manager.pool_manager

    def initialize_mapper(self, video_source: Any = None, scene_surface: Any = None) -> bool:
        """Enable adaptive mapping for the given camera and scene sizes."""
        return self.state_manager.initialize_mapper(video_source, scene_surface)

    def process_frame(self, landmarks: Any, hand_confidence: float = 1.0) -> HandState:
        """
        Run one frame through the pipeline.

        Args:
            landmarks: 21 landmarks in pixel space, or None when no hand is
                visible
            hand_confidence: Detection score of the landmark source

        Returns:
            The new HandState
        """
        start_time = time.perf_counter()

        keypoints = as_landmark_array(landmarks)
        if keypoints is not None and hand_confidence < self.min_hand_confidence:
            logger.debug(f"Discarding detection with confidence {hand_confidence:.2f}")
            keypoints = None

        if keypoints is None:
            state = self.state_manager.update_state(None, None)
        else:
            gesture_result = self.classifier.classify(keypoints)
            state = self.state_manager.update_state(
                keypoints,
                gesture_result,
                hand_center=calculate_hand_center(keypoints),
                finger_spread=calculate_finger_spread(keypoints),
                pinch_data=calculate_pinch(keypoints),
                orientation=calculate_hand_orientation(keypoints),
            )
            self.log.log_gesture(gesture_result.gesture.value, gesture_result.confidence)

        if state.is_tracking:
            self.last_mapped_position = self.state_manager.map_to_3d_coordinates()
        else:
            self.last_mapped_position = None

        self._feed_sequence_detector(state)

        self.frame_count += 1
        self.log.log_hand_state(state)
        self.log.log_performance((time.perf_counter() - start_time) * 1000, self.frame_count)
        return state

    def _feed_sequence_detector(self, state: HandState) -> None:
        """
        Pass gesture changes, not every frame, to the combo detector.

        A held gesture is passed again only when it is the next step of the
        active combo, so combos that repeat a step (ROCK_ON, ROCK_ON, ...)
        can complete.
        """
        if not state.is_tracking:
            self._last_sequence_gesture = None
            return

        if state.confidence < self.sequence_min_confidence:
            return

        if state.gesture == self._last_sequence_gesture and not self._continues_active_combo(state.gesture):
            return

        self._last_sequence_gesture = state.gesture
        self.sequence_detector.add_gesture(state.gesture, state.confidence)

    def _continues_active_combo(self, gesture: GestureType) -> bool:
        active = self.sequence_detector.active_combo
        return active is not None and active.combo.sequence[active.matched] == gesture

    def reset(self) -> None:
        """Reset classifier, state manager and combo detector."""
        self.classifier.reset()
        self.state_manager.reset()
        self.sequence_detector.reset()
        self.last_mapped_position = None
        self._last_sequence_gesture = None
        self.frame_count = 0
        logger.info("HandTrackingPipeline reset")
