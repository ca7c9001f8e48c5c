"""Gesture classification for hand tracking.

This module provides rule-based gesture classification from hand landmarks
without dependencies on ML models. The recognition logic is split across
several modules:
- gesture_types.py: Gesture enumeration and landmark constants
- finger_detection.py: Finger extension rule
- gesture_detectors.py: Individual gesture detection functions
"""

import logging
from collections import Counter, deque
from typing import Any, Deque, Dict, Optional, Tuple

from ..core.constants import MAX_SMOOTHED_CONFIDENCE
from .finger_detection import calculate_finger_states
from .gesture_detectors import DETECTORS
from .gesture_types import GESTURE_CONFIG, GestureType
from .geometry import as_landmark_array, clamp
from .hand_state import GestureResult

logger = logging.getLogger(__name__)


class GestureClassifier:
    """
    Rule-based gesture classifier with temporal-majority smoothing.

    Attributes:
        history_size: Number of recent raw results used for voting
        gesture_history: Recent raw (gesture, confidence) results
    """

    def __init__(self,
                 history_size: int = GESTURE_CONFIG['history_size'],
                 min_history_for_vote: int = GESTURE_CONFIG['min_history_for_vote']):
        """
        Initialize gesture classifier.

        Args:
            history_size: Sliding window size for majority smoothing
            min_history_for_vote: Samples required before voting kicks in
        """
        self.history_size = history_size
        self.min_history_for_vote = min_history_for_vote
        self.gesture_history: Deque[Tuple[GestureType, float]] = deque(maxlen=history_size)

        logger.info(f"GestureClassifier initialized with history size {history_size}")

    def classify(self, landmarks: Any) -> GestureResult:
        """
        Classify a landmark set.

        Args:
            landmarks: 21 hand landmarks (sequence of (x, y[, z]) or array),
                or None when no hand is visible

        Returns:
            GestureResult; NO_HAND with confidence 0 for absent or short input

        Example:
            >>> result = classifier.classify(landmarks)
            >>> if result.gesture == GestureType.PINCH:
            ...     grab_object()
        """
        keypoints = as_landmark_array(landmarks)
        if keypoints is None:
            return GestureResult.no_hand()

        finger_states = calculate_finger_states(keypoints)
        gesture, confidence, details = self._best_detection(finger_states, keypoints)
        details = dict(details, finger_states=finger_states, raw_gesture=gesture.value)

        gesture, confidence = self._apply_smoothing_filter(gesture, confidence)

        logger.debug(f"Classified {gesture.value} (confidence={confidence:.2f})")
        return GestureResult(gesture, confidence, details)

    def _best_detection(self,
                        finger_states: Dict[str, bool],
                        keypoints) -> Tuple[GestureType, float, Dict[str, Any]]:
        """Run every detector and keep the first highest-confidence one."""
        best_gesture = GestureType.NO_HAND
        best_confidence = -1.0
        best_details: Dict[str, Any] = {}

        for gesture, detector in DETECTORS:
            confidence, details = detector(finger_states, keypoints)
            if confidence > best_confidence:
                best_gesture, best_confidence, best_details = gesture, confidence, details

        return best_gesture, clamp(best_confidence), best_details

    def _apply_smoothing_filter(self,
                                gesture: GestureType,
                                confidence: float) -> Tuple[GestureType, float]:
        """
        Majority vote over the recent window.

        Until enough samples exist the current frame passes through. Ties
        between equally frequent gestures go to the current frame's
        gesture, then to the most recent one.
        """
        self.gesture_history.append((gesture, confidence))

        if len(self.gesture_history) < self.min_history_for_vote:
            return gesture, confidence

        counts = Counter(g for g, _ in self.gesture_history)
        top_count = max(counts.values())
        winner = gesture if counts[gesture] == top_count else None
        if winner is None:
            for g, _ in reversed(self.gesture_history):
                if counts[g] == top_count:
                    winner = g
                    break

        matching = [c for g, c in self.gesture_history if g == winner]
        smoothed = min(sum(matching) / len(matching), MAX_SMOOTHED_CONFIDENCE)
        return winner, smoothed

    def get_history(self) -> Optional[list]:
        return list(self.gesture_history)

    def reset(self) -> None:
        """Reset gesture history."""
        self.gesture_history.clear()
