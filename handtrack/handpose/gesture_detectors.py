"""
Specific gesture detection functions.

Each detector looks at the finger states (and, where needed, the raw
keypoints) and returns ``(confidence, details)``. Confidences are in
[0, 1]; shape detectors report a fixed high value on a match and a fixed
low value otherwise so that the highest-confidence detector wins.
"""

import logging
from typing import Any, Callable, Dict, List, Tuple

import numpy as np

from ..core.constants import PINCH_CONFIDENCE_RANGE_PX, PINCH_THRESHOLD_PX
from .finger_detection import count_bent, count_extended, planar_distance
from .gesture_types import GESTURE_CONFIG, GestureType, INDEX_FINGER_TIP, THUMB_TIP

logger = logging.getLogger(__name__)

DetectorResult = Tuple[float, Dict[str, Any]]

MATCH = GESTURE_CONFIG['match_confidence']
MISS = GESTURE_CONFIG['miss_confidence']


def _shape(matched: bool) -> float:
    return MATCH if matched else MISS


def pinch_confidence(distance: float) -> float:
    """Confidence for a thumb-to-index distance, 0 at 100px and beyond."""
    return max(0.0, 1.0 - distance / PINCH_CONFIDENCE_RANGE_PX)


def detect_open_hand(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    """Open hand: at least 3 fingers extended."""
    extended = count_extended(finger_states)
    confidence = (extended / 5) * 0.9 if extended >= 3 else MISS
    return confidence, {'extended_fingers': extended}


def detect_closed_fist(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    """Closed fist: at least 4 fingers bent."""
    bent = count_bent(finger_states)
    confidence = (bent / 5) * 0.9 if bent >= 4 else MISS
    return confidence, {'bent_fingers': bent}


def detect_pinch(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    """
    Pinch: thumb tip and index tip closer than the pinch threshold.

    Confidence rises linearly as the tips approach each other.
    """
    distance = planar_distance(keypoints[THUMB_TIP], keypoints[INDEX_FINGER_TIP])
    is_pinched = distance < PINCH_THRESHOLD_PX
    confidence = pinch_confidence(distance) if is_pinched else MISS
    return confidence, {'distance': distance, 'is_pinched': is_pinched}


def detect_point(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    matched = (finger_states.get('index', False) and
               count_bent(finger_states, 'middle', 'ring', 'pinky') >= 2)
    return _shape(matched), {}


def detect_victory(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    matched = (count_extended(finger_states, 'index', 'middle') == 2 and
               count_bent(finger_states, 'ring', 'pinky') >= 1)
    return _shape(matched), {}


def detect_thumbs_up(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    matched = (finger_states.get('thumb', False) and
               count_bent(finger_states, 'index', 'middle', 'ring', 'pinky') >= 3)
    return _shape(matched), {}


def detect_rock_on(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    matched = (count_extended(finger_states, 'index', 'pinky') == 2 and
               count_bent(finger_states, 'middle', 'ring') == 2)
    return _shape(matched), {}


def detect_ok_sign(finger_states: Dict[str, bool], keypoints: np.ndarray) -> DetectorResult:
    """
    OK sign: thumb and index pinched, remaining fingers extended.

    Scores at least as high as the pinch it contains.
    """
    distance = planar_distance(keypoints[THUMB_TIP], keypoints[INDEX_FINGER_TIP])
    matched = (distance < PINCH_THRESHOLD_PX and
               count_extended(finger_states, 'middle', 'ring', 'pinky') == 3)
    confidence = max(MATCH, pinch_confidence(distance)) if matched else MISS
    return confidence, {'distance': distance}


# Evaluation order doubles as the tie-break order: most specific shape first
DETECTORS: List[Tuple[GestureType, Callable[[Dict[str, bool], np.ndarray], DetectorResult]]] = [
    (GestureType.OK_SIGN, detect_ok_sign),
    (GestureType.ROCK_ON, detect_rock_on),
    (GestureType.VICTORY, detect_victory),
    (GestureType.THUMBS_UP, detect_thumbs_up),
    (GestureType.POINT, detect_point),
    (GestureType.PINCH, detect_pinch),
    (GestureType.OPEN_HAND, detect_open_hand),
    (GestureType.CLOSED_FIST, detect_closed_fist),
]
