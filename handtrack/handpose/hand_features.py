"""
Hand feature extraction from a landmark set.

These helpers derive the per-frame inputs of the hand state manager:
hand centre with estimated depth, finger spread, pinch data and a coarse
orientation. Every function returns zero values for absent or short
landmark sets instead of raising.
"""

import math
from dataclasses import dataclass
from typing import Any

from ..core.constants import (
    PALM_SIZE_MIN_PX, PALM_SIZE_RANGE_PX, PINCH_THRESHOLD_PX
)
from .finger_detection import planar_distance
from .gesture_detectors import pinch_confidence
from .gesture_types import (
    WRIST, THUMB_CMC, THUMB_TIP, INDEX_FINGER_TIP, MIDDLE_FINGER_MCP,
    PINKY_MCP, PINKY_TIP
)
from .geometry import Orientation, Vector3, as_landmark_array, clamp


@dataclass
class PinchData:
    is_pinched: bool = False
    distance: float = 0.0
    confidence: float = 0.0


def estimate_hand_depth(landmarks: Any) -> float:
    """
    Estimate normalized depth from apparent palm size.

    A bigger palm means the hand is closer to the camera. Palm sizes of
    40-120 px map linearly to 0-1.
    """
    keypoints = as_landmark_array(landmarks)
    if keypoints is None:
        return 0.0

    palm_width = planar_distance(keypoints[THUMB_CMC], keypoints[PINKY_MCP])
    palm_height = planar_distance(keypoints[WRIST], keypoints[MIDDLE_FINGER_MCP])
    palm_size = (palm_width + palm_height) / 2

    return clamp((palm_size - PALM_SIZE_MIN_PX) / PALM_SIZE_RANGE_PX)


def calculate_hand_center(landmarks: Any) -> Vector3:
    """Wrist position in image space with the estimated depth as z."""
    keypoints = as_landmark_array(landmarks)
    if keypoints is None:
        return Vector3()

    wrist = keypoints[WRIST]
    return Vector3(float(wrist[0]), float(wrist[1]), estimate_hand_depth(keypoints))


def calculate_finger_spread(landmarks: Any) -> float:
    """Thumb-tip to pinky-tip distance."""
    keypoints = as_landmark_array(landmarks)
    if keypoints is None:
        return 0.0
    return planar_distance(keypoints[THUMB_TIP], keypoints[PINKY_TIP])


def calculate_pinch(landmarks: Any) -> PinchData:
    keypoints = as_landmark_array(landmarks)
    if keypoints is None:
        return PinchData()

    distance = planar_distance(keypoints[THUMB_TIP], keypoints[INDEX_FINGER_TIP])
    return PinchData(
        is_pinched=distance < PINCH_THRESHOLD_PX,
        distance=distance,
        confidence=pinch_confidence(distance),
    )


def calculate_hand_orientation(landmarks: Any) -> Orientation:
    """
    Coarse hand orientation in radians.

    Yaw follows the wrist to middle-finger-base direction, roll the
    pinky-base to index-tip direction. Pitch cannot be measured from a
    single 2D view, so it is approximated from the estimated depth.
    """
    keypoints = as_landmark_array(landmarks)
    if keypoints is None:
        return Orientation()

    wrist = keypoints[WRIST]
    middle_base = keypoints[MIDDLE_FINGER_MCP]
    index_tip = keypoints[INDEX_FINGER_TIP]
    pinky_base = keypoints[PINKY_MCP]

    yaw = math.atan2(middle_base[0] - wrist[0], middle_base[1] - wrist[1])
    roll = math.atan2(index_tip[1] - pinky_base[1], index_tip[0] - pinky_base[0])
    pitch = (estimate_hand_depth(keypoints) - 0.5) * math.pi / 4

    return Orientation(pitch=pitch, yaw=yaw, roll=roll)
