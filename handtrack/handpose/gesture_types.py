"""
Gesture type definitions and landmark constants for hand tracking.

Landmark indices follow the 21-point hand skeleton produced by MediaPipe
Hands and compatible detectors.
"""

from enum import Enum

# Hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_FINGER_MCP = 5
INDEX_FINGER_PIP = 6
INDEX_FINGER_DIP = 7
INDEX_FINGER_TIP = 8
MIDDLE_FINGER_MCP = 9
MIDDLE_FINGER_PIP = 10
MIDDLE_FINGER_DIP = 11
MIDDLE_FINGER_TIP = 12
RING_FINGER_MCP = 13
RING_FINGER_PIP = 14
RING_FINGER_DIP = 15
RING_FINGER_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

# Joint chains (base, lower, middle, tip) per finger
FINGER_JOINTS = {
    'thumb': (THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP),
    'index': (INDEX_FINGER_MCP, INDEX_FINGER_PIP, INDEX_FINGER_DIP, INDEX_FINGER_TIP),
    'middle': (MIDDLE_FINGER_MCP, MIDDLE_FINGER_PIP, MIDDLE_FINGER_DIP, MIDDLE_FINGER_TIP),
    'ring': (RING_FINGER_MCP, RING_FINGER_PIP, RING_FINGER_DIP, RING_FINGER_TIP),
    'pinky': (PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP),
}
FINGER_NAMES = tuple(FINGER_JOINTS.keys())

LANDMARK_NAMES = [
    'WRIST', 'THUMB_CMC', 'THUMB_MCP', 'THUMB_IP', 'THUMB_TIP',
    'INDEX_FINGER_MCP', 'INDEX_FINGER_PIP', 'INDEX_FINGER_DIP', 'INDEX_FINGER_TIP',
    'MIDDLE_FINGER_MCP', 'MIDDLE_FINGER_PIP', 'MIDDLE_FINGER_DIP', 'MIDDLE_FINGER_TIP',
    'RING_FINGER_MCP', 'RING_FINGER_PIP', 'RING_FINGER_DIP', 'RING_FINGER_TIP',
    'PINKY_MCP', 'PINKY_PIP', 'PINKY_DIP', 'PINKY_TIP'
]


class GestureType(Enum):
    """
    Enumeration of supported hand gestures.

    NO_HAND is the absence state produced whenever no landmark set is
    available for a frame.
    """
    OPEN_HAND = "open_hand"
    CLOSED_FIST = "closed_fist"
    PINCH = "pinch"
    POINT = "point"
    VICTORY = "victory"
    THUMBS_UP = "thumbs_up"
    ROCK_ON = "rock_on"
    OK_SIGN = "ok_sign"
    NO_HAND = "no_hand"

    @classmethod
    def from_string(cls, value: str) -> 'GestureType':
        """Convert string to GestureType, returns NO_HAND if not found."""
        for gesture in cls:
            if gesture.value == value.lower():
                return gesture
        return cls.NO_HAND

    def to_display_name(self) -> str:
        """Get human-readable display name."""
        return self.value.replace('_', ' ').title()


# Classifier configuration
GESTURE_CONFIG = {
    'history_size': 5,             # Frames kept for majority smoothing
    'min_history_for_vote': 3,     # Samples needed before voting
    'match_confidence': 0.9,       # Confidence of a matched shape detector
    'miss_confidence': 0.1,        # Confidence of an unmatched detector
}
