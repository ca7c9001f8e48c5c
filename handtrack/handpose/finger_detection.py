"""
Finger state detection utilities for gesture recognition.

A finger counts as extended when its tip lies clearly further from the
finger base than the middle joint does. The rule only uses image-plane
distances, so it works for pixel or normalized coordinates alike.
"""

import logging
from typing import Dict, Sequence

import numpy as np
from scipy.spatial import distance as scipy_distance

from ..core.constants import FINGER_EXTENSION_RATIO, NUM_LANDMARKS
from .gesture_types import FINGER_JOINTS

logger = logging.getLogger(__name__)


def planar_distance(point_a: np.ndarray, point_b: np.ndarray) -> float:
    """Euclidean distance in the image plane (x, y)."""
    return float(scipy_distance.euclidean(point_a[:2], point_b[:2]))


def is_finger_extended(keypoints: np.ndarray,
                       joints: Sequence[int],
                       ratio: float = FINGER_EXTENSION_RATIO) -> bool:
    """
    Check if a single finger is extended.

    Args:
        keypoints: Hand landmarks (21x3 array)
        joints: Joint chain (base, lower, middle, tip)
        ratio: Required tip/middle distance ratio

    Returns:
        True if base-to-tip distance exceeds ratio x base-to-middle distance
    """
    if len(joints) < 4:
        return False

    base = keypoints[joints[0]]
    middle = keypoints[joints[2]]
    tip = keypoints[joints[3]]

    return planar_distance(base, tip) > planar_distance(base, middle) * ratio


def calculate_finger_states(keypoints: np.ndarray,
                            ratio: float = FINGER_EXTENSION_RATIO) -> Dict[str, bool]:
    """
    Calculate if each finger is extended or folded.

    Args:
        keypoints: Hand landmarks (21x3 array)
        ratio: Extension ratio threshold

    Returns:
        Dict[str, bool]: Finger states where True = extended, keyed
        thumb/index/middle/ring/pinky. Empty for invalid input.
    """
    if keypoints is None or len(keypoints) < NUM_LANDMARKS:
        return {}

    states = {
        name: is_finger_extended(keypoints, joints, ratio)
        for name, joints in FINGER_JOINTS.items()
    }

    logger.debug(f"Finger states: {', '.join([f'{k}={v}' for k, v in states.items()])}")
    return states


def count_extended(finger_states: Dict[str, bool], *fingers: str) -> int:
    """Count extended fingers, optionally restricted to the named ones."""
    names = fingers or finger_states.keys()
    return sum(1 for name in names if finger_states.get(name, False))


def count_bent(finger_states: Dict[str, bool], *fingers: str) -> int:
    """Count bent fingers, optionally restricted to the named ones."""
    names = fingers or finger_states.keys()
    return sum(1 for name in names if not finger_states.get(name, False))
