"""MediaPipe-backed hand landmark source.

Needs the optional ``detector`` extra (``opencv-python`` and ``mediapipe``).
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.constants import DEFAULT_VIDEO_HEIGHT, DEFAULT_VIDEO_WIDTH
from ..core.exceptions import DependencyError
from .coordinate_mapper import SurfaceSize

logger = logging.getLogger(__name__)


@dataclass
class LandmarkDetection:
    """Landmarks of the first detected hand in pixel coordinates."""
    landmarks: np.ndarray  # (21, 3): x, y in pixels, z relative depth
    confidence: float
    handedness: str = 'Unknown'


class HandDetector:
    """Single-hand landmark detection with MediaPipe Hands."""

    def __init__(self,
                 detection_confidence: float = 0.5,
                 tracking_confidence: float = 0.5):
        """
        Initialize the detector.

        Args:
            detection_confidence: Minimum confidence for hand detection
            tracking_confidence: Minimum confidence for hand tracking

        Raises:
            DependencyError: If OpenCV or MediaPipe is not installed
        """
        try:
            import cv2
        except ImportError as e:
            raise DependencyError('opencv-python', 'hand landmark detection') from e
        try:
            import mediapipe as mp
        except ImportError as e:
            raise DependencyError('mediapipe', 'hand landmark detection') from e

        self._cv2 = cv2
        self.mp_hands = mp.solutions.hands
        self.mp_drawing = mp.solutions.drawing_utils
        self.hands = self.mp_hands.Hands(
            static_image_mode=False,
            max_num_hands=1,
            min_detection_confidence=detection_confidence,
            min_tracking_confidence=tracking_confidence,
        )

        self.frame_size = SurfaceSize(DEFAULT_VIDEO_WIDTH, DEFAULT_VIDEO_HEIGHT)
        self.last_results = None

        logger.info(f"HandDetector initialized (detection={detection_confidence}, "
                    f"tracking={tracking_confidence})")

    def detect(self, image: np.ndarray) -> Optional[LandmarkDetection]:
        """
        Detect the first hand in a BGR frame.

        Args:
            image: BGR image as produced by OpenCV

        Returns:
            LandmarkDetection, or None when no hand is visible
        """
        height, width = image.shape[:2]
        self.frame_size = SurfaceSize(width, height)

        results = self.hands.process(self._cv2.cvtColor(image, self._cv2.COLOR_BGR2RGB))
        self.last_results = results
        if not results.multi_hand_landmarks:
            return None

        hand_landmarks = results.multi_hand_landmarks[0]
        landmarks = np.array([[lm.x * width, lm.y * height, lm.z]
                              for lm in hand_landmarks.landmark], dtype=float)

        confidence = 1.0
        handedness = 'Unknown'
        if results.multi_handedness:
            classification = results.multi_handedness[0].classification[0]
            confidence = float(classification.score)
            handedness = classification.label

        return LandmarkDetection(landmarks, confidence, handedness)

    def draw_landmarks(self, image: np.ndarray) -> np.ndarray:
        """Draw the last detected hand skeleton onto ``image`` in place."""
        if self.last_results is not None and self.last_results.multi_hand_landmarks:
            self.mp_drawing.draw_landmarks(image,
                                           self.last_results.multi_hand_landmarks[0],
                                           self.mp_hands.HAND_CONNECTIONS)
        return image

    def get_dimensions(self) -> SurfaceSize:
        """Size of the last processed frame, for the coordinate mapper."""
        return self.frame_size

    def close(self) -> None:
        self.hands.close()
