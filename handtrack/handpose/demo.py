#!/usr/bin/env python3
"""Webcam hand tracking demo.

Keys: q quit, c start calibration, space capture the next calibration
point, r reset calibration.
"""

import argparse
import logging
import time
from typing import Optional

import cv2
import numpy as np

from ..core.events import EventType
from ..core.exceptions import HandtrackException
from .coordinate_mapper import CALIBRATION_POINT_TYPES
from .hand_detector import HandDetector
from .hand_state import HandState
from .pipeline import HandTrackingPipeline
from .tracking_config import TrackingConfig

logger = logging.getLogger(__name__)

TEXT_COLOR = (0, 255, 0)
COMBO_COLOR = (0, 200, 255)


class HandTrackingDemo:
    """Runs the pipeline on a webcam and overlays the hand state."""

    def __init__(self, camera_index: int = 0, profile: str = "default",
                 config_file: Optional[str] = None):
        if config_file:
            config = TrackingConfig.load_config(config_file)
        else:
            config = TrackingConfig(profile)

        self.camera_index = camera_index
        self.detector = HandDetector()
        self.pipeline = HandTrackingPipeline(config)
        self.calibrating = False
        self.combo_message = ''
        self.combo_message_until = 0.0

        self.pipeline.sequence_detector.set_event_handlers(
            on_combo_detected=lambda combo: self._show_combo(f"Combo: {combo.name}..."),
            on_combo_completed=lambda combo: self._show_combo(f"{combo.name}! +{combo.points}"),
            on_combo_failed=lambda combo: self._show_combo(f"{combo.name} failed"),
        )
        self.pipeline.state_manager.on(EventType.CALIBRATION_COMPLETED, self._on_calibration_completed)

    def _show_combo(self, message: str) -> None:
        self.combo_message = message
        self.combo_message_until = time.time() + 1.5

    def _on_calibration_completed(self, calibration_data) -> None:
        self.calibrating = False
        logger.info("Calibration finished")

    def run(self) -> None:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            logger.error(f"Cannot open camera {self.camera_index}")
            return

        try:
            ok, frame = cap.read()
            if not ok:
                logger.error("Cannot read from camera")
                return
            self.detector.detect(frame)
            self.pipeline.initialize_mapper(self.detector, (frame.shape[1], frame.shape[0]))

            while True:
                ok, frame = cap.read()
                if not ok:
                    logger.warning("Failed to grab frame")
                    break

                frame = cv2.flip(frame, 1)
                detection = self.detector.detect(frame)
                if detection is None:
                    state = self.pipeline.process_frame(None)
                else:
                    state = self.pipeline.process_frame(detection.landmarks, detection.confidence)

                self.detector.draw_landmarks(frame)
                self._draw_overlay(frame, state)
                cv2.imshow('Hand Tracking', frame)

                key = cv2.waitKey(1) & 0xFF
                if key == ord('q'):
                    break
                self._handle_key(key)
        finally:
            cap.release()
            self.detector.close()
            cv2.destroyAllWindows()

    def _handle_key(self, key: int) -> None:
        manager = self.pipeline.state_manager
        if key == ord('c'):
            status = manager.start_calibration()
            self.calibrating = status.get('is_active', False)
        elif key == ord(' ') and self.calibrating:
            calibration = manager.mapper.calibration_data
            point_type = CALIBRATION_POINT_TYPES[len(calibration.points)]
            try:
                manager.add_calibration_point(point_type)
            except HandtrackException as e:
                logger.warning(f"Calibration point rejected: {e}")
        elif key == ord('r'):
            manager.reset_calibration()
            self.calibrating = False

    def _draw_overlay(self, frame: np.ndarray, state: HandState) -> None:
        lines = []
        if state.is_tracking:
            lines.append(f"{state.gesture.to_display_name()} ({state.confidence:.2f})")
            mapped = self.pipeline.last_mapped_position
            if mapped is not None:
                lines.append(f"Scene: ({mapped.x:.1f}, {mapped.y:.1f}, {mapped.z:.1f})")
            lines.append(f"Quality: {state.quality_metrics.overall:.2f}")
        else:
            lines.append("No hand")

        if self.calibrating:
            lines.append(self.pipeline.state_manager.mapper.get_next_calibration_instruction())

        for i, text in enumerate(lines):
            cv2.putText(frame, text, (10, 30 + i * 25), cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_COLOR, 2)

        if self.combo_message and time.time() < self.combo_message_until:
            cv2.putText(frame, self.combo_message, (10, frame.shape[0] - 20),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.8, COMBO_COLOR, 2)


def main():
    """Entry point of the webcam demo."""
    parser = argparse.ArgumentParser(description='Hand tracking webcam demo')
    parser.add_argument('--camera', type=int, default=0,
                        help='Camera index')
    parser.add_argument('--profile', type=str, default='default',
                        choices=sorted(TrackingConfig.DEFAULT_CONFIGS),
                        help='Tracking configuration profile')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to a JSON tracking configuration')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    demo = HandTrackingDemo(args.camera, args.profile, args.config)
    demo.run()


if __name__ == "__main__":
    main()
