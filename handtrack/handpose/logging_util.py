"""Logging helpers for the hand tracking pipeline.

Wraps a named stdlib logger with optional timestamped file output and a
few per-frame helpers that keep the hot path quiet unless DEBUG is on.
"""

import logging
import os
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

PERFORMANCE_LOG_INTERVAL = 30  # frames


class HandposeLogger:
    """Named logger for hand tracking with gesture/state/performance helpers."""

    LOG_LEVELS = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL,
    }

    def __init__(self, name: str = "pipeline", level: str = "INFO",
                 file_logging: bool = False, log_dir: str = "./logs"):
        """
        Initialize the logger.

        Args:
            name: Logger name suffix
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            file_logging: Also write to a timestamped file in ``log_dir``
            log_dir: Directory for log files
        """
        self.name = name
        self.logger = logging.getLogger(f"handtrack.handpose.{name}")

        self.level = self.LOG_LEVELS.get(level.upper(), logging.INFO)
        self.logger.setLevel(self.level)

        self.file_logging = file_logging
        self.log_file: Optional[str] = None
        if file_logging:
            self._setup_file_logging(log_dir)

    def _setup_file_logging(self, log_dir: str) -> None:
        try:
            os.makedirs(log_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = os.path.join(log_dir, f"handtrack_{self.name}_{timestamp}.log")

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(self.level)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(file_handler)

            self.log_file = log_file
            self.logger.info(f"File logging enabled: {log_file}")
        except OSError as e:
            # Console logging keeps working
            self.logger.warning(f"Failed to setup file logging: {e}")
            self.file_logging = False

    def log_gesture(self, gesture: str, confidence: float, stability: Optional[float] = None) -> None:
        """Log a classified gesture at DEBUG."""
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if stability is None:
            self.logger.debug(f"Gesture: {gesture}, confidence={confidence:.2f}")
        else:
            self.logger.debug(f"Gesture: {gesture}, confidence={confidence:.2f}, stability={stability:.2f}")

    def log_hand_state(self, state) -> None:
        """Log a HandState summary at DEBUG."""
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if not state.is_tracking:
            self.logger.debug("Hand state: not tracking")
            return
        p = state.position
        self.logger.debug(f"Hand state: {state.gesture.value} at ({p.x:.1f}, {p.y:.1f}, {p.z:.2f}), "
                          f"quality={state.quality_metrics.overall:.2f}")

    def log_performance(self, process_time: float, frame_count: int) -> None:
        """
        Log per-frame processing time every 30 frames.

        Args:
            process_time: Processing time in milliseconds
            frame_count: Frames processed so far
        """
        if frame_count > 0 and frame_count % PERFORMANCE_LOG_INTERVAL == 0:
            self.logger.info(f"Performance: {process_time:.1f}ms per frame ({frame_count} frames)")

    def close(self) -> None:
        """Detach and close any file handlers."""
        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler):
                self.logger.removeHandler(handler)
                handler.close()


def create_logger(name: str = "pipeline", level: str = "INFO",
                  file_logging: bool = False) -> HandposeLogger:
    """
    Create a HandposeLogger.

    Args:
        name: Logger name suffix
        level: Logging level
        file_logging: Enable logging to file

    Returns:
        Configured HandposeLogger instance
    """
    return HandposeLogger(name, level, file_logging)
