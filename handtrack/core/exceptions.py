"""
Custom exceptions for the hand tracking SDK.

Only programming and sequencing mistakes are raised. Missing hands,
uncalibrated mappers and degraded sensor input are represented as state
values by the pipeline and never reach these classes.
"""

from typing import Optional, Any, Tuple


class HandtrackException(Exception):
    """Base exception for all handtrack errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Initialize handtrack exception.

        Args:
            message: Error message
            details: Optional additional details
        """
        super().__init__(message)
        self.message = message
        self.details = details


class CalibrationError(HandtrackException):
    """Base exception for calibration-related errors."""
    pass


class CalibrationNotStartedError(CalibrationError):
    """Raised when a calibration point is added before calibration starts."""

    def __init__(self):
        super().__init__("Calibration not started")


class InsufficientCalibrationPointsError(CalibrationError):
    """Raised when calibration is completed with missing points."""

    def __init__(self, expected: int, actual: int):
        message = f"Insufficient calibration points: expected {expected}, got {actual}"
        super().__init__(message, details={'expected': expected, 'actual': actual})


class MatrixSizeError(HandtrackException):
    """Raised when a matrix operation is asked for an unsupported shape."""

    def __init__(self, shape: Tuple[int, ...]):
        message = f"Matrix inverse only implemented for 3x3 matrices, got {shape}"
        super().__init__(message, details={'shape': shape})


class ConfigurationError(HandtrackException):
    """Raised when configuration is invalid."""

    def __init__(self, config_type: str, reason: str):
        message = f"Invalid {config_type} configuration: {reason}"
        super().__init__(message, details={'config_type': config_type, 'reason': reason})


class DependencyError(HandtrackException):
    """Raised when required dependency is missing."""

    def __init__(self, dependency: str, purpose: str):
        message = f"Missing dependency '{dependency}' required for {purpose}"
        super().__init__(message, details={'dependency': dependency, 'purpose': purpose})
