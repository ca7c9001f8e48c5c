"""
Adaptive mapping from camera space into the virtual scene.

The mapper converts wrist positions in camera pixels (plus normalized
depth) into a bounded scene box. It corrects for differing camera and
surface aspect ratios, shrinks its scale for low-confidence or fast
input, learns the user's natural movement range and supports a guided
six-point calibration that is persisted in a key-value store.
"""

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from ..core.constants import (
    DEFAULT_NATURAL_BOUNDARIES, VIRTUAL_SCENE_DEPTH, VIRTUAL_SCENE_HEIGHT,
    VIRTUAL_SCENE_WIDTH
)
from ..core.exceptions import (
    CalibrationError, CalibrationNotStartedError, InsufficientCalibrationPointsError
)
from ..core.persistence import InMemoryStore, JsonFileStore
from .geometry import ScalarScale, Scale, Vector3, VectorScale, apply_scale, clamp
from .tracking_config import MapperConfig

logger = logging.getLogger(__name__)

CALIBRATION_POINT_TYPES = ('center', 'left', 'right', 'top', 'bottom', 'near', 'far')
REQUIRED_CALIBRATION_POINTS = 6

CALIBRATION_INSTRUCTIONS = [
    'Move your hand to the center of your interaction area',
    'Move your hand to the left edge of your comfort zone',
    'Move your hand to the right edge of your comfort zone',
    'Move your hand to the top of your comfort zone',
    'Move your hand to the bottom of your comfort zone',
    'Move your hand closer to the camera',
    'Move your hand further from the camera',
]


@dataclass
class SurfaceSize:
    """Width and height of a camera frame or rendering surface."""
    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass
class CalibrationPoint:
    point_type: str
    position: Vector3
    timestamp: float


@dataclass
class CalibrationData:
    """User calibration: centre, boundary points and per-axis scale."""
    center_point: Vector3 = field(default_factory=Vector3)
    boundary_points: Dict[str, Vector3] = field(default_factory=dict)
    scaling_factors: Vector3 = field(default_factory=lambda: Vector3(1.0, 1.0, 1.0))
    offsets: Vector3 = field(default_factory=Vector3)
    points: List[CalibrationPoint] = field(default_factory=list)
    is_complete: bool = False
    start_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'center_point': self.center_point.to_dict(),
            'boundary_points': {k: v.to_dict() for k, v in self.boundary_points.items()},
            'scaling_factors': self.scaling_factors.to_dict(),
            'offsets': self.offsets.to_dict(),
            'is_complete': self.is_complete,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalibrationData':
        return cls(
            center_point=Vector3.from_dict(data['center_point']),
            boundary_points={k: Vector3.from_dict(v) for k, v in data.get('boundary_points', {}).items()},
            scaling_factors=Vector3.from_dict(data['scaling_factors']),
            offsets=Vector3.from_dict(data.get('offsets', {})),
            is_complete=bool(data.get('is_complete', True)),
        )


@dataclass
class MappingResult:
    """Scene-space position with a quality score."""
    position: Vector3 = field(default_factory=Vector3)
    quality: float = 0.0
    is_valid: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def invalid(cls, reason: str) -> 'MappingResult':
        return cls(metadata={'error': reason})


def read_dimensions(source: Any) -> Optional[SurfaceSize]:
    """
    Read width/height from a dimension provider.

    Providers may be a ``SurfaceSize``, a ``(width, height)`` tuple, an
    object with ``width``/``height`` attributes or one exposing
    ``get_dimensions()``. Returns None when nothing usable is found.
    """
    if source is None:
        return None

    if hasattr(source, 'get_dimensions') and callable(source.get_dimensions):
        source = source.get_dimensions()

    if isinstance(source, (tuple, list)) and len(source) >= 2:
        width, height = source[0], source[1]
    else:
        width = getattr(source, 'width', None)
        height = getattr(source, 'height', None)

    try:
        width, height = float(width), float(height)
    except (TypeError, ValueError):
        return None

    if width <= 0 or height <= 0 or not math.isfinite(width) or not math.isfinite(height):
        return None
    return SurfaceSize(width, height)


class AdaptiveCoordinateMapper:
    """
    Maps camera coordinates into the virtual scene box.

    Uncalibrated mappers use proportional mapping; a completed calibration
    switches to the calibration transform. Both paths are clamped to the
    learned natural boundaries.
    """

    def __init__(self,
                 config: Optional[MapperConfig] = None,
                 storage=None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the mapper.

        Args:
            config: Mapper configuration
            storage: Key-value store with get/set/delete used for
                calibration persistence; defaults to a JSON file store at
                ``config.storage_path`` or an in-memory store
            clock: Wall-clock source in seconds
        """
        self.config = config or MapperConfig()
        self.clock = clock
        if storage is None:
            storage = JsonFileStore(self.config.storage_path) if self.config.storage_path else InMemoryStore()
        self.storage = storage

        self.webcam = SurfaceSize(self.config.webcam_width, self.config.webcam_height)
        self.scene = SurfaceSize(self.config.scene_width, self.config.scene_height)

        self.aspect_ratio_correction = 1.0
        self.scaling_factor = 1.0
        self.calibration_data: Optional[CalibrationData] = None
        self.is_calibrated = False
        self.is_initialized = False

        self.movement_history: Deque[Dict[str, Any]] = deque(maxlen=self.config.max_history_size)
        self.natural_boundaries = dict(DEFAULT_NATURAL_BOUNDARIES)

        self.performance_metrics = {
            'mapping_latency': 0.0,
            'adaptation_count': 0,
            'mapped_frames': 0,
            'failed_frames': 0,
        }

        self._calculate_transformation()

    def initialize(self, video_source: Any = None, scene_surface: Any = None) -> bool:
        """
        Read source/surface dimensions and load stored calibration.

        Args:
            video_source: Dimension provider of the camera frames
            scene_surface: Dimension provider of the rendering surface

        Returns:
            True once the mapper is ready
        """
        webcam = read_dimensions(video_source)
        if webcam is not None:
            self.webcam = webcam
        elif video_source is not None:
            logger.warning("Could not read video source dimensions, using defaults")

        scene = read_dimensions(scene_surface)
        if scene is not None:
            self.scene = scene
        elif scene_surface is not None:
            logger.warning("Could not read scene dimensions, using defaults")

        self._calculate_transformation()
        self._load_calibration_data()
        self.is_initialized = True

        logger.info(f"Coordinate mapper initialized: webcam {self.webcam.width:.0f}x{self.webcam.height:.0f}, "
                    f"scene {self.scene.width:.0f}x{self.scene.height:.0f}, "
                    f"aspect correction {self.aspect_ratio_correction:.3f}, "
                    f"scaling {self.scaling_factor:.3f}")
        return True

    def update_scene_dimensions(self, scene_surface: Any) -> None:
        """Re-read the surface size after a resize."""
        scene = read_dimensions(scene_surface)
        if scene is None:
            logger.warning("Ignoring scene resize with unreadable dimensions")
            return
        self.scene = scene
        self._calculate_transformation()
        logger.debug(f"Scene resized to {scene.width:.0f}x{scene.height:.0f}")

    def _calculate_transformation(self) -> None:
        self.aspect_ratio_correction = self.webcam.aspect_ratio / self.scene.aspect_ratio
        resolution_ratio = math.sqrt((self.webcam.width * self.webcam.height) /
                                     (self.scene.width * self.scene.height))
        self.scaling_factor = clamp(resolution_ratio, 0.5, 2.0)

    # ---------------------------------------------------------------- mapping

    def map_coordinates(self, hand_position: Optional[Vector3], confidence: float = 1.0) -> MappingResult:
        """
        Map a camera-space position into the scene box.

        Args:
            hand_position: Wrist position (pixels, z = normalized depth)
            confidence: Detection confidence in [0, 1]

        Returns:
            MappingResult; invalid with quality 0 for missing or
            non-finite input
        """
        start_time = time.perf_counter()

        if hand_position is None:
            return MappingResult.invalid('No hand position provided')

        if not all(math.isfinite(v) for v in (hand_position.x, hand_position.y, hand_position.z)):
            self.performance_metrics['failed_frames'] += 1
            logger.warning("Non-finite hand position, skipping mapping")
            return MappingResult.invalid('Non-finite hand position')

        try:
            scale = self._calculate_adaptive_scale(confidence, hand_position)

            if self.calibration_data is not None and self.is_calibrated:
                mapped = self._apply_calibration_transform(hand_position, ScalarScale(scale))
            else:
                mapped = self._apply_proportional_mapping(hand_position, scale)

            self._analyze_natural_boundaries()
            bounded = self._apply_natural_boundaries(mapped)
            quality = self._calculate_mapping_quality(confidence, mapped, bounded)
        except (ArithmeticError, ValueError) as e:
            self.performance_metrics['failed_frames'] += 1
            logger.warning(f"Coordinate mapping failed: {e}")
            return MappingResult.invalid(str(e))

        self.movement_history.append({
            'position': bounded,
            'raw': hand_position.copy(),
            'confidence': confidence,
            'timestamp': self.clock(),
        })

        latency = (time.perf_counter() - start_time) * 1000
        self.performance_metrics['mapping_latency'] = latency
        self.performance_metrics['mapped_frames'] += 1

        return MappingResult(
            position=bounded,
            quality=quality,
            is_valid=quality > self.config.quality_threshold,
            metadata={
                'original_position': hand_position.copy(),
                'confidence': confidence,
                'adaptive_scale': scale,
                'calibrated': self.is_calibrated,
                'latency': latency,
            },
        )

    def _calculate_adaptive_scale(self, confidence: float, hand_position: Vector3) -> float:
        scale = self.scaling_factor

        if confidence < 0.8:
            scale *= (0.8 + confidence * 0.2)

        if self.movement_history:
            last_raw = self.movement_history[-1]['raw']
            speed = math.hypot(hand_position.x - last_raw.x, hand_position.y - last_raw.y)
            if speed > self.config.fast_motion_threshold:
                scale *= 0.9

        return clamp(scale, 0.5, 2.0)

    def _apply_calibration_transform(self, position: Vector3, scale: Scale) -> Vector3:
        cal = self.calibration_data
        centred = Vector3(position.x - cal.center_point.x,
                          # Camera y grows downwards, scene y upwards
                          cal.center_point.y - position.y,
                          position.z - cal.center_point.z)
        scaled = apply_scale(apply_scale(centred, VectorScale(cal.scaling_factors.x,
                                                              cal.scaling_factors.y,
                                                              cal.scaling_factors.z)), scale)
        return Vector3(scaled.x + cal.offsets.x, scaled.y + cal.offsets.y, scaled.z + cal.offsets.z)

    def _apply_proportional_mapping(self, position: Vector3, scale: float) -> Vector3:
        corrected_x = position.x * self.aspect_ratio_correction
        x = ((corrected_x / self.webcam.width) * VIRTUAL_SCENE_WIDTH - VIRTUAL_SCENE_WIDTH / 2) * scale
        y = ((1 - position.y / self.webcam.height) * VIRTUAL_SCENE_HEIGHT - VIRTUAL_SCENE_HEIGHT / 2) * scale
        z = (position.z * VIRTUAL_SCENE_DEPTH - VIRTUAL_SCENE_DEPTH / 2) * scale
        return Vector3(x, y, z)

    def _apply_natural_boundaries(self, position: Vector3) -> Vector3:
        b = self.natural_boundaries
        return Vector3(clamp(position.x, b['min_x'], b['max_x']),
                       clamp(position.y, b['min_y'], b['max_y']),
                       clamp(position.z, b['min_z'], b['max_z']))

    def _analyze_natural_boundaries(self) -> None:
        """Re-estimate boundaries from the 5th-95th percentile of confident samples."""
        if len(self.movement_history) < self.config.min_samples_for_boundaries:
            return

        positions = [entry['position'] for entry in self.movement_history
                     if entry['confidence'] > self.config.high_confidence_threshold]
        if len(positions) < self.config.min_high_confidence_samples:
            return

        low_index = int(len(positions) * 0.05)
        high_index = int(len(positions) * 0.95)
        padding = self.config.boundary_padding

        boundaries = {}
        for axis in ('x', 'y', 'z'):
            values = sorted(getattr(p, axis) for p in positions)
            boundaries[f'min_{axis}'] = values[low_index] - padding
            boundaries[f'max_{axis}'] = values[high_index] + padding

        self.natural_boundaries = boundaries
        self.performance_metrics['adaptation_count'] += 1

    def _calculate_mapping_quality(self, confidence: float, mapped: Vector3, bounded: Vector3) -> float:
        quality = confidence

        if self.movement_history:
            previous = self.movement_history[-1]['position']
            jitter = math.hypot(bounded.x - previous.x, bounded.y - previous.y)
            if jitter > self.config.jitter_threshold:
                quality *= 0.8

        b = self.natural_boundaries
        within_bounds = (b['min_x'] <= mapped.x <= b['max_x'] and
                         b['min_y'] <= mapped.y <= b['max_y'])
        if not within_bounds:
            quality *= 0.9

        return clamp(quality)

    # ------------------------------------------------------------ calibration

    def start_calibration(self) -> Dict[str, Any]:
        """Begin a new guided calibration, discarding collected points."""
        self.calibration_data = CalibrationData(start_time=self.clock())
        self.is_calibrated = False

        logger.info("Calibration started")
        return {
            'is_active': True,
            'points_needed': REQUIRED_CALIBRATION_POINTS,
            'current_point': 0,
            'instructions': CALIBRATION_INSTRUCTIONS[0],
        }

    def add_calibration_point(self, hand_position: Vector3, point_type: str) -> Dict[str, Any]:
        """
        Record one calibration point.

        Args:
            hand_position: Camera-space position of the hand
            point_type: One of center, left, right, top, bottom, near, far

        Returns:
            Progress dict; ``is_complete`` once all points are collected

        Raises:
            CalibrationNotStartedError: If start_calibration was not called
            CalibrationError: For an unknown point type
        """
        if self.calibration_data is None or self.calibration_data.is_complete:
            raise CalibrationNotStartedError()
        if point_type not in CALIBRATION_POINT_TYPES:
            raise CalibrationError(f"Unknown calibration point type '{point_type}'",
                                   details={'point_type': point_type})

        self.calibration_data.points.append(
            CalibrationPoint(point_type, hand_position.copy(), self.clock()))
        collected = len(self.calibration_data.points)
        logger.info(f"Calibration point '{point_type}' recorded ({collected}/{REQUIRED_CALIBRATION_POINTS})")

        if collected >= REQUIRED_CALIBRATION_POINTS:
            self.complete_calibration()
            return {'is_complete': True, 'success': True}

        return {
            'is_complete': False,
            'points_collected': collected,
            'next_instruction': self.get_next_calibration_instruction(),
        }

    def complete_calibration(self) -> CalibrationData:
        """
        Derive the calibration transform from the collected points and persist it.

        Raises:
            CalibrationNotStartedError: If no calibration is in progress
            InsufficientCalibrationPointsError: If points are missing
        """
        cal = self.calibration_data
        if cal is None:
            raise CalibrationNotStartedError()
        if len(cal.points) < REQUIRED_CALIBRATION_POINTS:
            raise InsufficientCalibrationPointsError(REQUIRED_CALIBRATION_POINTS, len(cal.points))

        by_type = {}
        for point in cal.points:
            by_type.setdefault(point.point_type, point.position)

        if 'center' in by_type:
            cal.center_point = by_type['center'].copy()
        cal.boundary_points = {k: v.copy() for k, v in by_type.items() if k != 'center'}

        scale_x = self._span_scale(by_type, 'left', 'right', 'x', VIRTUAL_SCENE_WIDTH)
        scale_y = self._span_scale(by_type, 'top', 'bottom', 'y', VIRTUAL_SCENE_HEIGHT)
        scale_z = self._span_scale(by_type, 'near', 'far', 'z', VIRTUAL_SCENE_DEPTH)
        cal.scaling_factors = Vector3(scale_x, scale_y, scale_z)
        cal.is_complete = True
        self.is_calibrated = True

        logger.info(f"Calibration completed: scale=({scale_x:.3f}, {scale_y:.3f}, {scale_z:.3f})")
        self._save_calibration_data()
        return cal

    @staticmethod
    def _span_scale(points: Dict[str, Vector3], first: str, second: str, axis: str, extent: float) -> float:
        if first not in points or second not in points:
            return 1.0
        span = abs(getattr(points[second], axis) - getattr(points[first], axis))
        if span < 1e-6:
            logger.warning(f"Degenerate calibration span between '{first}' and '{second}', keeping unit scale")
            return 1.0
        return extent / span

    def get_next_calibration_instruction(self) -> str:
        count = len(self.calibration_data.points) if self.calibration_data else 0
        if count < len(CALIBRATION_INSTRUCTIONS):
            return CALIBRATION_INSTRUCTIONS[count]
        return 'Calibration complete'

    def reset_calibration(self) -> None:
        """Drop calibration, delete the stored copy and return to proportional mapping."""
        self.calibration_data = None
        self.is_calibrated = False
        try:
            self.storage.delete(self.config.storage_key)
        except OSError as e:
            logger.warning(f"Could not delete stored calibration: {e}")
        logger.info("Calibration reset")

    def _load_calibration_data(self) -> None:
        try:
            saved = self.storage.get(self.config.storage_key)
        except OSError as e:
            logger.warning(f"Could not load calibration data: {e}")
            return

        if not saved:
            return

        try:
            self.calibration_data = CalibrationData.from_dict(saved)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring malformed calibration data: {e}")
            return

        self.is_calibrated = self.calibration_data.is_complete
        logger.info("Loaded stored calibration data")

    def _save_calibration_data(self) -> None:
        try:
            saved = self.storage.set(self.config.storage_key, self.calibration_data.to_dict())
        except OSError as e:
            logger.warning(f"Could not save calibration data: {e}")
            return
        if not saved:
            logger.warning("Calibration data was not persisted")

    # ---------------------------------------------------------------- metrics

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {
            **self.performance_metrics,
            'natural_boundaries': dict(self.natural_boundaries),
            'aspect_ratio_correction': self.aspect_ratio_correction,
            'scaling_factor': self.scaling_factor,
            'is_calibrated': self.is_calibrated,
        }
