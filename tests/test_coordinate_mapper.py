"""
Unit tests for the adaptive coordinate mapper.
"""

import os
import tempfile
import unittest

from handtrack.core.exceptions import (
    CalibrationError, CalibrationNotStartedError, InsufficientCalibrationPointsError
)
from handtrack.core.persistence import InMemoryStore, JsonFileStore
from handtrack.handpose.coordinate_mapper import (
    CALIBRATION_INSTRUCTIONS, AdaptiveCoordinateMapper, SurfaceSize, read_dimensions
)
from handtrack.handpose.geometry import Vector3
from handtrack.handpose.tracking_config import MapperConfig

from tests.hand_fixtures import FakeClock

CALIBRATION_POINTS = [
    ('center', Vector3(320.0, 240.0, 0.5)),
    ('left', Vector3(160.0, 240.0, 0.5)),
    ('right', Vector3(480.0, 240.0, 0.5)),
    ('top', Vector3(320.0, 120.0, 0.5)),
    ('bottom', Vector3(320.0, 360.0, 0.5)),
    ('near', Vector3(320.0, 240.0, 0.8)),
]


class Surface:
    def __init__(self, width, height):
        self.width = width
        self.height = height


class Provider:
    def get_dimensions(self):
        return SurfaceSize(1280, 720)


def within(position, boundaries):
    return (boundaries['min_x'] <= position.x <= boundaries['max_x'] and
            boundaries['min_y'] <= position.y <= boundaries['max_y'] and
            boundaries['min_z'] <= position.z <= boundaries['max_z'])


class TestMapping(unittest.TestCase):

    def setUp(self):
        self.mapper = AdaptiveCoordinateMapper(MapperConfig(), storage=InMemoryStore(), clock=FakeClock())
        self.mapper.initialize((640, 480), (800, 600))

    def test_centre_maps_to_origin(self):
        result = self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 1.0)
        self.assertTrue(result.is_valid)
        self.assertAlmostEqual(result.position.x, 0.0)
        self.assertAlmostEqual(result.position.y, 0.0)
        self.assertAlmostEqual(result.position.z, 0.0)
        self.assertEqual(result.quality, 1.0)

    def test_far_out_positions_are_clamped(self):
        positions = [
            Vector3(1e6, -1e6, 50.0),
            Vector3(-1e9, 1e9, -1e3),
            Vector3(320.0, 240.0, 0.5),
        ]
        for i in range(30):
            position = positions[i % len(positions)]
            result = self.mapper.map_coordinates(position, 0.9)
            self.assertTrue(within(result.position, self.mapper.natural_boundaries),
                            f"{result.position} outside {self.mapper.natural_boundaries}")

        self.assertGreater(self.mapper.get_performance_metrics()['adaptation_count'], 0)

    def test_low_confidence_is_not_valid(self):
        result = self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 0.5)
        self.assertFalse(result.is_valid)
        self.assertAlmostEqual(result.quality, 0.5)

    def test_missing_or_non_finite_input(self):
        self.assertFalse(self.mapper.map_coordinates(None).is_valid)

        result = self.mapper.map_coordinates(Vector3(float('nan'), 0.0, 0.0))
        self.assertFalse(result.is_valid)
        self.assertEqual(result.quality, 0.0)
        self.assertEqual(self.mapper.get_performance_metrics()['failed_frames'], 1)

    def test_scene_resize_updates_aspect_correction(self):
        self.assertAlmostEqual(self.mapper.aspect_ratio_correction, 1.0)
        self.mapper.update_scene_dimensions(Surface(1600, 600))
        self.assertAlmostEqual(self.mapper.aspect_ratio_correction, (640 / 480) / (1600 / 600))

        # Unreadable sizes are ignored
        self.mapper.update_scene_dimensions(Surface(0, 600))
        self.assertEqual(self.mapper.scene, SurfaceSize(1600, 600))

    def test_jitter_penalty(self):
        self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 1.0)
        steady = self.mapper.map_coordinates(Vector3(322.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(steady.quality, 1.0)

        jump = self.mapper.map_coordinates(Vector3(480.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(jump.quality, 0.8)
        self.assertTrue(jump.is_valid)

    def test_out_of_bounds_penalty(self):
        result = self.mapper.map_coordinates(Vector3(2000.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(result.quality, 0.9)
        self.assertAlmostEqual(result.position.x, self.mapper.natural_boundaries['max_x'])

        # Jump back from the boundary: both penalties
        back = self.mapper.map_coordinates(Vector3(-2000.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(back.quality, 0.72)

    def test_adaptive_scale(self):
        base = self.mapper.scaling_factor
        self.assertAlmostEqual(base, 0.8)

        confident = self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(confident.metadata['adaptive_scale'], base)

        # Confidence 0.5: scale * (0.8 + 0.5 * 0.2)
        unsure = self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 0.5)
        self.assertAlmostEqual(unsure.metadata['adaptive_scale'], base * 0.9)

        # 80px since the last frame is fast motion
        fast = self.mapper.map_coordinates(Vector3(400.0, 240.0, 0.5), 1.0)
        self.assertAlmostEqual(fast.metadata['adaptive_scale'], base * 0.9)

        both = self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5), 0.5)
        self.assertAlmostEqual(both.metadata['adaptive_scale'], base * 0.9 * 0.9)


class TestReadDimensions(unittest.TestCase):

    def test_providers(self):
        self.assertEqual(read_dimensions((640, 480)), SurfaceSize(640, 480))
        self.assertEqual(read_dimensions(Surface(800, 600)), SurfaceSize(800, 600))
        self.assertEqual(read_dimensions(Provider()), SurfaceSize(1280, 720))
        self.assertIsNone(read_dimensions(None))
        self.assertIsNone(read_dimensions(Surface(None, 600)))
        self.assertIsNone(read_dimensions((-1, 480)))


class TestCalibration(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryStore()
        self.mapper = AdaptiveCoordinateMapper(MapperConfig(), storage=self.store, clock=FakeClock())
        self.mapper.initialize((640, 480), (800, 600))

    def _calibrate(self, mapper):
        status = mapper.start_calibration()
        self.assertTrue(status['is_active'])
        self.assertEqual(status['instructions'], CALIBRATION_INSTRUCTIONS[0])

        result = None
        for point_type, position in CALIBRATION_POINTS:
            result = mapper.add_calibration_point(position, point_type)
        return result

    def test_full_flow(self):
        result = self._calibrate(self.mapper)

        self.assertTrue(result['is_complete'])
        self.assertTrue(self.mapper.is_calibrated)
        scale = self.mapper.calibration_data.scaling_factors
        self.assertAlmostEqual(scale.x, 80.0 / 320.0)
        self.assertAlmostEqual(scale.y, 60.0 / 240.0)
        # No far point: depth keeps unit scale
        self.assertEqual(scale.z, 1.0)
        self.assertIsNotNone(self.store.get(self.mapper.config.storage_key))

    def test_calibrated_mapping(self):
        self._calibrate(self.mapper)

        right = self.mapper.map_coordinates(Vector3(480.0, 240.0, 0.5), 1.0)
        # (480 - 320) * 0.25 * adaptive scale 0.8
        self.assertAlmostEqual(right.position.x, 32.0)
        self.assertAlmostEqual(right.position.y, 0.0)
        self.assertTrue(right.metadata['calibrated'])

        up = self.mapper.map_coordinates(Vector3(320.0, 120.0, 0.5), 1.0)
        self.assertGreater(up.position.y, 0.0)

    def test_progress_reporting(self):
        self.mapper.start_calibration()
        result = self.mapper.add_calibration_point(Vector3(320.0, 240.0, 0.5), 'center')
        self.assertFalse(result['is_complete'])
        self.assertEqual(result['points_collected'], 1)
        self.assertEqual(result['next_instruction'], CALIBRATION_INSTRUCTIONS[1])

    def test_point_before_start_raises(self):
        with self.assertRaises(CalibrationNotStartedError):
            self.mapper.add_calibration_point(Vector3(), 'center')

    def test_unknown_point_type_raises(self):
        self.mapper.start_calibration()
        with self.assertRaises(CalibrationError):
            self.mapper.add_calibration_point(Vector3(), 'sideways')

    def test_complete_with_missing_points_raises(self):
        self.mapper.start_calibration()
        self.mapper.add_calibration_point(Vector3(320.0, 240.0, 0.5), 'center')
        with self.assertRaises(InsufficientCalibrationPointsError) as ctx:
            self.mapper.complete_calibration()
        self.assertEqual(ctx.exception.details, {'expected': 6, 'actual': 1})

    def test_degenerate_span_keeps_unit_scale(self):
        self.mapper.start_calibration()
        for point_type, _ in CALIBRATION_POINTS:
            self.mapper.add_calibration_point(Vector3(320.0, 240.0, 0.5), point_type)
        scale = self.mapper.calibration_data.scaling_factors
        self.assertEqual((scale.x, scale.y, scale.z), (1.0, 1.0, 1.0))

    def test_reset_calibration(self):
        self._calibrate(self.mapper)
        self.mapper.reset_calibration()

        self.assertFalse(self.mapper.is_calibrated)
        self.assertIsNone(self.store.get(self.mapper.config.storage_key))
        self.assertFalse(self.mapper.map_coordinates(Vector3(320.0, 240.0, 0.5)).metadata['calibrated'])

    def test_malformed_stored_calibration_is_ignored(self):
        store = InMemoryStore({MapperConfig().storage_key: {'unexpected': True}})
        mapper = AdaptiveCoordinateMapper(MapperConfig(), storage=store, clock=FakeClock())
        with self.assertLogs('handtrack.handpose.coordinate_mapper', level='WARNING'):
            mapper.initialize()
        self.assertFalse(mapper.is_calibrated)


class TestCalibrationPersistence(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'storage.json')

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_calibration_survives_restart(self):
        config = MapperConfig(storage_path=self.path)
        first = AdaptiveCoordinateMapper(config, clock=FakeClock())
        self.assertIsInstance(first.storage, JsonFileStore)
        first.initialize()
        first.start_calibration()
        for point_type, position in CALIBRATION_POINTS:
            first.add_calibration_point(position, point_type)

        second = AdaptiveCoordinateMapper(config, clock=FakeClock())
        second.initialize()
        self.assertTrue(second.is_calibrated)
        self.assertAlmostEqual(second.calibration_data.scaling_factors.x, 0.25)
        self.assertEqual(second.calibration_data.center_point, Vector3(320.0, 240.0, 0.5))


if __name__ == '__main__':
    unittest.main()
