"""
Unit tests for the predictive tracker.
"""

import unittest
from unittest.mock import patch

from handtrack.core.exceptions import ConfigurationError
from handtrack.handpose.geometry import Vector3
from handtrack.handpose.gesture_types import GestureType
from handtrack.handpose.hand_state import HandObservation, PredictionRecord
from handtrack.handpose.predictive_tracker import PredictiveTracker
from handtrack.handpose.tracking_config import TrackerConfig

from tests.hand_fixtures import FakeClock, make_hand

FRAME = 0.033


def observation(x=320.0, y=240.0, z=0.5, gesture=GestureType.OPEN_HAND, confidence=0.9):
    return HandObservation(is_tracking=True,
                           position=Vector3(x, y, z),
                           gesture=gesture,
                           confidence=confidence,
                           landmarks=make_hand(x=x, y=y))


class TestPredictiveTracker(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.tracker = PredictiveTracker(TrackerConfig(), clock=self.clock)

    def _step(self, obs):
        self.clock.advance(FRAME)
        return self.tracker.update(obs)

    def test_empty_state_without_hand(self):
        for obs in (None, HandObservation()):
            state = self._step(obs)
            self.assertFalse(state.is_tracking)
            self.assertEqual(state.confidence, 0.0)
            self.assertIsNone(state.predicted_position)
            self.assertEqual(state.timestamp, int(self.clock.now * 1000))

    def test_first_frame(self):
        state = self._step(observation())

        self.assertTrue(state.is_tracking)
        self.assertTrue(self.tracker.position_filter.is_initialized)
        self.assertTrue(self.tracker.gesture_filter.is_initialized)
        self.assertEqual(state.position, Vector3(320.0, 240.0, 0.5))
        self.assertAlmostEqual(state.gesture_stability, 0.5)
        self.assertAlmostEqual(state.confidence, 0.45)
        self.assertGreater(state.quality.overall, 0.0)

    def test_gesture_stability_after_window(self):
        for _ in range(5):
            self._step(observation())
        state = self._step(observation())
        self.assertEqual(state.gesture_stability, 1.0)
        self.assertAlmostEqual(state.confidence, 0.9)

    def test_stationary_hand_prediction(self):
        for _ in range(10):
            state = self._step(observation())

        self.assertTrue(state.predictions.is_valid)
        self.assertLess(state.predicted_position.distance_to(Vector3(320.0, 240.0, 0.5)), 1.0)
        self.assertLess(state.smoothed_position.distance_to(Vector3(320.0, 240.0, 0.5)), 1e-6)

    def test_prediction_disabled(self):
        self.tracker.update_config(enable_prediction=False)
        state = self._step(observation())
        self.assertFalse(state.predictions.is_valid)
        self.assertIsNone(state.predicted_position)

    def test_low_confidence_prediction_is_rejected(self):
        tracker = PredictiveTracker(TrackerConfig(confidence_threshold=1.5), clock=self.clock)
        for _ in range(5):
            self.clock.advance(FRAME)
            state = tracker.update(observation())

        self.assertEqual(state.predictions, PredictionRecord(time_ahead=0.1))
        self.assertIsNone(state.predicted_position)

    def test_far_prediction_is_rejected(self):
        tracker = PredictiveTracker(TrackerConfig(confidence_threshold=0.0), clock=self.clock)
        for i in range(6):
            self.clock.advance(FRAME)
            state = tracker.update(observation(x=100.0 + 100.0 * i))

        self.assertFalse(state.predictions.is_valid)
        self.assertIsNone(state.predictions.position)
        self.assertIsNone(state.predicted_position)

    def test_resume_within_grace_period_keeps_filters(self):
        for _ in range(5):
            self._step(observation())
        self._step(None)
        self.assertFalse(self.tracker.is_tracking)

        with self.assertLogs('handtrack.handpose.predictive_tracker', level='INFO') as logs:
            state = self._step(observation())
        self.assertTrue(state.is_tracking)
        self.assertTrue(any('resumed' in line for line in logs.output))

    def test_grace_period_expiry_resets(self):
        for _ in range(5):
            self._step(observation())
        self._step(None)

        self.clock.advance(TrackerConfig().tracking_loss_grace_period + 0.5)
        self.tracker.update(None)

        self.assertFalse(self.tracker.position_filter.is_initialized)
        self.assertEqual(len(self.tracker.tracking_history), 0)
        self.assertIsNone(self.tracker.loss_deadline)

    def _smooth_from_origin(self, x, confidence):
        self.tracker.tracking_history.append({'position': Vector3()})
        return self.tracker._apply_adaptive_smoothing(Vector3(x, 0.0, 0.0), confidence).x

    def test_adaptive_smoothing_regimes(self):
        # Fast: 0.3 * (0.9 + 0.5)
        self.assertAlmostEqual(self._smooth_from_origin(30.0, 0.9), 30.0 * 0.42)
        # Slow: 0.3 * (2 - 0.5)
        self.assertAlmostEqual(self._smooth_from_origin(4.0, 0.5), 4.0 * 0.45)
        # In between keeps the base factor
        self.assertAlmostEqual(self._smooth_from_origin(10.0, 0.9), 3.0)

    def test_adaptive_smoothing_limits(self):
        with patch('handtrack.handpose.predictive_tracker.BASE_SMOOTHING', 0.1):
            self.assertAlmostEqual(self._smooth_from_origin(30.0, 0.0), 3.0)
        with patch('handtrack.handpose.predictive_tracker.BASE_SMOOTHING', 0.5):
            self.assertAlmostEqual(self._smooth_from_origin(4.0, 0.0), 3.2)

    def test_adaptive_smoothing_can_be_disabled(self):
        tracker = PredictiveTracker(TrackerConfig(adaptive_smoothing=False), clock=self.clock)
        for x in (300.0, 340.0):
            self.clock.advance(FRAME)
            state = tracker.update(observation(x=x))
        self.assertEqual(state.smoothed_position, tracker.position_filter.get_current_estimate().position)

    def test_tracking_metrics(self):
        self._step(observation())
        metrics = self.tracker.get_tracking_metrics()
        self.assertEqual(metrics['frame_count'], 1)
        self.assertEqual(metrics['history_size'], 1)
        self.assertIn('position_filter_metrics', metrics)

    def test_update_config_rejects_unknown_keys(self):
        with self.assertRaises(ConfigurationError):
            self.tracker.update_config(no_such_setting=1)

    def test_update_config_resizes_history(self):
        self.tracker.update_config(max_history_size=3)
        for _ in range(5):
            self._step(observation())
        self.assertEqual(len(self.tracker.tracking_history), 3)


if __name__ == '__main__':
    unittest.main()
