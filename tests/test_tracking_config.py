"""
Unit tests for tracking configuration profiles.
"""

import json
import os
import tempfile
import unittest

from handtrack.core.exceptions import ConfigurationError
from handtrack.handpose.tracking_config import (
    ClassifierConfig, KalmanConfig, SequenceConfig, TrackingConfig
)


class TestTrackingConfig(unittest.TestCase):

    def test_default_profile(self):
        config = TrackingConfig()

        self.assertEqual(config.profile, "default")
        self.assertEqual(config.get_kalman_config(), KalmanConfig())
        self.assertEqual(config.get_state_manager_config().smoothing_factor, 0.7)
        self.assertEqual(config.get_sequence_config().timeout_ms, 3000)
        self.assertEqual(config.get_sequence_config().min_confidence, 0.5)
        self.assertEqual(config.get_classifier_config().min_hand_confidence, 0.5)

    def test_named_profiles(self):
        low_latency = TrackingConfig("low_latency")
        self.assertEqual(low_latency.get_kalman_config().process_noise, 0.05)
        self.assertFalse(low_latency.get_tracker_config().adaptive_smoothing)
        self.assertEqual(low_latency.get_classifier_config().history_size, 3)

        stable = TrackingConfig("high_stability")
        self.assertEqual(stable.get_kalman_config().measurement_noise, 0.3)
        self.assertEqual(stable.get_state_manager_config().confidence_threshold, 0.7)
        self.assertEqual(stable.get_mapper_config().quality_threshold, 0.8)

    def test_unknown_profile_falls_back(self):
        with self.assertLogs('handtrack.handpose.tracking_config', level='WARNING'):
            config = TrackingConfig("turbo")
        self.assertEqual(config.get_kalman_config(), KalmanConfig())

    def test_custom_overrides(self):
        config = TrackingConfig("low_latency", {
            "sequence": {"timeout_ms": 5000},
            "classifier": {"min_hand_confidence": 0.8},
        })

        self.assertEqual(config.get_sequence_config(), SequenceConfig(timeout_ms=5000))
        self.assertEqual(config.get_classifier_config(),
                         ClassifierConfig(history_size=3, min_hand_confidence=0.8))
        # Profile defaults are not mutated
        self.assertEqual(TrackingConfig("low_latency").get_sequence_config().timeout_ms, 3000)

    def test_invalid_overrides(self):
        with self.assertRaises(ConfigurationError):
            TrackingConfig(custom_config={"renderer": {}})
        with self.assertRaises(ConfigurationError):
            TrackingConfig(custom_config={"kalman": {"gain": 2.0}})
        with self.assertRaises(ConfigurationError):
            TrackingConfig(custom_config={"kalman": 0.1})

    def test_save_and_load(self):
        config = TrackingConfig("high_stability", {"tracker": {"prediction_time_ahead": 0.2}})

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "tracking.json")
            self.assertTrue(config.save_config(path))

            with open(path) as f:
                self.assertEqual(json.load(f)["profile"], "high_stability")

            loaded = TrackingConfig.load_config(path)

        self.assertEqual(loaded.profile, "high_stability")
        self.assertEqual(loaded.to_dict(), config.to_dict())

    def test_load_failure_returns_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = os.path.join(tmp, "missing.json")
            with self.assertLogs('handtrack.handpose.tracking_config', level='ERROR'):
                config = TrackingConfig.load_config(missing)

            broken = os.path.join(tmp, "broken.json")
            with open(broken, 'w') as f:
                f.write("{not json")
            with self.assertLogs('handtrack.handpose.tracking_config', level='ERROR'):
                broken_config = TrackingConfig.load_config(broken)

        self.assertEqual(config.profile, "default")
        self.assertEqual(broken_config.to_dict(), TrackingConfig().to_dict())

    def test_save_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "missing_dir", "tracking.json")
            with self.assertLogs('handtrack.handpose.tracking_config', level='ERROR'):
                self.assertFalse(TrackingConfig().save_config(path))


if __name__ == '__main__':
    unittest.main()
