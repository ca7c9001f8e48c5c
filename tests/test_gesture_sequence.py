"""
Unit tests for gesture combo detection.
"""

import unittest
from unittest.mock import MagicMock

from handtrack.core.events import EventType
from handtrack.handpose.gesture_sequence import (
    GESTURE_COMBOS, ComboDefinition, GestureSequenceDetector, get_all_combos,
    get_combo_by_id, get_combo_by_sequence, matches_sequence
)
from handtrack.handpose.gesture_types import GestureType as G

POWER_UP = [G.CLOSED_FIST, G.VICTORY, G.THUMBS_UP]


class TestMatchesSequence(unittest.TestCase):

    def test_complete(self):
        result = matches_sequence(POWER_UP, POWER_UP)
        self.assertTrue(result.is_complete)
        self.assertFalse(result.is_partial)
        self.assertEqual(result.progress, 1.0)

    def test_partial_prefixes(self):
        for length in (1, 2):
            result = matches_sequence(POWER_UP[:length], POWER_UP)
            self.assertTrue(result.is_partial)
            self.assertFalse(result.is_complete)
            self.assertAlmostEqual(result.progress, length / 3)

    def test_non_prefix(self):
        for current in ([G.VICTORY], [G.CLOSED_FIST, G.THUMBS_UP], POWER_UP + [G.VICTORY], []):
            result = matches_sequence(current, POWER_UP)
            self.assertFalse(result.is_partial)
            self.assertFalse(result.is_complete)
            self.assertEqual(result.progress, 0.0)


class TestComboLibrary(unittest.TestCase):

    def test_lookup(self):
        self.assertEqual(len(get_all_combos()), 5)
        self.assertIs(get_combo_by_id('power_up'), GESTURE_COMBOS['POWER_UP'])
        self.assertIs(get_combo_by_id('ROCK_STAR'), GESTURE_COMBOS['ROCK_STAR'])
        self.assertIsNone(get_combo_by_id('unknown'))

        self.assertEqual(get_combo_by_sequence(POWER_UP).id, 'power_up')
        self.assertIsNone(get_combo_by_sequence(POWER_UP[:2]))

    def test_definitions(self):
        combo = GESTURE_COMBOS['MAGIC_TOUCH']
        self.assertEqual(combo.sequence, (G.OPEN_HAND, G.PINCH, G.OK_SIGN))
        self.assertEqual(combo.points, 150)
        self.assertEqual(combo.timeout_ms, 3000)


class TestGestureSequenceDetector(unittest.TestCase):

    def setUp(self):
        self.clock = MagicMock(return_value=1.0)
        self.detector = GestureSequenceDetector(3000, clock=self.clock)
        self.detected = MagicMock()
        self.completed = MagicMock()
        self.failed = MagicMock()
        self.detector.set_event_handlers(self.detected, self.completed, self.failed)

    def _at(self, ms, gesture):
        self.clock.return_value = ms / 1000.0
        return self.detector.add_gesture(gesture, 0.9)

    def test_detect_on_first_gesture_then_complete(self):
        active = self._at(1000, G.CLOSED_FIST)

        self.detected.assert_called_once()
        self.assertEqual(self.detected.call_args[0][0].id, 'power_up')
        self.assertEqual(active.id, 'power_up')
        self.assertAlmostEqual(active.progress, 1 / 3)

        self._at(1200, G.VICTORY)
        self.assertIsNone(self._at(1400, G.THUMBS_UP))

        self.completed.assert_called_once()
        self.assertEqual(self.completed.call_args[0][0].id, 'power_up')
        self.failed.assert_not_called()
        self.assertEqual(self.detector.get_combo_status()['gesture_history'], [])

    def test_old_gestures_are_evicted(self):
        self._at(1000, G.OPEN_HAND)
        self._at(5000, G.CLOSED_FIST)

        history = self.detector.gesture_history
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].gesture, G.CLOSED_FIST)
        self.assertEqual(history[0].timestamp, 5000)

    def test_active_combo_expires(self):
        self._at(1000, G.OPEN_HAND)
        self._at(4500, G.PINCH)

        self.failed.assert_called_once()
        self.assertEqual(self.failed.call_args[0][0].id, 'magic_touch')
        # PINCH opens no combo
        self.assertIsNone(self.detector.active_combo)

    def test_repeated_step(self):
        self._at(1000, G.ROCK_ON)
        self._at(1100, G.ROCK_ON)
        self._at(1200, G.VICTORY)

        self.completed.assert_called_once()
        self.assertEqual(self.completed.call_args[0][0].id, 'rock_star')

    def test_mismatch_switches_to_matching_combo(self):
        self._at(1000, G.CLOSED_FIST)
        active = self._at(1100, G.THUMBS_UP)

        self.assertEqual(active.id, 'celebration')
        self.assertEqual(self.detected.call_count, 2)
        self.failed.assert_not_called()

    def test_mismatch_without_alternative_fails(self):
        self._at(1000, G.CLOSED_FIST)
        self.assertIsNone(self._at(1100, G.PINCH))

        self.failed.assert_called_once()
        self.assertEqual(self.failed.call_args[0][0].id, 'power_up')

    def test_gesture_without_combo(self):
        self.assertIsNone(self._at(1000, G.PINCH))
        self.detected.assert_not_called()
        self.assertEqual(len(self.detector.gesture_history), 1)

    def test_single_step_combo_completes_immediately(self):
        wave = ComboDefinition(id='wave', name='Wave', sequence=(G.OPEN_HAND,))
        detector = GestureSequenceDetector(clock=self.clock, combos=[wave])
        completed = MagicMock()
        detector.on(EventType.COMBO_COMPLETED, completed)

        self.assertIsNone(detector.add_gesture(G.OPEN_HAND))
        completed.assert_called_once_with(wave)

    def test_status_and_reset(self):
        self._at(1000, G.POINT)
        status = self.detector.get_combo_status()

        self.assertEqual(status['active_combo'].id, 'precision_master')
        self.assertEqual(len(status['gesture_history']), 1)
        self.assertEqual(len(status['available_combos']), 5)

        self.detector.reset()
        self.assertIsNone(self.detector.active_combo)
        self.assertEqual(self.detector.gesture_history, [])


if __name__ == '__main__':
    unittest.main()
