"""
Unit tests for the pipeline logging helpers.
"""

import os
import tempfile
import unittest

from handtrack.handpose.logging_util import HandposeLogger, create_logger


class TestHandposeLogger(unittest.TestCase):

    def test_performance_logged_every_30_frames(self):
        log = create_logger("perf_test")

        with self.assertLogs('handtrack.handpose.perf_test', level='INFO') as captured:
            for frame in range(1, 61):
                log.log_performance(4.2, frame)

        self.assertEqual(len(captured.output), 2)
        self.assertIn("4.2ms", captured.output[0])

    def test_gesture_logging_only_at_debug(self):
        quiet = HandposeLogger("quiet_test", level="INFO")
        with self.assertLogs('handtrack.handpose.quiet_test', level='INFO') as captured:
            quiet.log_gesture("open_hand", 0.9)
            quiet.logger.info("marker")
        self.assertEqual(len(captured.output), 1)

        verbose = HandposeLogger("verbose_test", level="debug")
        with self.assertLogs('handtrack.handpose.verbose_test', level='DEBUG') as captured:
            verbose.log_gesture("pinch", 0.75, stability=0.5)
        self.assertIn("stability=0.50", captured.output[0])

    def test_file_logging(self):
        with tempfile.TemporaryDirectory() as tmp:
            log = HandposeLogger("file_test", file_logging=True, log_dir=tmp)
            try:
                self.assertTrue(log.file_logging)
                self.assertEqual(os.path.dirname(log.log_file), tmp)
                log.logger.info("hello")
            finally:
                log.close()

            with open(log.log_file) as f:
                self.assertIn("hello", f.read())


if __name__ == '__main__':
    unittest.main()
