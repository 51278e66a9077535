"""
Unit Tests for the background analyzer used by the camera app
"""

import time
import unittest

from main import AsyncActionAnalyzer
from pipeline.processing_chain import ActionRecognitionSession
from pipeline.step8_action_prediction import STARTING
from tests.fakes import FRAME, FakeActionClassifier, ScriptedPoseDetector


class SlowPoseDetector(ScriptedPoseDetector):
    """Takes a while per frame and records whether it was used after closing."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.closed = False
        self.used_after_close = False

    def detect(self, image):
        time.sleep(self.delay)
        if self.closed:
            self.used_after_close = True
        return super().detect(image)

    def close(self):
        self.closed = True


class TestAsyncActionAnalyzer(unittest.TestCase):

    def make_analyzer(self, detector):
        def session_factory(on_poses, on_prediction):
            return ActionRecognitionSession(
                detector,
                FakeActionClassifier(window_size=5),
                stride=2,
                on_poses=on_poses,
                on_prediction=on_prediction
            )
        return AsyncActionAnalyzer(session_factory)

    def wait_for(self, condition, timeout=5.0):
        deadline = time.monotonic() + timeout
        while not condition() and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertTrue(condition())

    def test_stop_waits_for_frame_in_flight(self):
        detector = SlowPoseDetector(delay=1.5)
        analyzer = self.make_analyzer(detector)
        analyzer.start()
        analyzer.submit_frame(FRAME)
        self.wait_for(lambda: analyzer.frame_queue.empty())

        analyzer.stop()
        self.assertFalse(analyzer.thread.is_alive())
        detector.close()
        self.assertFalse(detector.used_after_close)

    def test_frames_are_analyzed_and_counted(self):
        detector = SlowPoseDetector(delay=0.0)
        analyzer = self.make_analyzer(detector)
        analyzer.start()
        try:
            for _ in range(5):
                self.wait_for(lambda: analyzer.frame_queue.empty())
                analyzer.submit_frame(FRAME)
            self.wait_for(lambda: analyzer.action_frame_counts() == {"SG": 2})
        finally:
            analyzer.stop()

    def test_reconfigure_publishes_starting(self):
        analyzer = self.make_analyzer(SlowPoseDetector(delay=0.0))
        analyzer.start()
        try:
            for _ in range(5):
                self.wait_for(lambda: analyzer.frame_queue.empty())
                analyzer.submit_frame(FRAME)
            self.wait_for(lambda: analyzer.get_latest()[2].label == "SG")

            analyzer.request_reconfigure()
            self.wait_for(lambda: not analyzer._reconfigure_requested.is_set())
            self.wait_for(lambda: analyzer.get_latest()[2].label == STARTING)
        finally:
            analyzer.stop()


if __name__ == '__main__':
    unittest.main()
