"""
Unit Tests for the Video Processing Chain

End-to-end behaviour of the per-frame state machine with a scripted pose
detector and a fake classifier.
"""

import unittest
import numpy as np

from pipeline.errors import DetectionError, StartupConfigError
from pipeline.processing_chain import ActionRecognitionSession, VideoProcessingChain
from pipeline.step7_action_classifier import ClassifierOutput
from pipeline.step8_action_prediction import (
    CLASSIFICATION_FAILED,
    LOW_CONFIDENCE,
    NO_PERSON,
    STARTING,
)
from tests.fakes import (
    FRAME,
    BrokenClassifier,
    FakeActionClassifier,
    MalformedClassifier,
    ScriptedPoseDetector,
    make_pose,
)


class TestVideoProcessingChain(unittest.TestCase):
    """Window size 5, stride 2, 60% coverage (3 frames with a person)."""

    def make_chain(self, script=None, classifier=None, **kwargs):
        self.detector = ScriptedPoseDetector(script)
        self.classifier = classifier or FakeActionClassifier(window_size=5)
        self.poses_seen = []
        self.predictions = []
        return VideoProcessingChain(
            pose_detector=self.detector,
            classifier=self.classifier,
            stride=2,
            on_poses=lambda poses, frame: self.poses_seen.append(poses),
            on_prediction=lambda p, n: self.predictions.append((p, n)),
            **kwargs
        )

    def feed(self, chain, count):
        return [chain.process_frame(FRAME) for _ in range(count)]

    def test_first_prediction_after_window_fills(self):
        chain = self.make_chain()
        results = self.feed(chain, 5)

        self.assertEqual(results[:4], [None] * 4)
        self.assertEqual(results[4].label, "SG")
        self.assertAlmostEqual(results[4].confidence, 0.9)
        self.assertEqual(len(self.classifier.inputs), 1)
        self.assertEqual(self.classifier.inputs[0].shape, (5, self.classifier.feature_width))

    def test_gate_reopens_every_stride(self):
        chain = self.make_chain()
        results = self.feed(chain, 11)
        emitted_at = [i + 1 for i, r in enumerate(results) if r is not None]

        self.assertEqual(emitted_at, [5, 7, 9, 11])
        self.assertEqual(len(self.classifier.inputs), 4)
        self.assertEqual([n for _, n in self.predictions], [2, 2, 2, 2])

    def test_insufficient_coverage_skips_classifier(self):
        pose = make_pose()
        chain = self.make_chain(script=[[pose], [pose], [], [], []])
        results = self.feed(chain, 5)

        self.assertEqual(results[4].label, NO_PERSON)
        self.assertIsNone(results[4].confidence)
        self.assertEqual(self.classifier.inputs, [])

    def test_minimum_coverage_invokes_classifier(self):
        pose = make_pose()
        chain = self.make_chain(script=[[], [pose], [], [pose], [pose]])
        results = self.feed(chain, 5)

        self.assertEqual(results[4].label, "SG")
        merged = self.classifier.inputs[0]
        self.assertFalse(merged[0].any())
        self.assertTrue(merged[1].any())
        self.assertFalse(merged[2].any())

    def test_detector_errors_count_as_missing_frames(self):
        chain = self.make_chain(script=[
            DetectionError("timeout"),
            RuntimeError("backend crashed"),
            [make_pose()],
            [make_pose()],
            [make_pose()],
        ])
        results = self.feed(chain, 5)

        self.assertEqual(results[4].label, "SG")
        self.assertEqual(self.poses_seen[0], [])
        self.assertEqual(self.poses_seen[1], [])
        self.assertFalse(self.classifier.inputs[0][:2].any())

    def test_largest_pose_is_encoded(self):
        small = make_pose(x=0.0, y=0.0, size=0.1)
        large = make_pose(x=0.3, y=0.3, size=0.6)
        chain = self.make_chain(script=[[small, large]] * 5)
        self.feed(chain, 5)

        expected = chain.encoder.encode(large).vector
        np.testing.assert_array_equal(self.classifier.inputs[0][0], expected)

    def test_low_confidence_becomes_sentinel(self):
        chain = self.make_chain(classifier=FakeActionClassifier(window_size=5, confidence=0.59))
        result = self.feed(chain, 5)[4]
        self.assertEqual(result.label, LOW_CONFIDENCE)

    def test_boundary_confidence_passes(self):
        chain = self.make_chain(classifier=FakeActionClassifier(window_size=5, confidence=0.60))
        result = self.feed(chain, 5)[4]
        self.assertEqual(result.label, "SG")
        self.assertAlmostEqual(result.confidence, 0.60)

    def test_classification_failure_does_not_stop_the_stream(self):
        classifier = BrokenClassifier(window_size=5)
        chain = self.make_chain(classifier=classifier)
        results = self.feed(chain, 5)
        self.assertEqual(results[4].label, CLASSIFICATION_FAILED)

        classifier.error = None
        results = self.feed(chain, 2)
        self.assertEqual(results[1].label, "SG")

    def test_unexpected_classifier_exception_is_contained(self):
        classifier = FakeActionClassifier(window_size=5)
        classifier.error = ValueError("bad tensor")
        chain = self.make_chain(classifier=classifier)
        self.assertEqual(self.feed(chain, 5)[4].label, CLASSIFICATION_FAILED)

    def test_missing_probability_for_label_is_contained(self):
        classifier = MalformedClassifier(ClassifierOutput("SG", {"ID": 1.0}), window_size=5)
        chain = self.make_chain(classifier=classifier)
        results = self.feed(chain, 7)
        self.assertEqual(results[4].label, CLASSIFICATION_FAILED)
        self.assertEqual(results[6].label, CLASSIFICATION_FAILED)

    def test_label_outside_label_set_is_contained(self):
        output = ClassifierOutput("Jump", {"Jump": 0.99})
        chain = self.make_chain(classifier=MalformedClassifier(output, window_size=5))
        self.assertEqual(self.feed(chain, 5)[4].label, CLASSIFICATION_FAILED)

    def test_non_numeric_confidence_is_contained(self):
        output = ClassifierOutput("SG", {"SG": "high"})
        chain = self.make_chain(classifier=MalformedClassifier(output, window_size=5))
        self.assertEqual(self.feed(chain, 5)[4].label, CLASSIFICATION_FAILED)

    def test_poses_callback_for_every_frame(self):
        chain = self.make_chain(script=[[make_pose()], [], [make_pose(), make_pose()]])
        self.feed(chain, 3)
        self.assertEqual([len(p) for p in self.poses_seen], [1, 0, 2])

    def test_reconfigure_resets_window(self):
        chain = self.make_chain()
        self.feed(chain, 4)
        chain.reconfigure()

        self.assertEqual(chain.window_length, 0)
        self.assertEqual(self.predictions[-1][0].label, STARTING)
        self.assertEqual(self.predictions[-1][1], 0)

        results = self.feed(chain, 5)
        self.assertEqual(results[:4], [None] * 4)
        self.assertIsNotNone(results[4])

    def test_stride_must_fit_window(self):
        with self.assertRaises(StartupConfigError):
            VideoProcessingChain(ScriptedPoseDetector(), FakeActionClassifier(window_size=5), stride=5)
        with self.assertRaises(StartupConfigError):
            VideoProcessingChain(ScriptedPoseDetector(), FakeActionClassifier(window_size=5), stride=0)

    def test_feature_width_must_match_classifier(self):
        with self.assertRaises(StartupConfigError):
            VideoProcessingChain(
                ScriptedPoseDetector(),
                FakeActionClassifier(window_size=5, feature_width=99),
                stride=2
            )

    def test_run_processes_frames_in_order(self):
        chain = self.make_chain()
        chain.run(FRAME for _ in range(9))
        self.assertEqual(self.detector.calls, 9)
        self.assertEqual(len(self.predictions), 3)


class TestActionRecognitionSession(unittest.TestCase):

    def test_counts_accumulate_stride_per_prediction(self):
        session = ActionRecognitionSession(
            ScriptedPoseDetector(),
            FakeActionClassifier(window_size=30),
            stride=10
        )
        for _ in range(50):
            session.process_frame(FRAME)

        # Windows complete at frames 30, 40 and 50
        self.assertEqual(session.action_frame_counts, {"SG": 30})

    def test_sentinels_do_not_count(self):
        session = ActionRecognitionSession(
            ScriptedPoseDetector([[]] * 20),
            FakeActionClassifier(window_size=5),
            stride=2
        )
        for _ in range(20):
            session.process_frame(FRAME)
        self.assertEqual(session.action_frame_counts, {})

    def test_nan_confidence_is_not_counted(self):
        output = ClassifierOutput("SG", {"ID": float("nan"), "Rest": float("nan"), "SG": float("nan")})
        session = ActionRecognitionSession(
            ScriptedPoseDetector(),
            MalformedClassifier(output, window_size=5),
            stride=2
        )
        results = [session.process_frame(FRAME) for _ in range(7)]
        self.assertEqual(results[4].label, LOW_CONFIDENCE)
        self.assertEqual(session.action_frame_counts, {})

    def test_malformed_output_is_not_counted(self):
        session = ActionRecognitionSession(
            ScriptedPoseDetector(),
            MalformedClassifier(ClassifierOutput("SG", {}), window_size=5),
            stride=2
        )
        for _ in range(9):
            session.process_frame(FRAME)
        self.assertEqual(session.action_frame_counts, {})

    def test_counts_survive_reconfigure(self):
        forwarded = []
        session = ActionRecognitionSession(
            ScriptedPoseDetector(),
            FakeActionClassifier(window_size=5),
            stride=2,
            on_prediction=lambda p, n: forwarded.append(p.label)
        )
        for _ in range(7):
            session.process_frame(FRAME)
        self.assertEqual(session.action_frame_counts, {"SG": 4})

        session.reconfigure()
        self.assertEqual(session.chain.window_length, 0)
        self.assertEqual(session.action_frame_counts, {"SG": 4})
        self.assertEqual(forwarded, ["SG", "SG", STARTING])

    def test_frame_rate_comes_from_classifier(self):
        session = ActionRecognitionSession(
            ScriptedPoseDetector(),
            FakeActionClassifier(window_size=5, frame_rate=60.0),
            stride=2
        )
        self.assertEqual(session.frame_rate, 60.0)


if __name__ == '__main__':
    unittest.main()
