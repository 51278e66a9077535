"""
Video Processing Chain
======================

Runs every frame synchronously through the action recognition steps:

2. Pose Detection     - detect all poses in the frame
3. Pose Selection     - keep the largest pose
4. Feature Encoding   - pose -> window slot (present vector or missing)
5. Window Aggregation - sliding window with stride-based eviction + gate
6. Window Completion  - coverage check, placeholder substitution
7. Action Classifier  - label + probabilities
8. Confidence Filter  - low confidence -> sentinel
9. Action Aggregation - frames per label (ActionRecognitionSession)

Results leave the chain through two callbacks: the detected poses of every
frame, and the prediction of every completed window with the number of
frames it stands for.
"""

import logging
import numpy as np
from typing import Callable, Iterable, List, Optional, Tuple

from .errors import ClassificationError, DetectionError, StartupConfigError
from .performance import PerformanceReporter
from .step2_pose_detection import Pose, PoseDetector
from .step3_pose_selection import select_largest_pose
from .step4_feature_encoder import FeatureEncoder, WindowSlot
from .step5_window_aggregator import SlidingWindow, gate_window
from .step6_window_completer import WindowCompleter
from .step7_action_classifier import ActionClassifier, ClassifierOutput
from .step8_action_prediction import ActionPrediction, apply_confidence_filter
from .step9_action_aggregator import ActionAggregator

logger = logging.getLogger(__name__)

PosesCallback = Callable[[List[Pose], np.ndarray], None]
PredictionCallback = Callable[[ActionPrediction, int], None]


class VideoProcessingChain:
    """
    Per-frame state machine from frame to action prediction.

    The chain owns the sliding window and must be driven by a single thread.
    """

    def __init__(
        self,
        pose_detector: PoseDetector,
        classifier: ActionClassifier,
        stride: int = 10,
        min_coverage: float = 0.60,
        min_confidence: float = 0.60,
        on_poses: Optional[PosesCallback] = None,
        on_prediction: Optional[PredictionCallback] = None,
        performance_reporter: Optional[PerformanceReporter] = None
    ):
        """
        Args:
            pose_detector: Returns the poses of one frame
            classifier: Classifies completed windows, defines window size and feature width
            stride: Frames between two predictions
            min_coverage: Minimum fraction of frames with a person to classify a window
            min_confidence: Predictions below this become LowConfidence
            on_poses: Called with (poses, frame) for every frame
            on_prediction: Called with (prediction, frame_count) for every completed window
            performance_reporter: Optional throughput logger
        """
        window_size = classifier.window_size
        if not 0 < stride < window_size:
            raise StartupConfigError(
                f"Window stride {stride} must be between 0 and the model window size {window_size}"
            )

        self.pose_detector = pose_detector
        self.classifier = classifier
        self.stride = stride
        self.min_confidence = min_confidence
        self.on_poses = on_poses
        self.on_prediction = on_prediction
        self.performance_reporter = performance_reporter

        self.encoder = FeatureEncoder(pose_detector.LANDMARK_NAMES)
        if self.encoder.feature_width != classifier.feature_width:
            raise StartupConfigError(
                f"Pose detector produces {self.encoder.feature_width} features per frame, "
                f"classifier expects {classifier.feature_width}"
            )
        self.window = SlidingWindow(capacity=window_size, stride=stride)
        self.completer = WindowCompleter(
            capacity=window_size,
            placeholder=self.encoder.empty_vector(),
            min_coverage=min_coverage
        )

    @property
    def window_size(self) -> int:
        return self.window.capacity

    @property
    def window_length(self) -> int:
        return len(self.window)

    def process_frame(self, frame: np.ndarray) -> Optional[ActionPrediction]:
        """
        Run one frame through the chain.

        Returns:
            The prediction if this frame completed a window, otherwise None
        """
        if self.performance_reporter:
            self.performance_reporter.increment_frame_count()

        poses = self._find_poses(frame)
        if self.on_poses:
            self.on_poses(poses, frame)

        slot = self.encoder.encode(select_largest_pose(poses))
        window = self.window.push(slot)
        if not gate_window(window, self.window.capacity):
            return None

        prediction = self.predict_action(window)
        if self.on_prediction:
            self.on_prediction(prediction, self.stride)
        if self.performance_reporter:
            self.performance_reporter.increment_prediction()
        return prediction

    def run(self, frames: Iterable[np.ndarray]) -> None:
        """Process frames in order until the iterable is exhausted."""
        for frame in frames:
            self.process_frame(frame)

    def reconfigure(self) -> None:
        """
        Start over after the frame source changed (camera switch, rotation).

        The window is emptied so no frames from the old source leak into a
        prediction. Observers are told the chain is starting again.
        """
        self.window.reset()
        logger.info("Frame source changed, window reset")
        if self.on_prediction:
            self.on_prediction(ActionPrediction.starting(), 0)

    def _find_poses(self, frame: np.ndarray) -> List[Pose]:
        try:
            return self.pose_detector.detect(frame)
        except DetectionError as e:
            logger.warning("Pose detection failed, treating frame as empty: %s", e)
        except Exception:
            logger.exception("Unexpected pose detector error, treating frame as empty")
        return []

    def predict_action(self, window: Tuple[WindowSlot, ...]) -> ActionPrediction:
        """Coverage check, classification and confidence filter for a full window."""
        merged = self.completer.complete(window)
        if merged is None:
            return ActionPrediction.no_person()

        try:
            prediction = self._to_prediction(self.classifier.classify(merged))
        except ClassificationError as e:
            logger.error("Classification failed for window: %s", e)
            return ActionPrediction.classification_failed()
        except Exception:
            logger.exception("Unexpected classifier error")
            return ActionPrediction.classification_failed()

        return apply_confidence_filter(prediction, self.min_confidence)

    def _to_prediction(self, output: ClassifierOutput) -> ActionPrediction:
        """Raw classifier output -> prediction. Raises ClassificationError when malformed."""
        if output.label not in self.classifier.labels:
            raise ClassificationError(f"Classifier returned unknown label {output.label!r}")
        if output.label not in output.probabilities:
            raise ClassificationError(f"No probability for predicted label {output.label!r}")
        return ActionPrediction(label=output.label, confidence=float(output.confidence))


class ActionRecognitionSession:
    """
    A processing chain plus the per-label frame counts of one user session.

    Counts survive `reconfigure()`, the window does not.
    """

    def __init__(
        self,
        pose_detector: PoseDetector,
        classifier: ActionClassifier,
        stride: int = 10,
        min_coverage: float = 0.60,
        min_confidence: float = 0.60,
        on_poses: Optional[PosesCallback] = None,
        on_prediction: Optional[PredictionCallback] = None,
        performance_reporter: Optional[PerformanceReporter] = None
    ):
        self.aggregator = ActionAggregator()
        self._on_prediction = on_prediction
        self.chain = VideoProcessingChain(
            pose_detector=pose_detector,
            classifier=classifier,
            stride=stride,
            min_coverage=min_coverage,
            min_confidence=min_confidence,
            on_poses=on_poses,
            on_prediction=self._handle_prediction,
            performance_reporter=performance_reporter
        )

    def _handle_prediction(self, prediction: ActionPrediction, frame_count: int) -> None:
        self.aggregator.record(prediction, frame_count)
        if self._on_prediction:
            self._on_prediction(prediction, frame_count)

    def process_frame(self, frame: np.ndarray) -> Optional[ActionPrediction]:
        return self.chain.process_frame(frame)

    def reconfigure(self) -> None:
        self.chain.reconfigure()

    @property
    def action_frame_counts(self):
        return self.aggregator.counts

    @property
    def frame_rate(self) -> float:
        return self.chain.classifier.frame_rate
