"""
Test doubles for the external collaborators of the processing chain.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence

from pipeline.errors import ClassificationError
from pipeline.step2_pose_detection import COCO_LANDMARK_NAMES, Landmark, Pose, PoseDetector
from pipeline.step7_action_classifier import ActionClassifier, ClassifierOutput

FEATURE_WIDTH = len(COCO_LANDMARK_NAMES) * 3
FRAME = np.zeros((48, 64, 3), dtype=np.uint8)


def make_pose(x: float = 0.2, y: float = 0.2, size: float = 0.5, confidence: float = 0.9) -> Pose:
    """Pose whose landmarks are spread over a size x size square starting at (x, y)."""
    n = len(COCO_LANDMARK_NAMES)
    landmarks = {}
    for i, name in enumerate(COCO_LANDMARK_NAMES):
        t = i / (n - 1)
        landmarks[name] = Landmark(x=x + size * t, y=y + size * (1 - t), confidence=confidence)
    return Pose(landmarks=landmarks, detection_confidence=confidence)


class ScriptedPoseDetector(PoseDetector):
    """
    Returns pre-scripted results, one entry per frame.

    An entry is a list of poses or an exception instance to raise. Once the
    script is exhausted every frame has one default pose.
    """

    LANDMARK_NAMES = COCO_LANDMARK_NAMES

    def __init__(self, script: Optional[Sequence] = None):
        self.script = list(script or [])
        self.calls = 0

    def detect(self, image: np.ndarray) -> List[Pose]:
        self.calls += 1
        if not self.script:
            return [make_pose()]
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        return entry


class FakeActionClassifier(ActionClassifier):
    """Returns a fixed label/confidence or raises, and records every input."""

    def __init__(
        self,
        window_size: int = 5,
        labels: Sequence[str] = ("ID", "Rest", "SG"),
        label: str = "SG",
        confidence: float = 0.9,
        feature_width: int = FEATURE_WIDTH,
        frame_rate: float = 120.0
    ):
        self.window_size = window_size
        self.feature_width = feature_width
        self.frame_rate = frame_rate
        self.labels = list(labels)
        self.label = label
        self.confidence = confidence
        self.error: Optional[Exception] = None
        self.inputs: List[np.ndarray] = []

    def classify(self, window: np.ndarray) -> ClassifierOutput:
        self.inputs.append(window)
        if self.error is not None:
            raise self.error
        rest = (1.0 - self.confidence) / max(len(self.labels) - 1, 1)
        probabilities: Dict[str, float] = {
            label: (self.confidence if label == self.label else rest) for label in self.labels
        }
        return ClassifierOutput(label=self.label, probabilities=probabilities)


class BrokenClassifier(FakeActionClassifier):
    """Always fails like a model runtime error would."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.error = ClassificationError("model runtime error")


class MalformedClassifier(FakeActionClassifier):
    """Returns a fixed, possibly inconsistent, ClassifierOutput."""

    def __init__(self, output: ClassifierOutput, **kwargs):
        super().__init__(**kwargs)
        self.output = output

    def classify(self, window: np.ndarray) -> ClassifierOutput:
        self.inputs.append(window)
        return self.output
