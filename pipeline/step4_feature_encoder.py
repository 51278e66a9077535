"""
Step 4: Feature Encoder
Converts the selected pose of a frame into a window slot.

A slot is either present (a fixed-width feature vector) or missing (no person
in the frame). Each landmark contributes one [x, y, confidence] block, in
the detector's landmark order.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Optional

from .step2_pose_detection import Pose

VALUES_PER_LANDMARK = 3  # x, y, confidence


@dataclass(frozen=True, eq=False)
class WindowSlot:
    """Per-frame encoding result: a feature vector or a missing marker."""
    vector: Optional[np.ndarray] = None

    @classmethod
    def present(cls, vector: np.ndarray) -> "WindowSlot":
        if vector is None:
            raise ValueError("A present slot needs a feature vector, use WindowSlot.missing()")
        return cls(vector=vector)

    @classmethod
    def missing(cls) -> "WindowSlot":
        return cls(vector=None)

    @property
    def is_present(self) -> bool:
        return self.vector is not None

    def __repr__(self) -> str:
        if self.is_present:
            return f"WindowSlot.present(width={self.vector.shape[0]})"
        return "WindowSlot.missing()"


class FeatureEncoder:
    """
    Encode poses into fixed-width feature vectors.

    The landmark order is fixed at construction, so the same pose always
    produces the same vector.
    """

    def __init__(self, landmark_names: List[str]):
        if not landmark_names:
            raise ValueError("landmark_names must not be empty")
        self.landmark_names = list(landmark_names)

    @property
    def feature_width(self) -> int:
        return len(self.landmark_names) * VALUES_PER_LANDMARK

    def empty_vector(self) -> np.ndarray:
        """Neutral placeholder used for frames without a person."""
        return np.zeros(self.feature_width, dtype=np.float32)

    def encode_pose(self, pose: Pose) -> np.ndarray:
        """Pose -> (feature_width,) float32 vector. Unknown landmarks encode as zeros."""
        return pose.to_numpy(self.landmark_names).reshape(-1)

    def encode(self, pose: Optional[Pose]) -> WindowSlot:
        if pose is None:
            return WindowSlot.missing()
        return WindowSlot.present(self.encode_pose(pose))
