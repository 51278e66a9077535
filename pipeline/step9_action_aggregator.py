"""
Step 9: Action Aggregation
Accumulates how many frames were spent on each recognized exercise.
"""

from typing import Dict

from .step8_action_prediction import ActionPrediction


class ActionAggregator:
    """
    Running frame count per model label for one session.

    Sentinel predictions never create or update an entry.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def record(self, prediction: ActionPrediction, frame_count: int) -> None:
        """Add `frame_count` frames to the prediction's label if it is a model label."""
        if frame_count < 0:
            raise ValueError(f"frame_count must not be negative, got {frame_count}")
        if not prediction.is_model_label:
            return
        self._counts[prediction.label] = self._counts.get(prediction.label, 0) + frame_count

    @property
    def counts(self) -> Dict[str, int]:
        """Snapshot of the frame counts."""
        return dict(self._counts)

    @property
    def total_frames(self) -> int:
        return sum(self._counts.values())
