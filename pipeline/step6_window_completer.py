"""
Step 6: Window Completion
Checks that a full window has enough frames with a person, then fills the
gaps with a neutral placeholder so it can be fed to the classifier.
"""

import math
import numpy as np
from typing import Optional, Sequence

from .step4_feature_encoder import WindowSlot


class WindowCompleter:
    """Coverage check + placeholder substitution for full windows."""

    def __init__(self, capacity: int, placeholder: np.ndarray, min_coverage: float = 0.60):
        """
        Args:
            capacity: Number of slots in a full window
            placeholder: Vector used in place of missing slots
            min_coverage: Minimum fraction of present slots, inclusive
        """
        if not 0.0 <= min_coverage <= 1.0:
            raise ValueError(f"min_coverage must be in [0, 1], got {min_coverage}")
        self.capacity = capacity
        self.placeholder = placeholder
        self.min_coverage = min_coverage
        # round() guards against 0.6 * 5 == 3.0000000000000004 style drift
        self.min_required = math.ceil(round(min_coverage * capacity, 9))

    @staticmethod
    def count_present(window: Sequence[WindowSlot]) -> int:
        return sum(1 for slot in window if slot.is_present)

    def has_coverage(self, window: Sequence[WindowSlot]) -> bool:
        return self.count_present(window) >= self.min_required

    def complete(self, window: Sequence[WindowSlot]) -> Optional[np.ndarray]:
        """
        Build the classifier input.

        Returns:
            (capacity, feature_width) float32 array in temporal order, or None
            if the window does not have enough present slots
        """
        if len(window) != self.capacity:
            raise ValueError(f"Expected a full window of {self.capacity} slots, got {len(window)}")
        if not self.has_coverage(window):
            return None
        return np.stack([
            slot.vector if slot.is_present else self.placeholder
            for slot in window
        ]).astype(np.float32)
