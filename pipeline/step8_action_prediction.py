"""
Step 8: Action Prediction
Prediction type shared with the presentation layer, sentinel labels and the
confidence filter.
"""

import math
from dataclasses import dataclass
from typing import Optional

# Sentinel labels describe pipeline outcomes, never classifier decisions
STARTING = "Starting"
NO_PERSON = "NoPerson"
LOW_CONFIDENCE = "LowConfidence"
CLASSIFICATION_FAILED = "ClassificationFailed"

SENTINEL_LABELS = frozenset({STARTING, NO_PERSON, LOW_CONFIDENCE, CLASSIFICATION_FAILED})

# What the user sees instead of a sentinel label
SENTINEL_DISPLAY = {
    STARTING: "Starting Up",
    NO_PERSON: "No Person",
    LOW_CONFIDENCE: "Low Confidence",
    CLASSIFICATION_FAILED: "Prediction Failed",
}


@dataclass(frozen=True)
class ActionPrediction:
    """A model label with its confidence, or a sentinel label without one."""
    label: str
    confidence: Optional[float] = None

    @classmethod
    def starting(cls) -> "ActionPrediction":
        return cls(STARTING)

    @classmethod
    def no_person(cls) -> "ActionPrediction":
        return cls(NO_PERSON)

    @classmethod
    def low_confidence(cls) -> "ActionPrediction":
        return cls(LOW_CONFIDENCE)

    @classmethod
    def classification_failed(cls) -> "ActionPrediction":
        return cls(CLASSIFICATION_FAILED)

    @property
    def is_model_label(self) -> bool:
        return self.label not in SENTINEL_LABELS

    @property
    def confidence_string(self) -> Optional[str]:
        """Confidence as a percentage, None for sentinels."""
        if not self.is_model_label or self.confidence is None:
            return None
        return f"{self.confidence * 100:.1f}%"

    @property
    def display_label(self) -> str:
        return SENTINEL_DISPLAY.get(self.label, self.label)


def apply_confidence_filter(prediction: ActionPrediction,
                            min_confidence: float = 0.60) -> ActionPrediction:
    """
    Replace predictions below `min_confidence` with LowConfidence. The boundary
    passes, a missing or non-finite confidence never does.
    """
    confidence = prediction.confidence
    if confidence is None or not math.isfinite(confidence) or confidence < min_confidence:
        return ActionPrediction.low_confidence()
    return prediction
