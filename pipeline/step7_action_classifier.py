"""
Step 7: Action Classifier
=========================
Classifies a completed window of pose features into an exercise label.

Input:  Window (window_size, feature_width) - one feature vector per frame
Output: Label + probability of every label

The model metadata (window size, feature width, frame rate) and label set are
read and validated once at startup. Any problem there raises
StartupConfigError. A failure on a single window raises ClassificationError.
"""

import logging
import pickle
import numpy as np
import torch
import torch.nn as nn
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence

from .errors import ClassificationError, StartupConfigError
from .step8_action_prediction import SENTINEL_LABELS

logger = logging.getLogger(__name__)

DEFAULT_HIDDEN_SIZES = (256, 128, 64)
REQUIRED_METADATA = ('state_dict', 'window_size', 'feature_width')


class ClassifierOutput(NamedTuple):
    """Raw classifier result."""
    label: str
    probabilities: Dict[str, float]

    @property
    def confidence(self) -> float:
        return self.probabilities[self.label]


class ActionClassifier(ABC):
    """Classifier boundary used by the processing chain."""

    labels: List[str]
    window_size: int
    feature_width: int
    frame_rate: float

    @abstractmethod
    def classify(self, window: np.ndarray) -> ClassifierOutput:
        """Classify a (window_size, feature_width) array. Raises ClassificationError."""

    @property
    def window_span(self) -> float:
        """Seconds of video covered by one window."""
        return self.window_size / self.frame_rate


def validate_labels(labels: Sequence) -> List[str]:
    """Check the model label set is usable and disjoint from the sentinel labels."""
    labels = list(labels)
    if not labels:
        raise StartupConfigError("Model has no class labels")
    for label in labels:
        if not isinstance(label, str) or not label:
            raise StartupConfigError(f"Class label {label!r} is not a non-empty string")
    if len(set(labels)) != len(labels):
        raise StartupConfigError(f"Duplicate class labels: {labels}")
    collisions = SENTINEL_LABELS.intersection(labels)
    if collisions:
        raise StartupConfigError(f"Class labels collide with sentinel labels: {sorted(collisions)}")
    return [str(label) for label in labels]


class ActionMLP(nn.Module):
    """MLP over a flattened window of pose features."""

    def __init__(self, input_size: int, num_classes: int,
                 hidden_sizes: Sequence[int] = DEFAULT_HIDDEN_SIZES):
        super().__init__()
        layers = []
        in_size = input_size
        for size in hidden_sizes:
            layers += [
                nn.Linear(in_size, size),
                nn.ReLU(),
                nn.BatchNorm1d(size),
                nn.Dropout(0.3),
            ]
            in_size = size
        layers.append(nn.Linear(in_size, num_classes))
        self.model = nn.Sequential(*layers)

    def forward(self, x):
        return self.model(x.flatten(start_dim=1))


class TorchActionClassifier(ActionClassifier):
    """
    Action classifier backed by a PyTorch checkpoint.

    The checkpoint is a dict saved with `torch.save` holding the model
    `state_dict` plus `window_size`, `feature_width` and optionally
    `frame_rate` and `hidden_sizes`. Class labels come from a scikit-learn
    LabelEncoder pickled next to the checkpoint.
    """

    def __init__(
        self,
        model_path: str,
        label_encoder_name: str = "label_encoder.pkl",
        expected_feature_width: Optional[int] = None,
        device: Optional[str] = None,
        default_frame_rate: Optional[float] = None
    ):
        """
        Load and validate the model.

        Args:
            model_path: Path to the checkpoint (.pth)
            label_encoder_name: File name of the pickled LabelEncoder beside the checkpoint
            expected_feature_width: Width produced by the feature encoder, checked against the checkpoint
            device: 'cuda' or 'cpu' (auto-detect if None)
            default_frame_rate: Frame rate used when the checkpoint does not record one
        """
        self.model_path = Path(model_path)
        self.device = device or ('cuda' if torch.cuda.is_available() else 'cpu')

        checkpoint = self._load_checkpoint()
        self.window_size = self._positive(checkpoint, 'window_size', int)
        self.feature_width = self._positive(checkpoint, 'feature_width', int)
        if 'frame_rate' not in checkpoint:
            if default_frame_rate is None:
                raise StartupConfigError("Checkpoint has no frame_rate and no default was given")
            logger.warning("Checkpoint has no frame_rate, assuming %.0ffps", default_frame_rate)
            checkpoint['frame_rate'] = default_frame_rate
        self.frame_rate = self._positive(checkpoint, 'frame_rate', float)
        if expected_feature_width is not None and expected_feature_width != self.feature_width:
            raise StartupConfigError(
                f"Model expects {self.feature_width} features per frame, "
                f"pose encoder produces {expected_feature_width}"
            )

        self.labels = validate_labels(self._load_labels(label_encoder_name))
        hidden_sizes = checkpoint.get('hidden_sizes', DEFAULT_HIDDEN_SIZES)

        self.model = ActionMLP(
            input_size=self.window_size * self.feature_width,
            num_classes=len(self.labels),
            hidden_sizes=hidden_sizes
        )
        try:
            self.model.load_state_dict(checkpoint['state_dict'])
        except RuntimeError as e:
            raise StartupConfigError(f"Checkpoint does not match model shape: {e}") from e
        self.model.to(self.device)
        self.model.eval()

        logger.info("Loaded action classifier from %s", self.model_path)
        logger.info("  Labels: %s", self.labels)
        logger.info("  Window: %d frames (~%.2fs at %.0ffps)",
                    self.window_size, self.window_span, self.frame_rate)

    def _load_checkpoint(self) -> dict:
        if not self.model_path.exists():
            raise StartupConfigError(f"Checkpoint not found: {self.model_path}")
        try:
            checkpoint = torch.load(self.model_path, map_location='cpu')
        except Exception as e:
            raise StartupConfigError(f"Cannot read checkpoint {self.model_path}: {e}") from e
        if not isinstance(checkpoint, dict):
            raise StartupConfigError("Checkpoint is not a metadata dict")
        missing = [key for key in REQUIRED_METADATA if key not in checkpoint]
        if missing:
            raise StartupConfigError(f"Checkpoint is missing metadata: {missing}")
        return checkpoint

    @staticmethod
    def _positive(checkpoint: dict, key: str, kind: type):
        try:
            value = kind(checkpoint[key])
        except (TypeError, ValueError) as e:
            raise StartupConfigError(f"Invalid {key}: {checkpoint[key]!r}") from e
        if value <= 0:
            raise StartupConfigError(f"{key} must be positive, got {value}")
        return value

    def _load_labels(self, label_encoder_name: str) -> list:
        encoder_path = self.model_path.parent / label_encoder_name
        if not encoder_path.exists():
            raise StartupConfigError(f"Label encoder not found: {encoder_path}")
        try:
            with open(encoder_path, 'rb') as f:
                label_encoder = pickle.load(f)
            return list(label_encoder.classes_)
        except Exception as e:
            raise StartupConfigError(f"Cannot read label encoder {encoder_path}: {e}") from e

    def classify(self, window: np.ndarray) -> ClassifierOutput:
        expected = (self.window_size, self.feature_width)
        if window.shape != expected:
            raise ClassificationError(f"Window shape {window.shape} does not match model input {expected}")

        try:
            with torch.no_grad():
                x = torch.from_numpy(np.ascontiguousarray(window, dtype=np.float32))
                logits = self.model(x.unsqueeze(0).to(self.device))  # (1, num_classes)
                probs = torch.softmax(logits, dim=1).squeeze(0).cpu().numpy()
        except Exception as e:
            raise ClassificationError(f"Model inference failed: {e}") from e

        class_id = int(np.argmax(probs))
        probabilities = {label: float(p) for label, p in zip(self.labels, probs)}
        return ClassifierOutput(label=self.labels[class_id], probabilities=probabilities)


def save_checkpoint(
    model: ActionMLP,
    label_encoder,
    output_path: str,
    window_size: int,
    feature_width: int,
    frame_rate: float,
    hidden_sizes: Sequence[int] = DEFAULT_HIDDEN_SIZES,
    label_encoder_name: str = "label_encoder.pkl"
) -> Path:
    """Save a model and its label encoder in the layout TorchActionClassifier reads."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    torch.save({
        'state_dict': model.state_dict(),
        'window_size': int(window_size),
        'feature_width': int(feature_width),
        'frame_rate': float(frame_rate),
        'hidden_sizes': [int(size) for size in hidden_sizes],
    }, output_path)

    with open(output_path.parent / label_encoder_name, 'wb') as f:
        pickle.dump(label_encoder, f)
    logger.info("Model saved to: %s", output_path)
    return output_path
