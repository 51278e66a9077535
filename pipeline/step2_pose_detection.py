"""
Step 2: Pose Detection
Detects every body pose in a frame using YOLOv8-Pose or MediaPipe.

The detector is an external black box for the rest of the pipeline: it only
has to return a list of `Pose` objects, possibly empty.
"""

import logging
import cv2
import numpy as np
from abc import ABC, abstractmethod
from typing import Optional, List, Dict
from dataclasses import dataclass, field

from .errors import DetectionError, StartupConfigError

logger = logging.getLogger(__name__)


# COCO keypoint names (17 keypoints)
COCO_LANDMARK_NAMES = [
    'nose',           # 0
    'left_eye',       # 1
    'right_eye',      # 2
    'left_ear',       # 3
    'right_ear',      # 4
    'left_shoulder',  # 5
    'right_shoulder', # 6
    'left_elbow',     # 7
    'right_elbow',    # 8
    'left_wrist',     # 9
    'right_wrist',    # 10
    'left_hip',       # 11
    'right_hip',      # 12
    'left_knee',      # 13
    'right_knee',     # 14
    'left_ankle',     # 15
    'right_ankle'     # 16
]

# MediaPipe landmark names (33 landmarks)
MEDIAPIPE_LANDMARK_NAMES = [
    'nose', 'left_eye_inner', 'left_eye', 'left_eye_outer',
    'right_eye_inner', 'right_eye', 'right_eye_outer',
    'left_ear', 'right_ear', 'mouth_left', 'mouth_right',
    'left_shoulder', 'right_shoulder', 'left_elbow', 'right_elbow',
    'left_wrist', 'right_wrist', 'left_pinky', 'right_pinky',
    'left_index', 'right_index', 'left_thumb', 'right_thumb',
    'left_hip', 'right_hip', 'left_knee', 'right_knee',
    'left_ankle', 'right_ankle', 'left_heel', 'right_heel',
    'left_foot_index', 'right_foot_index'
]

# Skeleton edges by landmark name, shared by both landmark sets
SKELETON = [
    ('left_shoulder', 'right_shoulder'),
    ('left_shoulder', 'left_elbow'), ('left_elbow', 'left_wrist'),
    ('right_shoulder', 'right_elbow'), ('right_elbow', 'right_wrist'),
    ('left_shoulder', 'left_hip'), ('right_shoulder', 'right_hip'),
    ('left_hip', 'right_hip'),
    ('left_hip', 'left_knee'), ('left_knee', 'left_ankle'),
    ('right_hip', 'right_knee'), ('right_knee', 'right_ankle'),
]


@dataclass(frozen=True)
class Landmark:
    """Single pose landmark."""
    x: float  # Normalized [0, 1]
    y: float  # Normalized [0, 1]
    confidence: float


@dataclass
class Pose:
    """One detected person: named landmarks in the detector's fixed order."""
    landmarks: Dict[str, Landmark] = field(default_factory=dict)
    detection_confidence: float = 0.0

    @property
    def area(self) -> float:
        """Area of the bounding box around all landmarks with confidence > 0."""
        points = [
            (lm.x, lm.y) for lm in self.landmarks.values()
            if lm.confidence > 0
        ]
        if len(points) < 2:
            return 0.0
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return (max(xs) - min(xs)) * (max(ys) - min(ys))

    def get_landmark(self, name: str) -> Optional[Landmark]:
        """Get landmark by name."""
        return self.landmarks.get(name)

    def to_numpy(self, names: Optional[List[str]] = None) -> np.ndarray:
        """Convert landmarks to numpy array (N, 3) of x, y, confidence."""
        names = names if names is not None else list(self.landmarks)
        rows = []
        for name in names:
            lm = self.landmarks.get(name)
            rows.append([lm.x, lm.y, lm.confidence] if lm else [0.0, 0.0, 0.0])
        return np.array(rows, dtype=np.float32).reshape(len(names), 3)


class PoseDetector(ABC):
    """Returns zero or more poses for one image."""

    LANDMARK_NAMES: List[str] = []

    @abstractmethod
    def detect(self, image: np.ndarray) -> List[Pose]:
        """Detect poses in a BGR image. Raises DetectionError on backend failure."""

    def close(self) -> None:
        """Release resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class YoloPoseDetector(PoseDetector):
    """Detect every person and their 17 COCO keypoints using YOLOv8-Pose."""

    LANDMARK_NAMES = COCO_LANDMARK_NAMES

    def __init__(
        self,
        model_path: str = "yolov8s-pose.pt",
        confidence_threshold: float = 0.5,
        device: Optional[str] = None
    ):
        """
        Initialize YOLOv8-Pose detector.

        Args:
            model_path: Path to YOLOv8-Pose model (nano/small/medium)
            confidence_threshold: Minimum confidence for a person detection
            device: 'cuda' or 'cpu' (auto-detect if None)
        """
        from ultralytics import YOLO
        import torch

        self.model_path = model_path
        self.confidence_threshold = confidence_threshold
        self.device = device or ('cuda' if torch.cuda.is_available() else 'cpu')
        try:
            self.model = YOLO(model_path)
        except Exception as e:
            raise StartupConfigError(f"Failed to load YOLOv8-Pose model {model_path}: {e}") from e
        logger.info("Using YOLOv8-Pose (%s) on %s", model_path, self.device.upper())

    def detect(self, image: np.ndarray) -> List[Pose]:
        h, w = image.shape[:2]
        try:
            results = self.model(image, verbose=False, device=self.device)
        except Exception as e:
            raise DetectionError(f"YOLOv8-Pose inference failed: {e}") from e

        poses = []
        for result in results:
            if result.keypoints is None or result.boxes is None:
                continue

            # keypoints.data shape: [num_persons, 17, 3] where 3 = x, y, conf
            keypoints = result.keypoints.data.cpu().numpy()
            confidences = result.boxes.conf.cpu().numpy()
            for person, conf in zip(keypoints, confidences):
                if float(conf) < self.confidence_threshold:
                    continue
                landmarks = {}
                for i, name in enumerate(self.LANDMARK_NAMES):
                    # YOLOv8 returns pixel coordinates, normalize to [0, 1]
                    landmarks[name] = Landmark(
                        x=float(person[i, 0]) / w,
                        y=float(person[i, 1]) / h,
                        confidence=float(person[i, 2])
                    )
                poses.append(Pose(landmarks=landmarks, detection_confidence=float(conf)))

        return poses


class MediaPipePoseDetector(PoseDetector):
    """Detect a single pose with 33 landmarks using MediaPipe Pose."""

    LANDMARK_NAMES = MEDIAPIPE_LANDMARK_NAMES

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1
    ):
        import mediapipe as mp

        self.pose = mp.solutions.pose.Pose(
            static_image_mode=False,  # Video mode for better tracking
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )
        logger.info("Using MediaPipe Pose (complexity %d)", model_complexity)

    def detect(self, image: np.ndarray) -> List[Pose]:
        # MediaPipe needs RGB
        rgb_frame = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False
        try:
            results = self.pose.process(rgb_frame)
        except Exception as e:
            raise DetectionError(f"MediaPipe inference failed: {e}") from e

        if not results.pose_landmarks:
            return []

        landmarks = {
            name: Landmark(lm.x, lm.y, lm.visibility)
            for name, lm in zip(self.LANDMARK_NAMES, results.pose_landmarks.landmark)
        }
        return [Pose(landmarks=landmarks, detection_confidence=1.0)]

    def close(self) -> None:
        self.pose.close()


def create_pose_detector(kind: str, **kwargs) -> PoseDetector:
    """Build a pose detector by name ("yolo" or "mediapipe")."""
    if kind == "yolo":
        return YoloPoseDetector(**kwargs)
    if kind == "mediapipe":
        return MediaPipePoseDetector(**kwargs)
    raise StartupConfigError(f"Unknown pose detector '{kind}'")
