"""
Exercise Action Recognition Pipeline

Per-frame steps:
1. Frame Capture - Capture frames from webcam/video
2. Pose Detection - Detect every person's pose (YOLOv8-Pose or MediaPipe)
3. Pose Selection - Keep the largest pose
4. Feature Encoding - Pose -> fixed-width vector or missing marker
5. Window Aggregation - Overlapping sliding window, gated on full windows
6. Window Completion - Coverage check, fill missing frames
7. Action Classification - Window -> exercise label
8. Confidence Filter - Low confidence -> sentinel prediction
9. Action Aggregation - Frames spent per exercise
"""

from .errors import PipelineError, StartupConfigError, DetectionError, ClassificationError
from .step1_frame_capture import FrameCapture, VideoCapture, WebcamCapture, CameraSelector
from .step2_pose_detection import (
    Landmark, Pose, PoseDetector, YoloPoseDetector, MediaPipePoseDetector, create_pose_detector
)
from .step3_pose_selection import select_largest_pose
from .step4_feature_encoder import FeatureEncoder, WindowSlot
from .step5_window_aggregator import SlidingWindow, gate_window
from .step6_window_completer import WindowCompleter
from .step7_action_classifier import ActionClassifier, ClassifierOutput, TorchActionClassifier
from .step8_action_prediction import ActionPrediction, apply_confidence_filter
from .step9_action_aggregator import ActionAggregator
from .processing_chain import VideoProcessingChain, ActionRecognitionSession

__all__ = [
    'PipelineError',
    'StartupConfigError',
    'DetectionError',
    'ClassificationError',
    'FrameCapture',
    'VideoCapture',
    'WebcamCapture',
    'CameraSelector',
    'Landmark',
    'Pose',
    'PoseDetector',
    'YoloPoseDetector',
    'MediaPipePoseDetector',
    'create_pose_detector',
    'select_largest_pose',
    'FeatureEncoder',
    'WindowSlot',
    'SlidingWindow',
    'gate_window',
    'WindowCompleter',
    'ActionClassifier',
    'ClassifierOutput',
    'TorchActionClassifier',
    'ActionPrediction',
    'apply_confidence_filter',
    'ActionAggregator',
    'VideoProcessingChain',
    'ActionRecognitionSession'
]
