"""
Exercise Action AI Configuration
================================

Central configuration file for all pipeline parameters.
"""

# =============================================================================
# Camera Settings
# =============================================================================
CAMERA_IDS = [0, 1]         # Cameras cycled by the "toggle camera" key
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
TARGET_FPS = 120            # Requested from the camera, matches the model frame rate
MIRROR_CAMERA = True        # Mirror front-facing camera frames
FRAME_ROTATION = 0          # Degrees: 0, 90, 180 or 270

# =============================================================================
# Pose Detector Settings
# =============================================================================
POSE_DETECTOR = "yolo"      # Options: "yolo", "mediapipe"
YOLOV8_POSE_MODEL = "yolov8s-pose.pt"  # Options: yolov8n-pose.pt, yolov8s-pose.pt, yolov8m-pose.pt
YOLOV8_CONFIDENCE = 0.5     # Detection confidence threshold
YOLOV8_DEVICE = None        # None=auto-detect, "cuda" or "cpu"

MIN_DETECTION_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5
MODEL_COMPLEXITY = 1

# =============================================================================
# Action Classifier Settings
# =============================================================================
CLASSIFIER_MODEL_PATH = "models/action_classifier.pth"
LABEL_ENCODER_NAME = "label_encoder.pkl"  # Stored next to the checkpoint
MODEL_FRAME_RATE = 120.0    # Assumed when the checkpoint does not record its frame rate

# =============================================================================
# Window Settings
# =============================================================================
WINDOW_STRIDE = 10          # Oldest frames evicted per prediction
MIN_COVERAGE = 0.60         # Minimum fraction of frames with a person
MIN_CONFIDENCE = 0.60       # Predictions below this become LowConfidence

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
REPORT_PERFORMANCE = True   # Log frames / predictions per second

# =============================================================================
# Display Settings
# =============================================================================
WINDOW_NAME = "Exercise Action AI - Real-time Recognition"
FONT_SCALE = 0.7
KEYPOINT_VISIBILITY = 0.5   # Only draw keypoints above this confidence

# Colors (BGR format)
COLOR_GREEN = (0, 255, 0)
COLOR_ORANGE = (0, 165, 255)
COLOR_WHITE = (255, 255, 255)
COLOR_BLACK = (0, 0, 0)
COLOR_YELLOW = (0, 255, 255)
