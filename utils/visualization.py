"""
Utils: Visualization
Drawing helpers for Exercise Action AI
"""

import cv2
import numpy as np
from typing import List, Optional, Tuple

import config
from pipeline.step2_pose_detection import Pose, SKELETON
from pipeline.step8_action_prediction import ActionPrediction
from utils.summary import summarize, format_duration


def draw_poses(frame: np.ndarray, poses: Optional[List[Pose]]) -> np.ndarray:
    """
    Draw the wireframe of every detected pose.

    Args:
        frame: BGR frame the poses were detected in
        poses: Poses with normalized coordinates
    """
    annotated = frame.copy()
    h, w = annotated.shape[:2]
    threshold = config.KEYPOINT_VISIBILITY

    for pose in poses or []:
        for a, b in SKELETON:
            lm1 = pose.get_landmark(a)
            lm2 = pose.get_landmark(b)
            # Only draw if both keypoints are visible
            if lm1 and lm2 and lm1.confidence > threshold and lm2.confidence > threshold:
                cv2.line(annotated,
                         (int(lm1.x * w), int(lm1.y * h)),
                         (int(lm2.x * w), int(lm2.y * h)),
                         config.COLOR_GREEN, 2)

        for lm in pose.landmarks.values():
            if lm.confidence > threshold:
                center = (int(lm.x * w), int(lm.y * h))
                cv2.circle(annotated, center, 4, (0, int(255 * lm.confidence), 0), -1)
                cv2.circle(annotated, center, 4, config.COLOR_WHITE, 1)

    return annotated


def draw_prediction(frame: np.ndarray, prediction: ActionPrediction) -> np.ndarray:
    """
    Draw the current action and its confidence.

    Sentinel predictions show their display label and "Observing...".
    """
    frame_copy = frame.copy()
    h, w = frame_copy.shape[:2]

    # Background box
    cv2.rectangle(frame_copy, (5, h - 80), (w - 5, h - 5), config.COLOR_BLACK, -1)
    color = config.COLOR_GREEN if prediction.is_model_label else config.COLOR_ORANGE
    cv2.rectangle(frame_copy, (5, h - 80), (w - 5, h - 5), color, 2)

    cv2.putText(frame_copy, prediction.display_label, (15, h - 50),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)
    cv2.putText(frame_copy, prediction.confidence_string or "Observing...", (15, h - 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, config.COLOR_WHITE, 1)

    return frame_copy


def draw_summary(
    frame: np.ndarray,
    action_frame_counts: dict,
    frame_rate: float,
    origin: Tuple[int, int] = (20, 40)
) -> np.ndarray:
    """Draw a semi-transparent panel listing the time spent on each action."""
    rows = summarize(action_frame_counts, frame_rate)
    frame_copy = frame.copy()
    overlay = frame_copy.copy()
    x, y = origin
    line_height = 30
    panel_height = line_height * (max(len(rows), 1) + 1) + 10

    cv2.rectangle(overlay, (x - 10, y - 30), (x + 300, y - 30 + panel_height), (20, 20, 20), -1)
    cv2.addWeighted(overlay, 0.7, frame_copy, 0.3, 0, frame_copy)

    cv2.putText(frame_copy, "Summary", (x, y),
                cv2.FONT_HERSHEY_SIMPLEX, config.FONT_SCALE, config.COLOR_YELLOW, 2)
    if not rows:
        cv2.putText(frame_copy, "No exercises yet", (x, y + line_height),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, config.COLOR_WHITE, 1)
    for i, (label, seconds) in enumerate(rows, start=1):
        cv2.putText(frame_copy, f"{label}: {format_duration(seconds)}", (x, y + i * line_height),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, config.COLOR_WHITE, 1)

    return frame_copy


def draw_fps(frame: np.ndarray, fps: float) -> np.ndarray:
    """Draw FPS counter."""
    frame_copy = frame.copy()
    h, w = frame_copy.shape[:2]

    cv2.putText(frame_copy, f"FPS: {fps:.0f}", (w - 100, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, config.COLOR_WHITE, 1)

    return frame_copy
