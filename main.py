"""
Exercise Action AI - Real-time Exercise Recognition
===================================================

Recognizes the exercise a person is doing from a live camera feed or a video
file and keeps track of how long each exercise was performed.

- Display thread: camera feed, overlays, keyboard
- Analysis thread: pose detection, sliding window, action classification

Usage:
    python main.py                              # Webcam
    python main.py --video path.mp4             # Video file
    python main.py --model models/action_classifier.pth --detector mediapipe

Controls:
    Q / ESC - Quit
    C       - Switch camera
    O       - Rotate orientation by 90 degrees
    S       - Show / hide summary (analysis pauses while shown)
"""

import argparse
import logging
import sys
import threading
import time
from collections import deque
from queue import Queue, Empty, Full
from typing import List, Optional

import cv2
import numpy as np

import config
from pipeline.errors import StartupConfigError
from pipeline.performance import PerformanceReporter
from pipeline.processing_chain import ActionRecognitionSession
from pipeline.step1_frame_capture import CameraSelector, VideoCapture
from pipeline.step2_pose_detection import Pose, create_pose_detector
from pipeline.step4_feature_encoder import VALUES_PER_LANDMARK
from pipeline.step7_action_classifier import TorchActionClassifier
from pipeline.step8_action_prediction import ActionPrediction
from utils.summary import format_summary
from utils.visualization import draw_poses, draw_prediction, draw_summary, draw_fps

logger = logging.getLogger(__name__)


class AsyncActionAnalyzer:
    """
    Background thread that owns the recognition session.

    Frames are handed over through a one-slot queue: when analysis falls
    behind, the stale frame is replaced instead of queued. Results are
    published to the display thread under a lock.
    """

    def __init__(self, session_factory):
        self.frame_queue = Queue(maxsize=1)
        self.result_lock = threading.Lock()
        self.latest_frame: Optional[np.ndarray] = None
        self.latest_poses: List[Pose] = []
        self.latest_prediction = ActionPrediction.starting()
        self.latest_counts = {}

        self.session: ActionRecognitionSession = session_factory(
            on_poses=self._on_poses,
            on_prediction=self._on_prediction
        )

        self._reconfigure_requested = threading.Event()
        self.running = False
        self.thread = None

    def start(self):
        """Start background analysis thread."""
        self.running = True
        self.thread = threading.Thread(target=self._analysis_loop, daemon=True)
        self.thread.start()

    def stop(self):
        """Stop analysis thread."""
        self.running = False
        if self.thread:
            # Wait for the frame in flight, the detector is closed afterwards
            self.thread.join()

    def submit_frame(self, frame: np.ndarray):
        """Submit frame for analysis (non-blocking), dropping the previous one if still pending."""
        self._drain()
        try:
            self.frame_queue.put_nowait(frame)
        except Full:
            pass

    def request_reconfigure(self):
        """Frame source changed: drop pending frames and reset the window before the next frame."""
        self._drain()
        self._reconfigure_requested.set()

    def get_latest(self):
        with self.result_lock:
            return self.latest_frame, self.latest_poses, self.latest_prediction

    def action_frame_counts(self):
        with self.result_lock:
            return dict(self.latest_counts)

    def _drain(self):
        try:
            self.frame_queue.get_nowait()
        except Empty:
            pass

    def _on_poses(self, poses: List[Pose], frame: np.ndarray):
        with self.result_lock:
            self.latest_frame = frame
            self.latest_poses = poses

    def _on_prediction(self, prediction: ActionPrediction, frame_count: int):
        counts = self.session.action_frame_counts
        with self.result_lock:
            self.latest_prediction = prediction
            self.latest_counts = counts
        logger.debug("Prediction %s (%s) for %d frames",
                     prediction.label, prediction.confidence_string, frame_count)

    def _analysis_loop(self):
        while self.running:
            if self._reconfigure_requested.is_set():
                self._reconfigure_requested.clear()
                self.session.reconfigure()

            try:
                frame = self.frame_queue.get(timeout=0.1)
            except Empty:
                continue

            self.session.process_frame(frame)


class ExerciseActionApp:
    """Camera/video loop around the action recognition session."""

    def __init__(self, model_path: str, detector_kind: str):
        logger.info("Initializing Exercise Action AI...")

        logger.info("  [1/3] Loading pose detector (%s)...", detector_kind)
        if detector_kind == "yolo":
            self.pose_detector = create_pose_detector(
                "yolo",
                model_path=config.YOLOV8_POSE_MODEL,
                confidence_threshold=config.YOLOV8_CONFIDENCE,
                device=config.YOLOV8_DEVICE
            )
        else:
            self.pose_detector = create_pose_detector(
                detector_kind,
                min_detection_confidence=config.MIN_DETECTION_CONFIDENCE,
                min_tracking_confidence=config.MIN_TRACKING_CONFIDENCE,
                model_complexity=config.MODEL_COMPLEXITY
            )

        logger.info("  [2/3] Loading action classifier...")
        self.classifier = TorchActionClassifier(
            model_path=model_path,
            label_encoder_name=config.LABEL_ENCODER_NAME,
            expected_feature_width=len(self.pose_detector.LANDMARK_NAMES) * VALUES_PER_LANDMARK,
            default_frame_rate=config.MODEL_FRAME_RATE
        )

        logger.info("  [3/3] Building processing chain...")
        self.analyzer = AsyncActionAnalyzer(self._create_session)
        self.show_summary = False
        self.capture = None
        logger.info("Ready! Window %d frames, stride %d",
                    self.classifier.window_size, config.WINDOW_STRIDE)

    def _create_session(self, on_poses, on_prediction) -> ActionRecognitionSession:
        reporter = PerformanceReporter() if config.REPORT_PERFORMANCE else None
        return ActionRecognitionSession(
            pose_detector=self.pose_detector,
            classifier=self.classifier,
            stride=config.WINDOW_STRIDE,
            min_coverage=config.MIN_COVERAGE,
            min_confidence=config.MIN_CONFIDENCE,
            on_poses=on_poses,
            on_prediction=on_prediction,
            performance_reporter=reporter
        )

    @property
    def frame_rate(self) -> float:
        return self.classifier.frame_rate

    def draw_overlay(self, frame: np.ndarray, display_fps: float) -> np.ndarray:
        analyzed_frame, poses, prediction = self.analyzer.get_latest()
        # Draw on the analyzed frame so the wireframe lines up with the person
        display_frame = draw_poses(analyzed_frame if analyzed_frame is not None else frame, poses)
        display_frame = draw_prediction(display_frame, prediction)
        display_frame = draw_fps(display_frame, display_fps)
        if self.show_summary:
            display_frame = draw_summary(display_frame, self.analyzer.action_frame_counts(), self.frame_rate)
        return display_frame

    def run_camera(self, camera_ids: List[int]):
        selector = CameraSelector(
            camera_ids,
            width=config.CAMERA_WIDTH,
            height=config.CAMERA_HEIGHT,
            fps=config.TARGET_FPS,
            mirror=config.MIRROR_CAMERA,
            rotation=config.FRAME_ROTATION
        )

        def switch_source(key):
            if key == ord('c') and len(camera_ids) > 1:
                change = selector.toggle_camera
            elif key == ord('o'):
                change = selector.rotate
            else:
                return
            self.capture.release()
            self.capture = selector.switch(change)
            logger.info("Using camera %d, rotation %d degrees", selector.camera_id, selector.rotation)
            self.analyzer.request_reconfigure()

        self.capture = selector.open()
        self._run(on_key=switch_source)

    def run_video(self, video_path: str):
        self.capture = VideoCapture(video_path)
        logger.info("Processing video: %s (%dx%d @ %.0f FPS)", video_path,
                    self.capture.width, self.capture.height, self.capture.fps)
        self._run()

    def _run(self, on_key=None):
        self.analyzer.start()
        try:
            self._display_loop(on_key)
        finally:
            self.capture.release()
            self.cleanup()

    def _display_loop(self, on_key=None):
        """Show frames until quit or the source ends. Other keys go to `on_key`."""
        fps_counter = deque(maxlen=30)
        prev_time = time.time()

        while True:
            ret, frame = self.capture.read()
            if not ret:
                logger.info("Frame source ended")
                break

            if not self.show_summary:
                self.analyzer.submit_frame(frame)

            curr_time = time.time()
            fps_counter.append(curr_time - prev_time)
            prev_time = curr_time
            display_fps = len(fps_counter) / sum(fps_counter) if sum(fps_counter) > 0 else 0

            cv2.imshow(config.WINDOW_NAME, self.draw_overlay(frame, display_fps))

            key = cv2.waitKey(1) & 0xFF
            if key in (ord('q'), 27):   # Q or ESC
                break
            elif key == ord('s'):
                self.show_summary = not self.show_summary
            elif on_key:
                on_key(key)

    def cleanup(self):
        """Release resources."""
        self.analyzer.stop()
        self.pose_detector.close()
        cv2.destroyAllWindows()

        print("\nSession summary")
        print(format_summary(self.analyzer.action_frame_counts(), self.frame_rate))


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Exercise Action AI - Real-time Exercise Recognition',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--video', type=str, help='Path to video file')
    parser.add_argument('--camera', type=int, nargs='+', default=config.CAMERA_IDS,
                        help='Camera IDs, the first is used at startup and C cycles through them')
    parser.add_argument('--model', type=str, default=config.CLASSIFIER_MODEL_PATH,
                        help='Path to action classifier checkpoint')
    parser.add_argument('--detector', choices=['yolo', 'mediapipe'], default=config.POSE_DETECTOR,
                        help='Pose detector backend')
    parser.add_argument('--log-level', default=config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level), format=config.LOG_FORMAT)

    try:
        app = ExerciseActionApp(model_path=args.model, detector_kind=args.detector)
    except StartupConfigError as e:
        logger.error("Startup failed: %s", e)
        sys.exit(1)

    try:
        if args.video:
            app.run_video(args.video)
        else:
            app.run_camera(args.camera)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


if __name__ == '__main__':
    main()
