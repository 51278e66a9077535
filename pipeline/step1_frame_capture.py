"""
Step 1: Frame Capture
Captures frames from webcam or video file.
"""

import logging
import cv2
import numpy as np
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


ROTATIONS = {
    0: None,
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def orient_frame(frame: np.ndarray, mirror: bool = False, rotation: int = 0) -> np.ndarray:
    """Apply mirroring and rotation (degrees clockwise) to a frame."""
    if rotation not in ROTATIONS:
        raise ValueError(f"Unsupported rotation {rotation}, expected one of {sorted(ROTATIONS)}")
    if mirror:
        frame = cv2.flip(frame, 1)
    if ROTATIONS[rotation] is not None:
        frame = cv2.rotate(frame, ROTATIONS[rotation])
    return frame


class FrameCapture(ABC):
    """Abstract base class for frame capture."""

    @abstractmethod
    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Read a single frame."""
        pass

    @abstractmethod
    def release(self) -> None:
        """Release resources."""
        pass

    @abstractmethod
    def is_opened(self) -> bool:
        """Check if capture is opened."""
        pass


class WebcamCapture(FrameCapture):
    """
    Capture frames from webcam.

    The driver buffer is limited to a single frame so that frames the
    pipeline is too slow to consume are dropped instead of queued.
    """

    def __init__(
        self,
        camera_id: int = 0,
        width: int = 640,
        height: int = 480,
        fps: Optional[float] = None,
        mirror: bool = False,
        rotation: int = 0
    ):
        if rotation not in ROTATIONS:
            raise ValueError(f"Unsupported rotation {rotation}")
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.mirror = mirror
        self.rotation = rotation
        self.cap = cv2.VideoCapture(camera_id)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        if fps:
            self.cap.set(cv2.CAP_PROP_FPS, fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Cannot open camera {camera_id}")
        logger.info("Camera %d opened at %.0f FPS", camera_id, self.get_fps())

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ret, frame = self.cap.read()
        if not ret:
            return ret, frame
        return ret, orient_frame(frame, self.mirror, self.rotation)

    def get_fps(self) -> float:
        """Actual FPS reported by the camera."""
        return self.cap.get(cv2.CAP_PROP_FPS)

    def release(self) -> None:
        if self.cap.isOpened():
            self.cap.release()

    def is_opened(self) -> bool:
        return self.cap.isOpened()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class VideoCapture(FrameCapture):
    """Capture frames from video file."""

    def __init__(self, video_path: str, rotation: int = 0):
        self.video_path = video_path
        self.rotation = rotation
        self.cap = cv2.VideoCapture(video_path)
        if not self.cap.isOpened():
            raise RuntimeError(f"Cannot open video {video_path}")
        self.fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ret, frame = self.cap.read()
        if ret:
            frame = orient_frame(frame, rotation=self.rotation)
        return ret, frame

    def release(self) -> None:
        self.cap.release()

    def is_opened(self) -> bool:
        return self.cap.isOpened()


class CameraSelector:
    """
    Keeps track of which camera and orientation the user selected.

    Every change means the current capture has to be replaced, so callers
    open a new capture with `open()` and reconfigure the processing chain.
    """

    def __init__(
        self,
        camera_ids: List[int],
        width: int = 640,
        height: int = 480,
        fps: Optional[float] = None,
        mirror: bool = True,
        rotation: int = 0
    ):
        if not camera_ids:
            raise ValueError("At least one camera id is required")
        if rotation not in ROTATIONS:
            raise ValueError(f"Unsupported rotation {rotation}")
        self.camera_ids = list(camera_ids)
        self.index = 0
        self.width = width
        self.height = height
        self.fps = fps
        self.mirror = mirror
        self.rotation = rotation

    @property
    def camera_id(self) -> int:
        return self.camera_ids[self.index]

    def toggle_camera(self) -> int:
        """Select the next camera, wrapping around."""
        self.index = (self.index + 1) % len(self.camera_ids)
        return self.camera_id

    def rotate(self) -> int:
        """Rotate the orientation by 90 degrees clockwise."""
        self.rotation = (self.rotation + 90) % 360
        return self.rotation

    def switch(self, change: Callable[[], int]) -> WebcamCapture:
        """
        Apply a selection change (`toggle_camera` or `rotate`) and open the
        new capture. The caller must have released the current capture.

        If the new selection cannot be opened, the previous camera and
        rotation are restored and reopened instead.
        """
        previous = (self.index, self.rotation)
        change()
        try:
            return self.open()
        except RuntimeError as e:
            logger.error("%s, keeping the previous camera selection", e)
            self.index, self.rotation = previous
            return self.open()

    def open(self) -> WebcamCapture:
        return WebcamCapture(
            camera_id=self.camera_id,
            width=self.width,
            height=self.height,
            fps=self.fps,
            mirror=self.mirror,
            rotation=self.rotation
        )
