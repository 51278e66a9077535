"""
Step 3: Pose Selection
Keeps the single most relevant pose of a frame: the one covering the largest area.
"""

from typing import List, Optional

from .step2_pose_detection import Pose


def select_largest_pose(poses: Optional[List[Pose]]) -> Optional[Pose]:
    """
    Pick the pose with the largest bounding area.

    Args:
        poses: Poses detected in one frame, or None when detection failed

    Returns:
        The largest pose, or None if there are no poses. On equal areas the
        pose that comes first in detection order wins.
    """
    best = None
    for pose in poses or []:
        if best is None or pose.area > best.area:
            best = pose
    return best
