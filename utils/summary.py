"""
Utils: Session Summary
Turns per-label frame counts into durations for display.
"""

from typing import Dict, List, Tuple


def summarize(action_frame_counts: Dict[str, int], frame_rate: float) -> List[Tuple[str, float]]:
    """
    Convert frame counts to seconds, longest action first.

    Args:
        action_frame_counts: Frames spent per exercise label
        frame_rate: Frame rate the counts were accumulated at

    Returns:
        List of (label, seconds) sorted by count descending, then label
    """
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    ordered = sorted(action_frame_counts.items(), key=lambda item: (-item[1], item[0]))
    return [(label, count / frame_rate) for label, count in ordered]


def format_duration(seconds: float) -> str:
    return f"{seconds:0.1f}s"


def format_summary(action_frame_counts: Dict[str, int], frame_rate: float) -> str:
    """Multi-line text summary, one action per line."""
    rows = summarize(action_frame_counts, frame_rate)
    if not rows:
        return "No exercises recognized yet"
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label:<{width}}  {format_duration(seconds)}" for label, seconds in rows)
