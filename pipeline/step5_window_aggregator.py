"""
Step 5: Window Aggregation
Collects window slots in an overlapping sliding window.

Once the window holds `capacity` slots, the next push first evicts the
`stride` oldest slots. After the first fill the window is therefore full
again exactly every `stride` pushes, and each full window overlaps the
previous one by `capacity - stride` frames.
"""

from typing import List, Tuple

from .step4_feature_encoder import WindowSlot


class SlidingWindow:
    """Fixed-capacity buffer of window slots with stride-based eviction."""

    def __init__(self, capacity: int, stride: int):
        """
        Args:
            capacity: Number of slots in a full window (from model metadata)
            stride: Slots evicted once the window is full, 0 < stride < capacity
        """
        if not 0 < stride < capacity:
            raise ValueError(
                f"stride must satisfy 0 < stride < capacity, got stride={stride}, capacity={capacity}"
            )
        self.capacity = capacity
        self.stride = stride
        self.slots: List[WindowSlot] = []

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def is_full(self) -> bool:
        return len(self.slots) == self.capacity

    def push(self, slot: WindowSlot) -> Tuple[WindowSlot, ...]:
        """Append a slot, evicting the oldest `stride` slots first if full. Returns a snapshot."""
        if len(self.slots) == self.capacity:
            del self.slots[:self.stride]
        self.slots.append(slot)
        return tuple(self.slots)

    def reset(self) -> None:
        """Discard every slot."""
        self.slots.clear()


def gate_window(window: Tuple[WindowSlot, ...], capacity: int) -> bool:
    """A window is only evaluated when it is exactly full."""
    return len(window) == capacity
