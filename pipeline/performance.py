"""
Frame and prediction throughput reporting.
"""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PerformanceReporter:
    """Logs frames and predictions per second once per interval."""

    def __init__(self, interval: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self.frame_count = 0
        self.prediction_count = 0
        self.start = clock()

    def increment_frame_count(self) -> None:
        self.frame_count += 1
        self._maybe_report()

    def increment_prediction(self) -> None:
        self.prediction_count += 1

    def _maybe_report(self) -> None:
        elapsed = self.clock() - self.start
        if elapsed < self.interval:
            return
        logger.info("%.1f frames, %.1f predictions per second",
                    self.frame_count / elapsed, self.prediction_count / elapsed)
        self.frame_count = 0
        self.prediction_count = 0
        self.start = self.clock()
