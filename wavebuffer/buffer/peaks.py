"""
Peak detector: tags locally-maximal levels as they arrive.

A level is a peak when it clears the threshold, enough time has passed
since the last tagged peak, and it is >= every level in the short
trailing window of points already buffered. This is a local test over
the last few points, not a global comparison.
"""

import logging

from wavebuffer.config import PEAK_DETECTION_WINDOW, MIN_PEAK_DISTANCE_MS

logger = logging.getLogger(__name__)


class PeakDetector:
    """Threshold + minimum-distance local maximum detector."""

    def __init__(self, threshold, window=PEAK_DETECTION_WINDOW,
                 min_distance_ms=MIN_PEAK_DISTANCE_MS):
        """
        Args:
            threshold: Minimum level for a peak
            window: Number of trailing buffered points to compare against
            min_distance_ms: Minimum time between tagged peaks
        """
        self._threshold = threshold
        self._window = window
        self._min_distance = min_distance_ms
        self._last_peak_time = None
        self._peak_count = 0

    @property
    def threshold(self):
        return self._threshold

    @threshold.setter
    def threshold(self, value):
        self._threshold = float(value)

    @property
    def last_peak_time(self):
        return self._last_peak_time

    @property
    def peak_count(self):
        """Peaks tagged since the last reset (not reduced by compression)."""
        return self._peak_count

    def evaluate(self, level, timestamp, buffer):
        """
        Decide whether a new level is a peak.

        Must be called before the point is appended. Updates the
        last-peak time when the level is tagged.

        Args:
            level: New level value
            timestamp: New point's timestamp in ms
            buffer: Sequence of SamplePoint currently buffered

        Returns:
            bool: True if the level is a peak
        """
        if level < self._threshold:
            return False

        if (self._last_peak_time is not None and
                timestamp - self._last_peak_time < self._min_distance):
            return False

        recent = buffer[-self._window:] if self._window > 0 else ()
        if all(level >= p.level for p in recent):
            self._last_peak_time = timestamp
            self._peak_count += 1
            return True

        return False

    def reset(self):
        self._last_peak_time = None
        self._peak_count = 0
