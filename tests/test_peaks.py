"""Tests for wavebuffer.buffer.peaks.PeakDetector."""

from __future__ import annotations

from builders import make_points
from wavebuffer.buffer.peaks import PeakDetector


class TestPeakDetector:
    def test_below_threshold_is_never_a_peak(self) -> None:
        det = PeakDetector(threshold=0.5)
        assert det.evaluate(0.49, 1000, []) is False
        assert det.last_peak_time is None

    def test_empty_window_is_vacuously_a_local_max(self) -> None:
        det = PeakDetector(threshold=0.1)
        assert det.evaluate(0.2, 1000, []) is True
        assert det.last_peak_time == 1000
        assert det.peak_count == 1

    def test_must_dominate_trailing_window(self) -> None:
        det = PeakDetector(threshold=0.1)
        buf = make_points([0.3, 0.9, 0.2, 0.2, 0.2])
        assert det.evaluate(0.8, 10_000, buf) is False
        assert det.evaluate(0.9, 10_000, buf) is True  # ties count

    def test_only_last_window_points_are_compared(self) -> None:
        det = PeakDetector(threshold=0.1, window=5)
        # The 0.99 sits six points back, outside the window
        buf = make_points([0.99, 0.2, 0.2, 0.2, 0.2, 0.2])
        assert det.evaluate(0.5, 10_000, buf) is True

    def test_min_distance_between_peaks(self) -> None:
        det = PeakDetector(threshold=0.1, min_distance_ms=100)
        assert det.evaluate(0.5, 1000, []) is True
        assert det.evaluate(0.6, 1050, []) is False
        assert det.evaluate(0.6, 1099, []) is False
        assert det.evaluate(0.6, 1100, []) is True
        assert det.last_peak_time == 1100

    def test_threshold_checked_before_distance(self) -> None:
        det = PeakDetector(threshold=0.5)
        det.evaluate(0.6, 1000, [])
        assert det.evaluate(0.1, 5000, []) is False
        assert det.last_peak_time == 1000

    def test_reset_clears_state(self) -> None:
        det = PeakDetector(threshold=0.1)
        det.evaluate(0.5, 1000, [])
        det.reset()
        assert det.last_peak_time is None
        assert det.peak_count == 0
        assert det.evaluate(0.5, 1010, []) is True

    def test_threshold_setter(self) -> None:
        det = PeakDetector(threshold=0.1)
        det.threshold = 0.7
        assert det.evaluate(0.6, 1000, []) is False
