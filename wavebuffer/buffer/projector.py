"""
Display projector: turns the buffer into a flat level sequence for a zoom.

Points inside the zoom window are returned verbatim when they fit the
point budget; otherwise they are RMS-downsampled to the budget.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from wavebuffer.buffer.zoom import ZoomTarget
from wavebuffer.config import NOMINAL_SAMPLE_INTERVAL_MS
from wavebuffer.dsp.downsampler import Downsampler

MS_PER_MINUTE = 60 * 1000

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Projection:
    """A computed display sequence."""
    levels: Tuple[float, ...]
    target: ZoomTarget
    source_points: int = 0
    downsampled: bool = False
    peak_count: int = 0

    def to_list(self):
        return list(self.levels)


EMPTY_TARGET = ZoomTarget(0.0, 0)
EMPTY_PROJECTION = Projection(levels=(), target=EMPTY_TARGET)


class DisplayProjector:
    """Zoom-scoped projection of buffered points."""

    def __init__(self):
        self._downsampler = Downsampler(0)

    def project(self, points, target, now):
        """
        Project points into the zoom window.

        Args:
            points: Sequence of SamplePoint, ascending timestamps
            target: ZoomTarget
            now: Current time in ms

        Returns:
            Projection
        """
        cutoff = now - target.duration_minutes * MS_PER_MINUTE
        visible = [p for p in points if p.timestamp >= cutoff]
        peaks = sum(1 for p in visible if p.is_peak)

        if not visible or target.max_points <= 0:
            return Projection(levels=(), target=target,
                              source_points=len(visible), peak_count=peaks)

        if len(visible) <= target.max_points:
            return Projection(
                levels=tuple(p.level for p in visible),
                target=target,
                source_points=len(visible),
                peak_count=peaks,
            )

        self._downsampler.target_bins = target.max_points
        reduced = self._downsampler.downsample([p.level for p in visible])
        logger.debug(
            "Downsampled %d points to %d for %.1f min window",
            len(visible), len(reduced), target.duration_minutes,
        )
        return Projection(
            levels=tuple(float(v) for v in reduced),
            target=target,
            source_points=len(visible),
            downsampled=True,
            peak_count=peaks,
        )


def view_reduction_percent(projection, elapsed_minutes):
    """
    Percentage of nominal samples hidden by the current view.

    Compares the number of displayed levels with the number of samples
    the visible duration would hold at the nominal cadence.
    """
    visible_minutes = min(elapsed_minutes, projection.target.duration_minutes)
    expected = int(np.floor(visible_minutes * MS_PER_MINUTE / NOMINAL_SAMPLE_INTERVAL_MS))
    if expected <= 0:
        return 0
    return int(round((1 - len(projection.levels) / expected) * 100))
