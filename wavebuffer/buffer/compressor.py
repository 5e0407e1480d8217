"""
Progressive compressor: keeps older waveform data at decreasing resolution.

The buffer is split into a "recent" window kept at full resolution and
an "older" region thinned band by band. Bands are cumulative: band k
covers [now - band[k].range, now - band[k-1].range), band 0 ends at now.

Pass outline:
  1. Partition into recent (ts >= now - recent_minutes) and older.
     No older data means nothing to compress.
  2. For each band, thin its slice of older data to band.max_points
     with the band's reduction method. Re-sort the combined output.
  3. Keep at most recent_data_points of the recent window (newest).

Data older than the last band is not covered by any band and is
dropped by a pass. The caller applies the hard cap afterwards.
"""

import logging
from dataclasses import dataclass
from typing import List

from wavebuffer.buffer.points import SamplePoint
from wavebuffer.dsp.reducer import reduce_points

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


@dataclass
class CompressionResult:
    """Outcome of one compression pass."""
    points: List[SamplePoint]
    older_in: int = 0
    older_out: int = 0
    recent_in: int = 0
    recent_out: int = 0
    compressed: bool = False


class ProgressiveCompressor:
    """Time-banded, decreasing-resolution compressor."""

    def __init__(self, config):
        """
        Args:
            config: BufferConfig dataclass instance
        """
        self._config = config

    @property
    def config(self):
        return self._config

    @config.setter
    def config(self, value):
        self._config = value

    def compress(self, points, now):
        """
        Run one compression pass.

        Args:
            points: List of SamplePoint, ascending timestamps
            now: Current time in ms

        Returns:
            CompressionResult
        """
        cfg = self._config
        recent_cutoff = now - cfg.recent_data_minutes * MS_PER_MINUTE

        recent = [p for p in points if p.timestamp >= recent_cutoff]
        older = [p for p in points if p.timestamp < recent_cutoff]

        if not older:
            return CompressionResult(
                points=list(points),
                recent_in=len(recent),
                recent_out=len(recent),
            )

        compressed_older = self.compress_bands(older, now)

        keep = cfg.recent_data_points
        if len(recent) > keep:
            trimmed_recent = recent[-keep:] if keep > 0 else []
        else:
            trimmed_recent = recent

        logger.debug(
            "Compression: older %d -> %d, recent %d -> %d",
            len(older), len(compressed_older), len(recent), len(trimmed_recent),
        )

        return CompressionResult(
            points=compressed_older + trimmed_recent,
            older_in=len(older),
            older_out=len(compressed_older),
            recent_in=len(recent),
            recent_out=len(trimmed_recent),
            compressed=True,
        )

    def compress_bands(self, older, now):
        """
        Thin older points band by band.

        Args:
            older: List of SamplePoint, ascending timestamps
            now: Current time in ms

        Returns:
            List of SamplePoint sorted by timestamp
        """
        compressed = []
        previous_range = None

        for band in self._config.resolution_levels:
            range_start = now - band.time_range_minutes * MS_PER_MINUTE
            if previous_range is None:
                range_end = now
            else:
                range_end = now - previous_range * MS_PER_MINUTE
            previous_range = band.time_range_minutes

            band_points = [
                p for p in older if range_start <= p.timestamp < range_end
            ]
            if not band_points:
                continue

            compressed.extend(
                reduce_points(band_points, band.max_points, band.method, now)
            )

        # Bands can overlap when ranges are not increasing
        compressed.sort(key=lambda p: p.timestamp)
        return compressed
