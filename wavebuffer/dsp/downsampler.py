"""
RMS downsampler for waveform display.

For level meters we want the perceived loudness of each display column,
not its single loudest sample. Strategy: for each output bin, take the
RMS of the corresponding input levels.

Bin i covers input indices [floor(i*n/target), floor((i+1)*n/target)),
so the whole input is covered without truncation. Empty bins (possible
only through rounding) emit nothing, which means the output can be
shorter than the target.
"""

import numpy as np


class Downsampler:
    """RMS level downsampler."""

    def __init__(self, target_bins):
        """
        Args:
            target_bins: Target number of output bins
        """
        self._target = target_bins

    def downsample(self, levels):
        """
        Downsample level data by RMS over contiguous index ranges.

        Args:
            levels: Sequence or numpy array of levels

        Returns:
            float64 numpy array, unchanged if already within target
        """
        levels = np.asarray(levels, dtype=np.float64)
        n = len(levels)
        if self._target <= 0:
            return np.empty(0, dtype=np.float64)
        if n <= self._target:
            return levels

        edges = (np.arange(self._target + 1, dtype=np.int64) * n) // self._target
        starts = edges[:-1]
        counts = edges[1:] - starts
        nonempty = counts > 0

        # reduceat sums from each start up to the next start; empty bins
        # sit at the same index as their successor so they drop out cleanly
        sums = np.add.reduceat(np.square(levels), starts[nonempty])
        return np.sqrt(sums / counts[nonempty])

    @property
    def target_bins(self):
        return self._target

    @target_bins.setter
    def target_bins(self, value):
        self._target = value
