"""
Chunk reducer: collapses a run of points into one representative point.

Methods:
  rms      sqrt(mean(level^2)), peak tag dropped
  peak/max max(level), peak tag kept if any source point was a peak
  average  mean(level), peak tag dropped (also the fallback)

The result always takes the timestamp of the chunk's middle element
(index len // 2) so the reduced point stays inside the chunk's span.
"""

import logging

import numpy as np

from wavebuffer.buffer.points import SamplePoint

logger = logging.getLogger(__name__)


def _rms(levels):
    return float(np.sqrt(np.mean(np.square(levels))))


def _max(levels):
    return float(np.max(levels))


def _mean(levels):
    return float(np.mean(levels))


# method -> (level function, keeps peak tag)
REDUCERS = {
    'rms': (_rms, False),
    'peak': (_max, True),
    'max': (_max, True),
    'average': (_mean, False),
}


def reduce_chunk(chunk, method, now=0.0):
    """
    Reduce a time-ordered chunk to a single SamplePoint.

    Args:
        chunk: Sequence of SamplePoint (contiguous, ascending timestamps)
        method: "rms", "peak", "max" or "average"; anything else averages
        now: Timestamp for the empty-chunk placeholder

    Returns:
        SamplePoint
    """
    if len(chunk) == 0:
        # Bounded partitioning never produces an empty chunk
        logger.warning("Reducing empty chunk, returning silent placeholder")
        return SamplePoint(level=0.0, timestamp=now)

    if len(chunk) == 1:
        return chunk[0]

    func, keeps_peak = REDUCERS.get(method, REDUCERS['average'])
    levels = np.fromiter((p.level for p in chunk), dtype=np.float64, count=len(chunk))

    return SamplePoint(
        level=func(levels),
        timestamp=chunk[len(chunk) // 2].timestamp,
        is_peak=keeps_peak and any(p.is_peak for p in chunk),
    )


def reduce_points(points, max_points, method, now=0.0):
    """
    Thin a run of points down to at most max_points.

    Points are split into contiguous chunks of ceil(len / max_points)
    and each chunk is reduced. Runs already within budget are returned
    unchanged.

    Args:
        points: List of SamplePoint, ascending timestamps
        max_points: Point budget for the run
        method: Reduction method name

    Returns:
        List of SamplePoint
    """
    if max_points <= 0:
        return []
    if len(points) <= max_points:
        return list(points)

    chunk_size = -(-len(points) // max_points)  # ceil
    return [
        reduce_chunk(points[i:i + chunk_size], method, now)
        for i in range(0, len(points), chunk_size)
    ]
