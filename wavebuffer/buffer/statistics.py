"""
Buffer statistics.

Snapshots are recomputed from the buffer, never maintained
incrementally. expected_points assumes the nominal 50 ms cadence; it is
an estimate of what an uncompressed buffer would hold, not a count of
received samples. Duration is wall-clock time since session start and
does not subtract pauses owned by the capture side.
"""

from dataclasses import dataclass, asdict

from wavebuffer.config import BYTES_PER_POINT, NOMINAL_SAMPLE_INTERVAL_MS

MS_PER_MINUTE = 60 * 1000


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Read-only buffer statistics."""
    total_points: int = 0
    recording_duration_minutes: float = 0.0
    buffer_size_kb: float = 0.0
    compression_ratio: float = 1.0
    peak_count: int = 0
    memory_efficiency: float = 0.0

    def to_dict(self):
        return asdict(self)


EMPTY_STATISTICS = StatisticsSnapshot()


def compute_statistics(points, session_start, now):
    """
    Compute a statistics snapshot.

    Args:
        points: Sequence of SamplePoint currently buffered
        session_start: Session start time in ms
        now: Current time in ms

    Returns:
        StatisticsSnapshot
    """
    total = len(points)
    duration_ms = max(0.0, now - session_start)
    expected = int(duration_ms // NOMINAL_SAMPLE_INTERVAL_MS)

    if expected > 0 and total > 0:
        ratio = expected / total
    else:
        ratio = 1.0

    if expected > 0:
        efficiency = (1 - total / expected) * 100
    else:
        efficiency = 0.0

    return StatisticsSnapshot(
        total_points=total,
        recording_duration_minutes=duration_ms / MS_PER_MINUTE,
        buffer_size_kb=round(total * BYTES_PER_POINT / 1024, 2),
        compression_ratio=round(ratio, 2),
        peak_count=sum(1 for p in points if p.is_peak),
        memory_efficiency=round(efficiency, 2),
    )


def format_duration(minutes):
    """Format a duration in minutes as '42s' or '3.5m'."""
    if minutes < 1:
        return f"{round(minutes * 60)}s"
    return f"{minutes:.1f}m"
