"""
Sample point model.

One point per ingested level. The peak tag is decided before the point
is built, so points are never mutated after creation.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SamplePoint:
    """A single level sample."""
    level: float            # Normalized amplitude, typically [0, 1]
    timestamp: float        # Monotonic milliseconds
    is_peak: bool = False
