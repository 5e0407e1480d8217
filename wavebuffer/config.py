"""
Application configuration with validation.

All magic numbers live here. Dataclass-based for type safety and defaults.

Buffer configuration is immutable: live updates go through
BufferConfig.with_overrides(), which returns a new value, so readers
holding the previous config never observe a half-applied change.
"""

import logging
import math
from dataclasses import dataclass, field, fields, replace
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


# Fixed constants (not part of the live configuration)
PEAK_DETECTION_WINDOW = 5           # Trailing points compared for local max
MIN_PEAK_DISTANCE_MS = 100          # Minimum spacing between tagged peaks
STATS_REFRESH_INTERVAL = 100        # Ingests between statistics refreshes
NOMINAL_SAMPLE_INTERVAL_MS = 50     # Assumed level cadence
BYTES_PER_POINT = 16                # timestamp(8) + level(4) + isPeak(1) + overhead(3)
FALLBACK_ZOOM_MINUTES = 20.0
FALLBACK_ZOOM_POINTS = 300

COMPRESSION_METHODS = ("rms", "peak", "max", "average")


def _coerce(cls, value):
    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        return cls(**value)
    return cls(*value)


def _finite(name, value):
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number


def _count(name, value):
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be a whole number, got {value!r}")
    return int(value)


def _normalize(instance, spec):
    """Convert fields in place; spec maps field name -> converter."""
    for name, convert in spec.items():
        object.__setattr__(instance, name, convert(name, getattr(instance, name)))


def _text(name, value):
    return str(value)


@dataclass(frozen=True)
class ResolutionBand:
    """Compression policy for one band of aging data."""
    time_range_minutes: float
    max_points: int
    method: str = "rms"             # "rms", "peak", "max", "average"

    def __post_init__(self):
        _normalize(self, {
            'time_range_minutes': _finite,
            'max_points': _count,
            'method': _text,
        })


@dataclass(frozen=True)
class ZoomPreset:
    """Named projection window."""
    name: str
    duration_minutes: float
    max_points: int
    description: str = ""

    def __post_init__(self):
        _normalize(self, {
            'name': _text,
            'duration_minutes': _finite,
            'max_points': _count,
            'description': _text,
        })


DEFAULT_RESOLUTION_BANDS = (
    ResolutionBand(5, 150, "rms"),
    ResolutionBand(20, 150, "peak"),
    ResolutionBand(60, 120, "rms"),
    ResolutionBand(120, 80, "max"),
)

DEFAULT_ZOOM_PRESETS = (
    ZoomPreset("recent", 1, 60, "Last 1 minute"),
    ZoomPreset("short", 5, 200, "Last 5 minutes"),
    ZoomPreset("medium", 20, 300, "Last 20 minutes"),
    ZoomPreset("full", 120, 400, "Full recording"),
)


@dataclass(frozen=True)
class BufferConfig:
    """Waveform buffer configuration."""
    max_total_points: int = 400
    recent_data_minutes: float = 5.0
    recent_data_points: int = 150
    peak_threshold: float = 0.15
    resolution_levels: Tuple[ResolutionBand, ...] = DEFAULT_RESOLUTION_BANDS
    zoom_levels: Tuple[ZoomPreset, ...] = DEFAULT_ZOOM_PRESETS
    default_zoom: str = "medium"

    def __post_init__(self):
        # Runs for replace() too, so overrides are checked the same way
        _normalize(self, {
            'max_total_points': _count,
            'recent_data_minutes': _finite,
            'recent_data_points': _count,
            'peak_threshold': _finite,
            'default_zoom': _text,
        })
        object.__setattr__(self, 'resolution_levels', tuple(
            _coerce(ResolutionBand, v) for v in self.resolution_levels
        ))
        object.__setattr__(self, 'zoom_levels', tuple(
            _coerce(ZoomPreset, v) for v in self.zoom_levels
        ))

    def with_overrides(self, **overrides):
        """
        Return a new config with the given fields replaced.

        Band and preset entries may be given as dicts or tuples. Unknown
        field names are logged and ignored.

        Returns:
            BufferConfig

        Raises:
            TypeError, ValueError: if a value cannot be converted
        """
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("Ignoring unknown buffer config field: %s", key)
                continue
            changes[key] = value
        return replace(self, **changes)

    def find_zoom(self, name):
        """Return the preset with the given name, or None."""
        for preset in self.zoom_levels:
            if preset.name == name:
                return preset
        return None


@dataclass
class StreamConfig:
    """WebSocket streaming configuration."""
    broadcast_fps: float = 20.0         # Max display frames per second
    stats_interval: float = 1.0         # Seconds between statistics pushes
    simulate_interval: float = 0.05     # Simulator level cadence (seconds)


@dataclass
class Config:
    """Top-level application configuration."""
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    simulate: bool = False
    log_dir: Optional[str] = None      # None: LOG_DIR from logging_config
    buffer: BufferConfig = field(default_factory=BufferConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
