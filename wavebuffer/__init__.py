"""Adaptive multi-resolution waveform buffer for long live recordings."""

from wavebuffer.buffer.manager import WaveformBuffer
from wavebuffer.buffer.points import SamplePoint
from wavebuffer.buffer.statistics import StatisticsSnapshot
from wavebuffer.buffer.zoom import CustomZoom, NamedZoom, ZoomTarget
from wavebuffer.config import BufferConfig, ResolutionBand, ZoomPreset

__version__ = "0.1.0"

__all__ = [
    "BufferConfig",
    "CustomZoom",
    "NamedZoom",
    "ResolutionBand",
    "SamplePoint",
    "StatisticsSnapshot",
    "WaveformBuffer",
    "ZoomPreset",
    "ZoomTarget",
]
