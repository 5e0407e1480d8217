"""
Zoom selectors and their resolution to a projection target.

A selector is either a preset name (NamedZoom) or an explicit duration
(CustomZoom). resolve_zoom() is the only place that turns either into a
ZoomTarget. Unknown preset names fall back to 20 minutes / 300 points.
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Optional, Union

from wavebuffer.config import FALLBACK_ZOOM_MINUTES, FALLBACK_ZOOM_POINTS

logger = logging.getLogger(__name__)

CUSTOM_ZOOM_NAME = 'custom'


@dataclass(frozen=True)
class NamedZoom:
    name: str


@dataclass(frozen=True)
class CustomZoom:
    duration_minutes: float
    max_points: Optional[int] = None


@dataclass(frozen=True)
class ZoomTarget:
    """Resolved projection window and point budget."""
    duration_minutes: float
    max_points: int


FALLBACK_TARGET = ZoomTarget(FALLBACK_ZOOM_MINUTES, FALLBACK_ZOOM_POINTS)

ZoomSelector = Union[NamedZoom, CustomZoom]


def as_zoom(selector):
    """
    Wrap a raw selector (str or number) in its zoom variant.

    Variants pass through unchanged.
    """
    if isinstance(selector, (NamedZoom, CustomZoom)):
        return selector
    if isinstance(selector, bool):
        # bool is an int subclass, never a duration
        return NamedZoom(str(selector))
    if isinstance(selector, numbers.Real):
        return CustomZoom(float(selector))
    return NamedZoom(str(selector))


def zoom_label(selector):
    """Name reported as the active zoom."""
    zoom = as_zoom(selector)
    if isinstance(zoom, NamedZoom):
        return zoom.name
    return CUSTOM_ZOOM_NAME


def resolve_zoom(selector, config, max_points=None):
    """
    Resolve a zoom selector to a ZoomTarget.

    Args:
        selector: NamedZoom, CustomZoom, preset name or duration in minutes
        config: BufferConfig providing presets and the global point cap
        max_points: Optional point budget overriding the preset's

    Returns:
        ZoomTarget
    """
    zoom = as_zoom(selector)

    if isinstance(zoom, CustomZoom):
        budget = _budget(max_points)
        if budget is None:
            budget = _budget(zoom.max_points)
        if budget is None:
            budget = config.max_total_points
        return ZoomTarget(float(zoom.duration_minutes), budget)

    preset = config.find_zoom(zoom.name)
    if preset is None:
        logger.warning(
            "Unknown zoom level: %s, using %.0f min / %d points",
            zoom.name, FALLBACK_TARGET.duration_minutes, FALLBACK_TARGET.max_points,
        )
        budget = _budget(max_points)
        if budget is None:
            return FALLBACK_TARGET
        return ZoomTarget(FALLBACK_TARGET.duration_minutes, budget)

    budget = _budget(max_points)
    if budget is None:
        budget = preset.max_points
    return ZoomTarget(preset.duration_minutes, budget)


def _budget(value):
    """Point budget as int, or None when absent or unusable."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring invalid point budget: %r", value)
        return None
