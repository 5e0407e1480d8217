"""
WaveformBuffer: bounded, multi-resolution store for a live level stream.

Data flow per ingested level:
  level --> PeakDetector --> append --> capacity check
        --> (over cap) ProgressiveCompressor --> hard trim to cap
        --> display marked stale, statistics every 100th level

Session states: idle -> recording on start(), recording -> idle on
stop(). reset() clears everything from either state and leaves the
buffer idle. Pause/resume of the recording itself belongs to the
capture side; this buffer only gates ingestion on the active flag.

Thread safety: one lock guards the buffer, peak state, config, cached
projection and statistics. Ingest comes from a single producer; queries
may come from any thread. Published statistics and projections are
immutable objects replaced wholesale, so readers can keep a reference
without copying.
"""

import logging
import math
import threading
import time
from typing import Callable, List, Optional

from wavebuffer.buffer.compressor import ProgressiveCompressor
from wavebuffer.buffer.peaks import PeakDetector
from wavebuffer.buffer.points import SamplePoint
from wavebuffer.buffer.projector import (
    DisplayProjector, EMPTY_PROJECTION, view_reduction_percent,
)
from wavebuffer.buffer.statistics import (
    EMPTY_STATISTICS, compute_statistics, format_duration,
)
from wavebuffer.buffer.zoom import resolve_zoom, zoom_label
from wavebuffer.config import BufferConfig, STATS_REFRESH_INTERVAL

logger = logging.getLogger(__name__)


def monotonic_ms():
    """Default clock: monotonic milliseconds."""
    return time.monotonic() * 1000.0


class WaveformBuffer:
    """
    Adaptive waveform buffer for long recordings.

    All public methods are safe to call from any thread and never raise
    on bad input; problems are logged and the call becomes a no-op.
    """

    def __init__(self, config=None, clock=None, on_change=None):
        """
        Args:
            config: BufferConfig (defaults used if None)
            clock: Callable returning the current time in ms
            on_change: Optional callback(event) invoked after state changes
        """
        self._config = config or BufferConfig()
        self._clock: Callable[[], float] = clock or monotonic_ms
        self._on_change = on_change

        self._lock = threading.Lock()

        self._buffer: List[SamplePoint] = []
        self._active = False
        self._session_start = self._clock()
        self._frame_count = 0
        self._compressions = 0

        self._peaks = PeakDetector(self._config.peak_threshold)
        self._compressor = ProgressiveCompressor(self._config)
        self._projector = DisplayProjector()

        self._zoom = self._config.default_zoom
        self._zoom_target = resolve_zoom(self._zoom, self._config)
        self._projection = EMPTY_PROJECTION
        self._projection_time = None
        self._projection_stale = True
        self._statistics = EMPTY_STATISTICS

    # --- Properties ---

    @property
    def is_active(self):
        return self._active

    @property
    def config(self):
        return self._config

    @property
    def current_zoom(self):
        """Active zoom name, or 'custom' for a numeric zoom."""
        return zoom_label(self._zoom)

    @property
    def session_start(self):
        return self._session_start

    def set_on_change(self, callback):
        self._on_change = callback

    # --- Session lifecycle ---

    def start(self):
        """Begin a new recording session (clears previous data)."""
        with self._lock:
            self._clear_locked()
            self._active = True
        logger.info("Recording started")
        self._notify('start')

    def stop(self):
        """End the session. Data stays queryable. Idempotent."""
        with self._lock:
            was_active = self._active
            self._active = False
            self._refresh_statistics_locked()
        if was_active:
            logger.info(
                "Recording stopped: %d points, %.1f min",
                self._statistics.total_points,
                self._statistics.recording_duration_minutes,
            )
        self._notify('stop')

    def reset(self):
        """Drop all data and end the session. Valid while idle or recording."""
        with self._lock:
            self._clear_locked()
            self._active = False
        logger.info("Buffer reset")
        self._notify('reset')

    def _clear_locked(self):
        self._buffer = []
        self._frame_count = 0
        self._compressions = 0
        self._session_start = self._clock()
        self._peaks.reset()
        self._projection = EMPTY_PROJECTION
        self._projection_stale = True
        self._statistics = EMPTY_STATISTICS

    # --- Ingest ---

    def add_level(self, level):
        """
        Ingest one level sample. No-op when not recording.

        Args:
            level: Normalized level (float-convertible, finite)
        """
        if not self._active:
            return

        try:
            level = float(level)
        except (TypeError, ValueError):
            logger.warning("Dropping non-numeric level: %r", level)
            return
        if not math.isfinite(level):
            logger.warning("Dropping non-finite level: %r", level)
            return

        with self._lock:
            if not self._active:
                return

            self._frame_count += 1
            timestamp = self._clock()

            is_peak = self._peaks.evaluate(level, timestamp, self._buffer)
            self._buffer.append(SamplePoint(level, timestamp, is_peak))

            self._manage_capacity_locked(timestamp)
            self._projection_stale = True

            if self._frame_count % STATS_REFRESH_INTERVAL == 0:
                self._refresh_statistics_locked()

        self._notify('level')

    def _manage_capacity_locked(self, now):
        cap = self._config.max_total_points
        if len(self._buffer) <= cap:
            return

        before = len(self._buffer)
        result = self._compressor.compress(self._buffer, now)
        self._buffer = result.points
        if result.compressed:
            self._compressions += 1

        # Hard cap: newest points win
        if len(self._buffer) > cap:
            self._buffer = self._buffer[-cap:] if cap > 0 else []

        logger.debug(
            "Capacity pass: %d -> %d points (older %d -> %d)",
            before, len(self._buffer), result.older_in, result.older_out,
        )

    # --- Queries ---

    def get_display_data(self, zoom=None, max_points=None):
        """
        Project the buffer for a zoom.

        Args:
            zoom: Preset name, minutes, NamedZoom/CustomZoom; None uses the active zoom
            max_points: Optional point budget override

        Returns:
            list of float levels, ascending by time
        """
        return self.get_projection(zoom, max_points).to_list()

    def get_projection(self, zoom=None, max_points=None):
        """Like get_display_data() but returns the full Projection."""
        with self._lock:
            if zoom is None and max_points is None:
                return self._current_projection_locked()
            target = resolve_zoom(
                self._zoom if zoom is None else zoom, self._config, max_points
            )
            return self._projector.project(self._buffer, target, self._clock())

    @property
    def display_data(self):
        """Cached projection levels for the active zoom."""
        with self._lock:
            return self._current_projection_locked().to_list()

    def _current_projection_locked(self):
        # The window slides with the clock, so a new "now" also invalidates
        now = self._clock()
        if self._projection_stale or now != self._projection_time:
            self._projection = self._projector.project(
                self._buffer, self._zoom_target, now
            )
            self._projection_time = now
            self._projection_stale = False
        return self._projection

    def set_zoom(self, zoom):
        """Set the active zoom and recompute the cached projection."""
        with self._lock:
            self._zoom = zoom
            self._zoom_target = resolve_zoom(zoom, self._config)
            self._projection_stale = True
            self._current_projection_locked()
        logger.debug("Zoom set to %s", zoom_label(zoom))
        self._notify('zoom')

    def available_zooms(self):
        """Zoom presets of the current config."""
        return list(self._config.zoom_levels)

    def get_current_statistics(self):
        """Latest StatisticsSnapshot (refreshed every 100 levels and on stop)."""
        return self._statistics

    def refresh_statistics(self):
        """Recompute statistics now and return the snapshot."""
        with self._lock:
            self._refresh_statistics_locked()
            return self._statistics

    def _refresh_statistics_locked(self):
        self._statistics = compute_statistics(
            self._buffer, self._session_start, self._clock()
        )

    def get_points(self):
        """Snapshot of buffered points (oldest first)."""
        with self._lock:
            return tuple(self._buffer)

    def __len__(self):
        with self._lock:
            return len(self._buffer)

    # --- Configuration ---

    def update_config(self, overrides=None, **kwargs):
        """
        Replace configuration fields for subsequent passes.

        Stored data is not recompressed. Values that cannot be converted
        reject the whole update and keep the current config.

        Args:
            overrides: Optional mapping of field -> value
            **kwargs: Additional field overrides

        Returns:
            BufferConfig now in effect
        """
        with self._lock:
            try:
                changes = dict(overrides or {})
                changes.update(kwargs)
                new_config = self._config.with_overrides(**changes)
            except (TypeError, ValueError) as e:
                logger.warning("Rejected config update %r: %s", overrides, e)
                return self._config

            self._config = new_config
            self._peaks.threshold = new_config.peak_threshold
            self._compressor.config = new_config
            self._zoom_target = resolve_zoom(self._zoom, new_config)
            self._projection_stale = True

        logger.info("Configuration updated: %s", ", ".join(sorted(changes)) or "no changes")
        self._notify('config')
        return new_config

    def get_status(self):
        """Return buffer status dict."""
        with self._lock:
            projection = self._current_projection_locked()
            statistics = self._statistics
            elapsed = max(0.0, self._clock() - self._session_start) / 60000.0
            status = {
                'recording': self._active,
                'zoom': zoom_label(self._zoom),
                'zoom_duration_minutes': projection.target.duration_minutes,
                'zoom_max_points': projection.target.max_points,
                'display_points': len(projection.levels),
                'view_reduction_percent': view_reduction_percent(projection, elapsed),
                'buffer_points': len(self._buffer),
                'max_total_points': self._config.max_total_points,
                'compressions': self._compressions,
                'peaks_detected': self._peaks.peak_count,
                'elapsed': format_duration(elapsed),
            }
        status['statistics'] = statistics.to_dict()
        return status

    # --- Notification ---

    def _notify(self, event):
        callback = self._on_change
        if callback is None:
            return
        try:
            callback(event)
        except Exception:
            logger.error("Change callback failed for %s", event, exc_info=True)
