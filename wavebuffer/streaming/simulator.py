"""
Synthetic level producer for demos and soak runs.

Emits one level every `interval` seconds from a background thread,
standing in for the native capture layer:
  base     U(0.1, 0.5)
  15%      speech-like peak U(0.5, 1.0)
  5%       near silence U(0, 0.05)
"""

import logging
import threading
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

PEAK_PROBABILITY = 0.15
SILENCE_PROBABILITY = 0.05


def generate_level(rng):
    """Draw one speech-like level."""
    level = rng.uniform(0.1, 0.5)
    if rng.random() < PEAK_PROBABILITY:
        level = rng.uniform(0.5, 1.0)
    if rng.random() < SILENCE_PROBABILITY:
        level = rng.uniform(0.0, 0.05)
    return float(level)


class LevelSimulator:
    """Background thread feeding generated levels to a sink."""

    def __init__(self, sink, interval=0.05, seed=None):
        """
        Args:
            sink: Callable(level) receiving each level
            interval: Seconds between levels
            seed: Optional RNG seed for reproducible runs
        """
        self._sink = sink
        self._interval = interval
        self._rng = np.random.default_rng(seed)
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._stop.set()
        self._emitted = 0

    @property
    def is_running(self):
        return not self._stop.is_set()

    @property
    def emitted(self):
        return self._emitted

    def start(self):
        if not self._stop.is_set():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="level-simulator",
            daemon=True,
        )
        self._thread.start()
        logger.info("Level simulator started (%.0f ms cadence)", self._interval * 1000)

    def stop(self):
        if self._stop.is_set():
            return
        self._stop.set()
        if self._thread and self._thread.is_alive() and \
                self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
            if self._thread.is_alive():
                logger.warning("Simulator thread did not exit in 2s")
        logger.info("Level simulator stopped (%d levels)", self._emitted)

    def _run(self):
        while not self._stop.is_set():
            try:
                self._sink(generate_level(self._rng))
                self._emitted += 1
            except Exception:
                logger.error("Simulator sink failed", exc_info=True)
            # Doubles as the sleep so stop() wakes us promptly
            self._stop.wait(self._interval)
