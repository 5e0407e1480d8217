"""Shared fixtures for the wavebuffer test suite."""

from __future__ import annotations

import pytest

from builders import FakeClock
from wavebuffer.buffer.manager import WaveformBuffer
from wavebuffer.config import BufferConfig


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def buffer(clock: FakeClock) -> WaveformBuffer:
    return WaveformBuffer(BufferConfig(), clock=clock)


@pytest.fixture
def recording(buffer: WaveformBuffer) -> WaveformBuffer:
    buffer.start()
    return buffer
