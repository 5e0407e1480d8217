"""
FastAPI application factory.

Wires the waveform buffer, stream manager and optional simulator into
app.state, and mounts the REST and WebSocket routers.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wavebuffer.api.routes import create_router
from wavebuffer.api.websocket import create_ws_router
from wavebuffer.buffer.manager import WaveformBuffer
from wavebuffer.config import Config
from wavebuffer.streaming.manager import StreamManager
from wavebuffer.streaming.simulator import LevelSimulator

logger = logging.getLogger(__name__)


def create_app(config=None, buffer=None):
    """
    Build the application.

    Args:
        config: Config instance (defaults used if None)
        buffer: Optional pre-built WaveformBuffer (tests inject one with a fake clock)

    Returns:
        FastAPI app
    """
    config = config or Config()

    @asynccontextmanager
    async def lifespan(app):
        loop = asyncio.get_running_loop()
        waveform = buffer or WaveformBuffer(config.buffer)
        manager = StreamManager(waveform, config, loop)

        if config.simulate:
            manager.set_producer(LevelSimulator(
                manager.push_level, interval=config.stream.simulate_interval,
            ))
            logger.info("Simulation mode: levels are generated, not captured")

        app.state.config = config
        app.state.stream_manager = manager
        await manager.open()

        logger.info("Waveform buffer ready: max %d points, %d bands",
                    config.buffer.max_total_points,
                    len(config.buffer.resolution_levels))
        try:
            yield
        finally:
            await manager.close()
            manager.stop()

    app = FastAPI(title="Waveform Buffer", lifespan=lifespan)
    app.include_router(create_router(), prefix="/api")
    app.include_router(create_ws_router())
    return app
