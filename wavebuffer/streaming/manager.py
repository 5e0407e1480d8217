"""
StreamManager: Coordinates level producers, the waveform buffer and asyncio WebSocket.

Data flow:
  producer (capture/simulator thread) --push_level()--> WaveformBuffer
      --on_change--> asyncio Event --> broadcast loop --> WebSocket clients

This module bridges two execution domains:
1. Producer threads that deliver one level at a time
2. asyncio event loop (broadcasts display frames to WebSocket clients)

The buffer does its own locking, so producers call into it directly.
Only the wake-up signal crosses into the event loop.
"""

import asyncio
import json
import logging
import time
from typing import Optional, Set

from fastapi import WebSocket

from wavebuffer.streaming.protocol import encode_projection_packet

logger = logging.getLogger(__name__)


class StreamManager:
    """Coordinates ingest, the buffer and WebSocket broadcast."""

    def __init__(self, buffer, config, loop):
        """
        Args:
            buffer: WaveformBuffer instance
            config: Config instance
            loop: asyncio event loop (main thread)
        """
        self._buffer = buffer
        self._config = config
        self._loop = loop

        # Connected WebSocket clients
        self._clients: Set[WebSocket] = set()
        self._clients_lock = asyncio.Lock()

        # Broadcast task and wake-up signal
        self._broadcast_task: Optional[asyncio.Task] = None
        self._dirty = asyncio.Event()
        self._running = False

        # Optional level producer (simulator)
        self._producer = None

        self._frames_sent = 0
        self._buffer.set_on_change(self._on_buffer_change)

    @property
    def buffer(self):
        return self._buffer

    @property
    def is_recording(self):
        return self._buffer.is_active

    @property
    def client_count(self):
        return len(self._clients)

    def set_producer(self, producer):
        """Attach a level producer started/stopped with the session."""
        self._producer = producer

    async def add_client(self, ws):
        async with self._clients_lock:
            self._clients.add(ws)
        logger.info("Client connected, total: %d", len(self._clients))
        self._dirty.set()

    async def remove_client(self, ws):
        async with self._clients_lock:
            self._clients.discard(ws)
        logger.info("Client disconnected, total: %d", len(self._clients))

    # --- Broadcast loop lifecycle ---

    async def open(self):
        """Start the broadcast loop (called once at app startup)."""
        if self._running:
            return
        self._running = True
        self._broadcast_task = asyncio.create_task(self._broadcast_loop())
        logger.info("Stream manager opened")

    async def close(self):
        """Stop producers and the broadcast loop."""
        if self._producer:
            # stop() joins the producer thread; keep that off the loop
            await asyncio.to_thread(self._producer.stop)
        self._running = False
        self._dirty.set()
        if self._broadcast_task:
            self._broadcast_task.cancel()
            try:
                await self._broadcast_task
            except asyncio.CancelledError:
                pass
            self._broadcast_task = None
        logger.info("Stream manager closed (%d frames sent)", self._frames_sent)

    # --- Session control ---

    def start(self):
        """Start a recording session (and the producer, if any)."""
        if self._buffer.is_active:
            logger.warning("Already recording")
            return False
        self._buffer.start()
        if self._producer:
            self._producer.start()
        return True

    def stop(self):
        """Stop the session. Idempotent."""
        if self._producer:
            self._producer.stop()
        self._buffer.stop()

    def reset(self):
        if self._producer:
            self._producer.stop()
        self._buffer.reset()

    def push_level(self, level):
        """Ingest one level. Safe to call from any thread."""
        self._buffer.add_level(level)

    # --- Change notification (any thread) ---

    def _on_buffer_change(self, event):
        try:
            self._loop.call_soon_threadsafe(self._dirty.set)
        except RuntimeError:
            pass  # Loop closed

    async def _broadcast_loop(self):
        """
        Async task that sends the current display frame to all clients
        whenever the buffer changed, at most broadcast_fps times a second.
        Statistics go out as JSON text frames every stats_interval seconds.
        """
        logger.info("Broadcast loop started")
        frame_interval = 1.0 / max(self._config.stream.broadcast_fps, 0.1)
        stats_interval = self._config.stream.stats_interval
        last_stats = 0.0

        while self._running:
            try:
                await asyncio.wait_for(self._dirty.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            self._dirty.clear()

            if not self._clients:
                continue

            try:
                projection = self._buffer.get_projection()
                packet = encode_projection_packet(
                    projection,
                    buffer_points=len(self._buffer),
                    recording=self._buffer.is_active,
                )
                await self._send_to_clients(packet)
                self._frames_sent += 1

                now = time.monotonic()
                if now - last_stats >= stats_interval:
                    last_stats = now
                    stats = self._buffer.get_current_statistics().to_dict()
                    await self._send_to_clients(
                        json.dumps({'type': 'statistics', 'data': stats})
                    )
            except asyncio.CancelledError:
                break
            except Exception:
                logger.error("Broadcast error", exc_info=True)

            # Frame rate limiting
            try:
                await asyncio.sleep(frame_interval)
            except asyncio.CancelledError:
                break

        logger.info("Broadcast loop exited")

    async def _send_to_clients(self, message):
        """Send a binary or text frame to all connected clients."""
        async with self._clients_lock:
            disconnected = []
            for ws in self._clients:
                try:
                    if isinstance(message, bytes):
                        await ws.send_bytes(message)
                    else:
                        await ws.send_text(message)
                except Exception:
                    disconnected.append(ws)
            for ws in disconnected:
                self._clients.discard(ws)
                logger.info("Removed disconnected client")

    def get_status(self):
        status = self._buffer.get_status()
        status['clients'] = len(self._clients)
        status['frames_sent'] = self._frames_sent
        status['simulating'] = bool(self._producer and self._producer.is_running)
        return status
