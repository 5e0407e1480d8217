"""
WebSocket endpoint for real-time waveform data.

Uses native FastAPI WebSocket (binary frames, no Socket.IO overhead).
Commands come in as JSON text frames, display data goes out as binary
frames from the stream manager's broadcast loop. A command with bad
fields is answered with an error frame; the connection stays open.
"""

import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from wavebuffer.api.routes import config_to_dict, parse_zoom, zoom_to_dict

logger = logging.getLogger(__name__)


def create_ws_router():
    router = APIRouter()

    @router.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()
        manager = ws.app.state.stream_manager

        await manager.add_client(ws)

        # Send initial full status
        await _send_status(ws, _build_full_status(manager))

        try:
            while True:
                raw = await ws.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning("Invalid JSON from client: %s", e)
                    await _send_error(ws, 'Invalid JSON')
                    continue
                if not isinstance(msg, dict):
                    await _send_error(ws, 'Expected a JSON object')
                    continue

                cmd = msg.get('cmd')
                try:
                    await _handle_command(ws, manager, cmd, msg)
                except (TypeError, ValueError) as e:
                    logger.warning("Bad %s command: %s", cmd, e)
                    await _send_error(ws, f'Invalid {cmd} command: {e}')

        except WebSocketDisconnect:
            logger.info("Client disconnected normally")
        except Exception:
            logger.error("WebSocket error", exc_info=True)
        finally:
            await manager.remove_client(ws)

    return router


async def _handle_command(ws, manager, cmd, msg):
    """Dispatch one decoded command. Raises TypeError/ValueError on bad fields."""
    buffer = manager.buffer

    if cmd == 'start':
        ok = manager.start()
        status = _build_full_status(manager)
        status['ok'] = ok
        await _send_status(ws, status)

    elif cmd == 'stop':
        manager.stop()
        await _send_status(ws, _build_full_status(manager))

    elif cmd == 'reset':
        manager.reset()
        await _send_status(ws, _build_full_status(manager))

    elif cmd == 'level':
        values = msg.get('values')
        if values is None:
            values = [msg.get('value')]
        elif not isinstance(values, list):
            raise TypeError("'values' must be a list")
        for value in values:
            manager.push_level(value)

    elif cmd == 'set_zoom':
        buffer.set_zoom(parse_zoom(msg.get('value')))
        await _send_status(ws, {
            'zoom': buffer.current_zoom, 'ok': True,
        })

    elif cmd == 'get_display':
        levels = buffer.get_display_data(
            parse_zoom(msg.get('zoom')), msg.get('max_points'),
        )
        await ws.send_text(json.dumps({
            'type': 'display', 'data': levels,
        }))

    elif cmd == 'get_zooms':
        await _send_status(ws, {
            'zoom': buffer.current_zoom,
            'zooms': [zoom_to_dict(z) for z in buffer.available_zooms()],
        })

    elif cmd == 'get_statistics':
        await ws.send_text(json.dumps({
            'type': 'statistics',
            'data': buffer.get_current_statistics().to_dict(),
        }))

    elif cmd == 'update_config':
        params = msg.get('params', {})
        if not isinstance(params, dict):
            raise TypeError("'params' must be an object")
        new_config = buffer.update_config(params)
        await _send_status(ws, {'config': config_to_dict(new_config)})

    elif cmd == 'get_status':
        await _send_status(ws, _build_full_status(manager))

    else:
        logger.warning("Unknown command: %s", cmd)
        await _send_error(ws, f'Unknown command: {cmd}')


def _build_full_status(manager):
    """Build a complete status dict with session, zoom and buffer params."""
    return manager.get_status()


async def _send_status(ws, data):
    """Send a JSON status message."""
    await ws.send_text(json.dumps({'type': 'status', 'data': data}))


async def _send_error(ws, message):
    """Send a JSON error message."""
    await ws.send_text(json.dumps({'type': 'error', 'message': message}))
