"""
REST API routes for session control and non-streaming queries.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Request
from pydantic import BaseModel

from wavebuffer.logging_config import get_log_files, resolve_log_dir

logger = logging.getLogger(__name__)


class LevelBatch(BaseModel):
    levels: List[float]


class ZoomRequest(BaseModel):
    zoom: Union[float, str]
    max_points: Optional[int] = None


def parse_zoom(value):
    """Numeric strings select a custom duration, anything else a preset name."""
    if value is None or isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except ValueError:
        return value


def config_to_dict(config):
    return {
        'max_total_points': config.max_total_points,
        'recent_data_minutes': config.recent_data_minutes,
        'recent_data_points': config.recent_data_points,
        'peak_threshold': config.peak_threshold,
        'default_zoom': config.default_zoom,
        'resolution_levels': [
            {
                'time_range_minutes': band.time_range_minutes,
                'max_points': band.max_points,
                'method': band.method,
            }
            for band in config.resolution_levels
        ],
        'zoom_levels': [zoom_to_dict(z) for z in config.zoom_levels],
    }


def zoom_to_dict(preset):
    return {
        'name': preset.name,
        'duration_minutes': preset.duration_minutes,
        'max_points': preset.max_points,
        'description': preset.description,
    }


def create_router():
    router = APIRouter()

    @router.get("/status")
    async def get_status(request: Request):
        manager = request.app.state.stream_manager
        return manager.get_status()

    # --- Session endpoints ---

    @router.post("/session/start")
    async def start_session(request: Request):
        manager = request.app.state.stream_manager
        ok = manager.start()
        return {'ok': ok, 'recording': manager.is_recording}

    @router.post("/session/stop")
    async def stop_session(request: Request):
        manager = request.app.state.stream_manager
        manager.stop()
        return {
            'ok': True,
            'recording': False,
            'statistics': manager.buffer.get_current_statistics().to_dict(),
        }

    @router.post("/session/reset")
    async def reset_session(request: Request):
        manager = request.app.state.stream_manager
        manager.reset()
        return {'ok': True, 'recording': manager.is_recording}

    # --- Ingest ---

    @router.post("/levels")
    async def add_levels(batch: LevelBatch, request: Request):
        manager = request.app.state.stream_manager
        if not manager.is_recording:
            return {'accepted': 0, 'recording': False}
        for level in batch.levels:
            manager.push_level(level)
        return {'accepted': len(batch.levels), 'recording': True}

    # --- Display ---

    @router.get("/display")
    async def get_display(request: Request, zoom: Optional[str] = None,
                          max_points: Optional[int] = None):
        buffer = request.app.state.stream_manager.buffer
        projection = buffer.get_projection(parse_zoom(zoom), max_points)
        return {
            'levels': projection.to_list(),
            'duration_minutes': projection.target.duration_minutes,
            'max_points': projection.target.max_points,
            'downsampled': projection.downsampled,
            'source_points': projection.source_points,
        }

    @router.get("/zooms")
    async def list_zooms(request: Request):
        buffer = request.app.state.stream_manager.buffer
        return {
            'current': buffer.current_zoom,
            'zooms': [zoom_to_dict(z) for z in buffer.available_zooms()],
        }

    @router.post("/zoom")
    async def set_zoom(body: ZoomRequest, request: Request):
        buffer = request.app.state.stream_manager.buffer
        buffer.set_zoom(parse_zoom(body.zoom))
        return {'zoom': buffer.current_zoom, 'levels': buffer.display_data}

    @router.get("/statistics")
    async def get_statistics(request: Request):
        buffer = request.app.state.stream_manager.buffer
        return buffer.get_current_statistics().to_dict()

    # --- Configuration ---

    @router.get("/config")
    async def get_config(request: Request):
        return config_to_dict(request.app.state.stream_manager.buffer.config)

    @router.patch("/config")
    async def update_config(overrides: Dict[str, Any], request: Request):
        buffer = request.app.state.stream_manager.buffer
        new_config = buffer.update_config(overrides)
        return config_to_dict(new_config)

    # --- Logs ---

    @router.get("/logs")
    async def list_logs(request: Request):
        log_dir = request.app.state.config.log_dir
        return {
            'log_dir': resolve_log_dir(log_dir),
            'files': get_log_files(log_dir),
        }

    return router
