"""
Logging setup: console plus rotating log files.

Layout under the log directory:
    app.log               INFO and above, every logger
    error.log             ERROR and above
    debug.log             everything at the file level
    buffer/buffer.log     ingest, compression, projection, DSP
    streaming/stream.log  broadcast loop, simulator, REST and WebSocket

Call setup_logging() once from the entry point; modules only do
`logger = logging.getLogger(__name__)`.
"""

import os
import sys
import logging
from logging.handlers import RotatingFileHandler

LOG_DIR = os.environ.get(
    'WAVEBUFFER_LOG_DIR',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'logs'),
)

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

MAX_BYTES = 10 * 1024 * 1024  # per file before rotation
BACKUP_COUNT = 5

BUFFER_LOGGERS = (
    'wavebuffer.buffer.manager',
    'wavebuffer.buffer.compressor',
    'wavebuffer.buffer.peaks',
    'wavebuffer.buffer.projector',
    'wavebuffer.buffer.zoom',
    'wavebuffer.dsp.reducer',
    'wavebuffer.dsp.downsampler',
)

STREAM_LOGGERS = (
    'wavebuffer.streaming.manager',
    'wavebuffer.streaming.simulator',
    'wavebuffer.api.websocket',
    'wavebuffer.api.routes',
)

# Component log file -> loggers routed into it
COMPONENT_LOGS = {
    os.path.join('buffer', 'buffer.log'): BUFFER_LOGGERS,
    os.path.join('streaming', 'stream.log'): STREAM_LOGGERS,
}

# Chatty third-party loggers and the level they are held at
QUIET_LOGGERS = {
    'websockets': logging.WARNING,
    'uvicorn': logging.INFO,
    'uvicorn.access': logging.WARNING,
}


def resolve_log_dir(log_dir=None):
    """Absolute log directory, defaulting to LOG_DIR."""
    return os.path.abspath(log_dir or LOG_DIR)


def _file_handler(log_dir, filename, level):
    path = os.path.join(log_dir, filename)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding='utf-8',
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
    return handler


def _console_handler(level):
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    return handler


def _detach(target, file_only=False):
    for handler in list(target.handlers):
        if file_only and not isinstance(handler, RotatingFileHandler):
            continue
        target.removeHandler(handler)
        handler.close()


def setup_logging(console_level=logging.INFO, file_level=logging.DEBUG, log_dir=None):
    """
    Configure application-wide logging. Safe to call again; previous
    handlers are closed and replaced.

    Args:
        console_level: Level for stdout output
        file_level: Level for debug.log
        log_dir: Log directory (defaults to LOG_DIR)

    Returns:
        str: absolute log directory in use
    """
    log_dir = resolve_log_dir(log_dir)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    _detach(root)
    root.addHandler(_console_handler(console_level))
    for filename, level in (('app.log', logging.INFO),
                            ('error.log', logging.ERROR),
                            ('debug.log', file_level)):
        root.addHandler(_file_handler(log_dir, filename, level))

    for filename, names in COMPONENT_LOGS.items():
        handler = _file_handler(log_dir, filename, logging.DEBUG)
        for name in names:
            component = logging.getLogger(name)
            _detach(component, file_only=True)
            component.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logger = logging.getLogger(__name__)
    logger.info("Logging to %s (console %s, files %s)",
                log_dir,
                logging.getLevelName(console_level),
                logging.getLevelName(file_level))
    return log_dir


def get_log_files(log_dir=None):
    """
    List log files under the log directory.

    Returns:
        dict: relative path -> {'path', 'size', 'size_human'}
    """
    log_dir = resolve_log_dir(log_dir)
    log_files = {}
    for root, _dirs, files in os.walk(log_dir):
        for name in sorted(files):
            if not name.endswith('.log'):
                continue
            path = os.path.join(root, name)
            size = os.path.getsize(path)
            log_files[os.path.relpath(path, log_dir)] = {
                'path': path,
                'size': size,
                'size_human': format_size(size),
            }
    return log_files


def format_size(size_bytes):
    """Format byte size to human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"
