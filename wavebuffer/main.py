#!/usr/bin/env python3
"""
Waveform Buffer - Main Entry Point

FastAPI + uvicorn, producer threads bridged into the asyncio loop.
"""

import argparse
import logging

from wavebuffer.config import BufferConfig, Config
from wavebuffer.logging_config import setup_logging


def build_parser():
    parser = argparse.ArgumentParser(description='Adaptive waveform buffer server')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--port', '-p', type=int, default=5000,
                        help='Server port (default: 5000)')
    parser.add_argument('--host', type=str, default='0.0.0.0',
                        help='Server host (default: 0.0.0.0)')
    parser.add_argument('--max-points', type=int, default=400,
                        help='Buffer point cap (default: 400)')
    parser.add_argument('--recent-minutes', type=float, default=5.0,
                        help='Full-resolution window in minutes (default: 5)')
    parser.add_argument('--recent-points', type=int, default=150,
                        help='Points kept from the recent window (default: 150)')
    parser.add_argument('--peak-threshold', type=float, default=0.15,
                        help='Minimum level for peak tagging (default: 0.15)')
    parser.add_argument('--simulate', action='store_true',
                        help='Feed synthetic levels instead of waiting for a producer')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Log directory (default: logs/ next to the package)')
    return parser


def build_config(args):
    return Config(
        debug=args.debug,
        host=args.host,
        port=args.port,
        simulate=args.simulate,
        log_dir=args.log_dir,
        buffer=BufferConfig(
            max_total_points=args.max_points,
            recent_data_minutes=args.recent_minutes,
            recent_data_points=args.recent_points,
            peak_threshold=args.peak_threshold,
        ),
    )


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = build_config(args)

    # Setup logging
    console_level = logging.DEBUG if config.debug else logging.INFO
    setup_logging(console_level=console_level, log_dir=config.log_dir)

    logger = logging.getLogger(__name__)

    logger.info("Starting Waveform Buffer")
    logger.info("  Host: %s:%d", config.host, config.port)
    logger.info("  Debug: %s", config.debug)
    logger.info("  Buffer: %d points, recent %.1f min / %d points",
                config.buffer.max_total_points,
                config.buffer.recent_data_minutes,
                config.buffer.recent_data_points)

    # Import uvicorn here to avoid import cost for tooling that only needs the parser
    import uvicorn

    from wavebuffer.app import create_app
    app = create_app(config)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level='info' if not config.debug else 'debug',
        ws='websockets',
        timeout_keep_alive=30,
    )


if __name__ == '__main__':
    main()
