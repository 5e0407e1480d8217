"""Tests for wavebuffer.logging_config."""

from __future__ import annotations

import logging
import os

import pytest

from wavebuffer.logging_config import (
    BUFFER_LOGGERS,
    STREAM_LOGGERS,
    format_size,
    get_log_files,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    for name in BUFFER_LOGGERS + STREAM_LOGGERS:
        component = logging.getLogger(name)
        for handler in list(component.handlers):
            component.removeHandler(handler)
            handler.close()


class TestSetupLogging:
    def test_creates_log_tree(self, tmp_path, restore_logging) -> None:
        setup_logging(log_dir=str(tmp_path))
        logging.getLogger("wavebuffer.buffer.manager").info("hello buffer")
        for handler in logging.getLogger().handlers:
            handler.flush()

        files = get_log_files(str(tmp_path))
        assert {"app.log", "error.log", "debug.log"} <= set(files)
        assert "hello buffer" in (tmp_path / "buffer" / "buffer.log").read_text()
        assert (tmp_path / "streaming").is_dir()

    def test_repeat_setup_does_not_duplicate_handlers(self, tmp_path, restore_logging) -> None:
        setup_logging(log_dir=str(tmp_path))
        setup_logging(log_dir=str(tmp_path))
        assert len(logging.getLogger().handlers) == 4
        assert len(logging.getLogger(BUFFER_LOGGERS[0]).handlers) == 1

    def test_returns_resolved_directory(self, tmp_path, restore_logging) -> None:
        assert setup_logging(log_dir=str(tmp_path)) == str(tmp_path)

    def test_component_file_listing(self, tmp_path, restore_logging) -> None:
        setup_logging(log_dir=str(tmp_path))
        logging.getLogger("wavebuffer.api.routes").warning("route trouble")
        files = get_log_files(str(tmp_path))
        entry = files[os.path.join("streaming", "stream.log")]
        assert entry["size"] > 0
        assert entry["size_human"].endswith("B")


class TestFormatSize:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [(0, "0.0 B"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5.0 MB")],
    )
    def test_format(self, size: int, expected: str) -> None:
        assert format_size(size) == expected
