"""Tests for the REST and WebSocket surface in wavebuffer.app."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from builders import FakeClock
from wavebuffer.app import create_app
from wavebuffer.buffer.manager import WaveformBuffer
from wavebuffer.config import Config
from wavebuffer.streaming.protocol import decode_waveform_packet


@pytest.fixture
def client(clock: FakeClock):
    app = create_app(buffer=WaveformBuffer(clock=clock))
    with TestClient(app) as test_client:
        yield test_client


def _receive_text(ws, kind: str, limit: int = 100) -> dict:
    """Next JSON text frame of *kind*, skipping binary display frames."""
    for _ in range(limit):
        message = ws.receive()
        text = message.get("text")
        if text is None:
            continue
        data = json.loads(text)
        if data.get("type") == kind:
            return data
    raise AssertionError(f"no {kind!r} frame received")


def _receive_bytes(ws, limit: int = 100) -> bytes:
    for _ in range(limit):
        message = ws.receive()
        if message.get("bytes") is not None:
            return message["bytes"]
    raise AssertionError("no binary frame received")


class TestSessionRoutes:
    def test_status_when_idle(self, client: TestClient) -> None:
        status = client.get("/api/status").json()
        assert status["recording"] is False
        assert status["buffer_points"] == 0
        assert status["zoom"] == "medium"
        assert status["clients"] == 0
        assert status["simulating"] is False

    def test_start_twice(self, client: TestClient) -> None:
        assert client.post("/api/session/start").json() == {"ok": True, "recording": True}
        assert client.post("/api/session/start").json()["ok"] is False

    def test_levels_ignored_when_idle(self, client: TestClient) -> None:
        body = client.post("/api/levels", json={"levels": [0.1, 0.2]}).json()
        assert body == {"accepted": 0, "recording": False}

    def test_stop_reports_statistics(self, client: TestClient, clock: FakeClock) -> None:
        client.post("/api/session/start")
        clock.advance(1000)
        client.post("/api/levels", json={"levels": [0.1, 0.2, 0.3]})
        body = client.post("/api/session/stop").json()
        assert body["recording"] is False
        assert body["statistics"]["total_points"] == 3

    def test_reset(self, client: TestClient) -> None:
        client.post("/api/session/start")
        client.post("/api/levels", json={"levels": [0.5] * 5})
        assert client.post("/api/session/reset").json()["ok"] is True
        assert client.get("/api/status").json()["buffer_points"] == 0

    def test_invalid_batch_is_rejected(self, client: TestClient) -> None:
        response = client.post("/api/levels", json={"levels": "loud"})
        assert response.status_code == 422


class TestDisplayRoutes:
    def test_recent_display_is_lossless(self, client: TestClient) -> None:
        client.post("/api/session/start")
        client.post("/api/levels", json={"levels": [0.1, 0.2, 0.3]})
        body = client.get("/api/display", params={"zoom": "recent"}).json()
        assert body["levels"] == [0.1, 0.2, 0.3]
        assert body["duration_minutes"] == 1
        assert body["max_points"] == 60
        assert body["downsampled"] is False
        assert body["source_points"] == 3

    def test_display_budget_override(self, client: TestClient) -> None:
        client.post("/api/session/start")
        client.post("/api/levels", json={"levels": [0.5] * 100})
        body = client.get("/api/display", params={"zoom": "5", "max_points": 10}).json()
        assert len(body["levels"]) == 10
        assert body["duration_minutes"] == 5
        assert body["downsampled"] is True

    def test_zoom_listing(self, client: TestClient) -> None:
        body = client.get("/api/zooms").json()
        assert body["current"] == "medium"
        assert [z["name"] for z in body["zooms"]] == ["recent", "short", "medium", "full"]
        assert all(z["description"] for z in body["zooms"])

    def test_set_named_zoom(self, client: TestClient) -> None:
        assert client.post("/api/zoom", json={"zoom": "short"}).json()["zoom"] == "short"

    def test_set_numeric_zoom(self, client: TestClient) -> None:
        assert client.post("/api/zoom", json={"zoom": 3}).json()["zoom"] == "custom"

    def test_statistics_defaults(self, client: TestClient) -> None:
        stats = client.get("/api/statistics").json()
        assert stats["total_points"] == 0
        assert stats["compression_ratio"] == 1.0


class TestConfigRoutes:
    def test_get_config(self, client: TestClient) -> None:
        cfg = client.get("/api/config").json()
        assert cfg["max_total_points"] == 400
        assert [b["method"] for b in cfg["resolution_levels"]] == ["rms", "peak", "rms", "max"]

    def test_patch_config(self, client: TestClient) -> None:
        cfg = client.patch("/api/config", json={"max_total_points": 50, "bogus": 1}).json()
        assert cfg["max_total_points"] == 50
        assert client.get("/api/status").json()["max_total_points"] == 50

    def test_patch_config_converts_numeric_strings(self, client: TestClient) -> None:
        cfg = client.patch("/api/config", json={"max_total_points": "120"}).json()
        assert cfg["max_total_points"] == 120
        client.post("/api/session/start")
        assert client.post("/api/levels", json={"levels": [0.2] * 130}).json()["accepted"] == 130
        assert client.get("/api/status").json()["buffer_points"] == 120

    def test_patch_config_rejects_bad_values(self, client: TestClient) -> None:
        response = client.patch("/api/config", json={"peak_threshold": "abc"})
        assert response.status_code == 200
        assert response.json()["peak_threshold"] == 0.15


class TestLogRoutes:
    def test_lists_log_directory(self, clock: FakeClock, tmp_path) -> None:
        (tmp_path / "app.log").write_text("hello\n")
        app = create_app(Config(log_dir=str(tmp_path)), buffer=WaveformBuffer(clock=clock))
        with TestClient(app) as client:
            body = client.get("/api/logs").json()
        assert body["log_dir"] == str(tmp_path)
        assert body["files"]["app.log"]["size"] == 6


class TestShutdown:
    def test_simulator_stops_with_the_app(self, clock: FakeClock) -> None:
        app = create_app(Config(simulate=True), buffer=WaveformBuffer(clock=clock))
        with TestClient(app) as client:
            client.post("/api/session/start")
            assert client.get("/api/status").json()["simulating"] is True
        assert app.state.stream_manager.get_status()["simulating"] is False


class TestWebSocket:
    def test_initial_status(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            status = _receive_text(ws, "status")
            assert status["data"]["recording"] is False
            assert status["data"]["clients"] == 1

    def test_commands(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            _receive_text(ws, "status")

            ws.send_json({"cmd": "start"})
            assert _receive_text(ws, "status")["data"]["ok"] is True

            ws.send_json({"cmd": "level", "values": [0.2, 0.4]})
            ws.send_json({"cmd": "level", "value": 0.6})
            ws.send_json({"cmd": "get_display", "zoom": "recent"})
            assert _receive_text(ws, "display")["data"] == [0.2, 0.4, 0.6]

            ws.send_json({"cmd": "set_zoom", "value": "full"})
            assert _receive_text(ws, "status")["data"]["zoom"] == "full"

            ws.send_json({"cmd": "get_statistics"})
            assert "compression_ratio" in _receive_text(ws, "statistics")["data"]

            ws.send_json({"cmd": "update_config", "params": {"recent_data_points": 30}})
            cfg = _receive_text(ws, "status")["data"]["config"]
            assert cfg["recent_data_points"] == 30

    def test_display_frames_are_binary(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"cmd": "start"})
            ws.send_json({"cmd": "level", "values": [0.3, 0.5]})
            ws.send_json({"cmd": "get_status"})
            _receive_text(ws, "status")
            frame = decode_waveform_packet(_receive_bytes(ws))
            assert frame.duration_minutes == 20
            assert frame.max_points == 300

    def test_bad_messages(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            _receive_text(ws, "status")
            ws.send_text("not json")
            assert _receive_text(ws, "error")["message"] == "Invalid JSON"
            ws.send_json({"cmd": "dance"})
            assert "Unknown command" in _receive_text(ws, "error")["message"]
            ws.send_json([1, 2])
            assert _receive_text(ws, "error")["message"] == "Expected a JSON object"

    def test_bad_fields_keep_the_connection_open(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            _receive_text(ws, "status")
            ws.send_json({"cmd": "start"})
            _receive_text(ws, "status")

            ws.send_json({"cmd": "level", "values": 5})
            assert "Invalid level command" in _receive_text(ws, "error")["message"]

            ws.send_json({"cmd": "update_config", "params": 7})
            assert "Invalid update_config command" in _receive_text(ws, "error")["message"]

            ws.send_json({"cmd": "level", "values": [0.4, 0.6]})
            ws.send_json({"cmd": "get_display", "zoom": "recent", "max_points": "abc"})
            assert _receive_text(ws, "display")["data"] == [0.4, 0.6]
