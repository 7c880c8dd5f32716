import json
import threading
import time

import pytest

from loopback_web import main
from loopback_web.services import LoopbackDeviceManager, LoopbackService
from loopback_web.utils import flush_flag, reply_timeout_s, response_delay_ms, settle_ms, web_port


@pytest.fixture
def client():
    main.app.config["TESTING"] = True
    with main.app.test_client() as c:
        yield c
    main.device_manager.disconnect()


def test_devices_endpoint(client):
    r = client.get("/api/devices")
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    assert [d["address"] for d in body["devices"]] == ["echo", "grbl", "tinyg", "custom"]


def test_status_disconnected(client):
    body = client.get("/api/status").get_json()
    assert body["connected"] is False
    assert body["mode"] is None
    assert body["timestamp"].endswith("Z")


def test_connect_send_disconnect_grbl(client):
    r = client.post("/api/connect", json={"uri": "loopback://grbl", "delay_ms": 0})
    body = r.get_json()
    assert r.status_code == 200
    assert body["mode"] == "grbl"
    assert body["banner"] == ["", "Grbl 1.1h ['$' for help]"]

    r = client.post("/api/send", json={"command": "$$", "settle_ms": 50})
    body = r.get_json()
    assert body["success"] is True
    assert body["lines"][0] == "$0=10"
    assert body["lines"][-1] == "ok"
    assert body["kinds"][-1] == "OK"

    status = client.get("/api/status").get_json()
    assert status["connected"] is True
    assert status["mode"] == "grbl"
    assert status["delay_ms"] == 0

    assert client.post("/api/disconnect").get_json()["connected"] is False
    assert client.get("/api/status").get_json()["connected"] is False


def test_connect_custom_mode(client):
    client.post("/api/connect", json={"uri": "loopback://custom?response=HELLO\\n", "delay_ms": 0})
    body = client.post("/api/send", json={"command": "anything", "settle_ms": 20}).get_json()
    assert body["lines"] == ["HELLO"]


def test_connect_tinyg_status(client):
    client.post("/api/connect", json={"uri": "loopback://tinyg", "delay_ms": 0})
    body = client.post("/api/send", json={"command": "?", "settle_ms": 20}).get_json()
    assert "sr" in json.loads(body["lines"][0])


def test_connect_negative_delay_clamped(client):
    client.post("/api/connect", json={"uri": "loopback://echo", "delay_ms": -50})
    assert client.get("/api/status").get_json()["delay_ms"] == 0


def test_connect_uri_without_scheme_is_echo(client):
    body = client.post("/api/connect", json={"uri": "grbl", "delay_ms": 0}).get_json()
    assert body["mode"] == "echo"
    assert body["banner"] == []


def test_connect_non_string_uri(client):
    r = client.post("/api/connect", json={"uri": 42})
    assert r.status_code == 400
    assert r.get_json()["success"] is False
    assert client.get("/api/status").get_json()["connected"] is False


def test_connect_bad_delay(client):
    r = client.post("/api/connect", json={"uri": "loopback://grbl", "delay_ms": "soon"})
    assert r.status_code == 400
    assert "delay_ms" in r.get_json()["error"]


def test_send_when_disconnected(client):
    r = client.post("/api/send", json={"command": "G0 X1"})
    assert r.status_code == 409
    assert "not connected" in r.get_json()["error"]


def test_send_requires_command(client):
    client.post("/api/connect", json={"uri": "loopback://echo"})
    r = client.post("/api/send", json={})
    assert r.status_code == 400


def test_unknown_api_route_returns_json(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.get_json()["success"] is False


def test_disconnect_is_idempotent(client):
    assert client.post("/api/disconnect").status_code == 200
    assert client.post("/api/disconnect").status_code == 200


def test_request_parameters_clamp():
    assert response_delay_ms("-4", 10) == 0
    assert response_delay_ms(None, 7) == 7
    assert response_delay_ms(250, 10) == 250
    assert reply_timeout_s("99") == 30.0
    assert reply_timeout_s(0) == 0.05
    assert settle_ms(5000) == 1000
    assert settle_ms(None) == 120
    assert web_port("0", 8080) == 1
    assert web_port(None, 8080) == 8080


@pytest.mark.parametrize("bad", ["abc", True, [1]])
def test_request_parameters_reject_non_numbers(bad):
    with pytest.raises(ValueError):
        response_delay_ms(bad, 10)


def test_flush_flag():
    assert flush_flag(None) is True
    assert flush_flag("no") is False
    assert flush_flag("yes") is True
    assert flush_flag(0) is False


def test_send_after_concurrent_disconnect():
    manager = LoopbackDeviceManager()
    manager.connect("loopback://grbl", delay_ms=0, settle_ms=20)
    service = LoopbackService(manager)
    result = {}

    def send():
        result["ok"], result["body"] = service.send_command("?", timeout=0.1)

    with manager.lock:
        sender = threading.Thread(target=send)
        sender.start()
        time.sleep(0.05)  # sender is now blocked on the lock
        manager.disconnect()
    sender.join(2.0)

    assert result["ok"] is False
    assert "not connected" in result["body"]["error"]


def test_manager_status_snapshot():
    manager = LoopbackDeviceManager()
    assert manager.status() == {"connected": False, "uri": None, "mode": None, "delay_ms": None}
    mode, banner = manager.connect("loopback://tinyg", delay_ms=5, settle_ms=50)
    try:
        assert mode.value == "tinyg"
        assert banner[0].startswith('{"r":')
        assert manager.status() == {
            "connected": True,
            "uri": "loopback://tinyg",
            "mode": "tinyg",
            "delay_ms": 5,
        }
    finally:
        manager.disconnect()
