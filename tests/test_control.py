"""
Control plane tests.

The paho client is replaced with a MagicMock so no broker is needed;
messages are fed straight into the MQTT callbacks.
"""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from territory_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane
from territory_control.plane import CommandPayloadError, decode_command


# ─────────────────────────────────────────────────────────────────────
# CommandRegistry
# ─────────────────────────────────────────────────────────────────────

def test_execute_returns_handler_result():
    registry = CommandRegistry()
    registry.register("status", lambda data: {"ok": True, "data": data}, "Report status")

    assert registry.execute("status", {"command": "status"}) == {
        "ok": True,
        "data": {"command": "status"},
    }


def test_execute_without_payload_passes_empty_dict():
    registry = CommandRegistry()
    handler = MagicMock(return_value=None)
    registry.register("status", handler, "Report status")

    registry.execute("status")

    handler.assert_called_once_with({})


def test_unknown_command_lists_available_commands():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Report status")
    registry.register("classify", lambda data: None, "Classify")

    with pytest.raises(CommandNotAvailableError, match="classify, status"):
        registry.execute("bogus")


def test_double_registration_is_rejected():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Report status")

    with pytest.raises(ValueError, match="already registered"):
        registry.register("status", lambda data: None, "Again")


@pytest.mark.parametrize("name", ["", "Status", "create-layer", "two words", "1st"])
def test_malformed_names_are_rejected(name):
    with pytest.raises(ValueError, match="Invalid command name"):
        CommandRegistry().register(name, lambda data: None, "x")


def test_introspection():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Report status")
    registry.register("classify", lambda data: None, "Classify a point")

    assert registry.count() == 2
    assert registry.is_available("classify")
    assert not registry.is_available("render")
    assert registry.available_commands == {"status", "classify"}
    assert list(registry.get_help()) == ["classify", "status"]


# ─────────────────────────────────────────────────────────────────────
# MQTTControlPlane
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def plane():
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="territory/control/svc/commands",
        status_topic="territory/control/svc/status",
        client_id="territory_svc",
    )
    plane.client = MagicMock()
    return plane


def message(payload):
    if not isinstance(payload, bytes):
        payload = json.dumps(payload).encode("utf-8")
    return SimpleNamespace(topic="territory/control/svc/commands", payload=payload)


def last_status(plane):
    args, kwargs = plane.client.publish.call_args
    assert args[0] == "territory/control/svc/status"
    assert kwargs == {"qos": 1, "retain": True}
    return json.loads(args[1])


def test_command_result_is_published(plane):
    plane.command_registry.register("status", lambda data: {"layers": 1}, "Report status")

    plane._on_message(plane.client, None, message({"command": "STATUS"}))

    status = last_status(plane)
    assert status["status"] == "ok"
    assert status["command"] == "status"
    assert status["result"] == {"layers": 1}
    assert status["client_id"] == "territory_svc"


def test_handler_receives_full_payload(plane):
    handler = MagicMock(return_value=None)
    plane.command_registry.register("classify", handler, "Classify")

    plane._on_message(plane.client, None, message({"command": "classify", "lat": 5, "lng": 5}))

    handler.assert_called_once_with({"command": "classify", "lat": 5, "lng": 5})


def test_unknown_command_reports_error(plane):
    plane.command_registry.register("status", lambda data: None, "Report status")

    plane._on_message(plane.client, None, message({"command": "bogus"}))

    status = last_status(plane)
    assert status["status"] == "error"
    assert status["available_commands"] == ["status"]


@pytest.mark.parametrize("raw", [b"{not json", b"\xff\xfe", b"[1, 2]", b'{"lat": 1}'])
def test_malformed_payloads_report_error(plane, raw):
    plane._on_message(plane.client, None, message(raw))

    assert last_status(plane)["status"] == "error"


def test_rejected_input_reports_error(plane):
    def handler(data):
        raise ValueError("latitude: a number is required")

    plane.command_registry.register("classify", handler, "Classify")
    plane._on_message(plane.client, None, message({"command": "classify"}))

    status = last_status(plane)
    assert status["status"] == "error"
    assert status["error"] == "latitude: a number is required"


def test_on_connect_subscribes_and_announces(plane):
    plane._on_connect(plane.client, None, {}, SimpleNamespace(is_failure=False))

    plane.client.subscribe.assert_called_once_with("territory/control/svc/commands", qos=1)
    assert last_status(plane)["status"] == "connected"
    assert plane.is_connected()


def test_on_connect_failure(plane):
    plane._on_connect(plane.client, None, {}, SimpleNamespace(is_failure=True))

    plane.client.subscribe.assert_not_called()
    assert not plane.is_connected()


def test_disconnect_only_when_running(plane):
    plane.disconnect()
    plane.client.disconnect.assert_not_called()

    plane._running = True
    plane.disconnect()
    plane.client.loop_stop.assert_called_once()
    plane.client.disconnect.assert_called_once()
    assert last_status(plane)["status"] == "disconnected"


def test_request_id_is_echoed(plane):
    plane.command_registry.register("status", lambda data: {}, "Report status")

    plane._on_message(plane.client, None, message({"command": "status", "request_id": "42"}))

    assert last_status(plane)["request_id"] == "42"


@pytest.mark.parametrize("raw, error", [
    (b"{not json", "Invalid command payload"),
    (b"[1]", "must be a JSON object"),
    (b'{"command": "  "}', "Missing 'command'"),
])
def test_decode_command_errors(raw, error):
    with pytest.raises(CommandPayloadError, match=error):
        decode_command(raw)


def test_decode_command_normalizes_name():
    assert decode_command(b'{"command": " Classify ", "lat": 1}') == (
        "classify", {"command": " Classify ", "lat": 1}
    )


def test_unexpected_handler_failure_is_contained(plane):
    def handler(data):
        raise RuntimeError("disk full")

    plane.command_registry.register("render", handler, "Render")
    plane._on_message(plane.client, None, message({"command": "render"}))

    status = last_status(plane)
    assert status["status"] == "error"
    assert status["error"] == "Internal error: disk full"
