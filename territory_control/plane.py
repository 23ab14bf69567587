"""
MQTTControlPlane - command intake for one territory service

Bounded Context: MQTT connection management + command reception

Commands arrive as JSON objects on territory/control/{service_id}/commands:

    {"command": "classify", "lat": 51.505, "lng": -0.09, "request_id": "42"}

Every message is answered on the status topic (QoS 1, retained):

    {"status": "ok", "command": "classify", "result": {...}, "request_id": "42", ...}
    {"status": "error", "command": "classify", "error": "...", ...}

Threading:
  - paho network loop runs in its own thread (loop_start/loop_stop)
  - Command handlers run in that thread and must not block for long
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional, Tuple

import paho.mqtt.client as mqtt

from .registry import CommandRegistry, CommandNotAvailableError

logger = logging.getLogger(__name__)


class CommandPayloadError(ValueError):
    """Command message could not be turned into (command, data)."""


def decode_command(payload: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode a raw MQTT payload into a lowercase command name and its data.

    Raises:
        CommandPayloadError: Not UTF-8 JSON, not an object, or no command field
    """
    try:
        data = json.loads(payload.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CommandPayloadError(f"Invalid command payload: {e}")

    if not isinstance(data, dict):
        raise CommandPayloadError("Command payload must be a JSON object")

    command = str(data.get('command', '')).strip().lower()
    if not command:
        raise CommandPayloadError("Missing 'command' field")
    return command, data


class MQTTControlPlane:
    """
    Receives layer commands and answers on the status topic.

    Handlers are registered on command_registry by TerritoryService; the
    plane only decodes, dispatches and replies.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="territory/control/pricing_01/commands",
            status_topic="territory/control/pricing_01/status",
            client_id="territory_pricing_01"
        )
        control_plane.command_registry.register(
            'status', service.handle_status, "Report status")
        control_plane.connect(timeout=5.0)
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        self._connected = Event()
        self._running = False
        self.command_registry = CommandRegistry()

    # ===== Connection =====

    def connect(self, timeout: float = 5.0) -> bool:
        """Connect and wait for the subscription; False on failure or timeout."""
        logger.info(f"🔌 Connecting control plane to {self.broker_host}:{self.broker_port}")
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except OSError as e:
            logger.error(f"❌ Control plane cannot reach broker: {e}")
            return False

        self.client.loop_start()
        self._running = True
        if not self._connected.wait(timeout=timeout):
            logger.error(f"❌ Control plane not connected after {timeout}s")
            return False
        return True

    def disconnect(self) -> None:
        """Announce "disconnected" and close. No-op when not running."""
        if not self._running:
            return
        self.publish_status("disconnected")
        self.client.loop_stop()
        self.client.disconnect()
        self._running = False
        self._connected.clear()
        logger.info("✅ Control plane disconnected")

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ===== Status =====

    def publish_status(self, status: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Publish {status, timestamp, client_id, **data} to the status topic."""
        message = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
            **(data or {}),
        }
        try:
            payload = json.dumps(message, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Status '{status}' not serializable: {e}")
            return
        self.client.publish(self.status_topic, payload, qos=1, retain=True)
        logger.debug(f"📤 Status: {status}")

    # ===== MQTT callbacks (network thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"❌ Broker refused control plane (rc={reason_code})")
            self._connected.clear()
            return

        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Listening on {self.command_topic}")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.warning(f"⚠️ Control plane dropped (rc={reason_code})")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        """Dispatch one command; every outcome is reported on the status topic."""
        try:
            command, data = decode_command(msg.payload)
        except CommandPayloadError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("error", {"error": str(e)})
            return

        reply: Dict[str, Any] = {"command": command}
        if "request_id" in data:
            reply["request_id"] = data["request_id"]

        logger.info(f"🎯 {command}")
        try:
            result = self.command_registry.execute(command, data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            reply["error"] = str(e)
            reply["available_commands"] = sorted(self.command_registry.available_commands)
            self.publish_status("error", reply)
            return
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"⚠️ {command} rejected: {e}")
            reply["error"] = str(e)
            self.publish_status("error", reply)
            return
        except Exception as e:
            # Network thread boundary: an unexpected handler bug must not stop the loop
            logger.error(f"❌ {command} failed: {e}", exc_info=True)
            reply["error"] = f"Internal error: {e}"
            self.publish_status("error", reply)
            return

        reply["result"] = result
        self.publish_status("ok", reply)
