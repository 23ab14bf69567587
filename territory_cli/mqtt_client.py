"""
MQTT client wrapper for sending commands to the territory service.

Two modes:
- send_command: fire-and-forget publish (QoS 1)
- request: publish, then wait for the service's reply on the status topic
"""

import json
import threading
import paho.mqtt.client as mqtt
from typing import Dict, Any, Optional


class MQTTCommandClient:
    """Short-lived MQTT connection used by one CLI invocation."""

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        if username and password:
            self.client.username_pw_set(username, password)

    @staticmethod
    def _encode(command: Dict[str, Any]) -> str:
        try:
            return json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

    def _open(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except OSError as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port} ({e})"
            )
        self.client.loop_start()

    def _close(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()

    def send_command(self, topic: str, command: Dict[str, Any], qos: int = 1) -> None:
        """
        Publish one command and wait until it left the client.

        Raises:
            ConnectionError: Broker unreachable
            ValueError: Command is not JSON-serializable
        """
        payload = self._encode(command)
        self._open()
        try:
            self.client.publish(topic, payload, qos=qos).wait_for_publish(timeout=5.0)
        finally:
            self._close()

    def request(
        self,
        topic: str,
        reply_topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        timeout: float = 5.0
    ) -> Optional[Dict[str, Any]]:
        """
        Publish a command and return the service's reply, or None on timeout.

        The status topic is retained, so the stored message delivered on
        subscribe is skipped; the reply is the first live message naming
        this command (or a payload-level error without a command).
        """
        payload = self._encode(command)
        name = command.get("command")
        reply: Dict[str, Any] = {}
        received = threading.Event()

        def on_message(client, userdata, msg):
            if msg.retain:
                return
            try:
                data = json.loads(msg.payload.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return
            if isinstance(data, dict) and data.get("command", name) == name:
                reply.update(data)
                received.set()

        self.client.on_message = on_message
        self._open()
        try:
            self.client.subscribe(reply_topic, qos=1)
            self.client.publish(topic, payload, qos=qos).wait_for_publish(timeout=timeout)
            received.wait(timeout=timeout)
        finally:
            self._close()

        return reply or None
