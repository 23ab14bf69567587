"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

One paho client per outbound topic. Subclasses turn a typed message into a
dict (format_message); this class owns the connection, JSON encoding,
retain policy and counters.

Design:
- RETAIN class attribute: snapshot-style topics keep their last message
  on the broker, event-style topics do not
- publish() never raises for broker trouble; it logs and returns False
- clear_retained() removes a retained message (empty payload)

Architecture:
    BasePublisher (abstract)
        ↓
    LayerSnapshotPublisher (RETAIN = True), ClassificationPublisher
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import paho.mqtt.client as mqtt

from ..logging import StructuredLogger, LogEvent


class BasePublisher(ABC):
    """
    Abstract MQTT publisher bound to a single topic.

    Thread Safety:
        paho runs its network loop in a background thread (loop_start);
        counters are guarded by a lock.
    """

    RETAIN = False
    CLIENT_ID = "territory_publisher"

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        """
        Args:
            broker_host: MQTT broker hostname
            broker_port: MQTT broker port
            topic: Topic every message goes to
            client_id: Unique client identifier (default: CLIENT_ID)
            logger: Structured logger for observability
            username: MQTT username (optional)
            password: MQTT password (optional)
            qos: 0 (at-most-once) or 1 (at-least-once)
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id or self.CLIENT_ID
        self.logger = logger
        self.qos = qos

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._stats_lock = threading.Lock()
        self._published = 0
        self._failed = 0

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    # ----- paho callbacks (network thread) -----

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection (rc={reason_code})",
                metadata={'broker': self.broker, 'client_id': self.client_id}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message=f"Publisher ready on {self.topic}",
            metadata={'broker': self.broker, 'client_id': self.client_id}
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Publisher lost broker connection",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    # ----- Connection lifecycle -----

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Open the connection and start the network loop.

        Returns:
            True once the broker acknowledged the connection within timeout
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Could not reach broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

        self.client.loop_start()
        if not self._connected.wait(timeout=timeout):
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"No CONNACK within {timeout}s",
                metadata={'broker': self.broker}
            )
            return False
        return True

    def disconnect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self._connected.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Publisher closed",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ----- Publishing -----

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Convert a typed message into a JSON-compatible dict."""
        raise NotImplementedError("Subclasses must implement format_message()")

    def _count(self, ok: bool) -> None:
        with self._stats_lock:
            if ok:
                self._published += 1
            else:
                self._failed += 1

    def _send(self, payload: str, retain: bool) -> bool:
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Not connected, message dropped",
                metadata={'topic': self.topic}
            )
            self._count(False)
            return False

        try:
            info = self.client.publish(
                topic=self.topic,
                payload=payload,
                qos=self.qos,
                retain=retain
            )
        except ValueError as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Publish rejected by client",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            self._count(False)
            return False

        ok = info.rc == mqtt.MQTT_ERR_SUCCESS
        self._count(ok)
        if ok:
            self.logger.info(
                event=LogEvent.MQTT_PUBLISH_SUCCESS,
                message=f"Published to {self.topic}",
                metadata={'qos': self.qos, 'retain': retain, 'bytes': len(payload)}
            )
        else:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={info.rc})",
                metadata={'topic': self.topic}
            )
        return ok

    def publish(self, message_data: Dict[str, Any], retain: Optional[bool] = None) -> bool:
        """
        Encode and publish one message.

        Args:
            message_data: Output of format_message()
            retain: Override the class RETAIN policy

        Returns:
            True if handed to the client successfully
        """
        try:
            payload = json.dumps(message_data)
        except (TypeError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Message is not JSON-serializable",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            self._count(False)
            return False

        return self._send(payload, self.RETAIN if retain is None else retain)

    def clear_retained(self) -> bool:
        """Remove the broker's retained message on this topic."""
        return self._send("", retain=True)

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'message_count': self._published,
                'failed_count': self._failed,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': self.broker,
            }
