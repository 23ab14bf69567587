import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from territory_mqtt import (
    SCHEMA_VERSION,
    ClassificationPublisher,
    LayerSnapshotPublisher,
    GeoPoint,
    LayerRecord,
    LayerSnapshotMessage,
    ClassificationMessage,
    Timestamp,
    create_logger,
)


@pytest.fixture
def snapshot():
    return LayerSnapshotMessage(
        schema_version=SCHEMA_VERSION,
        timestamp=Timestamp.now(),
        service_id="svc",
        active_layer_id=1,
        operation="create_layer",
        layers=[LayerRecord(1, "Service Area 1", "percentage", 0.0)],
    )


def make_publisher(cls, connected=True, rc=mqtt.MQTT_ERR_SUCCESS):
    publisher = cls(
        broker_host="localhost",
        topic="territory/data/test/svc",
        logger=create_logger("test_publisher"),
    )
    publisher.client = MagicMock()
    publisher.client.publish.return_value = SimpleNamespace(rc=rc)
    if connected:
        publisher._connected.set()
    return publisher


def test_snapshot_is_published_retained(snapshot):
    publisher = make_publisher(LayerSnapshotPublisher)

    assert publisher.publish_snapshot(snapshot)

    kwargs = publisher.client.publish.call_args.kwargs
    assert kwargs["topic"] == "territory/data/test/svc"
    assert kwargs["retain"] is True
    assert kwargs["qos"] == 1
    assert json.loads(kwargs["payload"]) == snapshot.to_dict()
    assert publisher.get_stats()["message_count"] == 1


def test_classification_is_not_retained():
    publisher = make_publisher(ClassificationPublisher)
    message = ClassificationMessage(
        schema_version=SCHEMA_VERSION,
        timestamp=Timestamp.now(),
        service_id="svc",
        point=GeoPoint(lat=1.0, lng=2.0),
    )

    assert publisher.publish_classification(message)
    assert publisher.client.publish.call_args.kwargs["retain"] is False


def test_publish_requires_connection(snapshot):
    publisher = make_publisher(LayerSnapshotPublisher, connected=False)

    assert publisher.publish_snapshot(snapshot) is False
    publisher.client.publish.assert_not_called()


def test_publish_failure_code(snapshot):
    publisher = make_publisher(LayerSnapshotPublisher, rc=mqtt.MQTT_ERR_NO_CONN)

    assert publisher.publish_snapshot(snapshot) is False
    assert publisher.get_stats()["message_count"] == 0


def test_unserializable_message_is_rejected():
    publisher = make_publisher(ClassificationPublisher)

    assert publisher.publish({"bad": object()}) is False
    publisher.client.publish.assert_not_called()


def test_connect_callbacks_track_state():
    publisher = make_publisher(ClassificationPublisher, connected=False)

    publisher._on_connect(publisher.client, None, {}, SimpleNamespace(is_failure=False))
    assert publisher.is_connected()

    publisher._on_disconnect(publisher.client, None, {}, "normal")
    assert not publisher.is_connected()


def test_clear_retained_sends_empty_payload():
    publisher = make_publisher(LayerSnapshotPublisher)

    assert publisher.clear_retained()

    kwargs = publisher.client.publish.call_args.kwargs
    assert kwargs["payload"] == ""
    assert kwargs["retain"] is True


def test_failures_are_counted(snapshot):
    publisher = make_publisher(LayerSnapshotPublisher, connected=False)
    publisher.publish_snapshot(snapshot)
    publisher.publish({"bad": object()})

    stats = publisher.get_stats()
    assert stats["failed_count"] == 2
    assert stats["connected"] is False


def test_default_client_ids():
    assert make_publisher(LayerSnapshotPublisher).client_id == "territory_layers_publisher"
    assert make_publisher(ClassificationPublisher).client_id == "territory_classification_publisher"
