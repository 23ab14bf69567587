"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Every structured log entry carries one of these names in its "event" field.

Event Naming Convention:
    <component>.<category>.<action>

    component: layer, query, mqtt, error
    category: transition, classified, publish
    action: applied, rejected, success, failed

Rejected transitions per operation, for instance:
    fields @timestamp, event, message, metadata.layer_id
    | filter event = "layer.transition.rejected"
    | stats count() by metadata.operation
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Event names emitted by the territory service.

    Categories:
    - layer.*: Layer lifecycle and field updates
    - query.*: Containment queries
    - mqtt.*: MQTT broker interactions
    - error.*: Error conditions
    """

    # ========== Layer Events ==========
    LAYER_CREATED = "layer.created"
    """New territory layer allocated."""

    LAYER_DELETED = "layer.deleted"
    """Territory layer removed from the registry."""

    LAYER_TRANSITION = "layer.transition.applied"
    """Lifecycle transition applied (draw/edit/commit/cancel/clear)."""

    LAYER_TRANSITION_REJECTED = "layer.transition.rejected"
    """Lifecycle transition rejected (wrong state or unknown layer)."""

    LAYER_UPDATED = "layer.updated"
    """Layer name or adder updated."""

    # ========== Query Events ==========
    QUERY_CLASSIFIED = "query.classified"
    """Coordinate classified against committed layers."""

    QUERY_REJECTED = "query.rejected"
    """Containment query input failed validation."""

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
LAYER_EVENTS = {
    LogEvent.LAYER_CREATED,
    LogEvent.LAYER_DELETED,
    LogEvent.LAYER_TRANSITION,
    LogEvent.LAYER_TRANSITION_REJECTED,
    LogEvent.LAYER_UPDATED,
}

QUERY_EVENTS = {
    LogEvent.QUERY_CLASSIFIED,
    LogEvent.QUERY_REJECTED,
}

MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

ERROR_EVENTS = {
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
