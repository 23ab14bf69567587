"""
Layer Snapshot Publisher
========================

Bounded Context: Registry state distribution

Publishes the full layer registry after every accepted mutation, retained,
so a map UI joining late immediately receives the current layers.

Message Flow:
    LayerLifecycle → LayerSnapshotMessage → LayerSnapshotPublisher → MQTT Broker
"""

from typing import Dict, Any
from .base import BasePublisher
from ..schemas import LayerSnapshotMessage
from ..logging import LogEvent


class LayerSnapshotPublisher(BasePublisher):
    """
    Publisher for registry snapshot messages.

    Example:
        >>> publisher = LayerSnapshotPublisher(
        ...     broker_host="localhost",
        ...     topic="territory/data/layers/pricing_01",
        ...     logger=logger
        ... )
        >>> publisher.connect()
        >>> publisher.publish_snapshot(msg)
    """

    RETAIN = True
    CLIENT_ID = "territory_layers_publisher"

    def format_message(self, snapshot: LayerSnapshotMessage) -> Dict[str, Any]:
        return snapshot.to_dict()

    def publish_snapshot(self, snapshot: LayerSnapshotMessage) -> bool:
        """Publish a registry snapshot; True if the client accepted it."""
        success = self.publish(self.format_message(snapshot))

        if success:
            self.logger.info(
                event=LogEvent.LAYER_UPDATED,
                message=f"Snapshot of {len(snapshot.layers)} layers after {snapshot.operation}",
                metadata={
                    'active_layer_id': snapshot.active_layer_id,
                    'layer_ids': [layer.id for layer in snapshot.layers]
                }
            )

        return success
