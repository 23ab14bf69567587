"""
Classification Publisher
========================

Bounded Context: Containment query results

Publishes each containment query result for the results panel. Results are
events, not state, so they are never retained.

Message Flow:
    ContainmentQueryService → ClassificationMessage → ClassificationPublisher → MQTT
"""

from typing import Dict, Any
from .base import BasePublisher
from ..schemas import ClassificationMessage
from ..logging import LogEvent


class ClassificationPublisher(BasePublisher):
    """Publisher for containment query results."""

    CLIENT_ID = "territory_classification_publisher"

    def format_message(self, message: ClassificationMessage) -> Dict[str, Any]:
        return message.to_dict()

    def publish_classification(self, message: ClassificationMessage) -> bool:
        success = self.publish(self.format_message(message))

        if success:
            self.logger.info(
                event=LogEvent.QUERY_CLASSIFIED,
                message=f"Classification with {len(message.matches)} match(es)",
                metadata={
                    'point': message.point.to_dict(),
                    'layer_ids': [m.layer_id for m in message.matches]
                }
            )

        return success
