"""
MQTT Publishers
==============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- LayerSnapshotPublisher: Publishes retained registry snapshots
- ClassificationPublisher: Publishes containment query results
- Separation of concerns: Publishers format, broker publishes
"""

from .base import BasePublisher
from .layers import LayerSnapshotPublisher
from .classification import ClassificationPublisher

__all__ = [
    'BasePublisher',
    'LayerSnapshotPublisher',
    'ClassificationPublisher',
]
