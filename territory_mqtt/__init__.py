"""
Territory MQTT Communication Package
====================================

Bounded Context: Communication between the territory engine and its map UI

This package provides MQTT-based messaging so the rendering surface and the
results panel stay decoupled from the engine.

Architecture:
- schemas/: Immutable data structures with type safety
- publishers/: Message producers (LayerSnapshotPublisher, ClassificationPublisher)
- logging/: Structured JSON logging for observability

Public API
----------
Schemas:
    GeoPoint, Timestamp
    LayerRecord, LayerSnapshotMessage
    ClassificationEntry, ClassificationMessage

Publishers:
    LayerSnapshotPublisher, ClassificationPublisher
    BasePublisher (for custom publishers)

Logging:
    LogEvent, StructuredLogger, create_logger

Example:
    >>> from territory_mqtt import LayerSnapshotPublisher, create_logger
    >>>
    >>> logger = create_logger("publisher")
    >>> publisher = LayerSnapshotPublisher(
    ...     broker_host="localhost",
    ...     topic="territory/data/layers/pricing_01",
    ...     logger=logger
    ... )
    >>> publisher.connect()
    >>> publisher.publish_snapshot(snapshot_message)
"""

# Version
__version__ = "1.0.0"

# Schemas
from .schemas import (
    GeoPoint,
    Timestamp,
    SCHEMA_VERSION,
    LayerRecord,
    LayerSnapshotMessage,
    ClassificationEntry,
    ClassificationMessage,
)

# Publishers
from .publishers import (
    BasePublisher,
    LayerSnapshotPublisher,
    ClassificationPublisher,
)

# Logging
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'GeoPoint',
    'Timestamp',
    'SCHEMA_VERSION',
    'LayerRecord',
    'LayerSnapshotMessage',
    'ClassificationEntry',
    'ClassificationMessage',
    # Publishers
    'BasePublisher',
    'LayerSnapshotPublisher',
    'ClassificationPublisher',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
