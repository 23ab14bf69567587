"""
Territory MQTT Schemas
=====================

Bounded Context: Data Structures

This module defines immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization, from_dict() for deserialization
- Schema versioning for evolution

Public API
----------
Common Types:
    GeoPoint: (lat, lng) wire coordinate
    Timestamp: ISO 8601 timestamp wrapper

Territory Types:
    LayerRecord, LayerSnapshotMessage
    ClassificationEntry, ClassificationMessage
"""

from .common import GeoPoint, Timestamp
from .territory import (
    SCHEMA_VERSION,
    LayerRecord,
    LayerSnapshotMessage,
    ClassificationEntry,
    ClassificationMessage,
)

__all__ = [
    # Common types
    'GeoPoint',
    'Timestamp',
    # Territory types
    'SCHEMA_VERSION',
    'LayerRecord',
    'LayerSnapshotMessage',
    'ClassificationEntry',
    'ClassificationMessage',
]
