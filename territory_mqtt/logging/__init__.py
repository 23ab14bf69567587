"""
Structured Logging for the Territory Engine
===========================================

Bounded Context: Observability

This module provides JSON-structured logging for lifecycle transitions,
containment queries and MQTT publishing.

Design:
- JSON output (parseable by ELK, CloudWatch, Loki)
- Typed events (enums prevent typos)
- Contextual metadata (layer_id, operation, etc.)
- Thread-safe

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from territory_mqtt.logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="query")
    >>> logger.info(
    ...     event=LogEvent.QUERY_CLASSIFIED,
    ...     message="Point matched 2 layers",
    ...     metadata={'lat': 5.0, 'lng': 5.0, 'matches': [1, 2]}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, JSONFormatter, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'JSONFormatter',
    'create_logger',
]
