"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

One JSON object per log line, keyed by a LogEvent so aggregators can filter
on stable event names instead of message text.

Design:
- Built on the standard logging module (handlers, levels, caplog all work)
- bind() returns a child logger that stamps extra context on every entry,
  e.g. the service_id of the territory service emitting it
- Entry-level metadata wins over bound context on key collisions

Example:
    >>> logger = create_logger("lifecycle").bind(service_id="pricing_01")
    >>> logger.info(
    ...     event=LogEvent.LAYER_TRANSITION,
    ...     message="Layer 2 drawing",
    ...     metadata={'layer_id': 2, 'operation': 'start_drawing'}
    ... )

Output:
    {"timestamp": "2026-10-19T15:30:45.123456+00:00", "level": "INFO",
     "component": "lifecycle", "event": "layer.transition.applied",
     "message": "Layer 2 drawing",
     "metadata": {"service_id": "pricing_01", "layer_id": 2, "operation": "start_drawing"}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from .events import LogEvent


class StructuredLogger:
    """
    JSON logger for one component.

    Attributes:
        component: Component name (e.g., "lifecycle", "query")
        logger: Underlying stdlib logger (territory.<component>)
        context: Fields merged into every entry's metadata
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.component = component
        self.logger_name = logger_name or f"territory.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)
        self.context = dict(context or {})

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Child logger sharing the same stdlib logger, with extra context."""
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger_name,
            context={**self.context, **context},
        )

    def build_entry(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': event.value,
            'message': message,
        }

        merged = {**self.context, **(metadata or {})}
        if merged:
            entry['metadata'] = merged

        if exc_info is not None:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info)
            }
        return entry

    def _log(self, level: int, event: LogEvent, message: str,
             metadata: Optional[Dict[str, Any]] = None,
             exc_info: Optional[BaseException] = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        entry = self.build_entry(logging.getLevelName(level), event, message, metadata, exc_info)
        self.logger.log(
            level,
            json.dumps(entry, default=str),
            exc_info=exc_info if level >= logging.ERROR else None
        )

    def debug(self, event: LogEvent, message: str,
              metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str,
             metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.INFO, event, message, metadata)

    def warning(self, event: LogEvent, message: str,
                metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Example:
            >>> logger.warning(
            ...     event=LogEvent.LAYER_TRANSITION_REJECTED,
            ...     message="Cannot commit editing layer 1: layer is idle",
            ...     metadata={'layer_id': 1}
            ... )
        """
        self._log(logging.WARNING, event, message, metadata)

    def error(self, event: LogEvent, message: str,
              metadata: Optional[Dict[str, Any]] = None,
              exc_info: Optional[BaseException] = None) -> None:
        """ERROR entries carry the exception type/message and a traceback."""
        self._log(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Pass-through: StructuredLogger already renders the record as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(component: str, level: int = logging.INFO, **context: Any) -> StructuredLogger:
    """
    Example:
        >>> logger = create_logger("lifecycle", level=logging.DEBUG, service_id="pricing_01")
    """
    return StructuredLogger(component=component, level=level, context=context)
