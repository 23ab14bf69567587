"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Value types shared by layer snapshot and classification messages. All are
frozen dataclasses that validate on construction and serialize with
to_dict().

- GeoPoint: (lat, lng) coordinate as carried on the wire
- Timestamp: UTC instant, carried as an ISO 8601 string
"""

import math
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict


@dataclass(frozen=True)
class GeoPoint:
    """
    Immutable wire representation of a coordinate.

    Attributes:
        lat: Latitude
        lng: Longitude

    Invariants:
        - lat and lng are finite

    Example:
        >>> GeoPoint(lat=51.5, lng=-0.09).to_dict()
        {'lat': 51.5, 'lng': -0.09}
    """
    lat: float
    lng: float

    def __post_init__(self):
        """Validate invariants."""
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"GeoPoint must be finite, got ({self.lat}, {self.lng})")

    def to_dict(self) -> Dict[str, float]:
        """Serialize to JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> 'GeoPoint':
        """Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            return cls(lat=float(data['lat']), lng=float(data['lng']))
        except KeyError as e:
            raise ValueError(f"Missing required GeoPoint field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid GeoPoint data: {e}")


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper.

    Attributes:
        value: ISO 8601 formatted timestamp string
    """
    value: str

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current time (UTC)."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        """Create timestamp from datetime object."""
        return cls(value=dt.isoformat())

    def to_datetime(self) -> datetime:
        """Parse to datetime object.

        Raises:
            ValueError: If timestamp format invalid
        """
        try:
            return datetime.fromisoformat(self.value)
        except ValueError as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value}") from e

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value
