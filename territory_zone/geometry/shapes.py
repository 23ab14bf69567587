"""
Geometric Shapes Module
========================

Pure geometric representations - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Canonical axis order: (lat, lng) everywhere inside the engine
- Conversion to/from GeoJSON ([lng, lat]) happens only at the boundary
- Thread-safe by design (immutability)
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple


POLYGON_KIND = "Polygon"


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable (latitude, longitude) pair.

    No range validation is performed; callers are responsible for sane
    values. Only finiteness is enforced.
    """

    lat: float
    lng: float

    def __post_init__(self):
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"Coordinate must be finite, got ({self.lat}, {self.lng})")

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_list(self) -> List[float]:
        return [self.lat, self.lng]


@dataclass(frozen=True, eq=False)
class PolygonGeometry:
    """
    Immutable single-ring polygon geometry.

    Design:
    - Nx2 read-only array of (lat, lng) vertices
    - Ring is implicitly closed (last vertex connects to the first)
    - Equality is exact vertex equality (bit-for-bit)

    Attributes:
        vertices: Nx2 array of (lat, lng) polygon vertices, N >= 3
    """

    vertices: np.ndarray

    def __post_init__(self):
        """Validate vertices and freeze the array."""
        if not isinstance(self.vertices, np.ndarray):
            raise TypeError(f"vertices must be np.ndarray, got {type(self.vertices)}")
        if self.vertices.ndim != 2 or self.vertices.shape[1] != 2:
            raise ValueError(f"vertices must be Nx2 array, got shape {self.vertices.shape}")
        if len(self.vertices) < 3:
            raise ValueError(f"Polygon must have at least 3 vertices, got {len(self.vertices)}")
        if not np.all(np.isfinite(self.vertices)):
            raise ValueError("Polygon vertices must be finite numbers")

        # Own a private float copy so callers can't mutate it afterwards
        vertices = np.array(self.vertices, dtype=float)
        vertices.flags.writeable = False
        object.__setattr__(self, "vertices", vertices)

    @property
    def kind(self) -> str:
        return POLYGON_KIND

    @classmethod
    def from_coordinates(cls, coordinates: Iterable[Sequence[float]]) -> "PolygonGeometry":
        """Build from an iterable of (lat, lng) pairs or Coordinate objects."""
        points = [
            c.as_tuple() if isinstance(c, Coordinate) else (float(c[0]), float(c[1]))
            for c in coordinates
        ]
        return cls(vertices=np.array(points, dtype=float).reshape(-1, 2))

    @classmethod
    def from_geojson_ring(cls, ring: Iterable[Sequence[float]]) -> "PolygonGeometry":
        """
        Build from a GeoJSON linear ring ([lng, lat] positions).

        A repeated closing vertex is dropped, since the ring is implicitly
        closed.
        """
        points = [(float(p[1]), float(p[0])) for p in ring]
        if len(points) > 3 and points[0] == points[-1]:
            points = points[:-1]
        return cls(vertices=np.array(points, dtype=float).reshape(-1, 2))

    def coordinates(self) -> List[Coordinate]:
        return [Coordinate(lat=lat, lng=lng) for lat, lng in self.vertices.tolist()]

    def to_ring(self) -> List[List[float]]:
        """Ring as [lat, lng] lists (canonical order)."""
        return self.vertices.tolist()

    def to_geojson(self) -> dict:
        """GeoJSON Polygon geometry: [lng, lat] positions, closed ring."""
        ring = [[lng, lat] for lat, lng in self.vertices.tolist()]
        ring.append(list(ring[0]))
        return {"type": POLYGON_KIND, "coordinates": [ring]}

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_lat, min_lng, max_lat, max_lng)."""
        min_lat, min_lng = self.vertices.min(axis=0)
        max_lat, max_lng = self.vertices.max(axis=0)
        return float(min_lat), float(min_lng), float(max_lat), float(max_lng)

    def __len__(self) -> int:
        return len(self.vertices)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PolygonGeometry):
            return NotImplemented
        return np.array_equal(self.vertices, other.vertices)

    def __hash__(self) -> int:
        return hash(self.vertices.tobytes())

    def __repr__(self) -> str:
        return f"PolygonGeometry(vertices={self.vertices.tolist()})"
