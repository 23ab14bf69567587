"""
Geometry Layer
==============

Bounded Context: Pure geometric shapes and spatial queries.

Responsibilities:
- Shape representation (immutable)
- Point-in-polygon tests
- NO state, NO layers, NO visualization

Design Philosophy:
- Pure functions where possible
- Immutable data structures
- Fail-fast validation on construction, total functions on queries
"""

from territory_zone.geometry.shapes import Coordinate, PolygonGeometry, POLYGON_KIND
from territory_zone.geometry.detector import is_point_in_ring

__all__ = [
    "Coordinate",
    "PolygonGeometry",
    "POLYGON_KIND",
    "is_point_in_ring",
]
