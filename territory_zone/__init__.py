"""
Territory Zone Geometry v1.0
============================

Bounded Context: Geometry and rendering for territory layers.

Design Philosophy:
- Separation of Concerns: Geometry and Rendering separated
- Pure functions over immutable shapes
- Canonical (lat, lng) order inside; GeoJSON [lng, lat] only at the edges

Architecture:

    territory_zone/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # Coordinate, PolygonGeometry
    │   └── detector.py    # is_point_in_ring
    │
    └── rendering/         # Visualization (stateless drawing)
        └── visualizer.py  # MapProjection, TerritoryVisualizer

Usage:

    from territory_zone import Coordinate, PolygonGeometry, is_point_in_ring

    square = PolygonGeometry.from_coordinates([(0, 0), (0, 10), (10, 10), (10, 0)])
    is_point_in_ring(Coordinate(5, 5), square)    # True
    is_point_in_ring(Coordinate(20, 20), square)  # False
"""

# Geometry Layer (immutable, stateless)
from territory_zone.geometry.shapes import Coordinate, PolygonGeometry, POLYGON_KIND
from territory_zone.geometry.detector import is_point_in_ring

# Rendering Layer (stateless)
from territory_zone.rendering.visualizer import MapProjection, TerritoryVisualizer

__all__ = [
    # Geometry
    "Coordinate",
    "PolygonGeometry",
    "POLYGON_KIND",
    "is_point_in_ring",
    # Rendering
    "MapProjection",
    "TerritoryVisualizer",
]

__version__ = "1.0.0"
