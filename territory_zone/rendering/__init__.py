"""
Rendering Layer
===============

Bounded Context: Visualization of territory layers.

Responsibilities:
- Project (lat, lng) geometry onto a canvas
- Draw committed polygons, labels and the test point
- NO containment logic, NO state changes
"""

from territory_zone.rendering.visualizer import MapProjection, TerritoryVisualizer

__all__ = [
    "MapProjection",
    "TerritoryVisualizer",
]
