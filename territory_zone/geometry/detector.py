"""
Containment Detector Module
===========================

Stateless point-in-polygon logic - applies ring geometry to coordinates.

Design:
- Pure functions (no state)
- Planar crossing-number (ray casting) on raw coordinate pairs
- Horizontal axis = longitude, vertical axis = latitude
- Degenerate input evaluates False, never raises
"""

import numpy as np
from typing import Optional, Sequence, Union

from territory_zone.geometry.shapes import Coordinate, PolygonGeometry


PointLike = Union[Coordinate, Sequence[float]]
RingLike = Union[PolygonGeometry, np.ndarray, Sequence[Sequence[float]]]


def _as_point(point: PointLike) -> Optional[tuple]:
    if point is None:
        return None
    if isinstance(point, Coordinate):
        return point.lat, point.lng
    try:
        lat, lng = float(point[0]), float(point[1])
    except (TypeError, ValueError, IndexError):
        return None
    return lat, lng


def _as_vertices(ring: RingLike) -> Optional[np.ndarray]:
    if ring is None:
        return None
    if isinstance(ring, PolygonGeometry):
        return ring.vertices
    try:
        vertices = np.asarray(
            [c.as_tuple() if isinstance(c, Coordinate) else c for c in ring],
            dtype=float,
        )
    except (TypeError, ValueError):
        return None
    if vertices.ndim != 2 or vertices.shape[1] != 2:
        return None
    return vertices


def is_point_in_ring(point: PointLike, ring: RingLike) -> bool:
    """
    Crossing-number test of a (lat, lng) point against a closed ring.

    For every edge (i, j = i - 1, wrapping) whose latitude span strictly
    straddles the point, the ray cast towards +longitude crosses the edge
    when the point lies left of the edge's interpolated longitude. An odd
    number of crossings means inside.

    Args:
        point: Coordinate or (lat, lng) pair
        ring: PolygonGeometry or sequence of (lat, lng) vertices

    Returns:
        True if the point is inside. Rings with fewer than 3 vertices and
        None inputs are False. Points exactly on an edge or vertex have no
        guaranteed classification.
    """
    p = _as_point(point)
    vertices = _as_vertices(ring)
    if p is None or vertices is None or len(vertices) < 3:
        return False

    py, px = p
    y = vertices[:, 0]
    x = vertices[:, 1]
    # Previous vertex of each edge (j = i - 1, wrapping to the last vertex)
    yj = np.roll(y, 1)
    xj = np.roll(x, 1)

    straddles = (y > py) != (yj > py)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_cross = (xj - x) * (py - y) / (yj - y) + x
        crossings = straddles & (px < x_cross)

    return bool(np.count_nonzero(crossings) % 2)

