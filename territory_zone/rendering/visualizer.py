"""
Territory Visualizer Module
===========================

Pure visualization layer for territory layers.

Design:
- Stateless rendering (pure functions)
- No business logic: reads committed geometry, never mutates layers
- Configurable styles
- Uses supervision drawing utilities

Dependencies:
- supervision (draw utilities, Color, ColorPalette, Point)
- numpy (arrays)
"""

import numpy as np
import supervision as sv
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from territory_zone.geometry.shapes import Coordinate, PolygonGeometry


@dataclass(frozen=True)
class MapProjection:
    """
    Planar projection from (lat, lng) to canvas pixels.

    Longitude grows to the right, latitude grows upwards (pixel rows are
    flipped). Aspect ratio is preserved.
    """

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float
    width: int
    height: int
    margin: int = 20

    @classmethod
    def fit(
        cls,
        geometries: Iterable[PolygonGeometry],
        width: int,
        height: int,
        margin: int = 20,
        extra_points: Iterable[Coordinate] = (),
    ) -> "MapProjection":
        """Fit a projection around every vertex (and optional extra points)."""
        stacks = [g.vertices for g in geometries]
        stacks += [np.array([[p.lat, p.lng]]) for p in extra_points]
        if not stacks:
            return cls(-1.0, -1.0, 1.0, 1.0, width, height, margin)

        vertices = np.vstack(stacks)
        min_lat, min_lng = vertices.min(axis=0)
        max_lat, max_lng = vertices.max(axis=0)
        # Avoid a zero-size span for a single point or a flat ring
        if max_lat - min_lat == 0:
            min_lat, max_lat = min_lat - 0.5, max_lat + 0.5
        if max_lng - min_lng == 0:
            min_lng, max_lng = min_lng - 0.5, max_lng + 0.5
        return cls(
            float(min_lat), float(min_lng), float(max_lat), float(max_lng),
            width, height, margin,
        )

    @property
    def scale(self) -> float:
        usable_w = max(self.width - 2 * self.margin, 1)
        usable_h = max(self.height - 2 * self.margin, 1)
        return min(
            usable_w / (self.max_lng - self.min_lng),
            usable_h / (self.max_lat - self.min_lat),
        )

    def to_pixels(self, vertices: np.ndarray) -> np.ndarray:
        """Nx2 (lat, lng) array -> Nx2 int (x, y) pixel array."""
        vertices = np.asarray(vertices, dtype=float).reshape(-1, 2)
        x = self.margin + (vertices[:, 1] - self.min_lng) * self.scale
        y = self.height - self.margin - (vertices[:, 0] - self.min_lat) * self.scale
        return np.stack([x, y], axis=1).round().astype(np.int32)

    def point_to_pixel(self, point: Coordinate) -> Tuple[int, int]:
        x, y = self.to_pixels(np.array([[point.lat, point.lng]]))[0]
        return int(x), int(y)


class TerritoryVisualizer:
    """
    Stateless visualizer for territory layers.

    Design Philosophy:
    - SRP: Only draws, doesn't compute containment
    - Per-layer palette colour, active layer emphasised
    - Works on anything exposing id, name, geometry and effective_adder

    Usage:
        visualizer = TerritoryVisualizer()
        image = visualizer.render(
            state.layers,
            active_layer_id=state.active_layer_id,
            test_point=query.last_point,
        )
    """

    def __init__(
        self,
        palette: sv.ColorPalette = sv.ColorPalette.DEFAULT,
        active_color: sv.Color = sv.Color(r=255, g=215, b=0),
        text_color: sv.Color = sv.Color(r=255, g=255, b=255),
        text_background_color: sv.Color = sv.Color(r=0, g=0, b=0),
        background_color: sv.Color = sv.Color(r=32, g=32, b=32),
        marker_color: sv.Color = sv.Color(r=255, g=64, b=64),
        thickness: int = 2,
        active_thickness: int = 4,
        text_scale: float = 0.5,
        text_thickness: int = 1,
        text_padding: int = 6,
        opacity: float = 0.3,
        margin: int = 20,
    ):
        """
        Initialize visualizer with style configuration.

        Args:
            palette: Colours assigned to layers by display position
            active_color: Outline colour of the active layer
            text_color: Colour for labels
            text_background_color: Background colour for labels
            background_color: Canvas colour
            marker_color: Test-point marker colour
            thickness: Outline thickness for idle layers
            active_thickness: Outline thickness for the active layer
            opacity: Fill opacity (0-1)
            margin: Canvas margin in pixels
        """
        self.palette = palette
        self.active_color = active_color
        self.text_color = text_color
        self.text_background_color = text_background_color
        self.background_color = background_color
        self.marker_color = marker_color
        self.thickness = thickness
        self.active_thickness = active_thickness
        self.text_scale = text_scale
        self.text_thickness = text_thickness
        self.text_padding = text_padding
        self.opacity = opacity
        self.margin = margin

    def blank_canvas(self, width: int, height: int) -> np.ndarray:
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[:, :] = self.background_color.as_bgr()
        return frame

    def render(
        self,
        layers: Iterable,
        active_layer_id: Optional[int] = None,
        width: int = 800,
        height: int = 600,
        test_point: Optional[Coordinate] = None,
    ) -> np.ndarray:
        """
        Render committed layer geometry onto a fresh canvas.

        Args:
            layers: Layers in display order
            active_layer_id: Layer drawn with emphasis
            width, height: Canvas size in pixels
            test_point: Optional last queried coordinate

        Returns:
            BGR image (height, width, 3)
        """
        layers = list(layers)
        committed = [(idx, l) for idx, l in enumerate(layers) if l.geometry is not None]
        projection = MapProjection.fit(
            [l.geometry for _, l in committed],
            width,
            height,
            margin=self.margin,
            extra_points=[test_point] if test_point is not None else [],
        )

        frame = self.blank_canvas(width, height)
        # Active layer last so its outline sits on top
        ordered = sorted(committed, key=lambda item: item[1].id == active_layer_id)
        for idx, layer in ordered:
            frame = self.draw_layer(
                frame,
                layer,
                projection,
                color=self.palette.by_idx(idx),
                active=layer.id == active_layer_id,
            )

        if test_point is not None:
            frame = self.draw_test_point(frame, test_point, projection)

        return frame

    def draw_layer(
        self,
        frame: np.ndarray,
        layer,
        projection: MapProjection,
        color: sv.Color,
        active: bool = False,
    ) -> np.ndarray:
        """
        Draw one layer's committed polygon with its label.

        Returns:
            Frame with the layer drawn
        """
        polygon = projection.to_pixels(layer.geometry.vertices)

        frame = sv.draw_filled_polygon(
            scene=frame,
            polygon=polygon,
            color=color,
            opacity=self.opacity,
        )

        frame = sv.draw_polygon(
            scene=frame,
            polygon=polygon,
            color=self.active_color if active else color,
            thickness=self.active_thickness if active else self.thickness,
        )

        # Label at top-left of the polygon bounding box
        min_x = int(np.min(polygon[:, 0]))
        min_y = int(np.min(polygon[:, 1]))
        text_anchor = sv.Point(x=min_x, y=max(min_y - 10, 20))

        frame = sv.draw_text(
            scene=frame,
            text=f"{layer.name} ({layer.effective_adder.describe()})",
            text_anchor=text_anchor,
            text_color=self.text_color,
            text_scale=self.text_scale,
            text_thickness=self.text_thickness,
            text_padding=self.text_padding,
            background_color=self.text_background_color,
        )

        return frame

    def draw_test_point(
        self,
        frame: np.ndarray,
        point: Coordinate,
        projection: MapProjection,
        radius: int = 6,
    ) -> np.ndarray:
        """Draw the queried coordinate as a filled marker."""
        import cv2

        cv2.circle(
            frame,
            projection.point_to_pixel(point),
            radius,
            self.marker_color.as_bgr(),
            thickness=-1,
        )
        return frame
