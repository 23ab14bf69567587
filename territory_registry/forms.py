"""
Form and payload parsing - the only place raw input becomes domain values.

Human-facing inputs (coordinate fields, adder amount, adder kind selector)
and collaborator payloads (finished shapes from the drawing/editing
surfaces) are parsed here. Anything malformed raises ValidationError; the
caller keeps its prior state and shows the message.
"""

import math
from typing import Any, Mapping, Optional

from territory_zone import Coordinate, PolygonGeometry, POLYGON_KIND
from territory_registry.errors import ValidationError
from territory_registry.model import AdderKind, AdderSpec


def parse_number(field: str, raw: Any) -> float:
    """
    Parse a finite real number from a form value.

    Raises:
        ValidationError: If raw is empty, non-numeric, boolean or non-finite
    """
    if raw is None or isinstance(raw, bool):
        raise ValidationError(field, "a number is required")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            raise ValidationError(field, "a number is required")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(field, f"not a valid number: {raw!r}")
    if not math.isfinite(value):
        raise ValidationError(field, f"must be finite, got {raw!r}")
    return value


def parse_coordinate(lat: Any, lng: Any) -> Coordinate:
    """Parse the containment-test form into a Coordinate."""
    return Coordinate(
        lat=parse_number("latitude", lat),
        lng=parse_number("longitude", lng),
    )


def parse_amount(raw: Any) -> float:
    """Parse an adder amount (non-negative real)."""
    value = parse_number("amount", raw)
    if value < 0:
        raise ValidationError("amount", f"must be >= 0, got {value:g}")
    return value


def parse_adder_kind(raw: Any) -> AdderKind:
    try:
        return AdderKind.parse(raw)
    except ValueError as e:
        raise ValidationError("adder_kind", str(e))


def parse_adder(data: Mapping[str, Any], current: Optional[AdderSpec] = None) -> AdderSpec:
    """
    Parse an adder update; missing fields keep the current value.

    Accepts ``kind``/``amount`` or the form names ``adderType``/``adderAmount``.
    """
    current = current or AdderSpec()
    kind_raw = data.get("kind", data.get("adderType"))
    amount_raw = data.get("amount", data.get("adderAmount"))
    kind = current.kind if kind_raw is None else parse_adder_kind(kind_raw)
    amount = current.amount if amount_raw is None else parse_amount(amount_raw)
    return AdderSpec(kind=kind, amount=amount)


def parse_layer_id(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValidationError("layer_id", f"not a valid layer id: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("layer_id", f"not a valid layer id: {raw!r}")


def parse_name(raw: Any) -> str:
    if raw is None:
        raise ValidationError("name", "a name is required")
    if not isinstance(raw, str):
        raise ValidationError("name", f"must be text, got {type(raw).__name__}")
    return raw


def parse_geometry_payload(payload: Any) -> PolygonGeometry:
    """
    Parse a finished shape reported by the drawing or editing surface.

    Accepted forms:
        {"geometryRing": [[lat, lng], ...]}            (canonical order)
        {"type": "Polygon", "coordinates": [[[lng, lat], ...]]}
        {"type": "Feature", "geometry": {...Polygon...}}

    GeoJSON positions are [lng, lat]; only the outer ring is kept.

    Raises:
        ValidationError: If the payload is not a usable single-ring polygon
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("geometry", "payload must be an object")

    try:
        if "geometryRing" in payload:
            return PolygonGeometry.from_coordinates(payload["geometryRing"])

        geometry = payload
        if payload.get("type") == "Feature":
            geometry = payload.get("geometry") or {}

        if geometry.get("type") != POLYGON_KIND:
            raise ValidationError(
                "geometry", f"expected a {POLYGON_KIND}, got {geometry.get('type')!r}"
            )
        rings = geometry.get("coordinates") or []
        if not rings:
            raise ValidationError("geometry", "polygon has no rings")
        return PolygonGeometry.from_geojson_ring(rings[0])

    except ValidationError:
        raise
    except (TypeError, ValueError, IndexError, KeyError) as e:
        raise ValidationError("geometry", f"invalid polygon: {e}")
