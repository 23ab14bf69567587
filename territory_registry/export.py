"""
Export / serialization of the registry.

Pure projections of a RegistryState - nothing here mutates the registry.
Layers in progress expose their last committed geometry only.
"""

import json
from typing import Any, Dict, List

from territory_registry.registry import RegistryState


def to_export_view(state: RegistryState) -> List[Dict[str, Any]]:
    """
    One record per layer, in registry insertion order.

    Field order is fixed: id, name, adderType, adderAmount, coordinates.
    ``coordinates`` is the ring as [lat, lng] pairs, or None.
    """
    return [
        {
            "id": layer.id,
            "name": layer.name,
            "adderType": layer.effective_adder.kind.value,
            "adderAmount": layer.effective_adder.amount,
            "coordinates": layer.geometry.to_ring() if layer.geometry is not None else None,
        }
        for layer in state.layers
    ]


def to_json(state: RegistryState, indent: int = 2) -> str:
    """Export view rendered for the raw-data panel."""
    return json.dumps(to_export_view(state), indent=indent)


def to_geojson(state: RegistryState) -> Dict[str, Any]:
    """
    Export committed layers as a GeoJSON FeatureCollection (RFC 7946).

    Positions are [lng, lat]; rings are closed.
    """
    features = [
        {
            "type": "Feature",
            "id": layer.id,
            "geometry": layer.geometry.to_geojson(),
            "properties": {
                "name": layer.name,
                "adderType": layer.effective_adder.kind.value,
                "adderAmount": layer.effective_adder.amount,
                "isBase": layer.is_base,
                "active": layer.id == state.active_layer_id,
            },
        }
        for layer in state.committed_layers()
    ]
    return {
        "type": "FeatureCollection",
        "features": features,
    }
