"""
Territory Message Schemas
=========================

Bounded Context: Layer snapshot and classification data structures

Design:
- LayerRecord: one layer as exported (id, name, adder, ring, mode)
- LayerSnapshotMessage: the whole registry after a mutation
- ClassificationEntry / ClassificationMessage: containment query results

Message Flow:
    LayerLifecycle → LayerSnapshotMessage → LayerSnapshotPublisher → MQTT → map UI
    ContainmentQueryService → ClassificationMessage → ClassificationPublisher → MQTT
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import GeoPoint, Timestamp


SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class LayerRecord:
    """
    One layer as published to collaborators.

    Attributes:
        id: Layer id
        name: Display name
        adder_type: percentage, perUnitArea or flatFee
        adder_amount: Adder amount
        coordinates: Ring as [lat, lng] pairs, or None if not drawn
        mode: idle, drawing or editing
        is_base: Protected base layer flag
    """
    id: int
    name: str
    adder_type: str
    adder_amount: float
    coordinates: Optional[List[List[float]]] = None
    mode: str = "idle"
    is_base: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict (export field names)."""
        return {
            'id': self.id,
            'name': self.name,
            'adderType': self.adder_type,
            'adderAmount': self.adder_amount,
            'coordinates': self.coordinates,
            'mode': self.mode,
            'isBase': self.is_base,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerRecord':
        """Deserialize from dict."""
        try:
            return cls(
                id=int(data['id']),
                name=data['name'],
                adder_type=data['adderType'],
                adder_amount=float(data['adderAmount']),
                coordinates=data.get('coordinates'),
                mode=data.get('mode', 'idle'),
                is_base=bool(data.get('isBase', False)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required LayerRecord field: {e}")


@dataclass(frozen=True)
class LayerSnapshotMessage:
    """
    Complete registry snapshot.

    Attributes:
        schema_version: Message schema version
        timestamp: When the snapshot was taken
        service_id: Publishing service
        active_layer_id: Focused layer (None if no layers)
        operation: Lifecycle operation that produced this snapshot
        layers: Records in registry order
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    active_layer_id: Optional[int]
    operation: str
    layers: List[LayerRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'service_id': self.service_id,
            'active_layer_id': self.active_layer_id,
            'operation': self.operation,
            'layers': [layer.to_dict() for layer in self.layers],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LayerSnapshotMessage':
        try:
            return cls(
                schema_version=data['schema_version'],
                timestamp=Timestamp(data['timestamp']),
                service_id=data['service_id'],
                active_layer_id=data.get('active_layer_id'),
                operation=data.get('operation', ''),
                layers=[LayerRecord.from_dict(l) for l in data.get('layers', [])],
            )
        except KeyError as e:
            raise ValueError(f"Missing required LayerSnapshotMessage field: {e}")


@dataclass(frozen=True)
class ClassificationEntry:
    """One matched layer with its adder."""
    layer_id: int
    name: str
    adder_type: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'layerId': self.layer_id,
            'name': self.name,
            'type': self.adder_type,
            'amount': self.amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClassificationEntry':
        return cls(
            layer_id=int(data['layerId']),
            name=data['name'],
            adder_type=data['type'],
            amount=float(data['amount']),
        )


@dataclass(frozen=True)
class ClassificationMessage:
    """
    Containment query result.

    ``matches`` is empty when the point is in no layer.
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    point: GeoPoint
    matches: List[ClassificationEntry] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return len(self.matches) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'service_id': self.service_id,
            'point': self.point.to_dict(),
            'matched': self.matched,
            'matches': [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClassificationMessage':
        try:
            return cls(
                schema_version=data['schema_version'],
                timestamp=Timestamp(data['timestamp']),
                service_id=data['service_id'],
                point=GeoPoint.from_dict(data['point']),
                matches=[ClassificationEntry.from_dict(m) for m in data.get('matches', [])],
            )
        except KeyError as e:
            raise ValueError(f"Missing required ClassificationMessage field: {e}")
