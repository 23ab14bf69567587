"""
Containment Query Service.

Classifies a coordinate against every layer holding committed geometry.
Semantics are additive: all overlapping layers match, in registry order,
each contributing its adder. There is no priority or single winner.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from territory_zone import Coordinate
from territory_registry.errors import ValidationError
from territory_registry.forms import parse_coordinate
from territory_registry.model import AdderSpec
from territory_registry.registry import RegistryState
from territory_mqtt.logging import LogEvent, StructuredLogger, create_logger


@dataclass(frozen=True)
class ClassificationMatch:
    """One layer matched by a containment query."""

    layer_id: int
    layer_name: str
    adder: AdderSpec

    def describe(self) -> str:
        return f"{self.layer_name}: {self.adder.describe()}"

    def to_dict(self) -> dict:
        return {
            "layerId": self.layer_id,
            "name": self.layer_name,
            "type": self.adder.kind.value,
            "amount": self.adder.amount,
        }


def classify(point: Coordinate, state: RegistryState) -> List[ClassificationMatch]:
    """
    Collect every committed layer containing the point.

    Args:
        point: Coordinate to test
        state: Registry snapshot

    Returns:
        Matches in registry order; empty list when nothing matches
    """
    return [
        ClassificationMatch(
            layer_id=layer.id,
            layer_name=layer.name,
            adder=layer.effective_adder,
        )
        for layer in state.committed_layers()
        if layer.contains(point)
    ]


class ContainmentQueryService:
    """
    Stateful front for classify(), remembering the last query.

    ``last_result`` is None until the first query ("not queried"), and
    an empty list after a query that matched nothing ("no match").
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or create_logger("query")
        self.last_point: Optional[Coordinate] = None
        self.last_result: Optional[List[ClassificationMatch]] = None

    @property
    def queried(self) -> bool:
        return self.last_result is not None

    def classify(self, point: Coordinate, state: RegistryState) -> List[ClassificationMatch]:
        matches = classify(point, state)
        self.last_point = point
        self.last_result = matches

        self.logger.info(
            event=LogEvent.QUERY_CLASSIFIED,
            message=f"Point matched {len(matches)} layer(s)",
            metadata={
                'lat': point.lat,
                'lng': point.lng,
                'matches': [m.layer_id for m in matches],
            },
        )
        return matches

    def classify_input(self, lat: Any, lng: Any, state: RegistryState) -> List[ClassificationMatch]:
        """
        Classify raw form input.

        Raises:
            ValidationError: If either coordinate is not a number; the
                previous query result is kept
        """
        try:
            point = parse_coordinate(lat, lng)
        except ValidationError as e:
            self.logger.warning(
                event=LogEvent.QUERY_REJECTED,
                message=str(e),
                metadata={'lat': str(lat), 'lng': str(lng)},
            )
            raise
        return self.classify(point, state)

    def reset(self) -> None:
        """Forget the last query (back to "not queried")."""
        self.last_point = None
        self.last_result = None
