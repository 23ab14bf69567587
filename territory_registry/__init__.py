"""
territory_registry - Layer registry, lifecycle and containment queries

This package owns the territory layers: their adders, their committed
polygons and the drawing/editing lifecycle, plus the additive containment
query and the export projections.

Architecture:
- TerritoryRegistry: Thread-safe owner of the immutable RegistryState
- LayerLifecycle: Transition state machine (idle / drawing / editing)
- ContainmentQueryService: Additive point classification
- TerritoryService: Orchestrator wired to the MQTT control plane
- TerritoryConfig: Configuration management
"""

from territory_registry.errors import (
    TerritoryError,
    ValidationError,
    InvalidTransitionError,
    LayerNotFoundError,
    RegistryInvariantError,
)
from territory_registry.model import AdderKind, AdderSpec, LayerMode, TerritoryLayer
from territory_registry.registry import RegistryState, TerritoryRegistry, initial_state
from territory_registry.config import TerritoryConfig, LayerPolicyConfig
from territory_registry.lifecycle import LayerLifecycle
from territory_registry.query import ClassificationMatch, ContainmentQueryService, classify
from territory_registry.export import to_export_view, to_json, to_geojson
from territory_registry.service import TerritoryService

__all__ = [
    "TerritoryError",
    "ValidationError",
    "InvalidTransitionError",
    "LayerNotFoundError",
    "RegistryInvariantError",
    "AdderKind",
    "AdderSpec",
    "LayerMode",
    "TerritoryLayer",
    "RegistryState",
    "TerritoryRegistry",
    "initial_state",
    "TerritoryConfig",
    "LayerPolicyConfig",
    "LayerLifecycle",
    "ClassificationMatch",
    "ContainmentQueryService",
    "classify",
    "to_export_view",
    "to_json",
    "to_geojson",
    "TerritoryService",
]
