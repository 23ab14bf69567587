"""Shared fixtures for the territory test suite."""

import pytest

from territory_zone import PolygonGeometry
from territory_registry import LayerLifecycle, LayerPolicyConfig, TerritoryRegistry
from territory_registry.registry import initial_state


@pytest.fixture
def square():
    """10x10 square with a corner at the origin, in (lat, lng) order."""
    return PolygonGeometry.from_coordinates([(0, 0), (0, 10), (10, 10), (10, 0)])


@pytest.fixture
def offset_square():
    """Square overlapping ``square`` on [5, 10] x [5, 10]."""
    return PolygonGeometry.from_coordinates([(5, 5), (5, 15), (15, 15), (15, 5)])


@pytest.fixture
def registry():
    return TerritoryRegistry(initial_state())


@pytest.fixture
def lifecycle(registry):
    return LayerLifecycle(registry)


def make_lifecycle(**policy) -> LayerLifecycle:
    """Lifecycle over a fresh registry built from the given policy."""
    config = LayerPolicyConfig(**policy)
    state = initial_state(
        name_template=config.name_template,
        mode=config.initial_mode,
        lock_base_layer=config.lock_base_layer,
    )
    return LayerLifecycle(TerritoryRegistry(state), policy=config)
