"""
Territory Registry - Thread-safe layer collection.

This module provides the RegistryState value object and the TerritoryRegistry
which owns the current state. Every mutation is a whole-state replacement:
a pure function builds a new RegistryState from the old one, and the registry
swaps it in atomically.

Thread Safety:
- Uses threading.Lock to serialize state swaps
- Readers get an immutable snapshot (no lock needed afterwards)
- Layer objects are immutable (frozen dataclass)
"""

import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterator, Optional, Tuple

from territory_zone import PolygonGeometry
from territory_registry.errors import LayerNotFoundError, RegistryInvariantError
from territory_registry.model import AdderSpec, LayerMode, TerritoryLayer


DEFAULT_NAME_TEMPLATE = "Service Area {id}"


@dataclass(frozen=True)
class RegistryState:
    """
    Immutable snapshot of the whole layer collection.

    Attributes:
        layers: Layers in insertion (display) order
        active_layer_id: Layer focused for drawing/editing/highlighting
        next_id: Id the next created layer receives (never reused)
        edit_snapshot: (layer_id, geometry) captured when editing started

    Invariants:
        - ids unique
        - at most one layer in drawing or editing, Registry-wide
        - exactly one base layer, never removed
    """

    layers: Tuple[TerritoryLayer, ...] = ()
    active_layer_id: Optional[int] = None
    next_id: int = 1
    edit_snapshot: Optional[Tuple[int, Optional[PolygonGeometry]]] = None

    # ----- Queries -----

    def get(self, layer_id: int) -> TerritoryLayer:
        """
        Get a layer by id.

        Raises:
            LayerNotFoundError: If layer_id does not exist
        """
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise LayerNotFoundError(layer_id)

    def find(self, layer_id: int) -> Optional[TerritoryLayer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def __contains__(self, layer_id: int) -> bool:
        return self.find(layer_id) is not None

    def __iter__(self) -> Iterator[TerritoryLayer]:
        return iter(self.layers)

    def __len__(self) -> int:
        return len(self.layers)

    @property
    def active_layer(self) -> Optional[TerritoryLayer]:
        if self.active_layer_id is None:
            return None
        return self.find(self.active_layer_id)

    @property
    def base_layer(self) -> Optional[TerritoryLayer]:
        for layer in self.layers:
            if layer.is_base:
                return layer
        return None

    def layers_in(self, mode: LayerMode) -> Tuple[TerritoryLayer, ...]:
        return tuple(layer for layer in self.layers if layer.mode is mode)

    @property
    def drawing_layer(self) -> Optional[TerritoryLayer]:
        drawing = self.layers_in(LayerMode.DRAWING)
        return drawing[0] if drawing else None

    @property
    def editing_layer(self) -> Optional[TerritoryLayer]:
        editing = self.layers_in(LayerMode.EDITING)
        return editing[0] if editing else None

    def committed_layers(self) -> Tuple[TerritoryLayer, ...]:
        """Layers holding a committed geometry, in registry order."""
        return tuple(layer for layer in self.layers if layer.geometry is not None)

    # ----- Delta helpers (return new states) -----

    def with_layer(self, layer: TerritoryLayer) -> "RegistryState":
        """Replace the layer with the same id."""
        self.get(layer.id)
        return replace(
            self,
            layers=tuple(layer if l.id == layer.id else l for l in self.layers),
        )

    def map_layers(self, fn: Callable[[TerritoryLayer], TerritoryLayer]) -> "RegistryState":
        return replace(self, layers=tuple(fn(layer) for layer in self.layers))

    def check_invariants(self) -> None:
        """
        Verify registry invariants.

        Raises:
            RegistryInvariantError: If any invariant is violated
        """
        ids = [layer.id for layer in self.layers]
        busy = [l.id for l in self.layers if l.mode is not LayerMode.IDLE]
        problems = []
        if len(ids) != len(set(ids)):
            problems.append(f"duplicate layer ids {ids}")
        if len(busy) > 1:
            problems.append(f"more than one layer drawing/editing {busy}")
        if any(i >= self.next_id for i in ids):
            problems.append(f"next_id {self.next_id} does not exceed every id")
        if sum(1 for l in self.layers if l.is_base) > 1:
            problems.append("multiple base layers")
        if self.active_layer_id is not None and self.active_layer_id not in ids:
            problems.append(f"active layer {self.active_layer_id} not in registry")
        if self.edit_snapshot is not None:
            layer = self.find(self.edit_snapshot[0])
            if layer is None or layer.mode is not LayerMode.EDITING:
                problems.append("edit snapshot without an editing layer")
        if problems:
            raise RegistryInvariantError("; ".join(problems))


def new_layer(
    layer_id: int,
    name_template: str = DEFAULT_NAME_TEMPLATE,
    mode: LayerMode = LayerMode.IDLE,
    is_base: bool = False,
    locked: bool = False,
) -> TerritoryLayer:
    """Allocate a layer with default name and adder and no geometry."""
    return TerritoryLayer(
        id=layer_id,
        name=name_template.format(id=layer_id),
        adder=AdderSpec(),
        geometry=None,
        mode=mode,
        is_base=is_base,
        locked=locked,
    )


def initial_state(
    name_template: str = DEFAULT_NAME_TEMPLATE,
    mode: LayerMode = LayerMode.DRAWING,
    lock_base_layer: bool = False,
) -> RegistryState:
    """Registry holding only the base layer (id 1), active."""
    base = new_layer(1, name_template, mode=mode, is_base=True, locked=lock_base_layer)
    return RegistryState(layers=(base,), active_layer_id=base.id, next_id=2)


class TerritoryRegistry:
    """
    Thread-safe owner of the current RegistryState.

    Mutations go through update(), which applies a pure transition
    function to the current state under the lock and swaps the result in.
    If the transition raises, the current state is left untouched.

    Usage:
        registry = TerritoryRegistry()
        registry.update(lambda state: start_drawing(state, 1))
        snapshot = registry.state  # immutable
    """

    def __init__(self, state: Optional[RegistryState] = None):
        """Initialize with a state (default: base layer only, drawing)."""
        self._state = state if state is not None else initial_state()
        self._lock = threading.Lock()

    @property
    def state(self) -> RegistryState:
        """Current immutable snapshot."""
        return self._state

    def update(self, transition: Callable[[RegistryState], RegistryState]) -> RegistryState:
        """
        Apply a transition and swap the new state in atomically.

        Args:
            transition: Pure function old state -> new state

        Returns:
            The new state

        Raises:
            RegistryInvariantError: If the transition produced an
                inconsistent state (the current state is kept)

        Thread-safe: Acquires lock for the whole read-compute-swap.
        """
        with self._lock:
            new_state = transition(self._state)
            new_state.check_invariants()
            self._state = new_state
            return new_state

    def get_layer(self, layer_id: int) -> TerritoryLayer:
        return self._state.get(layer_id)

    def list_layers(self) -> Dict[int, str]:
        """Mapping of layer id to mode, in registry order."""
        return {layer.id: layer.mode.value for layer in self._state.layers}

    def count(self) -> int:
        return len(self._state.layers)
