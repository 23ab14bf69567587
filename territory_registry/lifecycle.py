"""
Layer Lifecycle State Machine.

Per-layer states: idle, drawing, editing. Registry-wide, at most one layer
is drawing or editing at any time.

Design:
- Transition functions are pure: RegistryState in, new RegistryState out.
  They raise LayerNotFoundError / InvalidTransitionError and never return a
  state that breaks the registry invariants.
- LayerLifecycle applies them to a TerritoryRegistry. A rejected transition
  is a reported no-op: logged as a warning, state untouched, False returned.

Transitions:

    idle ──start_drawing──► drawing ──commit_drawing──► idle (geometry set)
                               └────cancel_drawing───► idle (geometry None)
    idle ──start_editing──► editing ──commit_editing──► idle (geometry replaced)
       (geometry required)     └────cancel_editing───► idle (pre-edit geometry)
    idle ──clear_geometry─► idle (geometry None)
"""

from dataclasses import replace
from typing import Any, Callable, Optional

from territory_zone import PolygonGeometry
from territory_registry.config import LayerPolicyConfig
from territory_registry.errors import InvalidTransitionError, TerritoryError, ValidationError
from territory_registry.forms import parse_adder, parse_amount, parse_adder_kind
from territory_registry.model import AdderSpec, LayerMode, TerritoryLayer
from territory_registry.registry import (
    DEFAULT_NAME_TEMPLATE,
    RegistryState,
    TerritoryRegistry,
    new_layer,
)
from territory_mqtt.logging import LogEvent, StructuredLogger, create_logger


def _idle(layer: TerritoryLayer) -> TerritoryLayer:
    if layer.mode is LayerMode.IDLE:
        return layer
    return replace(layer, mode=LayerMode.IDLE)


def _require_mode(operation: str, layer: TerritoryLayer, mode: LayerMode) -> None:
    if layer.mode is not mode:
        raise InvalidTransitionError(
            operation, layer.id, f"layer is {layer.mode.value}, expected {mode.value}"
        )


def start_drawing(state: RegistryState, layer_id: int) -> RegistryState:
    """
    Put a layer in drawing mode with an empty geometry.

    Every other layer is forced idle; an open edit elsewhere is abandoned
    with its committed geometry unchanged.
    """
    state.get(layer_id)

    def transition(layer: TerritoryLayer) -> TerritoryLayer:
        if layer.id == layer_id:
            return replace(layer, mode=LayerMode.DRAWING, geometry=None)
        return _idle(layer)

    return replace(
        state.map_layers(transition),
        active_layer_id=layer_id,
        edit_snapshot=None,
    )


def resolve_drawing_target(
    state: RegistryState,
    layer_id: Optional[int],
    fallback_to_active: bool = False,
) -> int:
    """
    Resolve which layer a finished drawing belongs to.

    Strict resolution: the named layer must be drawing; with no layer named,
    the single drawing layer is used. With fallback_to_active, an idle
    active layer receives the shape when no layer is drawing.
    """
    drawing = state.drawing_layer
    active = state.active_layer

    if layer_id is None:
        if drawing is not None:
            return drawing.id
        if fallback_to_active and active is not None and active.mode is LayerMode.IDLE:
            return active.id
        raise InvalidTransitionError("commit drawing", None, "no layer is drawing")

    layer = state.get(layer_id)
    if layer.mode is LayerMode.DRAWING:
        return layer.id
    if (
        fallback_to_active
        and drawing is None
        and layer.mode is LayerMode.IDLE
        and layer.id == state.active_layer_id
    ):
        return layer.id
    raise InvalidTransitionError(
        "commit drawing", layer.id, f"layer is {layer.mode.value}, expected drawing"
    )


def commit_drawing(
    state: RegistryState,
    layer_id: Optional[int],
    geometry: PolygonGeometry,
    fallback_to_active: bool = False,
) -> RegistryState:
    """Commit a finished shape onto the drawing layer; it becomes idle."""
    if not isinstance(geometry, PolygonGeometry):
        raise ValidationError("geometry", f"expected a polygon, got {type(geometry).__name__}")
    target = resolve_drawing_target(state, layer_id, fallback_to_active)
    layer = state.get(target)
    return state.with_layer(replace(layer, geometry=geometry, mode=LayerMode.IDLE))


def cancel_drawing(state: RegistryState, layer_id: int) -> RegistryState:
    """Abandon a drawing; no partial shape is kept."""
    layer = state.get(layer_id)
    _require_mode("cancel drawing", layer, LayerMode.DRAWING)
    return state.with_layer(replace(layer, mode=LayerMode.IDLE, geometry=None))


def start_editing(state: RegistryState, layer_id: int) -> RegistryState:
    """
    Put a layer with committed geometry in editing mode.

    The committed geometry is kept as the pre-edit snapshot until the
    session is committed or cancelled.
    """
    layer = state.get(layer_id)
    if layer.geometry is None:
        raise InvalidTransitionError("start editing", layer_id, "layer has no geometry")

    def transition(other: TerritoryLayer) -> TerritoryLayer:
        if other.id == layer_id:
            return replace(other, mode=LayerMode.EDITING)
        return _idle(other)

    return replace(
        state.map_layers(transition),
        active_layer_id=layer_id,
        edit_snapshot=(layer_id, layer.geometry),
    )


def commit_editing(
    state: RegistryState,
    layer_id: Optional[int],
    geometry: PolygonGeometry,
) -> RegistryState:
    """Replace the editing layer's geometry; it becomes idle."""
    if not isinstance(geometry, PolygonGeometry):
        raise ValidationError("geometry", f"expected a polygon, got {type(geometry).__name__}")
    if layer_id is None:
        editing = state.editing_layer
        if editing is None:
            raise InvalidTransitionError("commit editing", None, "no layer is editing")
        layer_id = editing.id

    layer = state.get(layer_id)
    _require_mode("commit editing", layer, LayerMode.EDITING)
    return replace(
        state.with_layer(replace(layer, geometry=geometry, mode=LayerMode.IDLE)),
        edit_snapshot=None,
    )


def cancel_editing(state: RegistryState, layer_id: int) -> RegistryState:
    """Discard in-progress edits and restore the pre-edit geometry."""
    layer = state.get(layer_id)
    _require_mode("cancel editing", layer, LayerMode.EDITING)

    geometry = layer.geometry
    if state.edit_snapshot is not None and state.edit_snapshot[0] == layer_id:
        geometry = state.edit_snapshot[1]

    return replace(
        state.with_layer(replace(layer, geometry=geometry, mode=LayerMode.IDLE)),
        edit_snapshot=None,
    )


def clear_geometry(state: RegistryState, layer_id: int) -> RegistryState:
    """Drop an idle layer's geometry without changing its mode."""
    layer = state.get(layer_id)
    _require_mode("clear geometry", layer, LayerMode.IDLE)
    return state.with_layer(replace(layer, geometry=None))


def delete_layer(state: RegistryState, layer_id: int) -> RegistryState:
    """
    Remove a layer. The base layer is never removed; deleting it clears
    its geometry instead.

    A deleted active layer hands focus to the first remaining layer.
    """
    layer = state.get(layer_id)
    if layer.is_base:
        return clear_geometry(state, layer_id)

    remaining = tuple(l for l in state.layers if l.id != layer_id)
    active_layer_id = state.active_layer_id
    if active_layer_id == layer_id:
        active_layer_id = remaining[0].id if remaining else None

    edit_snapshot = state.edit_snapshot
    if edit_snapshot is not None and edit_snapshot[0] == layer_id:
        edit_snapshot = None

    return replace(
        state,
        layers=remaining,
        active_layer_id=active_layer_id,
        edit_snapshot=edit_snapshot,
    )


def create_layer(
    state: RegistryState,
    name_template: str = DEFAULT_NAME_TEMPLATE,
    mode: LayerMode = LayerMode.DRAWING,
    name: Optional[str] = None,
    adder: Optional[AdderSpec] = None,
) -> RegistryState:
    """
    Append a new layer with the next id and make it active.

    Existing layers are forced idle so the new layer can draw. name and
    adder override the defaults.
    """
    layer_id = max([state.next_id] + [l.id + 1 for l in state.layers])
    layer = new_layer(layer_id, name_template, mode=mode)
    if name is not None:
        layer = replace(layer, name=name)
    if adder is not None:
        layer = replace(layer, adder=adder)
    idle = state.map_layers(_idle)
    return replace(
        idle,
        layers=idle.layers + (layer,),
        active_layer_id=layer_id,
        next_id=layer_id + 1,
        edit_snapshot=None,
    )


def select_layer(state: RegistryState, layer_id: int) -> RegistryState:
    """Move the active pointer; modes are unchanged."""
    state.get(layer_id)
    return replace(state, active_layer_id=layer_id)


def rename_layer(state: RegistryState, layer_id: int, name: str) -> RegistryState:
    layer = state.get(layer_id)
    if layer.locked:
        raise InvalidTransitionError("rename", layer_id, "base layer name is fixed")
    return state.with_layer(replace(layer, name=str(name)))


def set_adder(state: RegistryState, layer_id: int, adder: AdderSpec) -> RegistryState:
    layer = state.get(layer_id)
    if layer.locked:
        raise InvalidTransitionError("set adder", layer_id, "base layer carries no adder")
    return state.with_layer(replace(layer, adder=adder))


class LayerLifecycle:
    """
    Applies lifecycle transitions to a registry and reports the outcome.

    Every operation returns True when applied. Rejections (unknown layer,
    wrong source state, invalid form input) leave the registry untouched,
    are logged as warnings and stored in ``last_error`` for the UI.

    Usage:
        lifecycle = LayerLifecycle(TerritoryRegistry())
        lifecycle.commit_drawing(1, geometry)
        layer_id = lifecycle.create_layer()
        lifecycle.start_drawing(layer_id)
    """

    def __init__(
        self,
        registry: TerritoryRegistry,
        policy: Optional[LayerPolicyConfig] = None,
        logger: Optional[StructuredLogger] = None,
        on_change: Optional[Callable[[RegistryState, str], None]] = None,
    ):
        """
        Args:
            registry: Registry to mutate
            policy: Layer policy (naming, new-layer mode, commit fallback)
            logger: Structured logger (default: "lifecycle" component)
            on_change: Called with (new_state, operation) after each applied change
        """
        self.registry = registry
        self.policy = policy or LayerPolicyConfig()
        self.logger = logger or create_logger("lifecycle")
        self.on_change = on_change
        self.last_error: Optional[TerritoryError] = None

    @property
    def state(self) -> RegistryState:
        return self.registry.state

    def _apply(
        self,
        operation: str,
        layer_id: Any,
        transition: Callable[[RegistryState], RegistryState],
        event: LogEvent = LogEvent.LAYER_TRANSITION,
    ) -> bool:
        return self._apply_state(operation, layer_id, transition, event) is not None

    def _apply_state(
        self,
        operation: str,
        layer_id: Any,
        transition: Callable[[RegistryState], RegistryState],
        event: LogEvent = LogEvent.LAYER_TRANSITION,
    ) -> Optional[RegistryState]:
        """
        Apply a transition; returns the state it produced, or None if rejected.

        layer_id may be a callable taking the new state, for operations whose
        target is only known once the transition ran (create_layer).
        """
        try:
            new_state = self.registry.update(transition)
        except TerritoryError as e:
            self.last_error = e
            self.logger.warning(
                event=LogEvent.LAYER_TRANSITION_REJECTED,
                message=str(e),
                metadata={
                    'operation': operation,
                    'layer_id': None if callable(layer_id) else layer_id,
                    'error': type(e).__name__,
                },
            )
            return None

        if callable(layer_id):
            layer_id = layer_id(new_state)
        self.last_error = None
        self.logger.info(
            event=event,
            message=f"{operation} applied",
            metadata={
                'operation': operation,
                'layer_id': layer_id,
                'active_layer_id': new_state.active_layer_id,
            },
        )
        if self.on_change is not None:
            self.on_change(new_state, operation)
        return new_state

    # ----- Lifecycle -----

    def create_layer(
        self,
        name: Optional[str] = None,
        adder: Optional[AdderSpec] = None,
    ) -> Optional[int]:
        """
        Create a layer, optionally named and priced, in one transition.

        Returns:
            The new layer id (read from the produced state), or None if rejected
        """
        new_state = self._apply_state(
            "create_layer",
            lambda s: s.active_layer_id,
            lambda s: create_layer(
                s, self.policy.name_template, self.policy.initial_mode, name=name, adder=adder
            ),
            event=LogEvent.LAYER_CREATED,
        )
        return None if new_state is None else new_state.active_layer_id

    def start_drawing(self, layer_id: int) -> bool:
        return self._apply("start_drawing", layer_id, lambda s: start_drawing(s, layer_id))

    def commit_drawing(self, layer_id: Optional[int], geometry: PolygonGeometry) -> bool:
        return self._apply(
            "commit_drawing",
            layer_id,
            lambda s: commit_drawing(
                s, layer_id, geometry, self.policy.commit_fallback_to_active
            ),
        )

    def cancel_drawing(self, layer_id: int) -> bool:
        return self._apply("cancel_drawing", layer_id, lambda s: cancel_drawing(s, layer_id))

    def start_editing(self, layer_id: int) -> Optional[PolygonGeometry]:
        """
        Start an editing session.

        Returns:
            The geometry handed to the editing surface, or None if rejected
        """
        new_state = self._apply_state(
            "start_editing", layer_id, lambda s: start_editing(s, layer_id)
        )
        return None if new_state is None else new_state.get(layer_id).geometry

    def commit_editing(self, layer_id: Optional[int], geometry: PolygonGeometry) -> bool:
        return self._apply(
            "commit_editing", layer_id, lambda s: commit_editing(s, layer_id, geometry)
        )

    def cancel_editing(self, layer_id: int) -> bool:
        return self._apply("cancel_editing", layer_id, lambda s: cancel_editing(s, layer_id))

    def clear_geometry(self, layer_id: int) -> bool:
        return self._apply("clear_geometry", layer_id, lambda s: clear_geometry(s, layer_id))

    def delete_layer(self, layer_id: int) -> bool:
        return self._apply(
            "delete_layer",
            layer_id,
            lambda s: delete_layer(s, layer_id),
            event=LogEvent.LAYER_DELETED,
        )

    def select_layer(self, layer_id: int) -> bool:
        return self._apply("select_layer", layer_id, lambda s: select_layer(s, layer_id))

    # ----- Field updates (raw form input accepted) -----

    def rename_layer(self, layer_id: int, name: str) -> bool:
        return self._apply(
            "rename_layer",
            layer_id,
            lambda s: rename_layer(s, layer_id, name),
            event=LogEvent.LAYER_UPDATED,
        )

    def set_adder_kind(self, layer_id: int, kind: Any) -> bool:
        def transition(s: RegistryState) -> RegistryState:
            adder = s.get(layer_id).adder
            return set_adder(s, layer_id, replace(adder, kind=parse_adder_kind(kind)))

        return self._apply("set_adder_kind", layer_id, transition, event=LogEvent.LAYER_UPDATED)

    def set_adder_amount(self, layer_id: int, amount: Any) -> bool:
        def transition(s: RegistryState) -> RegistryState:
            adder = s.get(layer_id).adder
            return set_adder(s, layer_id, replace(adder, amount=parse_amount(amount)))

        return self._apply("set_adder_amount", layer_id, transition, event=LogEvent.LAYER_UPDATED)

    def set_adder(self, layer_id: int, data: dict) -> bool:
        """Update kind and/or amount from a form payload."""
        def transition(s: RegistryState) -> RegistryState:
            adder = parse_adder(data, current=s.get(layer_id).adder)
            return set_adder(s, layer_id, adder)

        return self._apply("set_adder", layer_id, transition, event=LogEvent.LAYER_UPDATED)
