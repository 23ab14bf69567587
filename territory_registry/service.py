"""
Territory Service - Layer registry orchestrator.

This module provides the TerritoryService class which wires the layer
registry, the lifecycle state machine and the containment query service to
the MQTT control plane and publishers.

Architecture:
- TerritoryRegistry holds the immutable RegistryState
- LayerLifecycle applies transitions; every applied change is published
  as a retained LayerSnapshotMessage
- ContainmentQueryService answers classify commands; results are published
  as ClassificationMessage
- TerritoryVisualizer renders the committed layers to an image on demand

Threading Model:
- Control Plane Thread (paho-mqtt internal, command handlers)
- Main thread blocks in wait() until stop()
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from territory_zone import TerritoryVisualizer
from territory_control import CommandRegistry
from territory_mqtt import (
    SCHEMA_VERSION,
    ClassificationEntry,
    ClassificationMessage,
    GeoPoint,
    LayerRecord,
    LayerSnapshotMessage,
    Timestamp,
    create_logger,
)
from territory_registry.config import TerritoryConfig
from territory_registry.export import to_export_view, to_geojson
from territory_registry.forms import (
    parse_adder,
    parse_geometry_payload,
    parse_layer_id,
    parse_name,
)
from territory_registry.lifecycle import LayerLifecycle
from territory_registry.query import ClassificationMatch, ContainmentQueryService
from territory_registry.registry import RegistryState, TerritoryRegistry, initial_state

logger = logging.getLogger(__name__)

# Operations after which the remembered query result is stale.
_QUERY_RESET_OPERATIONS = {
    "start_drawing",
    "commit_drawing",
    "commit_editing",
    "clear_geometry",
    "delete_layer",
}

_ADDER_FIELDS = ("kind", "amount", "adderType", "adderAmount")


class TerritoryService:
    """
    Main territory service.

    Commands arrive on the control plane (or through execute() when running
    without MQTT) and are dispatched to the lifecycle and query services.
    Handlers return a JSON-compatible result, which the control plane
    publishes on the status topic.

    Thread Safety:
    - registry: Protected by internal lock, state is immutable
    - publishers: paho-mqtt client is thread-safe

    Usage:
        config = TerritoryConfig.from_yaml("config/territory_config.yaml")
        service = TerritoryService(
            config=config,
            control_plane=MQTTControlPlane(...),
            snapshot_publisher=LayerSnapshotPublisher(...),
            classification_publisher=ClassificationPublisher(...),
        )

        service.start()
        service.wait()  # Blocks until stop()
    """

    def __init__(
        self,
        config: TerritoryConfig,
        control_plane=None,  # MQTTControlPlane
        snapshot_publisher=None,  # LayerSnapshotPublisher
        classification_publisher=None,  # ClassificationPublisher
        visualizer: Optional[TerritoryVisualizer] = None,
    ):
        """
        Initialize territory service.

        Args:
            config: Service configuration
            control_plane: MQTT control plane for commands (optional)
            snapshot_publisher: Publisher for registry snapshots (optional)
            classification_publisher: Publisher for query results (optional)
            visualizer: Renderer for the render command (default visualizer)
        """
        self.config = config
        self.control_plane = control_plane
        self.snapshot_publisher = snapshot_publisher
        self.classification_publisher = classification_publisher
        self.visualizer = visualizer or TerritoryVisualizer()

        policy = config.layers
        self.registry = TerritoryRegistry(
            initial_state(
                name_template=policy.name_template,
                mode=policy.initial_mode,
                lock_base_layer=policy.lock_base_layer,
            )
        )
        self.lifecycle = LayerLifecycle(
            self.registry,
            policy=policy,
            logger=create_logger("lifecycle", service_id=config.service_id),
            on_change=self._on_registry_change,
        )
        self.query = ContainmentQueryService(
            logger=create_logger("query", service_id=config.service_id)
        )

        if control_plane is not None:
            self.commands = control_plane.command_registry
        else:
            self.commands = CommandRegistry()
        self._setup_control_handlers()

        self._running = False
        self._stopped_event = threading.Event()

        logger.info(f"TerritoryService initialized for service_id={config.service_id}")

    @property
    def state(self) -> RegistryState:
        return self.registry.state

    def _setup_control_handlers(self):
        """Register every supported command with the command registry."""
        registry = self.commands

        # Layer lifecycle
        registry.register("create_layer", self._handle_create_layer,
                          "Create a layer and make it active")
        registry.register("select_layer", self._handle_select_layer,
                          "Make a layer the active layer")
        registry.register("rename_layer", self._handle_rename_layer,
                          "Rename a layer")
        registry.register("set_adder", self._handle_set_adder,
                          "Set a layer's adder kind and/or amount")
        registry.register("start_drawing", self._handle_start_drawing,
                          "Put a layer in drawing mode")
        registry.register("commit_drawing", self._handle_commit_drawing,
                          "Commit a drawn polygon to the drawing layer")
        registry.register("cancel_drawing", self._handle_cancel_drawing,
                          "Abandon drawing and clear the layer geometry")
        registry.register("start_editing", self._handle_start_editing,
                          "Open a layer's polygon for editing")
        registry.register("commit_editing", self._handle_commit_editing,
                          "Commit the edited polygon")
        registry.register("cancel_editing", self._handle_cancel_editing,
                          "Abandon editing and restore the pre-edit polygon")
        registry.register("clear_geometry", self._handle_clear_geometry,
                          "Remove a layer's polygon")
        registry.register("delete_layer", self._handle_delete_layer,
                          "Delete a layer (base layer is cleared instead)")

        # Queries
        registry.register("classify", self._handle_classify,
                          "Classify a coordinate against all layers")
        registry.register("export_layers", self._handle_export_layers,
                          "Export layers as JSON records or GeoJSON")
        registry.register("render", self._handle_render,
                          "Render committed layers to an image file")
        registry.register("status", self._handle_status,
                          "Report registry summary and available commands")

        logger.info(f"Control handlers registered ({registry.count()} commands)")

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """Dispatch a command without going through MQTT."""
        return self.commands.execute(command, command_data)

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self):
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect publishers
        3. Publish the initial registry snapshot
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting territory service")

        if self.control_plane is not None:
            if not self.control_plane.connect(timeout=5.0):
                raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        if self.snapshot_publisher is not None:
            self.snapshot_publisher.connect()
        if self.classification_publisher is not None:
            self.classification_publisher.connect()

        self._running = True
        self._stopped_event.clear()
        self.publish_snapshot("startup")

        if self.control_plane is not None:
            self.control_plane.publish_status("running", {
                "service_id": self.config.service_id,
            })

        logger.info("Territory service started")

    def wait(self):
        """Block until stop() is called."""
        self._stopped_event.wait()

    def stop(self):
        """
        Stop the service gracefully.

        Lifecycle:
        1. Disconnect publishers
        2. Disconnect control plane
        3. Release wait()
        """
        if not self._running:
            logger.warning("Service not running")
            return

        logger.info("Stopping territory service")

        if self.snapshot_publisher is not None:
            self.snapshot_publisher.disconnect()
        if self.classification_publisher is not None:
            self.classification_publisher.disconnect()
        if self.control_plane is not None:
            self.control_plane.disconnect()

        self._running = False
        self._stopped_event.set()
        logger.info("Territory service stopped")

    # ─────────────────────────────────────────────────────────────────────
    # Publishing
    # ─────────────────────────────────────────────────────────────────────

    def build_snapshot_message(self, state: RegistryState, operation: str) -> LayerSnapshotMessage:
        records = [
            LayerRecord(
                id=layer.id,
                name=layer.name,
                adder_type=layer.effective_adder.kind.value,
                adder_amount=layer.effective_adder.amount,
                coordinates=layer.geometry.to_ring() if layer.geometry is not None else None,
                mode=layer.mode.value,
                is_base=layer.is_base,
            )
            for layer in state.layers
        ]
        return LayerSnapshotMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            service_id=self.config.service_id,
            active_layer_id=state.active_layer_id,
            operation=operation,
            layers=records,
        )

    def build_classification_message(
        self, lat: float, lng: float, matches: List[ClassificationMatch]
    ) -> ClassificationMessage:
        return ClassificationMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            service_id=self.config.service_id,
            point=GeoPoint(lat=lat, lng=lng),
            matches=[
                ClassificationEntry(
                    layer_id=m.layer_id,
                    name=m.layer_name,
                    adder_type=m.adder.kind.value,
                    amount=m.adder.amount,
                )
                for m in matches
            ],
        )

    def publish_snapshot(self, operation: str, state: Optional[RegistryState] = None) -> bool:
        if self.snapshot_publisher is None:
            return False
        message = self.build_snapshot_message(state or self.state, operation)
        return self.snapshot_publisher.publish_snapshot(message)

    def _on_registry_change(self, state: RegistryState, operation: str):
        """Called by LayerLifecycle after every applied transition."""
        if operation in _QUERY_RESET_OPERATIONS:
            self.query.reset()
        self.publish_snapshot(operation, state)

    # ─────────────────────────────────────────────────────────────────────
    # Rendering
    # ─────────────────────────────────────────────────────────────────────

    def render(self, output_path: Optional[Path] = None) -> Path:
        """
        Render committed layers (and the last queried point) to an image.

        Returns:
            Path of the written image

        Raises:
            OSError: If the image cannot be written
        """
        import cv2

        state = self.state
        render_config = self.config.render
        path = Path(output_path) if output_path is not None else render_config.output_path

        frame = self.visualizer.render(
            state.layers,
            active_layer_id=state.active_layer_id,
            width=render_config.width,
            height=render_config.height,
            test_point=self.query.last_point,
        )

        path.parent.mkdir(parents=True, exist_ok=True)
        if not cv2.imwrite(str(path), frame):
            raise OSError(f"Failed to write render to {path}")

        logger.info(f"Rendered {len(state.committed_layers())} layers to {path}")
        return path

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _outcome(self, applied: bool, **extra) -> Dict[str, Any]:
        result = {
            "applied": applied,
            "active_layer_id": self.state.active_layer_id,
        }
        if not applied and self.lifecycle.last_error is not None:
            result["error"] = str(self.lifecycle.last_error)
        result.update(extra)
        return result

    @staticmethod
    def _optional_layer_id(command: Dict) -> Optional[int]:
        raw = command.get("layer_id")
        return None if raw is None else parse_layer_id(raw)

    @staticmethod
    def _geometry_payload(command: Dict):
        return parse_geometry_payload(command["geometry"] if "geometry" in command else command)

    def _handle_create_layer(self, command: Dict):
        """Create a layer; optional name and adder fields are applied in the same change."""
        name = parse_name(command["name"]) if command.get("name") is not None else None
        adder = None
        if any(command.get(k) is not None for k in _ADDER_FIELDS):
            adder = parse_adder(command)

        layer_id = self.lifecycle.create_layer(name=name, adder=adder)
        if layer_id is None:
            return self._outcome(False)

        logger.info(f"Layer created: {layer_id}")
        return self._outcome(True, layer_id=layer_id)

    def _handle_select_layer(self, command: Dict):
        return self._outcome(self.lifecycle.select_layer(parse_layer_id(command.get("layer_id"))))

    def _handle_rename_layer(self, command: Dict):
        layer_id = parse_layer_id(command.get("layer_id"))
        return self._outcome(self.lifecycle.rename_layer(layer_id, parse_name(command.get("name"))))

    def _handle_set_adder(self, command: Dict):
        layer_id = parse_layer_id(command.get("layer_id"))
        return self._outcome(self.lifecycle.set_adder(layer_id, command))

    def _handle_start_drawing(self, command: Dict):
        return self._outcome(self.lifecycle.start_drawing(parse_layer_id(command.get("layer_id"))))

    def _handle_commit_drawing(self, command: Dict):
        geometry = self._geometry_payload(command)
        layer_id = self._optional_layer_id(command)
        return self._outcome(self.lifecycle.commit_drawing(layer_id, geometry))

    def _handle_cancel_drawing(self, command: Dict):
        return self._outcome(self.lifecycle.cancel_drawing(parse_layer_id(command.get("layer_id"))))

    def _handle_start_editing(self, command: Dict):
        """Returns the ring handed to the editing surface."""
        geometry = self.lifecycle.start_editing(parse_layer_id(command.get("layer_id")))
        if geometry is None:
            return self._outcome(False)
        return self._outcome(True, coordinates=geometry.to_ring())

    def _handle_commit_editing(self, command: Dict):
        geometry = self._geometry_payload(command)
        layer_id = self._optional_layer_id(command)
        return self._outcome(self.lifecycle.commit_editing(layer_id, geometry))

    def _handle_cancel_editing(self, command: Dict):
        return self._outcome(self.lifecycle.cancel_editing(parse_layer_id(command.get("layer_id"))))

    def _handle_clear_geometry(self, command: Dict):
        return self._outcome(self.lifecycle.clear_geometry(parse_layer_id(command.get("layer_id"))))

    def _handle_delete_layer(self, command: Dict):
        return self._outcome(self.lifecycle.delete_layer(parse_layer_id(command.get("layer_id"))))

    def _handle_classify(self, command: Dict):
        """
        Classify a coordinate and publish the result.

        Raises:
            ValidationError: If lat/lng are not numbers
        """
        matches = self.query.classify_input(command.get("lat"), command.get("lng"), self.state)
        point = self.query.last_point

        if self.classification_publisher is not None:
            message = self.build_classification_message(point.lat, point.lng, matches)
            self.classification_publisher.publish_classification(message)

        return {
            "point": {"lat": point.lat, "lng": point.lng},
            "matches": [m.to_dict() for m in matches],
            "summary": [m.describe() for m in matches],
        }

    def _handle_export_layers(self, command: Dict):
        fmt = str(command.get("format", "json")).lower()
        if fmt == "json":
            return to_export_view(self.state)
        if fmt == "geojson":
            return to_geojson(self.state)
        raise ValueError(f"Unknown export format '{fmt}' (expected json or geojson)")

    def _handle_render(self, command: Dict):
        path = self.render(command.get("output_path"))
        return {"output_path": str(path)}

    def _handle_status(self, command: Dict):
        state = self.state
        map_view = self.config.map_view
        return {
            "service_id": self.config.service_id,
            "running": self._running,
            "map_view": {
                "center": {"lat": map_view.center_lat, "lng": map_view.center_lng},
                "zoom": map_view.zoom,
            },
            "active_layer_id": state.active_layer_id,
            "layers": {str(k): v for k, v in self.registry.list_layers().items()},
            "commands": self.commands.get_help(),
        }
