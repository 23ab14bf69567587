"""
Configuration schema for the territory service.

This module defines the configuration structure for the territory engine,
including layer policies, the initial map view, rendering output, and MQTT
settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml

from territory_registry.model import LayerMode


@dataclass(frozen=True)
class LayerPolicyConfig:
    """
    Layer lifecycle policy.

    - name_template: default layer name, formatted with the layer id
    - new_layer_mode: mode of freshly created layers ("drawing" or "idle")
    - lock_base_layer: base layer name/adder fixed, adder amount treated as 0
    - commit_fallback_to_active: a drawing commit with no drawing layer goes
      to the active layer instead of being rejected
    """

    name_template: str = "Service Area {id}"
    new_layer_mode: str = "drawing"
    lock_base_layer: bool = False
    commit_fallback_to_active: bool = False

    def __post_init__(self):
        """Validate layer policy."""
        valid_modes = {LayerMode.DRAWING.value, LayerMode.IDLE.value}
        if self.new_layer_mode not in valid_modes:
            raise ValueError(
                f"Invalid new_layer_mode: {self.new_layer_mode}. "
                f"Must be one of {sorted(valid_modes)}"
            )

        if "{id}" not in self.name_template:
            raise ValueError(
                f"name_template must contain '{{id}}', got {self.name_template!r}"
            )

    @property
    def initial_mode(self) -> LayerMode:
        return LayerMode(self.new_layer_mode)


@dataclass(frozen=True)
class MapViewConfig:
    """Initial map view (fallback when geolocation is unavailable)."""

    center_lat: float = 51.505
    center_lng: float = -0.09
    zoom: int = 13

    def __post_init__(self):
        """Validate map view."""
        if not -90.0 <= self.center_lat <= 90.0:
            raise ValueError(f"center_lat must be in [-90, 90], got {self.center_lat}")
        if not -180.0 <= self.center_lng <= 180.0:
            raise ValueError(f"center_lng must be in [-180, 180], got {self.center_lng}")
        if not 0 <= self.zoom <= 22:
            raise ValueError(f"zoom must be in [0, 22], got {self.zoom}")


@dataclass(frozen=True)
class RenderConfig:
    """Preview rendering settings."""

    width: int = 800
    height: int = 600
    output_path: Path = Path("./renders/territories.png")

    def __post_init__(self):
        """Validate render settings."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Render size must have positive dimensions, got {self.width}x{self.height}"
            )
        if self.width > 4096 or self.height > 4096:
            raise ValueError(
                f"Render size too large (max 4096x4096), got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1

    layers_topic: str = "territory/data/layers/{service_id}"
    classification_topic: str = "territory/data/classifications/{service_id}"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def command_topic(self, service_id: str) -> str:
        return f"territory/control/{service_id}/commands"

    def status_topic(self, service_id: str) -> str:
        return f"territory/control/{service_id}/status"


@dataclass(frozen=True)
class TerritoryConfig:
    """
    Main configuration for the territory service.

    This configuration is loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Service identification
    service_id: str

    layers: LayerPolicyConfig = field(default_factory=LayerPolicyConfig)
    map_view: MapViewConfig = field(default_factory=MapViewConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate territory configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

    @classmethod
    def from_dict(cls, data: dict) -> "TerritoryConfig":
        render_data = dict(data.get("render") or {})
        if "output_path" in render_data:
            render_data["output_path"] = Path(render_data["output_path"])

        return cls(
            service_id=data["service_id"],
            layers=LayerPolicyConfig(**(data.get("layers") or {})),
            map_view=MapViewConfig(**(data.get("map_view") or {})),
            render=RenderConfig(**render_data),
            mqtt_config=MQTTConfig(**(data.get("mqtt_config") or {})),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "TerritoryConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "pricing_01"

            layers:
              name_template: "Service Area {id}"
              new_layer_mode: "drawing"
              lock_base_layer: false
              commit_fallback_to_active: false

            map_view:
              center_lat: 51.505
              center_lng: -0.09
              zoom: 13

            render:
              width: 800
              height: 600
              output_path: "./renders/territories.png"

            mqtt_config:
              broker: "localhost"
              port: 1883
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)
