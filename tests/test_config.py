from pathlib import Path

import pytest

from territory_registry import LayerMode, LayerPolicyConfig, TerritoryConfig
from territory_registry.config import MapViewConfig, MQTTConfig, RenderConfig


CONFIG_YAML = """
service_id: "pricing_test"

layers:
  name_template: "Zone {id}"
  new_layer_mode: "idle"
  lock_base_layer: true
  commit_fallback_to_active: true

map_view:
  center_lat: 40.4
  center_lng: -3.7
  zoom: 11

render:
  width: 640
  height: 480
  output_path: "out/preview.png"

mqtt_config:
  broker: "mqtt.local"
  port: 1884
  qos: 0
"""


def test_from_yaml(tmp_path):
    path = tmp_path / "territory.yaml"
    path.write_text(CONFIG_YAML)

    config = TerritoryConfig.from_yaml(path)

    assert config.service_id == "pricing_test"
    assert config.layers.name_template == "Zone {id}"
    assert config.layers.initial_mode is LayerMode.IDLE
    assert config.layers.lock_base_layer
    assert config.layers.commit_fallback_to_active
    assert config.map_view.zoom == 11
    assert config.render.output_path == Path("out/preview.png")
    assert config.mqtt_config.broker == "mqtt.local"
    assert config.mqtt_config.qos == 0


def test_defaults_for_missing_sections():
    config = TerritoryConfig.from_dict({"service_id": "svc"})

    assert config.layers == LayerPolicyConfig()
    assert config.layers.initial_mode is LayerMode.DRAWING
    assert not config.layers.commit_fallback_to_active
    assert config.map_view == MapViewConfig()
    assert config.render.width == 800


def test_topics():
    mqtt_config = MQTTConfig()

    assert mqtt_config.command_topic("svc") == "territory/control/svc/commands"
    assert mqtt_config.status_topic("svc") == "territory/control/svc/status"
    assert mqtt_config.layers_topic.format(service_id="svc") == "territory/data/layers/svc"


@pytest.mark.parametrize("factory", [
    lambda: LayerPolicyConfig(new_layer_mode="editing"),
    lambda: LayerPolicyConfig(name_template="Area"),
    lambda: MapViewConfig(center_lat=120),
    lambda: RenderConfig(width=0),
    lambda: MQTTConfig(port=70000),
    lambda: MQTTConfig(qos=3),
    lambda: TerritoryConfig(service_id=""),
])
def test_invalid_values_are_rejected(factory):
    with pytest.raises(ValueError):
        factory()


def test_unknown_keys_are_rejected():
    with pytest.raises(TypeError):
        TerritoryConfig.from_dict({"service_id": "svc", "layers": {"bogus": 1}})
