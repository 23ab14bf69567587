from pathlib import Path

import pytest

from run_territory_service import apply_overrides, build_components, main, parse_args
from territory_mqtt import ClassificationPublisher, LayerSnapshotPublisher
from territory_registry import TerritoryConfig


CONFIG = Path(__file__).resolve().parent.parent / "config" / "territory_config.yaml"


def test_overrides_replace_frozen_fields():
    config = TerritoryConfig(service_id="svc")

    updated = apply_overrides(config, service_id="other", broker="mqtt.local")

    assert updated.service_id == "other"
    assert updated.mqtt_config.broker == "mqtt.local"
    assert config.service_id == "svc"


def test_overrides_are_optional():
    config = TerritoryConfig(service_id="svc")
    assert apply_overrides(config) == config


def test_build_components_wires_topics():
    service = build_components(TerritoryConfig(service_id="svc"))

    assert isinstance(service.snapshot_publisher, LayerSnapshotPublisher)
    assert isinstance(service.classification_publisher, ClassificationPublisher)
    assert service.snapshot_publisher.topic == "territory/data/layers/svc"
    assert service.classification_publisher.client_id == "publisher_classifications_svc"
    assert service.control_plane.command_topic == "territory/control/svc/commands"
    assert service.commands.count() == 16


def test_shipped_config_loads():
    config = TerritoryConfig.from_yaml(CONFIG)
    assert config.service_id


def test_parse_args_defaults():
    args = parse_args(["--config", "x.yaml"])
    assert args.log_file == Path("logs/territory.log")
    assert args.log_level == "INFO"


def test_main_rejects_missing_config(tmp_path):
    with pytest.raises(SystemExit):
        main(["--config", str(tmp_path / "missing.yaml")])
