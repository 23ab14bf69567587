"""
TerritoryService command flow tests.

Commands go through service.execute(), the same dispatch the control plane
uses; publishers are MagicMocks.
"""

from unittest.mock import MagicMock

import pytest

from territory_control import CommandRegistry
from territory_mqtt import ClassificationMessage, LayerSnapshotMessage
from territory_registry import LayerMode, TerritoryConfig, TerritoryService, ValidationError
from territory_registry.config import RenderConfig


SQUARE = [[0, 0], [0, 10], [10, 10], [10, 0]]
OFFSET_SQUARE = [[5, 5], [5, 15], [15, 15], [15, 5]]


@pytest.fixture
def service(tmp_path):
    config = TerritoryConfig(
        service_id="svc",
        render=RenderConfig(width=320, height=240, output_path=tmp_path / "render.png"),
    )
    return TerritoryService(
        config,
        snapshot_publisher=MagicMock(),
        classification_publisher=MagicMock(),
    )


def last_snapshot(service) -> LayerSnapshotMessage:
    (message,), _ = service.snapshot_publisher.publish_snapshot.call_args
    return message


def test_all_commands_registered(service):
    assert service.commands.available_commands == {
        "create_layer", "select_layer", "rename_layer", "set_adder",
        "start_drawing", "commit_drawing", "cancel_drawing",
        "start_editing", "commit_editing", "cancel_editing",
        "clear_geometry", "delete_layer",
        "classify", "export_layers", "render", "status",
    }


def test_commit_drawing_publishes_snapshot(service):
    result = service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})

    assert result == {"applied": True, "active_layer_id": 1}
    snapshot = last_snapshot(service)
    assert snapshot.operation == "commit_drawing"
    assert snapshot.service_id == "svc"
    assert snapshot.layers[0].coordinates == [[float(a), float(b)] for a, b in SQUARE]
    assert snapshot.layers[0].mode == "idle"
    assert snapshot.layers[0].is_base


def test_commit_drawing_accepts_geojson(service):
    feature = {
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]],
        },
    }
    assert service.execute("commit_drawing", {"geometry": feature})["applied"]
    assert service.state.get(1).geometry.to_ring()[1] == [0.0, 10.0]


def test_rejected_transition_reports_error(service):
    service.snapshot_publisher.reset_mock()

    result = service.execute("commit_editing", {"layer_id": 1, "geometryRing": SQUARE})

    assert result["applied"] is False
    assert "Cannot commit editing layer 1" in result["error"]
    service.snapshot_publisher.publish_snapshot.assert_not_called()


def test_malformed_input_raises_validation_error(service):
    with pytest.raises(ValidationError):
        service.execute("start_drawing", {"layer_id": "one"})
    with pytest.raises(ValidationError):
        service.execute("commit_drawing", {"geometryRing": [[0, 0], [1, 1]]})


def test_create_layer_with_name_and_adder(service):
    result = service.execute("create_layer", {"name": "Downtown", "kind": "flatFee", "amount": "50"})

    layer = service.state.get(result["layer_id"])
    assert result["applied"]
    assert result["layer_id"] == 2
    assert layer.name == "Downtown"
    assert layer.adder.describe() == "$50 flat fee"
    assert layer.mode is LayerMode.DRAWING
    assert service.state.active_layer_id == 2


def test_classify_overlapping_layers(service):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})
    service.execute("set_adder", {"layer_id": 1, "kind": "percentage", "amount": 10})
    service.execute("create_layer", {})
    service.execute("commit_drawing", {"layer_id": 2, "geometryRing": OFFSET_SQUARE})
    service.execute("set_adder", {"layer_id": 2, "adderType": "flatFee", "adderAmount": 50})

    result = service.execute("classify", {"lat": "7", "lng": 7})

    assert [m["layerId"] for m in result["matches"]] == [1, 2]
    assert [m["amount"] for m in result["matches"]] == [10.0, 50.0]
    assert result["summary"] == ["Service Area 1: 10%", "Service Area 2: $50 flat fee"]

    (message,), _ = service.classification_publisher.publish_classification.call_args
    assert isinstance(message, ClassificationMessage)
    assert message.matched
    assert message.point.to_dict() == {"lat": 7.0, "lng": 7.0}


def test_classify_miss(service):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})

    result = service.execute("classify", {"lat": 20, "lng": 20})

    assert result["matches"] == []
    assert service.query.queried


def test_classify_rejects_bad_coordinates(service):
    with pytest.raises(ValidationError):
        service.execute("classify", {"lat": "north", "lng": 0})
    service.classification_publisher.publish_classification.assert_not_called()
    assert not service.query.queried


def test_clear_and_delete_reset_query_memory(service):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})
    service.execute("classify", {"lat": 5, "lng": 5})

    service.execute("delete_layer", {"layer_id": 1})

    assert service.state.get(1).geometry is None
    assert not service.query.queried


@pytest.mark.parametrize("setup, command, data", [
    ([], "start_drawing", {"layer_id": 1}),
    ([("create_layer", {})], "commit_drawing", {"layer_id": 2, "geometryRing": OFFSET_SQUARE}),
    ([("start_editing", {"layer_id": 1})], "commit_editing", {"geometryRing": OFFSET_SQUARE}),
])
def test_geometry_changes_reset_query_memory(service, setup, command, data):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})
    for name, payload in setup:
        service.execute(name, payload)
    service.execute("classify", {"lat": 5, "lng": 5})
    assert service.query.queried

    assert service.execute(command, data)["applied"]

    assert not service.query.queried


def test_create_layer_rejects_bad_amount_before_creating(service):
    service.snapshot_publisher.reset_mock()

    with pytest.raises(ValidationError):
        service.execute("create_layer", {"amount": "abc"})

    assert [l.id for l in service.state] == [1]
    service.snapshot_publisher.publish_snapshot.assert_not_called()


def test_rename_requires_a_name(service):
    with pytest.raises(ValidationError, match="name"):
        service.execute("rename_layer", {"layer_id": 1})

    assert service.state.get(1).name == "Service Area 1"


def test_edit_cycle(service):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})

    started = service.execute("start_editing", {"layer_id": 1})
    assert started["coordinates"] == [[float(a), float(b)] for a, b in SQUARE]
    assert last_snapshot(service).layers[0].mode == "editing"

    assert service.execute("cancel_editing", {"layer_id": 1})["applied"]
    assert service.state.get(1).geometry.to_ring() == started["coordinates"]

    service.execute("start_editing", {"layer_id": 1})
    assert service.execute("commit_editing", {"geometryRing": OFFSET_SQUARE})["applied"]
    assert service.state.get(1).geometry.bounds() == (5.0, 5.0, 15.0, 15.0)


def test_export_formats(service):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})

    records = service.execute("export_layers", {})
    assert records[0]["id"] == 1
    assert records[0]["adderType"] == "percentage"

    collection = service.execute("export_layers", {"format": "GeoJSON"})
    assert collection["type"] == "FeatureCollection"

    with pytest.raises(ValueError):
        service.execute("export_layers", {"format": "kml"})


def test_status(service):
    status = service.execute("status")

    assert status["service_id"] == "svc"
    assert status["running"] is False
    assert status["layers"] == {"1": "drawing"}
    assert status["map_view"]["zoom"] == 13
    assert "classify" in status["commands"]


def test_render_writes_image(service, tmp_path):
    service.execute("commit_drawing", {"layer_id": 1, "geometryRing": SQUARE})
    service.execute("classify", {"lat": 5, "lng": 5})

    result = service.execute("render", {})

    assert result["output_path"] == str(tmp_path / "render.png")
    assert (tmp_path / "render.png").stat().st_size > 0


def test_start_and_stop_manage_connections(service):
    control_plane = MagicMock()
    control_plane.connect.return_value = True
    service.control_plane = control_plane

    service.start()
    service.snapshot_publisher.connect.assert_called_once()
    assert last_snapshot(service).operation == "startup"
    control_plane.publish_status.assert_called_with("running", {"service_id": "svc"})

    service.stop()
    service.snapshot_publisher.disconnect.assert_called_once()
    service.classification_publisher.disconnect.assert_called_once()
    control_plane.disconnect.assert_called_once()


def test_start_fails_without_broker(service):
    control_plane = MagicMock()
    control_plane.connect.return_value = False
    service.control_plane = control_plane

    with pytest.raises(RuntimeError):
        service.start()


def test_handlers_registered_on_control_plane():
    control_plane = MagicMock()
    control_plane.command_registry = CommandRegistry()

    service = TerritoryService(TerritoryConfig(service_id="svc"), control_plane=control_plane)

    assert service.commands is control_plane.command_registry
    assert control_plane.command_registry.count() == 16
