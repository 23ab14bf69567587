import json

from territory_registry import to_export_view, to_geojson, to_json

from conftest import make_lifecycle


def build(lifecycle, square, offset_square):
    lifecycle.commit_drawing(1, square)
    lifecycle.set_adder(1, {"kind": "percentage", "amount": 10})
    second = lifecycle.create_layer()
    lifecycle.commit_drawing(second, offset_square)
    lifecycle.set_adder(second, {"kind": "flatFee", "amount": 50})
    third = lifecycle.create_layer()  # left drawing
    return second, third


def test_export_view_records(lifecycle, square, offset_square):
    second, third = build(lifecycle, square, offset_square)

    view = to_export_view(lifecycle.state)

    assert [r["id"] for r in view] == [1, second, third]
    assert list(view[0].keys()) == ["id", "name", "adderType", "adderAmount", "coordinates"]
    assert view[0]["coordinates"] == square.to_ring()
    assert view[1]["adderType"] == "flatFee"
    assert view[1]["adderAmount"] == 50.0
    assert view[2]["coordinates"] is None


def test_export_is_a_pure_projection(lifecycle, square, offset_square):
    build(lifecycle, square, offset_square)
    before = lifecycle.state

    to_export_view(before)
    to_geojson(before)

    assert lifecycle.state is before


def test_export_order_survives_selection(lifecycle, square, offset_square):
    second, third = build(lifecycle, square, offset_square)
    lifecycle.select_layer(1)

    assert [r["id"] for r in to_export_view(lifecycle.state)] == [1, second, third]


def test_editing_layer_exports_committed_geometry(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    lifecycle.start_editing(1)

    assert to_export_view(lifecycle.state)[0]["coordinates"] == square.to_ring()


def test_locked_base_exports_zero_amount(square):
    lifecycle = make_lifecycle(lock_base_layer=True)
    lifecycle.commit_drawing(1, square)

    assert to_export_view(lifecycle.state)[0]["adderAmount"] == 0.0


def test_to_json_round_trips_the_view(lifecycle, square, offset_square):
    build(lifecycle, square, offset_square)

    text = to_json(lifecycle.state)

    assert json.loads(text) == to_export_view(lifecycle.state)
    assert "\n  " in text


def test_geojson_feature_collection(lifecycle, square, offset_square):
    second, third = build(lifecycle, square, offset_square)

    collection = to_geojson(lifecycle.state)

    assert collection["type"] == "FeatureCollection"
    features = collection["features"]
    assert [f["id"] for f in features] == [1, second]

    base = features[0]
    assert base["properties"] == {
        "name": "Service Area 1",
        "adderType": "percentage",
        "adderAmount": 10.0,
        "isBase": True,
        "active": False,
    }
    ring = base["geometry"]["coordinates"][0]
    assert ring[0] == ring[-1]
    assert ring[:-1] == [[lng, lat] for lat, lng in square.to_ring()]
