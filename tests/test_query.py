import pytest

from territory_zone import Coordinate
from territory_registry import (
    AdderKind,
    ContainmentQueryService,
    ValidationError,
    classify,
)

from conftest import make_lifecycle


def test_single_layer_match_and_miss(lifecycle, square):
    lifecycle.commit_drawing(1, square)

    matches = classify(Coordinate(5, 5), lifecycle.state)
    assert [m.layer_id for m in matches] == [1]
    assert classify(Coordinate(20, 20), lifecycle.state) == []


def test_overlapping_layers_all_match_in_registry_order(lifecycle, square, offset_square):
    lifecycle.commit_drawing(1, square)
    lifecycle.set_adder(1, {"kind": "percentage", "amount": 10})
    layer_id = lifecycle.create_layer()
    lifecycle.commit_drawing(layer_id, offset_square)
    lifecycle.set_adder(layer_id, {"kind": "flatFee", "amount": 50})

    matches = classify(Coordinate(7, 7), lifecycle.state)

    assert [m.layer_id for m in matches] == [1, layer_id]
    assert [m.adder.kind for m in matches] == [AdderKind.PERCENTAGE, AdderKind.FLAT_FEE]
    assert [m.adder.amount for m in matches] == [10.0, 50.0]
    assert [m.describe() for m in matches] == [
        "Service Area 1: 10%",
        "Service Area 2: $50 flat fee",
    ]


def test_layers_without_geometry_never_match(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    lifecycle.create_layer()  # drawing, no geometry

    assert [m.layer_id for m in classify(Coordinate(5, 5), lifecycle.state)] == [1]


def test_editing_layer_matches_on_committed_geometry(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    lifecycle.start_editing(1)

    assert len(classify(Coordinate(5, 5), lifecycle.state)) == 1


def test_locked_base_contributes_zero_amount(square):
    lifecycle = make_lifecycle(lock_base_layer=True)
    lifecycle.commit_drawing(1, square)

    (match,) = classify(Coordinate(5, 5), lifecycle.state)
    assert match.adder.amount == 0.0


def test_match_dict_form(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    lifecycle.set_adder(1, {"kind": "perUnitArea", "amount": 3})

    (match,) = classify(Coordinate(5, 5), lifecycle.state)
    assert match.to_dict() == {
        "layerId": 1,
        "name": "Service Area 1",
        "type": "perUnitArea",
        "amount": 3.0,
    }


def test_not_queried_differs_from_no_match(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    service = ContainmentQueryService()

    assert not service.queried
    assert service.last_result is None

    assert service.classify(Coordinate(20, 20), lifecycle.state) == []
    assert service.queried
    assert service.last_result == []
    assert service.last_point == Coordinate(20, 20)


def test_invalid_input_keeps_previous_result(lifecycle, square):
    lifecycle.commit_drawing(1, square)
    service = ContainmentQueryService()
    previous = service.classify_input("5", "5", lifecycle.state)

    with pytest.raises(ValidationError):
        service.classify_input("five", "5", lifecycle.state)

    assert service.last_result == previous
    assert service.last_point == Coordinate(5, 5)


def test_reset_forgets_last_query(lifecycle):
    service = ContainmentQueryService()
    service.classify(Coordinate(1, 1), lifecycle.state)
    service.reset()

    assert not service.queried
    assert service.last_point is None
