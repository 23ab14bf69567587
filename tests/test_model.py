import pytest

from territory_zone import Coordinate
from territory_registry import AdderKind, AdderSpec, LayerMode, TerritoryLayer


@pytest.mark.parametrize("kind, amount, label", [
    (AdderKind.PERCENTAGE, 10, "10%"),
    (AdderKind.PER_UNIT_AREA, 2.5, "$2.5/sq"),
    (AdderKind.FLAT_FEE, 50, "$50 flat fee"),
])
def test_adder_describe(kind, amount, label):
    assert AdderSpec(kind, amount).describe() == label


def test_adder_defaults():
    adder = AdderSpec()
    assert adder.kind is AdderKind.PERCENTAGE
    assert adder.amount == 0.0


def test_adder_rejects_negative_and_non_finite_amounts():
    with pytest.raises(ValueError):
        AdderSpec(AdderKind.FLAT_FEE, -1)
    with pytest.raises(ValueError):
        AdderSpec(AdderKind.FLAT_FEE, float("inf"))


def test_adder_kind_parse_accepts_legacy_alias():
    assert AdderKind.parse("perSquare") is AdderKind.PER_UNIT_AREA
    assert AdderKind.parse("flatFee") is AdderKind.FLAT_FEE
    with pytest.raises(ValueError, match="Invalid adder kind"):
        AdderKind.parse("bogus")


def test_adder_dict_form():
    adder = AdderSpec.from_dict({"kind": "perSquare", "amount": 3})
    assert adder.to_dict() == {"kind": "perUnitArea", "amount": 3.0}
    with pytest.raises(ValueError):
        AdderSpec.from_dict({"amount": 3})


def test_layer_contains_needs_geometry(square):
    layer = TerritoryLayer(id=2, name="Service Area 2")
    assert not layer.has_geometry
    assert not layer.contains(Coordinate(5, 5))

    drawn = layer.with_changes(geometry=square)
    assert drawn.contains(Coordinate(5, 5))
    assert layer.geometry is None


def test_locked_layer_has_zero_effective_adder():
    layer = TerritoryLayer(
        id=1,
        name="Base",
        adder=AdderSpec(AdderKind.PERCENTAGE, 10),
        is_base=True,
        locked=True,
    )
    assert layer.effective_adder.amount == 0.0
    assert layer.adder.amount == 10.0


def test_layer_mode_values():
    assert [m.value for m in LayerMode] == ["idle", "drawing", "editing"]
