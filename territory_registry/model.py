"""
Territory layer model.

Value objects for one priced service area:
- AdderKind / AdderSpec: pricing adjustment (tagged value)
- LayerMode: per-layer lifecycle state
- TerritoryLayer: immutable entity snapshot, updated via dataclasses.replace
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from territory_zone import Coordinate, PolygonGeometry, is_point_in_ring


class AdderKind(str, Enum):
    """Pricing adjustment kinds."""
    PERCENTAGE = "percentage"
    PER_UNIT_AREA = "perUnitArea"
    FLAT_FEE = "flatFee"

    @classmethod
    def parse(cls, value: str) -> "AdderKind":
        """Parse a kind tag, accepting the legacy ``perSquare`` alias."""
        if isinstance(value, AdderKind):
            return value
        tag = str(value).strip()
        if tag == "perSquare":
            return cls.PER_UNIT_AREA
        try:
            return cls(tag)
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Invalid adder kind: {value!r}. Must be one of {valid}")


class LayerMode(str, Enum):
    """Lifecycle state of a single layer."""
    IDLE = "idle"
    DRAWING = "drawing"
    EDITING = "editing"


@dataclass(frozen=True)
class AdderSpec:
    """
    Immutable pricing adjustment.

    Attributes:
        kind: percentage, perUnitArea or flatFee
        amount: non-negative; percent value, currency per area unit, or
            absolute currency depending on kind

    Example:
        >>> AdderSpec(AdderKind.PERCENTAGE, 10).describe()
        '10%'
    """
    kind: AdderKind = AdderKind.PERCENTAGE
    amount: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "kind", AdderKind.parse(self.kind))
        amount = float(self.amount)
        if not math.isfinite(amount) or amount < 0:
            raise ValueError(f"Adder amount must be a finite number >= 0, got {self.amount}")
        object.__setattr__(self, "amount", amount)

    def describe(self) -> str:
        """Human-readable label for the results panel."""
        amount = f"{self.amount:g}"
        if self.kind is AdderKind.PERCENTAGE:
            return f"{amount}%"
        if self.kind is AdderKind.PER_UNIT_AREA:
            return f"${amount}/sq"
        return f"${amount} flat fee"

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: dict) -> "AdderSpec":
        try:
            return cls(kind=data["kind"], amount=data.get("amount", 0.0))
        except KeyError as e:
            raise ValueError(f"Missing required adder field: {e}")


@dataclass(frozen=True)
class TerritoryLayer:
    """
    Immutable snapshot of one territory layer.

    The registry replaces snapshots instead of mutating them, so any
    reference held by a collaborator keeps describing the state it was
    taken from.

    Attributes:
        id: Unique, immutable, never reused within a registry
        name: Display name
        adder: Pricing adjustment
        geometry: Committed polygon, or None when not drawn
        mode: idle, drawing or editing
        is_base: Protected primary territory (never removed)
        locked: Base layer whose name and adder are fixed (amount treated as 0)
    """
    id: int
    name: str
    adder: AdderSpec = AdderSpec()
    geometry: Optional[PolygonGeometry] = None
    mode: LayerMode = LayerMode.IDLE
    is_base: bool = False
    locked: bool = False

    @property
    def has_geometry(self) -> bool:
        return self.geometry is not None

    @property
    def effective_adder(self) -> AdderSpec:
        """Adder applied by containment queries."""
        if self.locked:
            return AdderSpec(kind=self.adder.kind, amount=0.0)
        return self.adder

    def contains(self, point: Coordinate) -> bool:
        """True if the committed geometry contains the point."""
        return is_point_in_ring(point, self.geometry)

    def with_changes(self, **changes) -> "TerritoryLayer":
        return replace(self, **changes)
