# squaresum/games/square_sum/logic/board.py
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple

from .chips import Chip, total_magnitude


@dataclass(frozen=True)
class GridPlacement:
    """Where a receptacle or junction sits on the level grid. Renderer-only data."""
    column: int
    row: int
    span_width: int = 1
    span_height: int = 1

    def covers(self, column: int, row: int) -> bool:
        return (self.column <= column < self.column + self.span_width
                and self.row <= row < self.row + self.span_height)

    def to_dict(self) -> Dict[str, int]:
        return {
            "column": self.column,
            "row": self.row,
            "span_width": self.span_width,
            "span_height": self.span_height,
        }


@dataclass(frozen=True)
class GridDimensions:
    column_count: int
    row_count: int

    def to_dict(self) -> Dict[str, int]:
        return {"column_count": self.column_count, "row_count": self.row_count}


@dataclass(frozen=True)
class Receptacle:
    """
    A target-sum container. `aggregate` is always recomputed from the deposits;
    equilibrium is aggregate == target and overflow is aggregate > target, so
    the two can never hold at once.

    Receptacles are values: `with_deposit` returns a new receptacle and leaves
    this one untouched. Only a SessionEngine swaps them in its own table.
    """
    key: str
    target: int
    placement: GridPlacement
    linked_keys: Tuple[str, ...] = ()
    deposited: Tuple[Chip, ...] = ()

    def __post_init__(self):
        if self.target < 0:
            raise ValueError(f"Receptacle {self.key!r} has negative target {self.target}")
        object.__setattr__(self, "linked_keys", tuple(self.linked_keys))
        object.__setattr__(self, "deposited", tuple(self.deposited))

    @property
    def aggregate(self) -> int:
        return total_magnitude(self.deposited)

    @property
    def is_at_equilibrium(self) -> bool:
        return self.aggregate == self.target

    @property
    def is_overflowing(self) -> bool:
        return self.aggregate > self.target

    @property
    def shortfall(self) -> int:
        """How much is still missing (negative once overflowing)."""
        return self.target - self.aggregate

    def with_deposit(self, chip: Chip) -> "Receptacle":
        return replace(self, deposited=self.deposited + (chip,))

    def clone_empty(self) -> "Receptacle":
        return replace(self, deposited=())

    def covers(self, column: int, row: int) -> bool:
        return self.placement.covers(column, row)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "target": self.target,
            "aggregate": self.aggregate,
            "equilibrium": self.is_at_equilibrium,
            "overflow": self.is_overflowing,
            "placement": self.placement.to_dict(),
            "linked_keys": list(self.linked_keys),
            "deposited": [c.id for c in self.deposited],
        }


@dataclass(frozen=True)
class Junction:
    """Marks that two receptacles share a placement zone."""
    anchor_key: str
    auxiliary_key: str
    placement: GridPlacement

    def __post_init__(self):
        if self.anchor_key == self.auxiliary_key:
            raise ValueError(f"Junction links {self.anchor_key!r} to itself")

    @property
    def keys(self) -> Tuple[str, str]:
        return (self.anchor_key, self.auxiliary_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anchor_key": self.anchor_key,
            "auxiliary_key": self.auxiliary_key,
            "placement": self.placement.to_dict(),
        }
