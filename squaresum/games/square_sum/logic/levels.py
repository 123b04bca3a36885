# squaresum/games/square_sum/logic/levels.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .board import GridDimensions, Junction, Receptacle
from .chips import Chip

LEVELS_PER_TIER = 20
LEVEL_COUNT = 60


class DifficultyTier(str, Enum):
    LOW = "low"
    MID = "mid"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]

    @property
    def first_ordinal(self) -> int:
        return self.rank * LEVELS_PER_TIER + 1

    @property
    def last_ordinal(self) -> int:
        return self.first_ordinal + LEVELS_PER_TIER - 1

    def ordinals(self) -> range:
        return range(self.first_ordinal, self.last_ordinal + 1)

    def local_index(self, ordinal: int) -> int:
        """1-based position of `ordinal` inside this tier."""
        return ordinal - self.first_ordinal + 1

    @classmethod
    def for_ordinal(cls, ordinal: int) -> Optional["DifficultyTier"]:
        if not 1 <= ordinal <= LEVEL_COUNT:
            return None
        return _TIER_ORDER[(ordinal - 1) // LEVELS_PER_TIER]


_TIER_ORDER = (DifficultyTier.LOW, DifficultyTier.MID, DifficultyTier.HIGH)
_TIER_LABELS = {DifficultyTier.LOW: "Easy", DifficultyTier.MID: "Medium", DifficultyTier.HIGH: "Hard"}


# ---- receptacle pairings ----
@dataclass(frozen=True)
class Shared:
    """The pair shares a junction holding one chip of `weight`."""
    weight: int


@dataclass(frozen=True)
class Unshared:
    """The pair has no junction."""


UNSHARED = Unshared()
Pairing = Union[Shared, Unshared]


def shared_weight(pairing: Pairing) -> int:
    return pairing.weight if isinstance(pairing, Shared) else 0


# ---- level definition ----
@dataclass(frozen=True)
class LevelDefinition:
    """
    Immutable blueprint for one puzzle.

    `receptacle_templates` are always empty; sessions clone them.
    `solution` maps each required chip id to the receptacle keys it goes into
    (one key for an exclusive chip, two or more for a junction chip).
    Chips of the inventory missing from `solution` are distractors.
    """
    ordinal: int
    tier: DifficultyTier
    receptacle_templates: Tuple[Receptacle, ...]
    chip_inventory: Tuple[Chip, ...]
    junctions: Tuple[Junction, ...]
    grid_dimensions: GridDimensions
    solution: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    seed: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "receptacle_templates", tuple(self.receptacle_templates))
        object.__setattr__(self, "chip_inventory", tuple(self.chip_inventory))
        object.__setattr__(self, "junctions", tuple(self.junctions))
        object.__setattr__(self, "solution",
                           MappingProxyType({k: tuple(v) for k, v in dict(self.solution).items()}))

    @property
    def receptacle_keys(self) -> List[str]:
        return [r.key for r in self.receptacle_templates]

    @property
    def tier_local_index(self) -> int:
        return self.tier.local_index(self.ordinal)

    @property
    def distractors(self) -> List[Chip]:
        return [c for c in self.chip_inventory if c.id not in self.solution]

    @property
    def required_chips(self) -> List[Chip]:
        return [c for c in self.chip_inventory if c.id in self.solution]

    def template(self, key: str) -> Optional[Receptacle]:
        for r in self.receptacle_templates:
            if r.key == key:
                return r
        return None

    def chip(self, chip_id: str) -> Optional[Chip]:
        for c in self.chip_inventory:
            if c.id == chip_id:
                return c
        return None

    def summary(self) -> Dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "tier": self.tier.value,
            "tier_label": self.tier.label,
            "tier_index": self.tier_local_index,
            "receptacles": len(self.receptacle_templates),
            "junctions": len(self.junctions),
            "chips": len(self.chip_inventory),
        }

    def to_dict(self, include_solution: bool = False) -> Dict[str, Any]:
        out = {
            **self.summary(),
            "grid": self.grid_dimensions.to_dict(),
            "receptacles": [r.to_dict() for r in self.receptacle_templates],
            "junctions": [j.to_dict() for j in self.junctions],
            "chips": [c.to_dict() for c in self.chip_inventory],
        }
        if include_solution:
            out["solution"] = {cid: list(keys) for cid, keys in self.solution.items()}
        return out
