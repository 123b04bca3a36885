# squaresum/games/square_sum/logic/chips.py
from __future__ import annotations
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

MIN_MAGNITUDE = 1
MAX_MAGNITUDE = 9


class Suit(str, Enum):
    A = "zueys"
    B = "siuwn"
    C = "maoei"

    @property
    def display_name(self) -> str:
        return _SUIT_TITLES[self]

    @classmethod
    def ordered(cls) -> List["Suit"]:
        return [cls.A, cls.B, cls.C]

    @classmethod
    def cycle(cls, index: int) -> "Suit":
        """Suit for the index-th chip when suits are dealt round-robin."""
        suits = cls.ordered()
        return suits[index % len(suits)]


_SUIT_TITLES = {Suit.A: "Dots", Suit.B: "Characters", Suit.C: "Bamboo"}


def clamp_magnitude(value: int) -> int:
    return max(MIN_MAGNITUDE, min(MAX_MAGNITUDE, int(value)))


def new_chip_id(rng: Optional[random.Random] = None) -> str:
    """
    Fresh chip id. With an rng the id is derived from it, so a seeded
    generator reproduces the same ids run after run.
    """
    if rng is None:
        return str(uuid.uuid4())
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


@dataclass(frozen=True, eq=False)
class Chip:
    """
    One numbered, suited piece. Two chips with the same suit and magnitude
    are still different chips: equality and hashing go by id.
    """
    suit: Suit
    magnitude: int
    id: str = field(default_factory=new_chip_id)

    def __post_init__(self):
        object.__setattr__(self, "magnitude", clamp_magnitude(self.magnitude))
        object.__setattr__(self, "suit", Suit(self.suit))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chip):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def asset_designation(self) -> str:
        return f"{self.suit.value}-{self.magnitude}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "suit": self.suit.name,
            "suit_title": self.suit.display_name,
            "magnitude": self.magnitude,
            "asset": self.asset_designation,
        }

    # ---- factories ----
    @classmethod
    def create(cls, suit: Suit, magnitude: int, rng: Optional[random.Random] = None) -> "Chip":
        return cls(suit=suit, magnitude=magnitude, id=new_chip_id(rng))

    @classmethod
    def random(cls, rng: random.Random) -> "Chip":
        suit = rng.choice(Suit.ordered())
        return cls.create(suit, rng.randint(MIN_MAGNITUDE, MAX_MAGNITUDE), rng)


def chips_from_magnitudes(magnitudes: Sequence[int], suits: Optional[Sequence[Suit]] = None,
                          rng: Optional[random.Random] = None) -> List[Chip]:
    """Build a run of chips, cycling through `suits` (all three by default)."""
    suits = list(suits or Suit.ordered())
    return [Chip.create(suits[i % len(suits)], m, rng) for i, m in enumerate(magnitudes)]


def total_magnitude(chips: Sequence[Chip]) -> int:
    return sum(c.magnitude for c in chips)
