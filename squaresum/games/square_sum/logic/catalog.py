# squaresum/games/square_sum/logic/catalog.py
"""
Level catalog: builds the 60 SquareSum levels once and serves them.

Tiers low and mid come from the hand-authored blueprints below. Every target
there is derived from the chip weights (junction weights plus exclusives), so
solvability holds by plain arithmetic.

Tier high is procedural. Junction chips are drawn first and subtracted from
both incident receptacles, then each remaining residual is split greedily into
chips of magnitude 1..9, then distractors are added and the hand shuffled.
Junction draws are bounded so every residual stays >= 1, which is what keeps
the greedy split valid.

Randomness flows through one `random.Random` per level, seeded from the
catalog seed and the ordinal, so the whole catalog (chip ids included) is
reproducible from its seed.
"""
from __future__ import annotations
import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .board import GridDimensions, GridPlacement, Junction, Receptacle
from .chips import MAX_MAGNITUDE, MIN_MAGNITUDE, Chip, Suit
from .levels import (
    LEVEL_COUNT,
    UNSHARED,
    DifficultyTier,
    LevelDefinition,
    Pairing,
    Shared,
    shared_weight,
)

logger = logging.getLogger(__name__)

MIN_JUNCTION_WEIGHT = 4
MAX_JUNCTION_WEIGHT = 9
PROCEDURAL_BASE_TARGET = 12
PROCEDURAL_MAX_RECEPTACLES = 6
PROCEDURAL_GRID_WIDTH = 3


class GenerationInvariantError(RuntimeError):
    """A generated level broke a construction invariant. Always a generator bug."""


# ============================================================
# Hand-authored blueprints
# ============================================================

@dataclass(frozen=True)
class SplitBlueprint:
    """Two receptacles, no junction; each exclusive run fills one target."""
    exclusive_a: Tuple[int, ...]
    exclusive_b: Tuple[int, ...]


@dataclass(frozen=True)
class JunctionPairBlueprint:
    """Two receptacles sharing one junction chip."""
    shared: int
    exclusive_a: Tuple[int, ...]
    exclusive_b: Tuple[int, ...]


@dataclass(frozen=True)
class ChainBlueprint:
    """Three receptacles in a row; A-B and B-C may share, A-C may share too."""
    ab: Pairing
    bc: Pairing
    ac: Pairing
    exclusive_a: Tuple[int, ...]
    exclusive_b: Tuple[int, ...]
    exclusive_c: Tuple[int, ...]


@dataclass(frozen=True)
class TriangleBlueprint:
    """Three mutually overlapping receptacles sharing one central chip."""
    center: int
    exclusive_a: Tuple[int, ...]
    exclusive_b: Tuple[int, ...]
    exclusive_c: Tuple[int, ...]


Blueprint = Union[SplitBlueprint, JunctionPairBlueprint, ChainBlueprint, TriangleBlueprint]


def _chain(ab: int, bc: int, ac: Optional[int], a: Sequence[int], b: Sequence[int], c: Sequence[int]) -> ChainBlueprint:
    return ChainBlueprint(
        ab=Shared(ab), bc=Shared(bc), ac=Shared(ac) if ac else UNSHARED,
        exclusive_a=tuple(a), exclusive_b=tuple(b), exclusive_c=tuple(c),
    )


def _triangle(center: int, a: Sequence[int], b: Sequence[int], c: Sequence[int]) -> TriangleBlueprint:
    return TriangleBlueprint(center=center, exclusive_a=tuple(a), exclusive_b=tuple(b), exclusive_c=tuple(c))


def _split(a: Sequence[int], b: Sequence[int]) -> SplitBlueprint:
    return SplitBlueprint(exclusive_a=tuple(a), exclusive_b=tuple(b))


def _pair(shared: int, a: Sequence[int], b: Sequence[int]) -> JunctionPairBlueprint:
    return JunctionPairBlueprint(shared=shared, exclusive_a=tuple(a), exclusive_b=tuple(b))


# levels 1..20
LOW_TIER_BLUEPRINTS: Tuple[Blueprint, ...] = (
    _split((2, 3), (3, 4)),          # 5 / 7
    _split((2, 4), (3, 5)),          # 6 / 8
    _split((4, 5), (2, 4)),          # 9 / 6
    _split((3, 7), (2, 6)),          # 10 / 8
    _split((5, 6), (4, 5)),          # 11 / 9
    _pair(3, (5,), (7,)),            # 8 / 10, first junction level
    _pair(4, (6,), (8,)),            # 10 / 12
    _split((5, 7), (4, 6)),          # 12 / 10
    _pair(5, (6,), (8,)),            # 11 / 13
    _split((6, 8), (5, 6)),          # 14 / 11
    _pair(6, (6,), (8,)),            # 12 / 14
    _split((7, 8), (5, 7)),          # 15 / 12
    _pair(7, (6,), (9,)),            # 13 / 16
    _split((8, 8), (6, 7)),          # 16 / 13
    _pair(8, (6,), (9,)),            # 14 / 17
    _split((9, 8), (7, 7)),          # 17 / 14
    _pair(9, (6,), (9,)),            # 15 / 18
    _split((9, 9), (8, 7)),          # 18 / 15
    _pair(4, (6, 6), (7,)),          # 16 / 11
    _pair(5, (7, 5), (9,)),          # 17 / 14
)

# levels 21..40
MID_TIER_BLUEPRINTS: Tuple[Blueprint, ...] = (
    _chain(4, 3, None, (6,), (5,), (5,)),        # 10 / 12 / 8
    _chain(5, 4, None, (6,), (4,), (5,)),        # 11 / 13 / 9
    _chain(6, 5, None, (6,), (3,), (5,)),        # 12 / 14 / 10
    _chain(7, 6, None, (6,), (2,), (5,)),        # 13 / 15 / 11
    _chain(8, 7, None, (6,), (1,), (5,)),        # 14 / 16 / 12
    _triangle(5, (7,), (9,), (8,)),              # 12 / 14 / 13
    _triangle(6, (7,), (9,), (8,)),              # 13 / 15 / 14
    _chain(8, 7, 5, (2,), (2,), (1,)),           # 15 / 17 / 13
    _triangle(7, (7,), (9,), (8,)),              # 14 / 16 / 15
    _chain(9, 8, 6, (1,), (1,), ()),             # 16 / 18 / 14
    _triangle(8, (7,), (9,), (8,)),              # 15 / 17 / 16
    _chain(9, 8, 7, (1,), (2,), ()),             # 17 / 19 / 15
    _triangle(9, (7,), (9,), (8,)),              # 16 / 18 / 17
    _chain(9, 9, 8, (1,), (2,), ()),             # 18 / 20 / 17
    _triangle(9, (8,), (1, 9), (9,)),            # 17 / 19 / 18
    _chain(9, 9, 9, (1,), (3,), ()),             # 19 / 21 / 18
    _triangle(9, (9,), (2, 9), (1, 9)),          # 18 / 20 / 19
    _chain(9, 9, 9, (2,), (4,), ()),             # 20 / 22 / 18
    _triangle(9, (1, 9), (3, 9), (2, 9)),        # 19 / 21 / 20
    _chain(9, 9, 9, (3,), (5,), (1,)),           # 21 / 23 / 19
)


# ============================================================
# Level assembly
# ============================================================

class _LevelBuilder:
    """Collects receptacles, junctions, chips and the intended placements for one level."""

    def __init__(self, ordinal: int, tier: DifficultyTier, rng: random.Random, seed: Optional[int]):
        self.ordinal = ordinal
        self.tier = tier
        self.rng = rng
        self.seed = seed
        self.receptacles: List[Receptacle] = []
        self.junctions: List[Junction] = []
        self.chips: List[Chip] = []
        self.solution: Dict[str, Tuple[str, ...]] = {}

    def receptacle(self, key: str, target: int, placement: GridPlacement, linked: Sequence[str] = ()) -> None:
        self.receptacles.append(Receptacle(key=key, target=target, placement=placement, linked_keys=tuple(linked)))

    def junction(self, anchor: str, auxiliary: str, placement: GridPlacement) -> None:
        self.junctions.append(Junction(anchor_key=anchor, auxiliary_key=auxiliary, placement=placement))

    def chip(self, suit: Suit, magnitude: int, keys: Sequence[str] = ()) -> Chip:
        if not MIN_MAGNITUDE <= magnitude <= MAX_MAGNITUDE:
            raise GenerationInvariantError(
                f"level {self.ordinal}: chip magnitude {magnitude} outside [{MIN_MAGNITUDE}, {MAX_MAGNITUDE}]"
            )
        c = Chip.create(suit, magnitude, self.rng)
        self.chips.append(c)
        if keys:
            self.solution[c.id] = tuple(keys)
        return c

    def exclusives(self, key: str, suit: Suit, magnitudes: Sequence[int]) -> None:
        for m in magnitudes:
            if m > 0:
                self.chip(suit, m, (key,))

    def build(self, grid: GridDimensions, shuffle: bool = False) -> LevelDefinition:
        if shuffle:
            self.rng.shuffle(self.chips)
        level = LevelDefinition(
            ordinal=self.ordinal,
            tier=self.tier,
            receptacle_templates=tuple(self.receptacles),
            chip_inventory=tuple(self.chips),
            junctions=tuple(self.junctions),
            grid_dimensions=grid,
            solution=self.solution,
            seed=self.seed,
        )
        _check_solution_sums(level)
        return level


def _check_solution_sums(level: LevelDefinition) -> None:
    """Intended placements must land every receptacle exactly on its target."""
    sums = {r.key: 0 for r in level.receptacle_templates}
    for chip in level.required_chips:
        for key in level.solution[chip.id]:
            if key not in sums:
                raise GenerationInvariantError(f"level {level.ordinal}: solution names unknown receptacle {key!r}")
            sums[key] += chip.magnitude
    for r in level.receptacle_templates:
        if sums[r.key] != r.target:
            raise GenerationInvariantError(
                f"level {level.ordinal}: receptacle {r.key} sums to {sums[r.key]}, target {r.target}"
            )


def _build_split(b: _LevelBuilder, bp: SplitBlueprint) -> LevelDefinition:
    b.receptacle("slot_a", sum(bp.exclusive_a), GridPlacement(0, 0))
    b.receptacle("slot_b", sum(bp.exclusive_b), GridPlacement(1, 0))
    for i, m in enumerate(bp.exclusive_a + bp.exclusive_b):
        key = "slot_a" if i < len(bp.exclusive_a) else "slot_b"
        b.chip(Suit.cycle(i), m, (key,))
    return b.build(GridDimensions(column_count=2, row_count=1))


def _build_junction_pair(b: _LevelBuilder, bp: JunctionPairBlueprint) -> LevelDefinition:
    b.receptacle("slot_a", bp.shared + sum(bp.exclusive_a), GridPlacement(0, 0, 2, 1), ("slot_b",))
    b.receptacle("slot_b", bp.shared + sum(bp.exclusive_b), GridPlacement(1, 0, 2, 1), ("slot_a",))
    b.junction("slot_a", "slot_b", GridPlacement(1, 0))
    b.chip(Suit.A, bp.shared, ("slot_a", "slot_b"))
    b.exclusives("slot_a", Suit.B, bp.exclusive_a)
    b.exclusives("slot_b", Suit.C, bp.exclusive_b)
    return b.build(GridDimensions(column_count=3, row_count=1))


def _build_chain(b: _LevelBuilder, bp: ChainBlueprint) -> LevelDefinition:
    ab, bc, ac = shared_weight(bp.ab), shared_weight(bp.bc), shared_weight(bp.ac)
    links: Dict[str, List[str]] = {"slot_a": [], "slot_b": [], "slot_c": []}
    pairs = (
        ("slot_a", "slot_b", bp.ab, Suit.A, GridPlacement(1, 0)),
        ("slot_b", "slot_c", bp.bc, Suit.B, GridPlacement(2, 0)),
        ("slot_a", "slot_c", bp.ac, Suit.C, GridPlacement(1, 1, 2, 1)),
    )
    for left, right, pairing, _suit, _pos in pairs:
        if isinstance(pairing, Shared):
            links[left].append(right)
            links[right].append(left)

    b.receptacle("slot_a", ab + ac + sum(bp.exclusive_a), GridPlacement(0, 0, 2, 1), links["slot_a"])
    b.receptacle("slot_b", ab + bc + sum(bp.exclusive_b), GridPlacement(1, 0, 2, 1), links["slot_b"])
    b.receptacle("slot_c", bc + ac + sum(bp.exclusive_c), GridPlacement(2, 0, 2, 1), links["slot_c"])

    for left, right, pairing, suit, pos in pairs:
        if isinstance(pairing, Shared):
            b.junction(left, right, pos)
            b.chip(suit, pairing.weight, (left, right))

    b.exclusives("slot_a", Suit.A, bp.exclusive_a)
    b.exclusives("slot_b", Suit.B, bp.exclusive_b)
    b.exclusives("slot_c", Suit.C, bp.exclusive_c)
    rows = 2 if isinstance(bp.ac, Shared) else 1
    return b.build(GridDimensions(column_count=4, row_count=rows))


def _build_triangle(b: _LevelBuilder, bp: TriangleBlueprint) -> LevelDefinition:
    keys = ("slot_a", "slot_b", "slot_c")
    b.receptacle("slot_a", bp.center + sum(bp.exclusive_a), GridPlacement(0, 0, 2, 2), ("slot_b", "slot_c"))
    b.receptacle("slot_b", bp.center + sum(bp.exclusive_b), GridPlacement(1, 0, 2, 2), ("slot_a", "slot_c"))
    b.receptacle("slot_c", bp.center + sum(bp.exclusive_c), GridPlacement(0, 1, 2, 2), ("slot_a", "slot_b"))
    center = GridPlacement(1, 1)
    b.junction("slot_a", "slot_b", center)
    b.junction("slot_a", "slot_c", center)
    b.junction("slot_b", "slot_c", center)
    b.chip(Suit.A, bp.center, keys)
    b.exclusives("slot_a", Suit.B, bp.exclusive_a)
    b.exclusives("slot_b", Suit.C, bp.exclusive_b)
    b.exclusives("slot_c", Suit.A, bp.exclusive_c)
    return b.build(GridDimensions(column_count=3, row_count=3))


_BUILDERS = {
    SplitBlueprint: _build_split,
    JunctionPairBlueprint: _build_junction_pair,
    ChainBlueprint: _build_chain,
    TriangleBlueprint: _build_triangle,
}


def build_authored_level(ordinal: int, blueprint: Blueprint, rng: random.Random,
                         seed: Optional[int] = None) -> LevelDefinition:
    tier = DifficultyTier.for_ordinal(ordinal)
    if tier is None:
        raise ValueError(f"ordinal {ordinal} outside 1..{LEVEL_COUNT}")
    return _BUILDERS[type(blueprint)](_LevelBuilder(ordinal, tier, rng, seed), blueprint)


# ============================================================
# Procedural (tier high)
# ============================================================

def procedural_receptacle_count(offset: int) -> int:
    return min(PROCEDURAL_MAX_RECEPTACLES, 4 + offset // 5)


def procedural_distractor_count(offset: int) -> int:
    return 1 + offset // 4


def procedural_target(base: int, index: int) -> int:
    return base + 2 * index - (3 if index > 2 else 0)


def draw_junction_weight(rng: random.Random, residual_a: int, residual_b: int) -> int:
    """
    Junction weight in [4, 9], capped so neither residual drops below 1.
    When a residual is small the lower bound follows the cap down.
    """
    upper = min(MAX_JUNCTION_WEIGHT, residual_a - 1, residual_b - 1)
    if upper < MIN_MAGNITUDE:
        raise GenerationInvariantError(
            f"no room for a junction chip (residuals {residual_a}, {residual_b})"
        )
    lower = min(MIN_JUNCTION_WEIGHT, upper)
    return rng.randint(lower, upper)


def decompose_residual(rng: random.Random, residual: int) -> List[int]:
    """Split a positive residual into magnitudes in [1, 9] that add up to it exactly."""
    parts: List[int] = []
    leftover = residual
    while leftover > 0:
        value = rng.randint(MIN_MAGNITUDE, min(MAX_MAGNITUDE, leftover))
        parts.append(value)
        leftover -= value
    return parts


def build_procedural_level(ordinal: int, rng: random.Random, seed: Optional[int] = None) -> LevelDefinition:
    tier = DifficultyTier.for_ordinal(ordinal)
    if tier is not DifficultyTier.HIGH:
        raise ValueError(f"ordinal {ordinal} is not a procedural level")

    offset = ordinal - tier.first_ordinal
    count = procedural_receptacle_count(offset)
    base = PROCEDURAL_BASE_TARGET + offset
    b = _LevelBuilder(ordinal, tier, rng, seed)

    # 1-2. grid layout, targets, same-row neighbours joined by junctions
    for i in range(count):
        col, row = i % PROCEDURAL_GRID_WIDTH, i // PROCEDURAL_GRID_WIDTH
        linked = []
        if col > 0:
            linked.append(f"slot_{i - 1}")
        if col < PROCEDURAL_GRID_WIDTH - 1 and i + 1 < count:
            linked.append(f"slot_{i + 1}")
        span = 2 if col < PROCEDURAL_GRID_WIDTH - 1 else 1
        b.receptacle(f"slot_{i}", procedural_target(base, i), GridPlacement(col, row, span, 1), linked)
        if col > 0:
            b.junction(f"slot_{i - 1}", f"slot_{i}", GridPlacement(col, row))

    residual = {r.key: r.target for r in b.receptacles}

    # 3. junction chips first, subtracted from both sides
    for j in b.junctions:
        weight = draw_junction_weight(rng, residual[j.anchor_key], residual[j.auxiliary_key])
        b.chip(rng.choice(Suit.ordered()), weight, j.keys)
        residual[j.anchor_key] -= weight
        residual[j.auxiliary_key] -= weight

    # 4. exclusive chips for whatever is left
    for index, r in enumerate(b.receptacles):
        left = residual[r.key]
        if left < 1:
            raise GenerationInvariantError(f"level {ordinal}: residual {left} for {r.key}")
        for m in decompose_residual(rng, left):
            b.chip(Suit.cycle(index), m, (r.key,))

    # 5. distractors, never part of the solution
    for _ in range(procedural_distractor_count(offset)):
        b.chip(rng.choice(Suit.ordered()), rng.randint(MIN_MAGNITUDE, MAX_MAGNITUDE))

    # 6. shuffled hand
    grid = GridDimensions(column_count=PROCEDURAL_GRID_WIDTH, row_count=(count + 2) // PROCEDURAL_GRID_WIDTH)
    level = b.build(grid, shuffle=True)
    logger.debug("procedural level %s: %d receptacles, %d chips, %d distractors",
                 ordinal, count, len(level.chip_inventory), len(level.distractors))
    return level


# ============================================================
# Catalog
# ============================================================

def level_rng(seed: int, ordinal: int) -> random.Random:
    """Independent stream per level, so one level can be rebuilt without the others."""
    return random.Random(f"squaresum:{seed}:{ordinal}")


def build_level(ordinal: int, seed: int) -> LevelDefinition:
    tier = DifficultyTier.for_ordinal(ordinal)
    if tier is None:
        raise ValueError(f"ordinal {ordinal} outside 1..{LEVEL_COUNT}")
    rng = level_rng(seed, ordinal)
    if tier is DifficultyTier.LOW:
        return build_authored_level(ordinal, LOW_TIER_BLUEPRINTS[ordinal - tier.first_ordinal], rng, seed)
    if tier is DifficultyTier.MID:
        return build_authored_level(ordinal, MID_TIER_BLUEPRINTS[ordinal - tier.first_ordinal], rng, seed)
    return build_procedural_level(ordinal, rng, seed)


class LevelCatalog:
    """
    All 60 levels, synthesized once on first use (or on `load`) and read-only
    afterwards. Synthesis is lock-guarded; lookups after that take no lock.
    """

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed if seed is not None else random.SystemRandom().randrange(2 ** 32)
        self._lock = threading.Lock()
        self._levels: Optional[Tuple[LevelDefinition, ...]] = None
        self._by_tier: Mapping[DifficultyTier, Tuple[LevelDefinition, ...]] = {}

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def loaded(self) -> bool:
        return self._levels is not None

    def load(self, force: bool = False) -> None:
        if self._levels is not None and not force:
            return
        with self._lock:
            if self._levels is not None and not force:
                return
            levels = tuple(build_level(n, self._seed) for n in range(1, LEVEL_COUNT + 1))
            by_tier = {t: tuple(lv for lv in levels if lv.tier is t) for t in DifficultyTier}
            # by_tier first: readers check _levels
            self._by_tier = by_tier
            self._levels = levels
        logger.info("Level catalog synthesized: %d levels (seed=%s)", len(levels), self._seed)

    def _all(self) -> Tuple[LevelDefinition, ...]:
        if self._levels is None:
            self.load()
        return self._levels

    def get_level(self, ordinal: int) -> Optional[LevelDefinition]:
        if not isinstance(ordinal, int) or not 1 <= ordinal <= LEVEL_COUNT:
            return None
        return self._all()[ordinal - 1]

    def get_levels_for_tier(self, tier: DifficultyTier) -> List[LevelDefinition]:
        self._all()
        return list(self._by_tier.get(DifficultyTier(tier), ()))

    def get_all_levels(self) -> List[LevelDefinition]:
        return list(self._all())

    def stats(self) -> Dict[str, Any]:
        levels = self._all()
        per_tier = {}
        for tier in DifficultyTier:
            rows = self._by_tier[tier]
            per_tier[tier.value] = {
                "levels": len(rows),
                "chips": sum(len(lv.chip_inventory) for lv in rows),
                "distractors": sum(len(lv.distractors) for lv in rows),
                "junctions": sum(len(lv.junctions) for lv in rows),
            }
        return {"seed": self._seed, "levels": len(levels), "tiers": per_tier}
