# squaresum/games/square_sum/logic/session.py
from __future__ import annotations
import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .board import Receptacle
from .chips import Chip
from .levels import LevelDefinition

logger = logging.getLogger(__name__)

JUNCTION_PREFIX = "junction"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SOLVED = "solved"


def junction_token(keys: Sequence[str]) -> str:
    return ":".join([JUNCTION_PREFIX, *keys])


class SessionEngine:
    """
    One play attempt at a level.

    Placements either apply completely or not at all; a rejected placement
    returns False and leaves every piece of state as it was. Overflow is a
    status, never a rejection. There is no undo: `reset` is the only way back.
    """

    def __init__(self, level: LevelDefinition):
        self.level = level
        self.reset()

    # ---- lifecycle ----
    def reset(self) -> None:
        self._receptacles: Dict[str, Receptacle] = {
            t.key: t.clone_empty() for t in self.level.receptacle_templates
        }
        self._remaining: Dict[str, Chip] = {c.id: c for c in self.level.chip_inventory}
        self._ledger: Dict[str, str] = {}
        self._moves = 0
        self.highlighted: Optional[Chip] = None

    # ---- placement ----
    def place_in_receptacle(self, chip: Chip, receptacle_key: str) -> bool:
        target = self._receptacles.get(receptacle_key)
        if target is None:
            logger.debug("level %s: no receptacle %r", self.level.ordinal, receptacle_key)
            return False
        if not self._take(chip):
            return False
        self._receptacles[receptacle_key] = target.with_deposit(chip)
        self._ledger[chip.id] = receptacle_key
        self._after_move(chip)
        return True

    def place_in_junction(self, chip: Chip, receptacle_keys: Sequence[str]) -> bool:
        keys = list(receptacle_keys or [])
        if len(keys) < 2 or len(set(keys)) != len(keys):
            logger.debug("level %s: junction needs two or more distinct keys, got %r", self.level.ordinal, keys)
            return False
        missing = [k for k in keys if k not in self._receptacles]
        if missing:
            logger.debug("level %s: junction names unknown receptacles %r", self.level.ordinal, missing)
            return False
        if not self._take(chip):
            return False
        for key in keys:
            self._receptacles[key] = self._receptacles[key].with_deposit(chip)
        self._ledger[chip.id] = junction_token(keys)
        self._after_move(chip)
        return True

    def _take(self, chip: Chip) -> bool:
        if chip is None or chip.id not in self._remaining:
            logger.debug("level %s: chip %s is not in hand", self.level.ordinal, getattr(chip, "id", None))
            return False
        del self._remaining[chip.id]
        return True

    def _after_move(self, chip: Chip) -> None:
        self._moves += 1
        if self.highlighted is not None and self.highlighted.id == chip.id:
            self.highlighted = None
        if self.is_solved:
            logger.info("level %s solved in %d moves", self.level.ordinal, self._moves)

    # ---- selection ----
    def highlight(self, chip: Optional[Chip]) -> bool:
        """Select a chip still in hand (None clears the selection)."""
        if chip is not None and chip.id not in self._remaining:
            return False
        self.highlighted = chip
        return True

    # ---- status ----
    @property
    def is_solved(self) -> bool:
        return all(r.is_at_equilibrium for r in self._receptacles.values())

    @property
    def has_overflow(self) -> bool:
        return any(r.is_overflowing for r in self._receptacles.values())

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.SOLVED if self.is_solved else SessionStatus.IN_PROGRESS

    @property
    def move_count(self) -> int:
        return self._moves

    # ---- read-only views ----
    @property
    def remaining_chips(self) -> List[Chip]:
        return list(self._remaining.values())

    @property
    def receptacles(self) -> Mapping[str, Receptacle]:
        return MappingProxyType(dict(self._receptacles))

    @property
    def placement_ledger(self) -> Dict[str, str]:
        return dict(self._ledger)

    def receptacle(self, key: str) -> Optional[Receptacle]:
        return self._receptacles.get(key)

    def find_chip(self, chip_id: str) -> Optional[Chip]:
        """Chip of this level by id, whether still in hand or already placed."""
        return self._remaining.get(chip_id) or self.level.chip(chip_id)

    def is_remaining(self, chip_id: str) -> bool:
        return chip_id in self._remaining

    def receptacles_at(self, column: int, row: int) -> List[str]:
        """Keys of every receptacle covering a grid cell; two or more means an overlap."""
        return [key for key, r in self._receptacles.items() if r.covers(column, row)]

    def snapshot(self) -> Dict[str, Any]:
        return {
            "ordinal": self.level.ordinal,
            "status": self.status.value,
            "solved": self.is_solved,
            "overflow": self.has_overflow,
            "moves": self._moves,
            "remaining": [c.to_dict() for c in self._remaining.values()],
            "receptacles": [r.to_dict() for r in self._receptacles.values()],
            "ledger": dict(self._ledger),
            "highlighted": self.highlighted.id if self.highlighted else None,
        }
