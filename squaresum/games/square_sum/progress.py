# squaresum/games/square_sum/progress.py
"""
Progress store collaborators. The play layer only needs `record_completion`
and `is_unlocked`; the rest is for level-select screens and the CLI.

Rules shared by every backend:
  * level 1 is always unlocked;
  * completing level N unlocks N+1 (nothing past the last level);
  * best move count and best time only ever go down.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Protocol

from squaresum.db import db
from squaresum.models import LevelProgressRecord
from .logic.levels import LEVEL_COUNT, DifficultyTier

logger = logging.getLogger(__name__)


@dataclass
class LevelProgress:
    ordinal: int
    is_unlocked: bool = False
    is_completed: bool = False
    best_move_count: Optional[int] = None
    best_time_seconds: Optional[float] = None

    def absorb(self, move_count: int, elapsed_seconds: float) -> None:
        self.is_completed = True
        self.best_move_count = move_count if self.best_move_count is None else min(self.best_move_count, move_count)
        self.best_time_seconds = (elapsed_seconds if self.best_time_seconds is None
                                  else min(self.best_time_seconds, elapsed_seconds))

    def to_dict(self) -> Dict:
        return {
            "ordinal": self.ordinal,
            "unlocked": self.is_unlocked,
            "completed": self.is_completed,
            "best_moves": self.best_move_count,
            "best_time": self.best_time_seconds,
        }


class ProgressStore(Protocol):
    def record_completion(self, ordinal: int, move_count: int, elapsed_seconds: float) -> None: ...
    def is_unlocked(self, ordinal: int) -> bool: ...


def _in_range(ordinal: int) -> bool:
    return 1 <= ordinal <= LEVEL_COUNT


class MemoryProgressStore:
    """Process-local progress for one player."""

    def __init__(self):
        self._rows: Dict[int, LevelProgress] = {}
        self.reset_all()

    def progress(self, ordinal: int) -> LevelProgress:
        row = self._rows.get(ordinal)
        if row is None:
            row = LevelProgress(ordinal=ordinal, is_unlocked=(ordinal == 1))
            self._rows[ordinal] = row
        return row

    def is_unlocked(self, ordinal: int) -> bool:
        if not _in_range(ordinal):
            return False
        return self.progress(ordinal).is_unlocked

    def is_completed(self, ordinal: int) -> bool:
        return _in_range(ordinal) and self.progress(ordinal).is_completed

    def unlock(self, ordinal: int) -> None:
        if not _in_range(ordinal):
            return
        self.progress(ordinal).is_unlocked = True

    def record_completion(self, ordinal: int, move_count: int, elapsed_seconds: float) -> None:
        if not _in_range(ordinal):
            logger.warning("ignoring completion for unknown level %s", ordinal)
            return
        self.progress(ordinal).absorb(move_count, elapsed_seconds)
        self.unlock(ordinal + 1)

    def completed_count(self, tier: Optional[DifficultyTier] = None) -> int:
        rows = [r for r in self._rows.values() if r.is_completed]
        if tier is not None:
            rows = [r for r in rows if r.ordinal in tier.ordinals()]
        return len(rows)

    def reset_all(self) -> None:
        self._rows.clear()
        self.progress(1)


class SqlProgressStore:
    """Progress for one player, kept in the `level_progress` table."""

    def __init__(self, player_key: str):
        self.player_key = player_key

    def _row(self, ordinal: int, create: bool = False):
        row = LevelProgressRecord.query.filter_by(player_key=self.player_key, ordinal=ordinal).first()
        if row is None and create:
            row = LevelProgressRecord(player_key=self.player_key, ordinal=ordinal,
                                      is_unlocked=(ordinal == 1), is_completed=False)
            db.session.add(row)
        return row

    def progress(self, ordinal: int) -> LevelProgress:
        row = self._row(ordinal)
        if row is None:
            return LevelProgress(ordinal=ordinal, is_unlocked=(ordinal == 1))
        return row.to_progress()

    def is_unlocked(self, ordinal: int) -> bool:
        if not _in_range(ordinal):
            return False
        return self.progress(ordinal).is_unlocked

    def is_completed(self, ordinal: int) -> bool:
        return _in_range(ordinal) and self.progress(ordinal).is_completed

    def unlock(self, ordinal: int) -> None:
        if not _in_range(ordinal):
            return
        row = self._row(ordinal, create=True)
        row.is_unlocked = True
        row.updated_at = datetime.utcnow()
        db.session.commit()

    def record_completion(self, ordinal: int, move_count: int, elapsed_seconds: float) -> None:
        if not _in_range(ordinal):
            logger.warning("ignoring completion for unknown level %s", ordinal)
            return
        row = self._row(ordinal, create=True)
        current = row.to_progress()
        current.absorb(move_count, elapsed_seconds)
        row.is_completed = True
        row.best_move_count = current.best_move_count
        row.best_time_seconds = current.best_time_seconds
        row.updated_at = datetime.utcnow()
        db.session.commit()
        logger.info("player %s completed level %s (moves=%s, %.1fs)",
                    self.player_key, ordinal, move_count, elapsed_seconds)
        self.unlock(ordinal + 1)

    def completed_count(self, tier: Optional[DifficultyTier] = None) -> int:
        q = LevelProgressRecord.query.filter_by(player_key=self.player_key, is_completed=True)
        if tier is not None:
            q = q.filter(LevelProgressRecord.ordinal.between(tier.first_ordinal, tier.last_ordinal))
        return q.count()

    def reset_all(self) -> None:
        LevelProgressRecord.query.filter_by(player_key=self.player_key).delete()
        db.session.commit()
