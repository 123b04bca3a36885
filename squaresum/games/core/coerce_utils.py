# squaresum/games/core/coerce_utils.py
from typing import Any, List, Optional

from squaresum.games.square_sum.logic.levels import DifficultyTier


def coerce_int(val: Any) -> Optional[int]:
    """Int from an int or numeric string; None for anything else (bools included)."""
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, str) and val.strip().lstrip("-").isdigit():
        return int(val.strip())
    return None


def coerce_key_list(val: Any) -> List[str]:
    """Receptacle keys from a list or a comma/colon separated string."""
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return [str(x).strip() for x in val if str(x).strip()]
    if isinstance(val, str):
        parts = val.replace(":", ",").split(",")
        return [p.strip() for p in parts if p.strip()]
    return []


_TIER_ALIASES = {
    "0": DifficultyTier.LOW, "low": DifficultyTier.LOW, "easy": DifficultyTier.LOW, "novice": DifficultyTier.LOW,
    "1": DifficultyTier.MID, "mid": DifficultyTier.MID, "medium": DifficultyTier.MID, "adept": DifficultyTier.MID,
    "2": DifficultyTier.HIGH, "high": DifficultyTier.HIGH, "hard": DifficultyTier.HIGH, "virtuoso": DifficultyTier.HIGH,
}


def normalize_tier(level: Optional[str]) -> Optional[DifficultyTier]:
    """UI tier name -> DifficultyTier; None when absent or unknown."""
    if level is None:
        return None
    return _TIER_ALIASES.get(str(level).strip().lower())
