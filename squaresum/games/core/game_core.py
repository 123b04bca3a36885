# squaresum/games/core/game_core.py
from __future__ import annotations
from typing import Dict, Any
import logging
import time
import uuid

logger = logging.getLogger(__name__)

# ============================================================
# Per-tab play state
# ============================================================

def default_state() -> Dict[str, Any]:
    """
    Fresh per-session state. `engine` holds the live SessionEngine of the
    level being played (None before the first /api/start).
    """
    return {
        "stats": {
            "played": 0,           # levels started
            "solved": 0,
            "resets": 0,
            "placements": 0,       # accepted placements
            "rejected": 0,         # placements that did not apply
            "total_time": 0,       # seconds spent on solved levels
        },
        "engine": None,
        "ordinal": None,
        "current_started_at": None,   # per-attempt stopwatch (float epoch)
        "completion_recorded": False,
    }


def stats_payload(state: Dict[str, Any]) -> Dict[str, Any]:
    s = state.get("stats", {})
    return {k: int(s.get(k, 0)) for k in ("played", "solved", "resets", "placements", "rejected", "total_time")}


# ============================================================
# Timers
# ============================================================

def start_timer(state: Dict[str, Any]) -> None:
    state["current_started_at"] = time.time()


def elapsed_seconds(state: Dict[str, Any]) -> float:
    ts = state.get("current_started_at")
    if not ts:
        return 0.0
    return max(0.0, time.time() - ts)


def add_elapsed(state: Dict[str, Any]) -> float:
    """Fold the running stopwatch into total_time and stop it. Returns the lap."""
    lap = elapsed_seconds(state)
    state.setdefault("stats", {}).setdefault("total_time", 0)
    state["stats"]["total_time"] += int(round(lap))
    state["current_started_at"] = None
    return lap


# ============================================================
# Stats bumpers
# ============================================================

def _bump(state: Dict[str, Any], key: str) -> None:
    st = state.setdefault("stats", {})
    st[key] = int(st.get(key, 0)) + 1


def bump_played(state: Dict[str, Any]) -> None:
    _bump(state, "played")


def bump_solved(state: Dict[str, Any]) -> None:
    _bump(state, "solved")


def bump_reset(state: Dict[str, Any]) -> None:
    _bump(state, "resets")


def bump_placement(state: Dict[str, Any], applied: bool) -> None:
    _bump(state, "placements" if applied else "rejected")


# ============================================================
# Session & identity helpers
# ============================================================

def get_or_create_session_id(req) -> str:
    """
    Stable per-user (and optionally per-tab) session key:
      cookie 'session_id' (if present) else a new uuid4,
      optionally suffixed with ':<client_id>' (arg/body/header) to isolate tabs.
    """
    base = req.cookies.get("session_id") or str(uuid.uuid4())

    client = req.args.get("client_id")
    if not client and req.is_json:
        j = req.get_json(silent=True)
        if isinstance(j, dict):
            client = j.get("client_id")
    if not client:
        client = req.headers.get("X-Client-Session")

    if client:
        return f"{base}:{str(client)[:64]}"
    return base


# ============================================================
# Shared in-memory session store (per server process)
# ============================================================

SESSIONS: Dict[str, Dict[str, Any]] = {}
"""
key: session_id (cookie + optional client_id) -> per-session dict (see default_state()).
Engines are single-writer; each key belongs to one player tab.
"""


def get_state(session_id: str) -> Dict[str, Any]:
    return SESSIONS.setdefault(session_id, default_state())


__all__ = [
    "SESSIONS", "default_state", "stats_payload",
    "get_or_create_session_id", "get_state",
    "start_timer", "elapsed_seconds", "add_elapsed",
    "bump_played", "bump_solved", "bump_reset", "bump_placement",
]
