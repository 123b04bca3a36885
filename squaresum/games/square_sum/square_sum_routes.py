# squaresum/games/square_sum/square_sum_routes.py
# JSON play API for SquareSum: level list, level detail, and one live
# SessionEngine per player tab.
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from flask import current_app, g, jsonify, request

from squaresum.games.core.coerce_utils import coerce_int, coerce_key_list, normalize_tier
from squaresum.games.core.game_core import (
    add_elapsed,
    bump_placement,
    bump_played,
    bump_reset,
    bump_solved,
    elapsed_seconds,
    get_or_create_session_id,
    get_state,
    start_timer,
    stats_payload,
)
from squaresum.games.core.store_registry import get_store

from . import bp
from .logic.catalog import LevelCatalog
from .logic.session import SessionEngine
from .progress import MemoryProgressStore, SqlProgressStore

logger = logging.getLogger(__name__)

CATALOG_KEY = "square_sum.catalog"
PROGRESS_KEY = "square_sum.progress"


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------
def get_catalog() -> LevelCatalog:
    return get_store(CATALOG_KEY, lambda: LevelCatalog(seed=current_app.config.get("SQUARESUM_CATALOG_SEED")))


def _sid() -> str:
    if "square_sum_sid" not in g:
        g.square_sum_sid = get_or_create_session_id(request)
    return g.square_sum_sid


def _player_key() -> str:
    # progress follows the browser, not the tab
    return _sid().split(":", 1)[0]


def get_progress_store():
    backend = current_app.config.get("SQUARESUM_PROGRESS_BACKEND", "memory")
    if backend == "sql":
        return SqlProgressStore(_player_key())
    players: Dict[str, MemoryProgressStore] = get_store(PROGRESS_KEY, dict, load=False)
    return players.setdefault(_player_key(), MemoryProgressStore())


def _state() -> Dict[str, Any]:
    return get_state(_sid())


def _engine() -> Optional[SessionEngine]:
    return _state().get("engine")


@bp.after_request
def _remember_session(resp):
    if not request.cookies.get("session_id") and "square_sum_sid" in g:
        resp.set_cookie("session_id", _player_key(), httponly=True, samesite="Lax")
    return resp


def _fail(reason: str, status: int = 200, **extra) -> Tuple[Any, int]:
    return jsonify({"ok": False, "reason": reason, **extra}), status


def _json_object() -> Optional[Dict[str, Any]]:
    """Request body as a dict; None when it is missing or not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _play_payload(engine: SessionEngine, **extra) -> Dict[str, Any]:
    return {"ok": True, "session": engine.snapshot(), "stats": stats_payload(_state()), **extra}


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------
@bp.get("/api/levels")
def api_levels():
    tier_arg = request.args.get("tier")
    catalog = get_catalog()
    if tier_arg:
        tier = normalize_tier(tier_arg)
        if tier is None:
            return _fail(f"Unknown tier {tier_arg!r}", 400)
        levels = catalog.get_levels_for_tier(tier)
    else:
        levels = catalog.get_all_levels()

    progress = get_progress_store()
    rows = []
    for level in levels:
        row = level.summary()
        row["unlocked"] = progress.is_unlocked(level.ordinal)
        row["completed"] = progress.is_completed(level.ordinal)
        rows.append(row)
    return jsonify({"ok": True, "levels": rows}), 200


@bp.get("/api/levels/<int:ordinal>")
def api_level(ordinal: int):
    level = get_catalog().get_level(ordinal)
    if level is None:
        return _fail(f"No level {ordinal}", 404)
    return jsonify({"ok": True, "level": level.to_dict()}), 200


@bp.get("/api/progress")
def api_progress():
    progress = get_progress_store()
    rows = [progress.progress(n).to_dict() for n in range(1, len(get_catalog().get_all_levels()) + 1)]
    return jsonify({"ok": True, "progress": rows, "completed": progress.completed_count()}), 200


# -----------------------------------------------------------------------------
# Play
# -----------------------------------------------------------------------------
@bp.post("/api/start")
def api_start():
    data = _json_object()
    if data is None:
        return _fail("Body must be a JSON object", 400)
    ordinal = coerce_int(data.get("ordinal"))
    if ordinal is None:
        return _fail("Missing or invalid ordinal", 400)

    level = get_catalog().get_level(ordinal)
    if level is None:
        return _fail(f"No level {ordinal}", 404)
    if not get_progress_store().is_unlocked(ordinal):
        return _fail(f"Level {ordinal} is locked", 403)

    state = _state()
    engine = SessionEngine(level)
    state["engine"] = engine
    state["ordinal"] = ordinal
    state["completion_recorded"] = False
    bump_played(state)
    start_timer(state)
    logger.info("sid=%s started level %s", _sid(), ordinal)
    return jsonify(_play_payload(engine, level=level.to_dict())), 200


@bp.post("/api/place")
def api_place():
    engine = _engine()
    if engine is None:
        return _fail("No level in progress", 400)

    data = _json_object()
    if data is None:
        return _fail("Body must be a JSON object", 400)
    chip_id = data.get("chip_id")
    if not chip_id:
        return _fail("Missing chip_id", 400)

    state = _state()
    chip = engine.find_chip(str(chip_id))
    if chip is None:
        bump_placement(state, applied=False)
        return _fail("Unknown chip", session=engine.snapshot(), stats=stats_payload(state))

    if "keys" in data:
        keys = coerce_key_list(data.get("keys"))
        applied = engine.place_in_junction(chip, keys)
    else:
        key = data.get("key")
        if not key:
            return _fail("Missing key or keys", 400)
        applied = engine.place_in_receptacle(chip, str(key))

    bump_placement(state, applied)
    if not applied:
        return _fail("Placement did not apply", session=engine.snapshot(), stats=stats_payload(state))

    just_solved = engine.is_solved and not state.get("completion_recorded")
    if just_solved:
        lap = elapsed_seconds(state)
        get_progress_store().record_completion(engine.level.ordinal, engine.move_count, lap)
        add_elapsed(state)
        bump_solved(state)
        state["completion_recorded"] = True
    return jsonify(_play_payload(engine, just_solved=just_solved)), 200


@bp.post("/api/highlight")
def api_highlight():
    engine = _engine()
    if engine is None:
        return _fail("No level in progress", 400)
    data = _json_object()
    if data is None:
        return _fail("Body must be a JSON object", 400)
    chip_id = data.get("chip_id")
    chip = engine.find_chip(str(chip_id)) if chip_id else None
    if chip_id and chip is None:
        return _fail("Unknown chip")
    if not engine.highlight(chip):
        return _fail("Chip already placed")
    return jsonify(_play_payload(engine)), 200


@bp.post("/api/reset")
def api_reset():
    engine = _engine()
    if engine is None:
        return _fail("No level in progress", 400)
    state = _state()
    engine.reset()
    state["completion_recorded"] = False
    bump_reset(state)
    start_timer(state)
    return jsonify(_play_payload(engine)), 200


@bp.get("/api/state")
def api_state():
    engine = _engine()
    if engine is None:
        return jsonify({"ok": True, "session": None, "stats": stats_payload(_state())}), 200
    return jsonify(_play_payload(engine)), 200


@bp.get("/api/overlaps")
def api_overlaps():
    engine = _engine()
    if engine is None:
        return _fail("No level in progress", 400)
    column = coerce_int(request.args.get("column"))
    row = coerce_int(request.args.get("row"))
    if column is None or row is None:
        return _fail("column and row are required", 400)
    return jsonify({"ok": True, "keys": engine.receptacles_at(column, row)}), 200
