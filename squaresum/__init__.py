# squaresum/__init__.py
from __future__ import annotations
import logging
import os
from typing import Any, Mapping, Optional

import click
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .db import db

# dev-friendly in-memory limiter; swap for redis in prod
limiter = Limiter(get_remote_address, storage_uri="memory://")


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)

    # ---------------------------
    # Config
    # ---------------------------
    app.config.from_object("squaresum.config.Config")
    app.config.from_pyfile("config.py", silent=True)  # instance/config.py (optional)
    if config_overrides:
        app.config.update(config_overrides)

    app.config.setdefault(
        "SQLALCHEMY_DATABASE_URI",
        os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    )
    app.config.setdefault("SQUARESUM_PROGRESS_BACKEND", "memory")
    app.config.setdefault("SQUARESUM_WARMUP", True)

    backend = app.config["SQUARESUM_PROGRESS_BACKEND"]
    if backend not in ("memory", "sql"):
        raise RuntimeError(f"Unknown SQUARESUM_PROGRESS_BACKEND {backend!r} (use 'memory' or 'sql').")
    if backend == "sql" and not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError(
            "Missing SQLALCHEMY_DATABASE_URI (or DATABASE_URL). "
            "Set it via env or instance/config.py, or use the memory progress backend."
        )

    # ---------------------------
    # Logging
    # ---------------------------
    level = logging.DEBUG if app.debug else logging.INFO
    app.logger.setLevel(level)
    for name in ("squaresum", "squaresum.games", "squaresum.games.core", "squaresum.games.square_sum"):
        logging.getLogger(name).setLevel(level)

    # ---------------------------
    # Extensions init
    # ---------------------------
    db.init_app(app)
    limiter.init_app(app)

    from . import models  # noqa: F401  (register tables)
    if backend == "sql":
        with app.app_context():
            db.create_all()

    # ---------------------------
    # Blueprints
    # ---------------------------
    from .games.square_sum.square_sum_routes import bp as square_sum_bp, get_catalog
    app.register_blueprint(square_sum_bp)

    # ---------------------------
    # Warmup level catalog
    # ---------------------------
    if app.config.get("SQUARESUM_WARMUP", True):
        with app.app_context():
            catalog = get_catalog()
            app.logger.info("SquareSum catalog warmed up (seed=%s).", catalog.seed)

    # ---------------------------
    # CLI commands
    # ---------------------------
    @app.cli.command("squaresum-stats")
    def squaresum_stats():
        """Print level catalog stats."""
        with app.app_context():
            stats = get_catalog().stats()
        click.echo(f"SquareSum catalog: levels={stats['levels']}, seed={stats['seed']}")
        for tier, row in stats["tiers"].items():
            click.echo(
                f"  {tier:<5} levels={row['levels']} chips={row['chips']} "
                f"junctions={row['junctions']} distractors={row['distractors']}"
            )

    @app.cli.command("squaresum-level")
    @click.argument("ordinal", type=int)
    @click.option("--solution", is_flag=True, help="Also print the intended placements.")
    def squaresum_level(ordinal, solution):
        """Print one level."""
        with app.app_context():
            level = get_catalog().get_level(ordinal)
        if level is None:
            raise click.ClickException(f"No level {ordinal} (valid: 1-60)")
        click.echo(f"Level {level.ordinal} [{level.tier.label}] grid "
                   f"{level.grid_dimensions.column_count}x{level.grid_dimensions.row_count}")
        for r in level.receptacle_templates:
            links = ", ".join(r.linked_keys) or "-"
            click.echo(f"  {r.key:<8} target={r.target:<3} linked={links}")
        click.echo("  chips: " + " ".join(f"{c.suit.name}{c.magnitude}" for c in level.chip_inventory))
        if solution:
            for chip in level.required_chips:
                click.echo(f"    {chip.suit.name}{chip.magnitude} -> {' + '.join(level.solution[chip.id])}")
            click.echo(f"  distractors: {' '.join(f'{c.suit.name}{c.magnitude}' for c in level.distractors) or '-'}")

    @app.cli.command("squaresum-reset-progress")
    @click.argument("player_key")
    def squaresum_reset_progress(player_key):
        """Wipe stored progress for one player (sql backend)."""
        from .games.square_sum.progress import SqlProgressStore
        if app.config["SQUARESUM_PROGRESS_BACKEND"] != "sql":
            raise click.ClickException("Progress is only persisted with the sql backend.")
        with app.app_context():
            SqlProgressStore(player_key).reset_all()
        click.echo(f"Progress reset for {player_key}")

    @app.after_request
    def set_security_headers(resp):
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return resp

    return app
