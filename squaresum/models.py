# squaresum/models.py
from datetime import datetime

from .db import db
from .games.square_sum.logic.levels import DifficultyTier


class LevelProgressRecord(db.Model):
    __tablename__ = "level_progress"
    __table_args__ = (
        db.UniqueConstraint("player_key", "ordinal", name="uq_level_progress_player_ordinal"),
    )

    id                = db.Column(db.Integer, primary_key=True)
    player_key        = db.Column(db.String(128), nullable=False, index=True)
    ordinal           = db.Column(db.Integer, nullable=False)
    is_unlocked       = db.Column(db.Boolean, nullable=False, default=False)
    is_completed      = db.Column(db.Boolean, nullable=False, default=False)
    best_move_count   = db.Column(db.Integer)
    best_time_seconds = db.Column(db.Float)
    created_at        = db.Column(db.DateTime(timezone=True), default=datetime.utcnow)
    updated_at        = db.Column(db.DateTime(timezone=True), default=datetime.utcnow)

    @property
    def tier(self):
        return DifficultyTier.for_ordinal(self.ordinal)

    def to_progress(self):
        from .games.square_sum.progress import LevelProgress
        return LevelProgress(
            ordinal=self.ordinal,
            is_unlocked=bool(self.is_unlocked),
            is_completed=bool(self.is_completed),
            best_move_count=self.best_move_count,
            best_time_seconds=self.best_time_seconds,
        )

    def __repr__(self):
        return f"<LevelProgressRecord player={self.player_key!r} ordinal={self.ordinal} completed={self.is_completed}>"
