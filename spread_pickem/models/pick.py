from datetime import datetime, timezone

from spread_pickem import db


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)

    selected_team = db.Column(db.String(100), nullable=False)

    submitted_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Denormalized from the game for per-week queries
    year = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_user_game_pick"),
        db.Index("idx_pick_user_year_week", "user_id", "year", "week"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} team={self.selected_team}>"

    @property
    def outcome(self):
        """win / loss / push, or None while the game has no result"""
        from spread_pickem.services.result_resolver import pick_outcome

        if not self.game:
            return None
        return pick_outcome(
            self.selected_team,
            self.game.spread_winner,
            self.game.is_push,
            self.game.has_result,
        )

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "year": self.year,
            "week": self.week,
            "selected_team": self.selected_team,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "outcome": self.outcome,
            "game": self.game.to_dict() if self.game else None,
        }
