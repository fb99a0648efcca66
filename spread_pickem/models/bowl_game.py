from datetime import datetime, timezone

from spread_pickem import db

from .game import GameStateMixin


class BowlGame(GameStateMixin, db.Model):
    __tablename__ = "bowl_games"

    id = db.Column(db.Integer, primary_key=True)

    year = db.Column(db.Integer, nullable=False)
    # 1..N within the year; N also bounds the confidence points
    game_number = db.Column(db.Integer, nullable=False)
    bowl_name = db.Column(db.String(150), nullable=False, default="")

    favorite = db.Column(db.String(100), nullable=False)
    underdog = db.Column(db.String(100), nullable=False)
    line = db.Column(db.Float, nullable=False)
    game_date = db.Column(db.DateTime(timezone=True), nullable=False)

    # Result fields
    favorite_score = db.Column(db.Integer)
    underdog_score = db.Column(db.Integer)
    spread_winner = db.Column(db.String(100))
    is_push = db.Column(db.Boolean)
    outright_winner = db.Column(db.String(100))
    result_entered_at = db.Column(db.DateTime(timezone=True))
    result_entered_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    picks = db.relationship(
        "BowlPick", backref="bowl_game", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("year", "game_number", name="unique_bowl_year_number"),
        db.Index("idx_bowl_game_year", "year"),
        db.CheckConstraint("favorite != underdog", name="bowl_different_teams"),
    )

    def __repr__(self):
        return f"<BowlGame #{self.game_number} {self.bowl_name} {self.year}>"

    def stamp_result(self, favorite_score, underdog_score, result, entered_by):
        super().stamp_result(favorite_score, underdog_score, result, entered_by)
        self.outright_winner = result.outright_winner

    def to_dict(self):
        data = self._state_dict()
        data.update(
            {
                "game_number": self.game_number,
                "bowl_name": self.bowl_name,
                "outright_winner": self.outright_winner,
            }
        )
        return data
