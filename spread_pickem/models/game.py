from datetime import datetime, timezone

from flask import current_app, has_app_context

from spread_pickem import db
from spread_pickem.utils.timezone_utils import ensure_utc, format_game_time, get_utc_time


def game_locking_disabled():
    """Check the DISABLE_GAME_LOCKING switch (test environments only)"""
    if not has_app_context():
        return False
    return bool(current_app.config.get("DISABLE_GAME_LOCKING", False))


class GameStateMixin:
    """Lock and result state shared by weekly and bowl games.

    Nothing here is stored: lock state comes from the kickoff time and the
    current time, result presence from the result fields.
    """

    def kickoff_utc(self):
        return ensure_utc(self.game_date)

    def is_locked_at(self, now):
        """Locked once ``now`` reaches kickoff"""
        if game_locking_disabled():
            return False
        return ensure_utc(now) >= self.kickoff_utc()

    @property
    def is_locked(self):
        return self.is_locked_at(get_utc_time())

    @property
    def has_result(self):
        return self.spread_winner is not None or self.is_push is True

    def has_team(self, team):
        return team == self.favorite or team == self.underdog

    def stamp_result(self, favorite_score, underdog_score, result, entered_by):
        """Write a resolved result onto the game (last write wins)"""
        self.favorite_score = favorite_score
        self.underdog_score = underdog_score
        self.spread_winner = result.spread_winner
        self.is_push = result.is_push
        self.result_entered_at = datetime.now(timezone.utc)
        self.result_entered_by = entered_by

    def format_kickoff(self, format_str="%a %m/%d at %I:%M %p %Z"):
        return format_game_time(self.game_date, format_str)

    def _state_dict(self):
        return {
            "id": self.id,
            "year": self.year,
            "favorite": self.favorite,
            "underdog": self.underdog,
            "line": self.line,
            "game_date": self.kickoff_utc().isoformat() if self.game_date else None,
            "favorite_score": self.favorite_score,
            "underdog_score": self.underdog_score,
            "spread_winner": self.spread_winner,
            "is_push": self.is_push,
            "is_locked": self.is_locked,
            "has_result": self.has_result,
        }


class Game(GameStateMixin, db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    # Slate identification
    year = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)

    # Matchup and line (negative line = favorite's handicap)
    favorite = db.Column(db.String(100), nullable=False)
    underdog = db.Column(db.String(100), nullable=False)
    line = db.Column(db.Float, nullable=False)
    game_date = db.Column(db.DateTime(timezone=True), nullable=False)

    # Result fields, null until a result is entered
    favorite_score = db.Column(db.Integer)
    underdog_score = db.Column(db.Integer)
    spread_winner = db.Column(db.String(100))
    is_push = db.Column(db.Boolean)
    result_entered_at = db.Column(db.DateTime(timezone=True))
    result_entered_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="game", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_game_year_week", "year", "week"),
        db.Index("idx_game_date", "game_date"),
        db.CheckConstraint("favorite != underdog", name="different_teams"),
    )

    def __repr__(self):
        return f"<Game {self.favorite} ({self.line}) vs {self.underdog} {self.year} Week {self.week}>"

    @property
    def outright_winner(self):
        """Team with the higher raw score (None without scores or on a tie)"""
        if self.favorite_score is None or self.underdog_score is None:
            return None

        from spread_pickem.services.result_resolver import resolve_outright

        return resolve_outright(
            self.favorite, self.underdog, self.favorite_score, self.underdog_score
        )

    def to_dict(self):
        """Convert game to dictionary for API responses"""
        data = self._state_dict()
        data["week"] = self.week
        data["outright_winner"] = self.outright_winner
        return data
