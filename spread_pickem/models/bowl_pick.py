from datetime import datetime, timezone

from spread_pickem import db


class BowlPick(db.Model):
    __tablename__ = "bowl_picks"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    bowl_game_id = db.Column(db.Integer, db.ForeignKey("bowl_games.id"), nullable=False)

    spread_pick = db.Column(db.String(100), nullable=False)
    confidence_points = db.Column(db.Integer, nullable=False)
    outright_winner_pick = db.Column(db.String(100), nullable=False)

    submitted_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    year = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "bowl_game_id", name="unique_user_bowl_pick"),
        db.Index("idx_bowl_pick_user_year", "user_id", "year"),
        db.CheckConstraint("confidence_points > 0", name="positive_confidence"),
    )

    def __repr__(self):
        return (
            f"<BowlPick user_id={self.user_id} bowl_game_id={self.bowl_game_id} "
            f"team={self.spread_pick} confidence={self.confidence_points}>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bowl_game_id": self.bowl_game_id,
            "year": self.year,
            "spread_pick": self.spread_pick,
            "confidence_points": self.confidence_points,
            "outright_winner_pick": self.outright_winner_pick,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "bowl_game": self.bowl_game.to_dict() if self.bowl_game else None,
        }
