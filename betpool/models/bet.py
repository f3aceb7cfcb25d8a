from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import validates

from betpool import db

# 1 = home win, X = draw, 2 = away win, plus the three double chances
VALID_BET_TYPES = ("1", "X", "2", "1X", "X2", "12")


class Bet(db.Model):
    __tablename__ = "bets"

    id = db.Column(db.Integer, primary_key=True)

    # Bet identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Bet details
    bet_type = db.Column(db.String(2), nullable=False)

    # Result (calculated once the match is scored)
    points_earned = db.Column(
        db.Numeric(6, 2), nullable=False, default=Decimal("0.00")
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_bet"),
        db.Index("idx_bet_match", "match_id"),
        db.Index("idx_bet_user", "user_id"),
    )

    def __repr__(self):
        return f"<Bet user_id={self.user_id} match_id={self.match_id} type={self.bet_type}>"

    @validates("bet_type")
    def validate_bet_type(self, key, value):
        if value not in VALID_BET_TYPES:
            raise ValueError(f"must be one of {', '.join(VALID_BET_TYPES)}")
        return value

    def to_dict(self, include_nickname=False):
        """Convert bet to dictionary for API responses"""
        data = {
            "id": self.id,
            "userId": self.user_id,
            "matchId": self.match_id,
            "betType": self.bet_type,
            "pointsEarned": float(self.points_earned or 0),
        }

        if include_nickname:
            data["nickname"] = self.user.nickname if self.user else None

        return data
