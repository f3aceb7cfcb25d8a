from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import validates

from betpool import db
from betpool.utils.timezone_utils import ensure_utc, get_utc_time, isoformat_utc

ODDS_MIN = Decimal("1.00")  # exclusive
ODDS_MAX = Decimal("100.00")  # exclusive
ODDS_QUANTUM = Decimal("0.01")

# Bet type -> odds column paying out when that bet wins
ODDS_FIELDS = {
    "1": "odds_home",
    "X": "odds_draw",
    "2": "odds_away",
    "1X": "odds_home_draw",
    "X2": "odds_draw_away",
    "12": "odds_home_away",
}


def parse_odds(value):
    """Coerce an odds value to a two-digit Decimal, rejecting anything out of range

    ``None`` clears the odds. Floats go through ``str`` so ``2.1`` becomes
    ``Decimal("2.10")`` rather than its binary expansion.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("must be a number")

    try:
        odds = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError("must be a number")

    if not odds.is_finite():
        raise ValueError("must be a number")
    if not ODDS_MIN < odds < ODDS_MAX:
        raise ValueError(f"must be greater than {ODDS_MIN} and less than {ODDS_MAX}")
    if odds.quantize(ODDS_QUANTUM) != odds:
        raise ValueError("must have at most two decimal places")

    return odds.quantize(ODDS_QUANTUM)


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)
    group_label = db.Column(db.String(50))

    # Match timing
    kickoff_time = db.Column(db.DateTime(timezone=True), nullable=False)

    # Final score, written exactly once by the scoring transaction
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Decimal odds, one per bet type
    odds_home = db.Column(db.Numeric(4, 2))
    odds_draw = db.Column(db.Numeric(4, 2))
    odds_away = db.Column(db.Numeric(4, 2))
    odds_home_draw = db.Column(db.Numeric(4, 2))
    odds_draw_away = db.Column(db.Numeric(4, 2))
    odds_home_away = db.Column(db.Numeric(4, 2))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    bets = db.relationship(
        "Bet", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )

    # Indexes and constraints
    __table_args__ = (
        db.Index("idx_match_kickoff_time", "kickoff_time"),
        db.CheckConstraint(
            "(home_score IS NULL AND away_score IS NULL) OR "
            "(home_score >= 0 AND away_score >= 0)",
            name="scores_both_or_neither",
        ),
    )

    def __repr__(self):
        return f"<Match {self.home_team} vs {self.away_team}>"

    @validates(*ODDS_FIELDS.values())
    def validate_odds(self, key, value):
        return parse_odds(value)

    @validates("home_team", "away_team")
    def validate_team(self, key, value):
        if not value or not value.strip():
            raise ValueError("can't be blank")
        return value.strip()

    @property
    def is_scored(self):
        """A match is scored exactly when both final scores are recorded"""
        return self.home_score is not None and self.away_score is not None

    def odds_for(self, bet_type):
        """Odds paid out for a winning bet of bet_type (None if unset or unknown)"""
        field = ODDS_FIELDS.get(bet_type)
        if field is None:
            return None
        return getattr(self, field)

    def has_kicked_off(self, now=None):
        """Check if the match has started; bets are final from this point on"""
        if not self.kickoff_time:
            return False
        now = now or get_utc_time()
        return now >= ensure_utc(self.kickoff_time)

    def is_open_for_bets(self):
        """Bets may be placed, changed or deleted only before kickoff"""
        return not self.has_kicked_off()

    @staticmethod
    def _odds_to_json(value):
        return float(value) if value is not None else None

    def to_dict(self):
        """Convert match to dictionary for API responses"""
        return {
            "id": self.id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "kickoffTime": isoformat_utc(self.kickoff_time),
            "groupLabel": self.group_label,
            "homeScore": self.home_score,
            "awayScore": self.away_score,
            "oddsHome": self._odds_to_json(self.odds_home),
            "oddsDraw": self._odds_to_json(self.odds_draw),
            "oddsAway": self._odds_to_json(self.odds_away),
            "oddsHomeDraw": self._odds_to_json(self.odds_home_draw),
            "oddsDrawAway": self._odds_to_json(self.odds_draw_away),
            "oddsHomeAway": self._odds_to_json(self.odds_home_away),
        }
