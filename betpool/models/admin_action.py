from datetime import datetime, timezone

from betpool import db
from betpool.utils.timezone_utils import isoformat_utc

SCORE_MATCH = "score_match"
UPDATE_ODDS = "update_odds"
CHANGE_ROLE = "change_role"


class AdminAction(db.Model):
    """Audit trail of admin writes: scores, odds and role changes"""

    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    # Who did it, and to what
    actor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    target_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"))

    action = db.Column(db.String(32), nullable=False)
    summary = db.Column(db.String(255), nullable=False)
    details = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    actor = db.relationship("User", foreign_keys=[actor_id])
    target_user = db.relationship("User", foreign_keys=[target_user_id])
    match = db.relationship("Match")

    __table_args__ = (
        db.Index("idx_admin_action_actor", "actor_id"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f"<AdminAction {self.action} by user {self.actor_id}>"

    @classmethod
    def record(cls, actor, action, summary, target_user=None, match=None, details=None):
        """Add an audit entry to the session; the caller commits it"""
        entry = cls(
            actor_id=actor.id,
            target_user_id=target_user.id if target_user else None,
            match_id=match.id if match else None,
            action=action,
            summary=summary,
            details=details or {},
        )
        db.session.add(entry)
        return entry

    @classmethod
    def log_match_scored(cls, actor, match, players_scored):
        return cls.record(
            actor,
            SCORE_MATCH,
            f"Scored {match.home_team} {match.home_score}-{match.away_score} {match.away_team}",
            match=match,
            details={
                "home_score": match.home_score,
                "away_score": match.away_score,
                "players_scored": players_scored,
            },
        )

    @classmethod
    def log_odds_update(cls, actor, match, changes):
        # Decimals are stored as strings to keep them exact in JSON
        return cls.record(
            actor,
            UPDATE_ODDS,
            f"Updated odds for {match.home_team} vs {match.away_team}",
            match=match,
            details={
                field: (str(value) if value is not None else None)
                for field, value in changes.items()
            },
        )

    @classmethod
    def log_role_change(cls, actor, target_user):
        verb = "Granted admin to" if target_user.is_admin else "Revoked admin from"
        return cls.record(
            actor,
            CHANGE_ROLE,
            f"{verb} {target_user.nickname}",
            target_user=target_user,
            details={"admin": target_user.is_admin},
        )

    @classmethod
    def recent(cls, limit=50):
        """Newest entries first"""
        return (
            cls.query.order_by(cls.created_at.desc(), cls.id.desc())
            .limit(limit)
            .all()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "summary": self.summary,
            "actor": self.actor.nickname if self.actor else None,
            "targetUser": self.target_user.nickname if self.target_user else None,
            "matchId": self.match_id,
            "details": self.details,
            "createdAt": isoformat_utc(self.created_at),
        }
