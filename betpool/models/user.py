from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import func
from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

from betpool import db

NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 30


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    nickname = db.Column(db.String(NICKNAME_MAX_LENGTH), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)

    # Account status
    activated = db.Column(db.Boolean, nullable=False, default=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    # Leaderboard position captured right before the latest scoring event
    previous_rank = db.Column(db.Integer, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    bets = db.relationship(
        "Bet", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    # Nicknames are unique regardless of case
    __table_args__ = (
        db.Index("idx_user_lower_nickname", func.lower(nickname), unique=True),
        db.Index("idx_user_activated", "activated"),
    )

    def __repr__(self):
        return f"<User {self.nickname}>"

    @validates("nickname")
    def validate_nickname(self, key, value):
        value = (value or "").strip()
        if not NICKNAME_MIN_LENGTH <= len(value) <= NICKNAME_MAX_LENGTH:
            raise ValueError(
                f"Nickname must be between {NICKNAME_MIN_LENGTH} and "
                f"{NICKNAME_MAX_LENGTH} characters"
            )
        return value

    @property
    def is_active(self):
        """Flask-Login only keeps sessions for activated accounts"""
        return bool(self.activated)

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @staticmethod
    def find_by_nickname(nickname):
        """Case-insensitive nickname lookup"""
        if not nickname:
            return None
        return User.query.filter(
            func.lower(User.nickname) == nickname.strip().lower()
        ).first()

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "nickname": self.nickname,
            "admin": self.is_admin,
        }

    def to_admin_dict(self):
        """Admin view of the user, including the activation state"""
        return {
            "id": self.id,
            "nickname": self.nickname,
            "admin": self.is_admin,
            "activated": self.activated,
        }
