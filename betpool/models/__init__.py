from betpool import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .bet import VALID_BET_TYPES, Bet
from .match import ODDS_FIELDS, Match
from .user import User

__all__ = [
    "User",
    "Match",
    "Bet",
    "AdminAction",
    "VALID_BET_TYPES",
    "ODDS_FIELDS",
]
