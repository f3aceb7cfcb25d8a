"""
Scoring transaction for the betting pool

Submitting a final score is the only write that moves the leaderboard. It runs
as one all-or-nothing unit: persist the scores, snapshot everyone's current
rank as previous_rank, then pay out every bet on the match. Callers hand in an
already authorized command (match id + scores); no permission checks here.
"""

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import set_committed_value

from betpool import db
from betpool.models import Match
from betpool.utils.logging_config import get_logger
from betpool.utils.performance import timer
from betpool.utils.ranking import snapshot_previous_ranks
from betpool.utils.scoring import score_all_bets

logger = get_logger(__name__)

# Scores are stored in a 32-bit INTEGER column
MAX_SCORE = 2**31 - 1


class ScoringError(Exception):
    """Base class for errors reported by the scoring transaction"""

    code = "SCORING_ERROR"
    message = "Scoring failed"

    def __init__(self, message=None, field=None):
        self.message = message or self.message
        self.field = field
        super().__init__(self.message)


class MatchNotFoundError(ScoringError):
    code = "NOT_FOUND"
    message = "Match not found"


class AlreadyScoredError(ScoringError):
    code = "SCORE_LOCKED"
    message = "Results already calculated"


class MissingScoreError(ScoringError):
    code = "MISSING_SCORE"
    message = "Both scores are required"


class NegativeScoreError(ScoringError):
    code = "NEGATIVE_SCORE"
    message = "Scores must not be negative"


class PersistenceError(ScoringError):
    code = "INTERNAL_ERROR"
    message = "Could not save results"


class OddsValidationError(ScoringError):
    code = "VALIDATION_ERROR"
    message = "Invalid odds"


def parse_score(value, field):
    """
    Coerce a submitted score to an int.

    Accepts ints and integer strings ("2", " 3 "). Anything absent, not a
    whole number or larger than MAX_SCORE raises MissingScoreError; values
    below zero raise NegativeScoreError.
    """
    if value is None or isinstance(value, bool):
        raise MissingScoreError(field=field)

    if isinstance(value, int):
        score = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise MissingScoreError("Scores must be whole numbers", field=field)
        score = int(value)
    elif isinstance(value, str):
        try:
            score = int(value.strip())
        except ValueError:
            raise MissingScoreError("Scores must be whole numbers", field=field)
    else:
        raise MissingScoreError("Scores must be whole numbers", field=field)

    if score < 0:
        raise NegativeScoreError(field=field)
    if score > MAX_SCORE:
        raise MissingScoreError(f"Scores must not exceed {MAX_SCORE}", field=field)

    return score


def _lock_match(match_id):
    """Load the match row with a write lock held until commit/rollback"""
    return db.session.get(
        Match, match_id, with_for_update=True, populate_existing=True
    )


def _write_scores(match, home_score, away_score):
    """
    Persist the final score only if the match is still unscored.

    The WHERE clause keeps the write-once guarantee even when two requests
    race past the in-memory check.
    """
    result = db.session.execute(
        update(Match)
        .where(
            Match.id == match.id,
            Match.home_score.is_(None),
            Match.away_score.is_(None),
        )
        .values(home_score=home_score, away_score=away_score)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyScoredError()

    set_committed_value(match, "home_score", home_score)
    set_committed_value(match, "away_score", away_score)


@timer(expected=(ScoringError,))
def score_match(match_id, home_score, away_score, audit=None):
    """
    Record the final score of a match and pay out its bets.

    Steps, committed together or not at all:
        1. lock the match and refuse one that is already scored
        2. validate both scores
        3. write the scores (write-once)
        4. snapshot every activated user's rank as previous_rank
        5. compute points_earned for every bet on the match
        6. call audit(match, players_scored), if given, so an audit record
           commits together with the scores

    Returns:
        tuple: (match, number of bets scored)

    Raises:
        MatchNotFoundError, AlreadyScoredError, MissingScoreError,
        NegativeScoreError, PersistenceError
    """
    try:
        match = _lock_match(match_id)
        if match is None:
            raise MatchNotFoundError()

        if match.is_scored:
            raise AlreadyScoredError()

        home = parse_score(home_score, "homeScore")
        away = parse_score(away_score, "awayScore")

        _write_scores(match, home, away)
        snapshot_previous_ranks()
        players_scored = score_all_bets(match)
        if audit is not None:
            audit(match, players_scored)

        db.session.commit()
    except ScoringError as e:
        db.session.rollback()
        logger.warning(f"Scoring match {match_id} rejected: {e.code} - {e.message}")
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Scoring match {match_id} failed, rolled back: {e}")
        raise PersistenceError() from e
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"Match {match_id} scored {home}-{away}: {players_scored} bets processed"
    )
    return match, players_scored


def update_odds(match_id, odds):
    """
    Set any subset of a match's six odds fields.

    Odds are independent of scoring and may change before or after a match is
    scored; points already paid out are not recalculated.

    Args:
        match_id: Match to update
        odds: dict mapping odds field name (e.g. "odds_home") to a value or None

    Returns:
        tuple: (match, dict of the fields that were applied)

    Raises:
        MatchNotFoundError, OddsValidationError, PersistenceError
    """
    match = db.session.get(Match, match_id)
    if match is None:
        raise MatchNotFoundError()

    applied = {}
    try:
        for field, value in odds.items():
            try:
                setattr(match, field, value)
            except ValueError as e:
                raise OddsValidationError(f"{field} {e}", field=field)
            applied[field] = getattr(match, field)

        db.session.commit()
    except ScoringError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Updating odds for match {match_id} failed: {e}")
        raise PersistenceError() from e

    logger.info(f"Updated odds for match {match_id}: {sorted(applied)}")
    return match, applied
