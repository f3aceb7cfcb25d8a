"""
Scoring Engine for the betting pool

This module decides whether a bet wins against a final score and what it pays.
For totals and leaderboard positions, see betpool/utils/ranking.py. The
transaction that applies both when a match is scored lives in
betpool/services/scoring_service.py.
"""

from decimal import Decimal

from sqlalchemy import update

from betpool import db
from betpool.models import Bet
from betpool.utils.logging_config import get_logger

logger = get_logger(__name__)

ZERO_POINTS = Decimal("0")


def wins_bet(bet_type, home_score, away_score):
    """
    Decide whether a bet type wins given the final score.

    Returns:
        True for a winning bet, False otherwise. Unknown bet types never win.
    """
    if bet_type == "1":
        return home_score > away_score
    if bet_type == "X":
        return home_score == away_score
    if bet_type == "2":
        return away_score > home_score
    if bet_type == "1X":
        return home_score >= away_score  # Home win or draw
    if bet_type == "X2":
        return away_score >= home_score  # Draw or away win
    if bet_type == "12":
        return home_score != away_score  # Anything but a draw
    return False


def odds_for_bet_type(bet_type, match):
    """Odds the match pays for bet_type (None when unset or unknown type)"""
    return match.odds_for(bet_type)


def points_for_bet(bet, match):
    """
    Calculate points for a single bet.

    Returns:
        The odds for the bet's type, verbatim, when the bet wins and odds are set.
        Decimal 0 for a losing bet, a win with no odds, or an unscored match.

    Args:
        bet: Bet (or anything with a bet_type)
        match: Match the bet was placed on
    """
    if not match.is_scored:
        return ZERO_POINTS

    if not wins_bet(bet.bet_type, match.home_score, match.away_score):
        return ZERO_POINTS

    odds = odds_for_bet_type(bet.bet_type, match)
    if odds is None:
        return ZERO_POINTS

    return odds


def score_all_bets(match):
    """
    Compute and persist points_earned for every bet on a scored match.

    Unscored matches are left alone and report 0 bets. Writes go out as one
    bulk update; database errors propagate to the caller's transaction.

    Returns:
        Number of bets processed
    """
    if not match.is_scored:
        return 0

    bets = match.bets.all()
    if not bets:
        return 0

    updates = [
        {"id": bet.id, "points_earned": points_for_bet(bet, match)} for bet in bets
    ]
    db.session.execute(update(Bet), updates)

    winners = sum(1 for row in updates if row["points_earned"] > 0)
    logger.info(
        f"Scored {len(updates)} bets on match {match.id} "
        f"({match.home_score}-{match.away_score}), {winners} winning"
    )

    return len(updates)
