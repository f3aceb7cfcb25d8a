"""
Tests for the scoring engine: which bets win and what they pay.
"""
from decimal import Decimal

import pytest

from betpool import db
from betpool.models import Bet, Match
from betpool.utils.scoring import (
    odds_for_bet_type,
    points_for_bet,
    score_all_bets,
    wins_bet,
)

FULL_ODDS = dict(
    odds_home="2.50",
    odds_draw="3.40",
    odds_away="2.80",
    odds_home_draw="1.25",
    odds_draw_away="1.45",
    odds_home_away="1.30",
)


# ============================================================================
# wins_bet
# ============================================================================

@pytest.mark.parametrize(
    "bet_type, home_score, away_score, expected",
    [
        ("1", 2, 1, True),
        ("1", 1, 1, False),
        ("1", 0, 3, False),
        ("X", 0, 0, True),
        ("X", 3, 3, True),
        ("X", 2, 1, False),
        ("2", 1, 2, True),
        ("2", 1, 1, False),
        ("2", 3, 0, False),
        ("1X", 2, 1, True),
        ("1X", 1, 1, True),
        ("1X", 1, 2, False),
        ("X2", 1, 2, True),
        ("X2", 2, 2, True),
        ("X2", 2, 1, False),
        ("12", 2, 1, True),
        ("12", 0, 3, True),
        ("12", 1, 1, False),
    ],
)
def test_wins_bet_table(bet_type, home_score, away_score, expected):
    assert wins_bet(bet_type, home_score, away_score) is expected


@pytest.mark.parametrize("bet_type", ["invalid", "", None, "21", "x"])
def test_unknown_bet_type_never_wins(bet_type):
    assert wins_bet(bet_type, 2, 1) is False
    assert wins_bet(bet_type, 1, 1) is False
    assert wins_bet(bet_type, 0, 4) is False


def test_every_score_has_exactly_one_outcome_per_bet_type():
    """Each bet type either wins or loses; the three single outcomes partition results."""
    for home in range(5):
        for away in range(5):
            singles = [wins_bet(t, home, away) for t in ("1", "X", "2")]
            assert singles.count(True) == 1

            one, draw, two = singles
            assert wins_bet("1X", home, away) == (one or draw)
            assert wins_bet("X2", home, away) == (draw or two)
            assert wins_bet("12", home, away) == (one or two)


# ============================================================================
# points_for_bet
# ============================================================================

def test_home_win_pays_home_odds():
    match = Match(home_score=2, away_score=1, odds_home="2.50")
    assert points_for_bet(Bet(bet_type="1"), match) == Decimal("2.50")


def test_losing_bet_pays_zero():
    match = Match(home_score=1, away_score=2, odds_home="2.50")
    assert points_for_bet(Bet(bet_type="1"), match) == Decimal("0")


def test_double_chance_draw_pays_home_draw_odds():
    match = Match(home_score=1, away_score=1, odds_home_draw="1.25")
    assert points_for_bet(Bet(bet_type="1X"), match) == Decimal("1.25")


def test_winning_bet_without_odds_pays_zero():
    match = Match(home_score=0, away_score=0, odds_home="2.50")
    assert points_for_bet(Bet(bet_type="X"), match) == Decimal("0")


def test_unscored_match_pays_zero():
    match = Match(odds_home="2.50")
    assert points_for_bet(Bet(bet_type="1"), match) == Decimal("0")


def test_points_are_deterministic():
    match = Match(home_score=0, away_score=2, **FULL_ODDS)
    bet = Bet(bet_type="X2")
    results = {points_for_bet(bet, match) for _ in range(5)}
    assert results == {Decimal("1.45")}


@pytest.mark.parametrize(
    "bet_type, field",
    [
        ("1", "odds_home"),
        ("X", "odds_draw"),
        ("2", "odds_away"),
        ("1X", "odds_home_draw"),
        ("X2", "odds_draw_away"),
        ("12", "odds_home_away"),
    ],
)
def test_odds_for_bet_type(bet_type, field):
    match = Match(**FULL_ODDS)
    assert odds_for_bet_type(bet_type, match) == Decimal(FULL_ODDS[field])


def test_odds_for_unknown_bet_type_is_none():
    assert odds_for_bet_type("3", Match(**FULL_ODDS)) is None


# ============================================================================
# score_all_bets
# ============================================================================

def test_score_all_bets_is_noop_for_unscored_match(make_user, make_match, make_bet):
    match = make_match(**FULL_ODDS)
    bet = make_bet(make_user("anna"), match, "1", points_earned="4.00")

    assert score_all_bets(match) == 0
    db.session.commit()

    db.session.refresh(bet)
    assert bet.points_earned == Decimal("4.00")


def test_score_all_bets_pays_every_bet(make_user, make_match, make_bet):
    match = make_match(**FULL_ODDS)
    home = make_bet(make_user("anna"), match, "1")
    draw = make_bet(make_user("bart"), match, "X")
    no_draw = make_bet(make_user("celina"), match, "12")

    match.home_score, match.away_score = 3, 1
    db.session.commit()

    assert score_all_bets(match) == 3
    db.session.commit()

    assert db.session.get(Bet, home.id).points_earned == Decimal("2.50")
    assert db.session.get(Bet, draw.id).points_earned == Decimal("0")
    assert db.session.get(Bet, no_draw.id).points_earned == Decimal("1.30")


def test_score_all_bets_without_bets(make_match):
    match = make_match(home_score=1, away_score=0)
    assert score_all_bets(match) == 0
