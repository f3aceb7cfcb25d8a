"""
Tests for standings aggregation, competition ranking and rank movement.
"""
from decimal import Decimal
from itertools import permutations

import pytest

from betpool import db
from betpool.models import User
from betpool.utils.ranking import (
    aggregate_standings,
    assign_ranks,
    build_leaderboard,
    rank_movement,
    snapshot_previous_ranks,
)


# ============================================================================
# assign_ranks
# ============================================================================

def test_tied_totals_share_rank_and_next_rank_is_skipped():
    assert assign_ranks([50, 50, 30]) == [1, 1, 3]


def test_distinct_totals_rank_by_position():
    assert assign_ranks([90, 70, 10]) == [1, 2, 3]


def test_all_tied():
    assert assign_ranks([5, 5, 5, 5]) == [1, 1, 1, 1]


def test_empty_standings():
    assert assign_ranks([]) == []


@pytest.mark.parametrize(
    "totals",
    [
        [Decimal("10.50"), Decimal("10.50"), Decimal("10.50"), Decimal("3.00")],
        [Decimal("8.00"), Decimal("7.00"), Decimal("7.00"), Decimal("1.00"), Decimal("1.00")],
        [Decimal("4.20")],
    ],
)
def test_rank_after_tie_equals_number_of_better_entries_plus_one(totals):
    ranks = assign_ranks(totals)
    for total, rank in zip(totals, ranks):
        better = sum(1 for other in totals if other > total)
        assert rank == better + 1


def test_decimal_ties_are_exact():
    assert assign_ranks([Decimal("2.50"), Decimal("2.5"), Decimal("2.49")]) == [1, 1, 3]


# ============================================================================
# rank_movement
# ============================================================================

@pytest.mark.parametrize(
    "position, previous, expected",
    [
        (1, 3, "up"),
        (4, 2, "down"),
        (2, 2, "same"),
        (1, None, None),
    ],
)
def test_rank_movement(position, previous, expected):
    assert rank_movement(position, previous) == expected


# ============================================================================
# aggregate_standings / build_leaderboard
# ============================================================================

def test_user_without_bets_has_zero_points(make_user):
    make_user("anna")

    standings = aggregate_standings()

    assert len(standings) == 1
    assert standings[0]["nickname"] == "anna"
    assert standings[0]["total_points"] == Decimal("0.00")


def test_standings_sum_points_per_user(make_user, make_match, make_bet):
    anna = make_user("anna")
    bart = make_user("bart")
    first = make_match()
    second = make_match("Spain", "Italy")

    make_bet(anna, first, "1", "2.50")
    make_bet(anna, second, "X", "3.10")
    make_bet(bart, first, "2", "0")

    totals = {entry["nickname"]: entry["total_points"] for entry in aggregate_standings()}

    assert totals == {"anna": Decimal("5.60"), "bart": Decimal("0.00")}


def test_inactive_users_are_excluded(make_user, make_match, make_bet):
    match = make_match()
    whale = make_user("whale", activated=False)
    make_bet(whale, match, "1", "99.00")
    anna = make_user("anna")
    make_bet(anna, match, "X", "3.00")
    make_user("bart")

    leaderboard = build_leaderboard()

    assert [entry["nickname"] for entry in leaderboard] == ["anna", "bart"]
    assert [entry["position"] for entry in leaderboard] == [1, 2]


def test_ties_are_ordered_by_nickname_but_share_position(make_user, make_match, make_bet):
    match = make_match()
    for nickname in ("zoe", "adam", "mia"):
        make_bet(make_user(nickname), match, "1", "2.00")
    make_user("bob")

    leaderboard = build_leaderboard()

    assert [entry["nickname"] for entry in leaderboard] == ["adam", "mia", "zoe", "bob"]
    assert [entry["position"] for entry in leaderboard] == [1, 1, 1, 4]


def test_ranks_do_not_depend_on_insertion_order(app, make_user, make_match, make_bet):
    points = {"anna": "5.00", "bart": "5.00", "cleo": "2.00"}
    seen = set()

    for order in permutations(points):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        match = make_match()
        for nickname in order:
            make_bet(make_user(nickname), match, "1", points[nickname])

        seen.add(
            tuple((entry["nickname"], entry["position"]) for entry in build_leaderboard())
        )

    assert seen == {(("anna", 1), ("bart", 1), ("cleo", 3))}


def test_leaderboard_reports_movement(make_user, make_match, make_bet):
    match = make_match()
    anna = make_user("anna")
    bart = make_user("bart")
    make_bet(anna, match, "1", "1.00")
    make_bet(bart, match, "1", "4.00")
    anna.previous_rank = 1
    bart.previous_rank = 2
    db.session.commit()

    entries = {entry["nickname"]: entry for entry in build_leaderboard()}

    assert entries["bart"]["position"] == 1
    assert entries["bart"]["previous_position"] == 2
    assert entries["bart"]["movement"] == "up"
    assert entries["anna"]["movement"] == "down"


def test_leaderboard_without_snapshot_has_no_movement(make_user):
    make_user("anna")

    entry = build_leaderboard()[0]

    assert entry["previous_position"] is None
    assert entry["movement"] is None


# ============================================================================
# snapshot_previous_ranks
# ============================================================================

def test_snapshot_stores_competition_ranks(make_user, make_match, make_bet):
    match = make_match()
    anna = make_user("anna")
    bart = make_user("bart")
    cleo = make_user("cleo")
    make_bet(anna, match, "1", "3.00")
    make_bet(bart, match, "1", "3.00")
    make_bet(cleo, match, "2", "0")

    assert snapshot_previous_ranks() == 3
    db.session.commit()

    ranks = {u.nickname: u.previous_rank for u in User.query.all()}
    assert ranks == {"anna": 1, "bart": 1, "cleo": 3}


def test_snapshot_leaves_inactive_users_alone(make_user):
    make_user("anna")
    ghost = make_user("ghost", activated=False)

    assert snapshot_previous_ranks() == 1
    db.session.commit()

    assert db.session.get(User, ghost.id).previous_rank is None


def test_snapshot_without_players(app):
    assert snapshot_previous_ranks() == 0
