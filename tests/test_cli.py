"""
Tests for the management CLI.
"""
from decimal import Decimal

import pytest

from betpool import db
from betpool.models import Match, User
from betpool.utils.timezone_utils import isoformat_utc
from manage import cli


@pytest.fixture
def runner(app):
    cli_runner = app.test_cli_runner()

    def _invoke(*args, **kwargs):
        result = cli_runner.invoke(cli, list(args), **kwargs)
        assert result.exception is None, result.output
        return result

    return _invoke


def test_create_user(runner):
    result = runner("user", "create", "anna", "secret")

    assert "Created user 'anna'" in result.output
    user = User.find_by_nickname("anna")
    assert user.activated is True
    assert user.is_admin is False
    assert user.check_password("secret")


def test_create_inactive_user(runner):
    runner("user", "create", "sleeper", "secret", "--inactive")

    assert User.find_by_nickname("sleeper").activated is False


def test_create_admin(runner):
    result = runner("user", "create-admin", "root", "secret")

    assert "Created admin user 'root'" in result.output
    assert User.find_by_nickname("root").is_admin is True


def test_duplicate_nickname_is_case_insensitive(runner, make_user):
    make_user("Anna")

    result = runner("user", "create", "anna", "secret")

    assert "already exists" in result.output
    assert User.query.count() == 1


def test_invalid_nickname(runner):
    result = runner("user", "create", "a", "secret")

    assert "Invalid nickname" in result.output
    assert User.query.count() == 0


def test_list_users(runner, make_user):
    make_user("root", admin=True)
    make_user("sleeper", activated=False)

    output = runner("user", "list-users").output

    assert "root (admin)" in output
    assert "🔴 sleeper" in output


def test_create_match(runner):
    result = runner(
        "match", "create", "Poland", "Germany", "2030-06-11 18:00", "--group", "Group A"
    )

    assert "Created match #1: Poland vs Germany" in result.output
    match = Match.query.one()
    assert match.group_label == "Group A"
    assert isoformat_utc(match.kickoff_time) == "2030-06-11T18:00:00Z"


def test_list_matches(runner, make_match):
    make_match(home_score=2, away_score=2)
    make_match("Spain", "Italy")

    output = runner("match", "list-matches").output

    assert "Poland vs Germany: 2-2 (0 bets)" in output
    assert "Spain vs Italy: open" in output


def test_set_odds(runner, make_match):
    match = make_match()

    result = runner("match", "odds", str(match.id), "--home", "2.10", "--home-draw", "1.3")

    assert "Updated odds" in result.output
    reloaded = db.session.get(Match, match.id)
    assert reloaded.odds_home == Decimal("2.10")
    assert reloaded.odds_home_draw == Decimal("1.30")
    assert reloaded.odds_draw is None


def test_set_invalid_odds(runner, make_match):
    match = make_match(odds_home="2.00")

    result = runner("match", "odds", str(match.id), "--home", "0.9")

    assert "❌" in result.output
    assert db.session.get(Match, match.id).odds_home == Decimal("2.00")


def test_set_odds_needs_an_option(runner, make_match):
    match = make_match()

    assert "Nothing to update" in runner("match", "odds", str(match.id)).output


def test_score_match_once(runner, make_user, make_match, make_bet):
    match = make_match(odds_away="4.00")
    make_bet(make_user("anna"), match, "2")

    result = runner("match", "score", str(match.id), "0", "1")
    assert "Poland 0-1 Germany: 1 bets scored" in result.output

    result = runner("match", "score", str(match.id), "3", "3")
    assert "Results already calculated" in result.output

    output = runner("leaderboard").output
    assert "anna" in output
    assert "4.00" in output


def test_score_out_of_range(runner, make_match):
    match = make_match()

    result = runner("match", "score", str(match.id), "100000000000000000000", "0")

    assert "Scores must not exceed" in result.output
    assert not db.session.get(Match, match.id).is_scored


def test_score_unknown_match(runner):
    assert "Match not found" in runner("match", "score", "99", "1", "0").output


def test_empty_leaderboard(runner):
    assert "No activated players yet." in runner("leaderboard").output


def test_status(runner, make_user, make_match):
    make_user("anna")
    make_match(home_score=1, away_score=0)
    make_match("Spain", "Italy")

    output = runner("status").output

    assert "Database: Connected" in output
    assert "Activated Players: 1" in output
    assert "Matches: 1/2 scored" in output


def test_reset_can_be_cancelled(runner, make_user):
    make_user("anna")

    result = runner("db-cmd", "reset", input="n\n")

    assert "Cancelled." in result.output
    assert User.query.count() == 1
