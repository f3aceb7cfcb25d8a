"""
Shared fixtures: an in-memory app per test plus small record factories.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from betpool import create_app, db
from betpool.models import Bet, Match, User

PASSWORD = "password"


@pytest.fixture
def app():
    """Create an application backed by an in-memory SQLite database."""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Factory for users; activated players by default."""

    def _make_user(nickname, admin=False, activated=True, password=PASSWORD):
        user = User(nickname=nickname, is_admin=admin, activated=activated)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_match(app):
    """Factory for matches; kicks off tomorrow unless told otherwise."""

    def _make_match(home_team="Poland", away_team="Germany", kickoff_in=timedelta(days=1), **fields):
        match = Match(
            home_team=home_team,
            away_team=away_team,
            kickoff_time=datetime.now(timezone.utc) + kickoff_in,
            **fields,
        )
        db.session.add(match)
        db.session.commit()
        return match

    return _make_match


@pytest.fixture
def make_bet(app):
    """Factory for bets, optionally with points already earned."""

    def _make_bet(user, match, bet_type="1", points_earned="0"):
        bet = Bet(
            user_id=user.id,
            match_id=match.id,
            bet_type=bet_type,
            points_earned=Decimal(points_earned),
        )
        db.session.add(bet)
        db.session.commit()
        return bet

    return _make_bet


@pytest.fixture
def login(client):
    """Log a user in through the sessions endpoint."""

    def _login(nickname, password=PASSWORD):
        response = client.post(
            "/api/v1/sessions", json={"nickname": nickname, "password": password}
        )
        assert response.status_code == 200, response.get_json()
        return response

    return _login
