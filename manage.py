#!/usr/bin/env python3
"""
Betting Pool Management CLI

This script provides command-line management functionality for the betting pool.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from betpool import create_app, db
from betpool.models import Bet, Match, User
from betpool.services.scoring_service import ScoringError, score_match, update_odds
from betpool.utils.cache_utils import invalidate_match_cache
from betpool.utils.ranking import build_leaderboard
from betpool.utils.timezone_utils import ensure_utc, format_kickoff_time

ODDS_OPTIONS = {
    "home": "odds_home",
    "draw": "odds_draw",
    "away": "odds_away",
    "home_draw": "odds_home_draw",
    "draw_away": "odds_draw_away",
    "home_away": "odds_home_away",
}

MOVEMENT_ARROWS = {"up": "▲", "down": "▼", "same": "=", None: " "}


@click.group()
def cli():
    """Betting Pool Management CLI"""
    pass


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


def _create_user(nickname, password, admin, activated):
    if User.find_by_nickname(nickname):
        click.echo(f"❌ User '{nickname}' already exists!")
        return None

    try:
        new_user = User(nickname=nickname, is_admin=admin, activated=activated)
    except ValueError as e:
        click.echo(f"❌ Invalid nickname: {e}")
        return None

    new_user.set_password(password)
    db.session.add(new_user)

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ User '{nickname}' already exists!")
        logging.error(f"User creation failed - integrity error: {e}")
        return None

    return new_user


@user.command()
@click.argument("nickname")
@click.argument("password")
@click.option("--inactive", is_flag=True, help="Create the account deactivated")
@with_appcontext
def create(nickname, password, inactive):
    """Create a player account"""
    created = _create_user(nickname, password, admin=False, activated=not inactive)
    if created:
        click.echo(f"✅ Created user '{created.nickname}'")


@user.command()
@click.argument("nickname")
@click.argument("password")
@with_appcontext
def create_admin(nickname, password):
    """Create an admin user"""
    created = _create_user(nickname, password, admin=True, activated=True)
    if created:
        click.echo(f"✅ Created admin user '{created.nickname}'")


@user.command()
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.nickname.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.activated else "🔴"
        role = " (admin)" if u.is_admin else ""
        click.echo(f"  {status} {u.nickname}{role}")


# Match Management Commands
@cli.group()
def match():
    """Match management commands"""
    pass


@match.command(name="create")
@click.argument("home_team")
@click.argument("away_team")
@click.argument(
    "kickoff", type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"])
)
@click.option("--group", "group_label", help="Group label, e.g. 'Group A'")
@with_appcontext
def create_match(home_team, away_team, kickoff, group_label):
    """Create a match (KICKOFF is UTC, 'YYYY-MM-DD HH:MM')"""
    try:
        new_match = Match(
            home_team=home_team,
            away_team=away_team,
            kickoff_time=ensure_utc(kickoff),
            group_label=group_label,
        )
        db.session.add(new_match)
        db.session.commit()
    except ValueError as e:
        click.echo(f"❌ Invalid match: {e}")
        return
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating match: {str(e)}")
        logging.error(f"Match creation failed - SQL error: {e}")
        return

    invalidate_match_cache()
    click.echo(f"✅ Created match #{new_match.id}: {home_team} vs {away_team}")


@match.command()
@with_appcontext
def list_matches():
    """List all matches by kickoff"""
    matches = Match.query.order_by(Match.kickoff_time.asc(), Match.id.asc()).all()

    if not matches:
        click.echo("No matches found.")
        return

    click.echo("Matches:")
    for m in matches:
        result = f"{m.home_score}-{m.away_score}" if m.is_scored else "open"
        label = f" [{m.group_label}]" if m.group_label else ""
        click.echo(
            f"  #{m.id} {format_kickoff_time(m.kickoff_time)}{label} "
            f"{m.home_team} vs {m.away_team}: {result} ({m.bets.count()} bets)"
        )


@match.command()
@click.argument("match_id", type=int)
@click.option("--home", type=str, help="Odds for a home win (1)")
@click.option("--draw", type=str, help="Odds for a draw (X)")
@click.option("--away", type=str, help="Odds for an away win (2)")
@click.option("--home-draw", type=str, help="Odds for home win or draw (1X)")
@click.option("--draw-away", type=str, help="Odds for draw or away win (X2)")
@click.option("--home-away", type=str, help="Odds for no draw (12)")
@with_appcontext
def odds(match_id, **options):
    """Set odds on a match"""
    values = {
        ODDS_OPTIONS[name]: value
        for name, value in options.items()
        if value is not None
    }
    if not values:
        click.echo("Nothing to update. Pass at least one odds option.")
        return

    try:
        updated, applied = update_odds(match_id, values)
    except ScoringError as e:
        click.echo(f"❌ {e.message}")
        return

    invalidate_match_cache()
    changes = ", ".join(f"{field}={value}" for field, value in applied.items())
    click.echo(f"✅ Updated odds for match #{updated.id}: {changes}")


@match.command(name="score")
@click.argument("match_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@with_appcontext
def score_command(match_id, home_score, away_score):
    """Enter the final score and pay out all bets"""
    try:
        scored, players_scored = score_match(match_id, home_score, away_score)
    except ScoringError as e:
        click.echo(f"❌ {e.message}")
        return

    invalidate_match_cache()
    click.echo(
        f"✅ {scored.home_team} {scored.home_score}-{scored.away_score} "
        f"{scored.away_team}: {players_scored} bets scored"
    )


# Leaderboard
@cli.command()
@with_appcontext
def leaderboard():
    """Show the current leaderboard"""
    standings = build_leaderboard()

    if not standings:
        click.echo("No activated players yet.")
        return

    click.echo("Leaderboard:")
    for entry in standings:
        arrow = MOVEMENT_ARROWS[entry["movement"]]
        click.echo(
            f"  {entry['position']:>3}. {arrow} {entry['nickname']:<30} "
            f"{entry['total_points']:>8}"
        )


# Database Commands
@cli.group(name="db-cmd")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        invalidate_match_cache()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Betting Pool Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    user_count = User.query.filter_by(activated=True).count()
    click.echo(f"👥 Activated Players: {user_count}")

    match_count = Match.query.count()
    scored_count = Match.query.filter(
        Match.home_score.isnot(None), Match.away_score.isnot(None)
    ).count()
    click.echo(f"🏟  Matches: {scored_count}/{match_count} scored")

    bet_count = Bet.query.count()
    click.echo(f"🎟  Bets placed: {bet_count}")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
