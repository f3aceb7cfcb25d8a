"""
Ranking Engine for the betting pool

Aggregates points per activated user and assigns standard competition ranks
("1224": tied totals share a rank, the next distinct total takes its sort
position). The previous-rank snapshot written by the scoring transaction is
what the leaderboard compares against to show movement.
"""

from decimal import Decimal

from sqlalchemy import func, update

from betpool import db
from betpool.models import Bet, User
from betpool.utils.logging_config import get_logger

logger = get_logger(__name__)

POINTS_QUANTUM = Decimal("0.01")


def _to_points(value):
    """Normalize an aggregated total to an exact two-digit Decimal"""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        # Some drivers hand SUM() back as float; go through str to stay exact
        value = Decimal(str(value))
    return value.quantize(POINTS_QUANTUM)


def aggregate_standings():
    """
    Total points per activated user, best first.

    One aggregating query: users left-joined to their bets, summed with a zero
    default. Ordered by total descending, then nickname ascending (the nickname
    only makes the order deterministic; it never affects ranks).

    Returns:
        list of dicts with user_id, nickname, previous_rank, total_points
    """
    total_points = func.coalesce(func.sum(Bet.points_earned), 0).label("total_points")

    rows = (
        db.session.query(User.id, User.nickname, User.previous_rank, total_points)
        .outerjoin(Bet, Bet.user_id == User.id)
        .filter(User.activated.is_(True))
        .group_by(User.id, User.nickname, User.previous_rank)
        .all()
    )

    standings = [
        {
            "user_id": row.id,
            "nickname": row.nickname,
            "previous_rank": row.previous_rank,
            "total_points": _to_points(row.total_points),
        }
        for row in rows
    ]

    # Sorted in Python so decimal ordering does not depend on the driver
    standings.sort(key=lambda entry: entry["nickname"])
    standings.sort(key=lambda entry: entry["total_points"], reverse=True)

    return standings


def assign_ranks(totals):
    """
    Standard competition ranking over totals already sorted best first.

    An entry shares the previous entry's rank only when its total is exactly
    equal; otherwise its rank is its 1-based position, so [50, 50, 30] ranks
    as [1, 1, 3].
    """
    ranks = []
    for index, total in enumerate(totals):
        if index > 0 and total == totals[index - 1]:
            ranks.append(ranks[index - 1])
        else:
            ranks.append(index + 1)
    return ranks


def rank_standings(standings):
    """Attach a competition rank to each standings entry, in place"""
    ranks = assign_ranks([entry["total_points"] for entry in standings])
    for entry, rank in zip(standings, ranks):
        entry["rank"] = rank
    return standings


def rank_movement(position, previous_position):
    """
    Movement indicator for a leaderboard row.

    Returns:
        "up", "down" or "same"; None when the user has no snapshot yet
    """
    if previous_position is None:
        return None
    if position < previous_position:
        return "up"
    if position > previous_position:
        return "down"
    return "same"


def build_leaderboard():
    """
    Current leaderboard, recomputed on every call.

    Returns:
        list of dicts with position, user_id, nickname, total_points,
        previous_position and movement
    """
    standings = rank_standings(aggregate_standings())

    return [
        {
            "position": entry["rank"],
            "user_id": entry["user_id"],
            "nickname": entry["nickname"],
            "total_points": entry["total_points"],
            "previous_position": entry["previous_rank"],
            "movement": rank_movement(entry["rank"], entry["previous_rank"]),
        }
        for entry in standings
    ]


def snapshot_previous_ranks():
    """
    Store every activated user's current rank as their previous_rank.

    Must run inside the scoring transaction before any points change, so the
    stored ranks describe the table right before the match was scored. Written
    as a single bulk update keyed by user id.

    Returns:
        Number of users snapshotted
    """
    standings = rank_standings(aggregate_standings())
    if not standings:
        return 0

    db.session.execute(
        update(User),
        [{"id": entry["user_id"], "previous_rank": entry["rank"]} for entry in standings],
    )

    logger.debug(f"Captured previous ranks for {len(standings)} users")
    return len(standings)
