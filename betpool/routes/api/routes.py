import logging
from functools import wraps

from flask import jsonify
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from betpool import api_error, db
from betpool.models import Bet, Match, User
from betpool.routes.api import bp
from betpool.utils.cache_utils import MATCHES_CACHE_KEY, cached_query
from betpool.utils.performance import PerformanceMonitor
from betpool.utils.ranking import build_leaderboard
from betpool.utils.request_utils import get_json_body, get_param

logger = logging.getLogger(__name__)


def _to_id(value):
    """Accept 7 or "7" as a record id; anything else is no id"""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _bet_locked():
    return api_error("BET_LOCKED", "Match has started", 403)


def _load_bet(f):
    """Resolve <bet_id>, then refuse changes after kickoff or by non-owners"""

    @wraps(f)
    def decorated_function(bet_id, *args, **kwargs):
        bet = db.session.get(Bet, bet_id)
        if bet is None:
            return api_error("NOT_FOUND", "Bet not found", 404)

        if not bet.match.is_open_for_bets():
            return _bet_locked()

        if bet.user_id != current_user.id:
            return api_error("FORBIDDEN", "Access denied", 403)

        return f(bet, *args, **kwargs)

    return decorated_function


@cached_query(MATCHES_CACHE_KEY, timeout=300)
def _serialized_matches():
    matches = Match.query.order_by(Match.kickoff_time.asc(), Match.id.asc()).all()
    return [match.to_dict() for match in matches]


@bp.route("/matches")
@login_required
def matches():
    """All matches ordered by kickoff"""
    data = _serialized_matches()
    return jsonify({"data": data, "meta": {"count": len(data)}})


@bp.route("/matches/<int:match_id>/bets")
@login_required
def match_bets(match_id):
    """Bets on a match: only your own before kickoff, everyone's afterwards"""
    match = db.get_or_404(Match, match_id)
    after_kickoff = match.has_kicked_off()

    if after_kickoff:
        bets = match.bets.join(User).order_by(User.nickname.asc()).all()
    else:
        bets = match.bets.filter(Bet.user_id == current_user.id).all()

    meta = {"count": len(bets)}
    if after_kickoff:
        meta["allPlayers"] = [
            user.nickname
            for user in User.query.filter_by(activated=True)
            .order_by(User.nickname.asc())
            .all()
        ]

    return jsonify(
        {"data": [bet.to_dict(include_nickname=True) for bet in bets], "meta": meta}
    )


@bp.route("/bets")
@login_required
def my_bets():
    """Current user's bets"""
    bets = current_user.bets.order_by(Bet.match_id.asc()).all()
    return jsonify(
        {"data": [bet.to_dict() for bet in bets], "meta": {"count": len(bets)}}
    )


@bp.route("/bets", methods=["POST"])
@login_required
def create_bet():
    """Place a bet on a match that has not kicked off yet"""
    data = get_json_body()
    match_id = _to_id(get_param(data, "match_id"))
    match = db.session.get(Match, match_id) if match_id is not None else None
    if match is None:
        return api_error("NOT_FOUND", "Match not found", 404)

    if not match.is_open_for_bets():
        return _bet_locked()

    if match.bets.filter(Bet.user_id == current_user.id).first() is not None:
        return api_error(
            "VALIDATION_ERROR", "You already have a bet on this match", 422, "matchId"
        )

    try:
        bet = Bet(user_id=current_user.id, match_id=match.id)
        bet.bet_type = get_param(data, "bet_type")
    except ValueError as e:
        return api_error("VALIDATION_ERROR", f"Bet type {e}", 422, "betType")

    db.session.add(bet)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent bet on the same match
        db.session.rollback()
        return api_error(
            "VALIDATION_ERROR", "You already have a bet on this match", 422, "matchId"
        )

    logger.info(f"User {current_user.id} bet {bet.bet_type} on match {match.id}")
    return jsonify({"data": bet.to_dict()}), 201


@bp.route("/bets/<int:bet_id>", methods=["PUT"])
@login_required
@_load_bet
def update_bet(bet):
    """Change the bet type of your own open bet"""
    data = get_json_body()

    try:
        bet.bet_type = get_param(data, "bet_type")
    except ValueError as e:
        return api_error("VALIDATION_ERROR", f"Bet type {e}", 422, "betType")

    db.session.commit()
    return jsonify({"data": bet.to_dict()})


@bp.route("/bets/<int:bet_id>", methods=["DELETE"])
@login_required
@_load_bet
def delete_bet(bet):
    """Withdraw your own open bet"""
    db.session.delete(bet)
    db.session.commit()
    return "", 204


@bp.route("/leaderboard")
@login_required
def leaderboard():
    """Standings with competition ranking and movement since the last scored match"""
    with PerformanceMonitor("build_leaderboard"):
        standings = build_leaderboard()

    data = [
        {
            "position": entry["position"],
            "userId": entry["user_id"],
            "nickname": entry["nickname"],
            "totalPoints": float(entry["total_points"]),
            "previousPosition": entry["previous_position"],
            "movement": entry["movement"],
        }
        for entry in standings
    ]
    return jsonify({"data": data, "meta": {"count": len(data)}})
