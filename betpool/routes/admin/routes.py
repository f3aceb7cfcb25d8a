import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from betpool import api_error, db
from betpool.models import ODDS_FIELDS, AdminAction, User
from betpool.routes.admin import bp
from betpool.services.scoring_service import (
    MatchNotFoundError,
    PersistenceError,
    ScoringError,
    score_match,
    update_odds,
)
from betpool.utils.cache_utils import invalidate_match_cache
from betpool.utils.request_utils import (
    get_json_body,
    get_param,
    has_param,
    parse_bool,
    to_camel_case,
)

logger = logging.getLogger(__name__)


def admin_required(f):
    """Only site admins get past this point"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(
                f"User {current_user.id} denied admin access to {request.path}"
            )
            return api_error("FORBIDDEN", "Admin access required", 403)
        return f(*args, **kwargs)

    return decorated_function


def _scoring_error_response(error):
    if isinstance(error, MatchNotFoundError):
        status = 404
    elif isinstance(error, PersistenceError):
        status = 500
    else:
        status = 422
    field = to_camel_case(error.field) if error.field else None
    return api_error(error.code, error.message, status, field)


@bp.route("/matches/<int:match_id>", methods=["PUT"])
@admin_required
def update_match_odds(match_id):
    """Set any of the six odds on a match"""
    data = get_json_body()
    odds = {
        field: get_param(data, field)
        for field in ODDS_FIELDS.values()
        if has_param(data, field) and get_param(data, field) is not None
    }

    try:
        match, applied = update_odds(match_id, odds)
    except ScoringError as e:
        return _scoring_error_response(e)

    if applied:
        AdminAction.log_odds_update(current_user, match, applied)
        db.session.commit()
    invalidate_match_cache()

    return jsonify({"data": match.to_dict()})


@bp.route("/matches/<int:match_id>/score", methods=["POST"])
@admin_required
def score(match_id):
    """Enter the final score; pays out every bet on the match exactly once"""
    data = get_json_body()
    admin = current_user._get_current_object()

    try:
        match, players_scored = score_match(
            match_id,
            get_param(data, "home_score"),
            get_param(data, "away_score"),
            audit=lambda scored, count: AdminAction.log_match_scored(admin, scored, count),
        )
    except ScoringError as e:
        return _scoring_error_response(e)

    invalidate_match_cache()

    return jsonify(
        {"data": match.to_dict(), "meta": {"playersScored": players_scored}}
    )


@bp.route("/users")
@admin_required
def users():
    """All users with their admin and activation flags"""
    all_users = User.query.order_by(User.nickname.asc()).all()
    return jsonify(
        {
            "data": [user.to_admin_dict() for user in all_users],
            "meta": {"count": len(all_users)},
        }
    )


@bp.route("/users/<int:user_id>", methods=["PUT"])
@admin_required
def update_user(user_id):
    """Grant or revoke the admin role"""
    user = db.session.get(User, user_id)
    if user is None:
        return api_error("NOT_FOUND", "User not found", 404)

    data = get_json_body()
    if not has_param(data, "admin"):
        return jsonify({"data": user.to_admin_dict()})

    make_admin = parse_bool(get_param(data, "admin"))

    if user.id == current_user.id and not make_admin:
        return api_error(
            "SELF_ROLE_CHANGE", "Cannot remove your own admin role", 403, "admin"
        )

    if user.is_admin != make_admin:
        user.is_admin = make_admin
        AdminAction.log_role_change(current_user, user)
        db.session.commit()

    return jsonify({"data": user.to_admin_dict()})


@bp.route("/actions")
@admin_required
def actions():
    """Most recent admin actions, newest first"""
    limit = min(max(request.args.get("limit", 50, type=int), 1), 500)
    recent = AdminAction.recent(limit)
    return jsonify(
        {"data": [action.to_dict() for action in recent], "meta": {"count": len(recent)}}
    )
