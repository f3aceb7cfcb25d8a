import logging

from flask import current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import generate_password_hash

from betpool import api_error, db, limiter, login_manager
from betpool.models import User
from betpool.routes.auth import bp
from betpool.utils.request_utils import get_json_body, get_param

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def _invalid_credentials():
    return api_error("INVALID_CREDENTIALS", "Incorrect nickname or password", 401)


@bp.route("/sessions", methods=["POST"])
@limiter.limit(lambda: current_app.config.get("LOGIN_RATE_LIMIT", "10 per minute"))
def login():
    """Log in with nickname (case-insensitive) and password"""
    data = get_json_body()
    nickname = get_param(data, "nickname")
    password = get_param(data, "password")

    if not nickname or not password:
        return _invalid_credentials()

    user = User.find_by_nickname(nickname)

    if user is None:
        # Hash anyway so unknown nicknames take as long as wrong passwords
        generate_password_hash(password)
        authenticated = False
    else:
        authenticated = user.check_password(password)

    if not authenticated or not user.activated:
        logger.info(f"Failed login attempt for nickname '{nickname}'")
        return _invalid_credentials()

    login_user(user)
    logger.info(f"User {user.id} logged in")
    return jsonify({"data": user.to_dict()})


@bp.route("/sessions", methods=["DELETE"])
@login_required
def logout():
    """End the current session"""
    logout_user()
    return "", 204


@bp.route("/me")
@login_required
def me():
    """Current user"""
    return jsonify({"data": current_user.to_dict()})
