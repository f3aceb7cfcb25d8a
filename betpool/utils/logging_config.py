"""
Logging setup for the betting pool

Console output for development, rotating files for everything else, and a
separate scoring log so every payout can be traced after the fact.
"""

import logging
import logging.handlers
import os

from flask import g, has_request_context, request

# Loggers whose records also go to scoring.log
SCORING_LOGGERS = ("betpool.services.scoring_service", "betpool.utils.scoring")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
REQUEST_FORMAT = PLAIN_FORMAT + " [%(method)s %(path)s] [user=%(user_id)s] [%(remote_addr)s]"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RequestContextFilter(logging.Filter):
    """Attach method, path, client address and user id to every record"""

    def filter(self, record):
        record.method = record.path = record.remote_addr = record.user_id = "-"

        if has_request_context():
            record.method = request.method
            record.path = request.path
            record.remote_addr = request.remote_addr
            # Only report a user Flask-Login already loaded; never query from here
            user = g.get("_login_user")
            if user is not None and user.is_authenticated:
                record.user_id = user.id

        return True


class ColoredFormatter(logging.Formatter):
    """Colors the level name on terminals"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        # Color a copy so other handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(path, level, fmt, max_bytes, backup_count):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Configure the root logger for the application.

    Handlers:
        console      LOG_TO_CONSOLE, colored when app.debug
        betpool.log  LOG_TO_FILE, everything at LOG_LEVEL
        errors.log   LOG_TO_FILE, ERROR and above
        scoring.log  LOG_TO_FILE, scoring transaction and payouts only
    """
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Repeated create_app() calls must not stack handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for name in SCORING_LOGGERS:
        scoring_logger = logging.getLogger(name)
        for handler in scoring_logger.handlers[:]:
            scoring_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        formatter_class = ColoredFormatter if app.debug else logging.Formatter
        console_handler.setFormatter(formatter_class(PLAIN_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "betpool.log"),
                log_level,
                REQUEST_FORMAT,
                max_bytes=10 * 1024 * 1024,
                backup_count=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"),
                logging.ERROR,
                REQUEST_FORMAT + " [%(pathname)s:%(lineno)d]",
                max_bytes=5 * 1024 * 1024,
                backup_count=3,
            )
        )

        scoring_handler = _rotating_handler(
            os.path.join(log_dir, "scoring.log"),
            logging.INFO,
            REQUEST_FORMAT,
            max_bytes=5 * 1024 * 1024,
            backup_count=10,
        )
        for name in SCORING_LOGGERS:
            logging.getLogger(name).addHandler(scoring_handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("flask_limiter").setLevel(logging.WARNING)
    if not app.config.get("SQLALCHEMY_ECHO"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - level {logging.getLevelName(log_level)}")


def get_logger(name):
    """Module logger; handlers are configured once by setup_logging()"""
    return logging.getLogger(name)
