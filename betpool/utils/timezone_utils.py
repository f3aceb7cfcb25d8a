"""
Timezone utility functions for the betting pool
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured display timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return dt as an aware UTC datetime (naive values are taken as UTC)"""
    if dt is None:
        return None

    # SQLite hands back naive datetimes
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    return ensure_utc(dt).astimezone(get_app_timezone())


def isoformat_utc(dt):
    """Serialize a datetime as an ISO 8601 UTC timestamp (``2026-06-11T19:00:00Z``)"""
    if dt is None:
        return None

    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_kickoff_time(dt, format_str="%a %d.%m. %H:%M"):
    """Format a kickoff time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt).strftime(format_str)
