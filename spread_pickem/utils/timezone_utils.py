"""
Timezone utility functions for the Spread Pick'em application

Kickoff times are stored in UTC. SQLite hands datetimes back without tzinfo,
so naive values are always read as UTC.
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured display timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return an aware UTC datetime, treating naive values as UTC"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    return ensure_utc(dt).astimezone(get_app_timezone())


def parse_kickoff(value):
    """Parse an ISO-8601 kickoff string into an aware UTC datetime"""
    if isinstance(value, datetime):
        return ensure_utc(value)

    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid kickoff time: {value!r}")

    # fromisoformat doesn't accept a trailing Z before Python 3.11
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    return ensure_utc(datetime.fromisoformat(text))


def format_game_time(dt, format_str="%a %m/%d at %I:%M %p %Z"):
    """Format a game time in the application's timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt).strftime(format_str)
